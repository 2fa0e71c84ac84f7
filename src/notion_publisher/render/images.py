import asyncio
import hashlib
import logging
import os
import shutil
from pathlib import Path, PurePosixPath
from typing import Optional
from urllib.parse import urljoin, urlsplit, urlunsplit

import requests
from pydantic import BaseModel

from ..errors import DownloadError, TransportError

logger = logging.getLogger(__name__)

DEFAULT_EXTENSION = ".png"
MAX_EXTENSION_LENGTH = 5
HASH_LENGTH = 12
REDIRECT_STATUSES = (301, 302, 303, 307, 308)


class ImageResult(BaseModel):
    path: str
    skipped: bool


def cache_key(url: str) -> str:
    """Drop the query string so rotating signatures map to the same key."""
    parts = urlsplit(url)
    return urlunsplit((parts.scheme, parts.netloc, parts.path, "", ""))


def cache_filename(url: str, slug: str) -> str:
    stable = cache_key(url)
    digest = hashlib.md5(stable.encode("utf-8")).hexdigest()[:HASH_LENGTH]

    ext = PurePosixPath(urlsplit(stable).path).suffix.lower()
    if not ext or len(ext) > MAX_EXTENSION_LENGTH:
        ext = DEFAULT_EXTENSION

    return f"{slug}-{digest}{ext}"


class ImageCache:
    """Downloads post images once into a local directory.

    Files are named ``{slug}-{hash}{ext}`` where the hash covers the URL
    without its query string, so re-running a sync against freshly signed
    Notion URLs finds the existing files instead of downloading again.
    """

    def __init__(
        self,
        images_dir: Path,
        session: Optional[requests.Session] = None,
        timeout: float = 30.0,
    ):
        self.images_dir = Path(images_dir)
        self.session = session or requests.Session()
        self.timeout = timeout
        self.downloaded = 0
        self.skipped = 0

    def ensure_dir(self):
        """Create the images directory if it is missing."""
        self.images_dir.mkdir(parents=True, exist_ok=True)

    def local_path(self, url: str, slug: str) -> Path:
        return self.images_dir / cache_filename(url, slug)

    async def resolve(self, url: str, slug: str) -> ImageResult:
        filename = cache_filename(url, slug)
        target = self.images_dir / filename
        relative = f"{self.images_dir.name}/{filename}"

        if target.exists():
            self.skipped += 1
            return ImageResult(path=relative, skipped=True)

        location = await asyncio.to_thread(self._download, url, target)
        if location is not None:
            # Keep the file reachable under the requested URL so later runs
            # hit the cache without asking the server again.
            final = await self.resolve(location, slug)
            source = self.images_dir / PurePosixPath(final.path).name
            await asyncio.to_thread(self._link, source, target)
            return ImageResult(path=relative, skipped=final.skipped)

        self.downloaded += 1
        return ImageResult(path=relative, skipped=False)

    def _download(self, url: str, target: Path) -> Optional[str]:
        """Fetch ``url`` into ``target``.

        Returns the redirect location when the server answers with one;
        nothing is written in that case.
        """
        partial = target.with_name(target.name + ".part")
        try:
            with self.session.get(
                url, stream=True, allow_redirects=False, timeout=self.timeout
            ) as response:
                if response.status_code in REDIRECT_STATUSES:
                    location = response.headers.get("Location")
                    if location:
                        return urljoin(url, location)
                if response.status_code != 200:
                    raise DownloadError(response.status_code, url)

                with open(partial, "wb") as f:
                    for chunk in response.iter_content(chunk_size=65536):
                        if chunk:
                            f.write(chunk)
            os.replace(partial, target)
        except requests.RequestException as e:
            partial.unlink(missing_ok=True)
            raise TransportError(url, e) from e
        except BaseException:
            partial.unlink(missing_ok=True)
            raise
        return None

    def _link(self, source: Path, target: Path):
        partial = target.with_name(target.name + ".part")
        partial.unlink(missing_ok=True)
        try:
            os.link(source, partial)
        except OSError:
            shutil.copyfile(source, partial)
        os.replace(partial, target)
