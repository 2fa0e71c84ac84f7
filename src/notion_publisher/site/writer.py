import logging
from datetime import date
from itertools import groupby
from pathlib import Path
from typing import Iterable, List, Optional, Set
from jinja2 import Environment, FileSystemLoader, select_autoescape
from ..api.models import Post

logger = logging.getLogger(__name__)

TEMPLATES_DIR = Path(__file__).parent / "templates"
INDEX_FILENAME = "index.html"


def format_date(value: date) -> str:
    """Long display form, e.g. ``March 28, 2024``."""
    return f"{value.strftime('%B')} {value.day}, {value.year}"


def format_date_short(value: date) -> str:
    """Post list form, e.g. ``Mar 28``."""
    return f"{value.strftime('%b')} {value.day}"


class SiteWriter:
    """Writes post pages and the post index into the output directory."""

    def __init__(self, output_dir: Path, author: str = "", year: Optional[int] = None):
        self.output_dir = Path(output_dir)
        self.author = author
        self.year = year or date.today().year

        self.env = Environment(
            loader=FileSystemLoader(str(TEMPLATES_DIR)),
            autoescape=select_autoescape(["html"]),
            keep_trailing_newline=True,
        )
        self.env.filters["long_date"] = format_date
        self.env.filters["short_date"] = format_date_short

    def _write(self, filename: str, html: str) -> Path:
        self.output_dir.mkdir(parents=True, exist_ok=True)
        path = self.output_dir / filename
        path.write_text(html, encoding="utf-8")
        return path

    def render_post(self, post: Post, content_html: str) -> str:
        template = self.env.get_template("post.html")
        return template.render(
            post=post, content=content_html, author=self.author, year=self.year
        )

    def write_post(self, post: Post, content_html: str) -> Path:
        return self._write(f"{post.slug}.html", self.render_post(post, content_html))

    def render_index(self, posts: List[Post]) -> str:
        ordered = sorted(posts, key=lambda p: p.published, reverse=True)
        years = [
            (year, list(group))
            for year, group in groupby(ordered, key=lambda p: p.published.year)
        ]
        template = self.env.get_template("index.html")
        return template.render(years=years, author=self.author, year=self.year)

    def write_index(self, posts: List[Post]) -> Path:
        return self._write(INDEX_FILENAME, self.render_index(posts))

    def remove_orphans(self, generated: Iterable[str]) -> List[str]:
        """Delete pages from earlier runs whose post is gone or was renamed."""
        keep: Set[str] = set(generated) | {INDEX_FILENAME}
        removed = []
        if not self.output_dir.exists():
            return removed

        for path in sorted(self.output_dir.glob("*.html")):
            if path.name not in keep:
                path.unlink()
                logger.info("Deleted orphaned file: %s", path.name)
                removed.append(path.name)
        return removed
