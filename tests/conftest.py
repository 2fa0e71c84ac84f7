"""
Common test fixtures for the Notion Publisher project.
"""

import pytest
from typing import Dict, List, Optional
from notion_publisher.api.models import NotionBlock
from notion_publisher.errors import ChildFetchError
from notion_publisher.render.blocks import BlockRenderer
from notion_publisher.render.images import ImageCache


def rich_text(text: str, href: Optional[str] = None, **annotations) -> dict:
    """Build a raw API text span."""
    return {
        "type": "text",
        "text": {"content": text, "link": {"url": href} if href else None},
        "plain_text": text,
        "href": href,
        "annotations": {
            "bold": False,
            "italic": False,
            "strikethrough": False,
            "underline": False,
            "code": False,
            "color": "default",
            **annotations,
        },
    }


def raw_block(block_type: str, block_id: str = "b", has_children: bool = False, **data):
    return {
        "object": "block",
        "id": block_id,
        "type": block_type,
        "has_children": has_children,
        block_type: data,
    }


def block(block_type: str, block_id: str = "b", has_children: bool = False, **data):
    return NotionBlock.from_api(raw_block(block_type, block_id, has_children, **data))


def text_block(block_type: str, text: str, block_id: str = "b", has_children: bool = False):
    return block(block_type, block_id, has_children, rich_text=[rich_text(text)])


class FakeChildren:
    """Stands in for the Notion children endpoint."""

    def __init__(self, children: Optional[Dict[str, List[NotionBlock]]] = None):
        self.children = children or {}
        self.calls: List[str] = []

    async def __call__(self, block_id: str) -> List[NotionBlock]:
        self.calls.append(block_id)
        if block_id not in self.children:
            raise ChildFetchError(block_id, KeyError(block_id))
        return self.children[block_id]


class FakeResponse:
    def __init__(self, status_code: int = 200, body: bytes = b"", headers=None, error=None):
        self.status_code = status_code
        self.body = body
        self.headers = headers or {}
        self.error = error

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        return False

    def iter_content(self, chunk_size=1):
        for start in range(0, len(self.body), chunk_size):
            yield self.body[start : start + chunk_size]
        if self.error is not None:
            raise self.error


class FakeSession:
    """Minimal requests.Session replacement keyed by URL."""

    def __init__(self, responses: Optional[Dict[str, FakeResponse]] = None):
        self.responses = responses or {}
        self.calls: List[str] = []

    def get(self, url, **kwargs):
        self.calls.append(url)
        response = self.responses[url]
        if isinstance(response, Exception):
            raise response
        return response


@pytest.fixture
def fetch_children():
    """Fixture providing an empty fake children fetcher."""
    return FakeChildren()


@pytest.fixture
def session():
    return FakeSession()


@pytest.fixture
def image_cache(tmp_path, session):
    """Fixture providing an ImageCache writing into a temporary images dir."""
    cache = ImageCache(tmp_path / "images", session=session)
    cache.ensure_dir()
    return cache


@pytest.fixture
def renderer(fetch_children, image_cache):
    return BlockRenderer(fetch_children, image_cache)
