from typing import Optional


class PublisherError(Exception):
    """Base class for errors raised while syncing posts."""


class DownloadError(PublisherError):
    """A media fetch answered with a non-success status."""

    def __init__(self, status: int, url: str):
        self.status = status
        self.url = url
        super().__init__(f"Failed to download {url}: HTTP {status}")


class TransportError(PublisherError):
    """A media fetch failed below the HTTP layer."""

    def __init__(self, url: str, reason: Optional[BaseException] = None):
        self.url = url
        self.reason = reason
        super().__init__(f"Failed to fetch {url}: {reason}")


class ChildFetchError(PublisherError):
    def __init__(self, block_id: str, reason: Optional[BaseException] = None):
        self.block_id = block_id
        self.reason = reason
        super().__init__(f"Failed to fetch children of block {block_id}: {reason}")


class RenderError(PublisherError):
    """Rendering a block failed; carries the block that triggered it."""

    def __init__(self, block_id: str, block_type: str, reason: BaseException):
        self.block_id = block_id
        self.block_type = block_type
        self.reason = reason
        super().__init__(f"Failed to render {block_type} block {block_id}: {reason}")


class PublishError(PublisherError):
    pass
