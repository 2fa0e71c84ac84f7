import logging
import re
from datetime import date
from typing import Any, Dict, List, Optional
from notion_client import AsyncClient
from .models import NotionBlock, PageContent, Post
from ..errors import ChildFetchError

logger = logging.getLogger(__name__)

TITLE_PROPERTY = "Title"
DATE_PROPERTY = "Published Date"
STATUS_PROPERTY = "Status"
PUBLISHED = "Published"


def slugify(text: str) -> str:
    """Create a URL-friendly slug from a post title."""
    return re.sub(r"[^a-z0-9]+", "-", text.lower()).strip("-")


def parse_post(page: Dict[str, Any]) -> Post:
    """Read title, date and slug from a database row."""
    properties = page.get("properties", {})

    title_parts = properties.get(TITLE_PROPERTY, {}).get("title") or []
    title = "".join(part.get("plain_text", "") for part in title_parts) or "Untitled"

    published = (properties.get(DATE_PROPERTY, {}).get("date") or {}).get("start")
    published_date = date.fromisoformat(published[:10]) if published else date.today()

    return Post(id=page["id"], title=title, published=published_date, slug=slugify(title))


class NotionClient:
    def __init__(
        self,
        token: Optional[str] = None,
        database_id: Optional[str] = None,
        client: Optional[AsyncClient] = None,
    ):
        if client is None and not token:
            raise ValueError("NOTION_API_KEY not found in environment variables")
        self.client = client or AsyncClient(auth=token)
        self.database_id = database_id

    async def list_published_posts(self) -> List[Post]:
        """List published posts, newest first."""
        if not self.database_id:
            raise ValueError("NOTION_DATABASE_ID is not configured")

        posts = []
        has_more = True
        start_cursor = None

        while has_more:
            kwargs: Dict[str, Any] = {
                "database_id": self.database_id,
                "filter": {"property": STATUS_PROPERTY, "select": {"equals": PUBLISHED}},
                "sorts": [{"property": DATE_PROPERTY, "direction": "descending"}],
            }
            if start_cursor:
                kwargs["start_cursor"] = start_cursor
            response = await self.client.databases.query(**kwargs)

            for page in response.get("results", []):
                posts.append(parse_post(page))

            has_more = response.get("has_more", False)
            start_cursor = response.get("next_cursor")

        return posts

    async def get_block_children(self, block_id: str) -> List[NotionBlock]:
        """Fetch every direct child of a block, following pagination."""
        try:
            blocks = []
            has_more = True
            start_cursor = None

            while has_more:
                kwargs: Dict[str, Any] = {"block_id": block_id}
                if start_cursor:
                    kwargs["start_cursor"] = start_cursor
                response = await self.client.blocks.children.list(**kwargs)

                for block in response.get("results", []):
                    blocks.append(NotionBlock.from_api(block))

                has_more = response.get("has_more", False)
                start_cursor = response.get("next_cursor")

            return blocks
        except Exception as e:
            raise ChildFetchError(block_id, e) from e

    async def get_page_content(self, post: Post) -> PageContent:
        """Retrieve the top-level blocks of a post."""
        blocks = await self.get_block_children(post.id)
        logger.debug("Fetched %d blocks for %s", len(blocks), post.slug)
        return PageContent(post=post, blocks=blocks)

    async def aclose(self):
        await self.client.aclose()
