import argparse
import asyncio
import logging
import sys
from typing import List, Optional
from pydantic import BaseModel, Field
from notion_publisher.api.client import NotionClient
from notion_publisher.config import Settings, configure_logging
from notion_publisher.errors import PublisherError
from notion_publisher.render.blocks import BlockRenderer
from notion_publisher.render.images import ImageCache
from notion_publisher.site.publish import Publisher
from notion_publisher.site.writer import SiteWriter

logger = logging.getLogger("notion_publisher")


class SyncReport(BaseModel):
    posts: List[str] = Field(default_factory=list)
    images_downloaded: int = 0
    images_skipped: int = 0
    orphans_removed: List[str] = Field(default_factory=list)


async def sync(
    settings: Settings,
    client: Optional[NotionClient] = None,
    image_cache: Optional[ImageCache] = None,
) -> SyncReport:
    """Fetch published posts and write them, plus the index, to the output dir."""
    client = client or NotionClient(
        token=settings.notion_api_key, database_id=settings.database_id
    )
    image_cache = image_cache or ImageCache(settings.images_dir)
    image_cache.ensure_dir()

    downloaded, skipped = image_cache.downloaded, image_cache.skipped

    renderer = BlockRenderer(client.get_block_children, image_cache)
    writer = SiteWriter(settings.output_dir, author=settings.site_author)
    report = SyncReport()

    logger.info("Fetching posts from Notion...")
    posts = await client.list_published_posts()
    logger.info("Found %d published posts", len(posts))

    generated = []
    for post in posts:
        logger.info("Processing: %s", post.title)
        page = await client.get_page_content(post)
        content = await renderer.render(page.blocks, post.slug)
        path = writer.write_post(post, content)
        generated.append(path.name)
        report.posts.append(post.slug)

    writer.write_index(posts)
    report.orphans_removed = writer.remove_orphans(generated)
    report.images_downloaded = image_cache.downloaded - downloaded
    report.images_skipped = image_cache.skipped - skipped

    logger.info(
        "Synced %d posts to %s/ (%d images downloaded, %d cached)",
        len(report.posts),
        settings.output_dir,
        report.images_downloaded,
        report.images_skipped,
    )
    if report.orphans_removed:
        logger.info("%d orphaned file(s) removed", len(report.orphans_removed))
    return report


async def _run(settings: Settings) -> SyncReport:
    client = NotionClient(token=settings.notion_api_key, database_id=settings.database_id)
    try:
        return await sync(settings, client=client)
    finally:
        await client.aclose()


def publish(settings: Settings) -> bool:
    logger.info("Pushing to production...")
    publisher = Publisher(
        [settings.output_dir],
        repo_path=settings.output_dir,
        remote=settings.git_remote,
        branch=settings.git_branch,
    )
    return publisher.publish()


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="notion-publisher",
        description="Render published Notion posts to static HTML.",
    )
    parser.add_argument(
        "--push", action="store_true", help="commit and push the generated pages"
    )
    parser.add_argument("--output-dir", help="directory to write pages into")
    parser.add_argument("--database-id", help="Notion database holding the posts")
    parser.add_argument(
        "-v", "--verbose", action="store_true", help="enable debug logging"
    )
    return parser


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)

    try:
        settings = Settings.from_env(
            output_dir=args.output_dir,
            database_id=args.database_id,
            log_level="DEBUG" if args.verbose else None,
        )
    except ValueError as e:
        configure_logging()
        logger.error("%s", e)
        logger.error("Create a .env file with: NOTION_API_KEY=your_key_here")
        return 1

    configure_logging(settings.log_level)

    try:
        asyncio.run(_run(settings))
        if args.push:
            publish(settings)
    except PublisherError as e:
        logger.error("Error: %s", e)
        return 1
    except Exception as e:
        logger.exception("Error: %s", e)
        return 1

    return 0


if __name__ == "__main__":
    sys.exit(main())
