"""
Tests for settings and the end-to-end sync.
"""

import asyncio
import pytest
from datetime import date
from unittest.mock import AsyncMock, MagicMock, patch
from conftest import FakeChildren, FakeResponse, block, text_block
from notion_publisher import main as cli
from notion_publisher.api.models import PageContent, Post
from notion_publisher.config import Settings
from notion_publisher.render.images import ImageCache


@pytest.fixture
def env(monkeypatch):
    monkeypatch.setattr("notion_publisher.config.load_dotenv", lambda: None)
    for name in (
        "NOTION_API_KEY",
        "NOTION_DATABASE_ID",
        "NOTION_PUBLISHER_OUTPUT_DIR",
        "SITE_AUTHOR",
        "GIT_REMOTE",
        "GIT_BRANCH",
        "LOG_LEVEL",
    ):
        monkeypatch.delenv(name, raising=False)
    return monkeypatch


def test_settings_from_env(env):
    env.setenv("NOTION_API_KEY", "secret")
    env.setenv("NOTION_DATABASE_ID", "db")
    env.setenv("SITE_AUTHOR", "Jane")

    settings = Settings.from_env(output_dir="site/thoughts", database_id=None)

    assert settings.notion_api_key == "secret"
    assert settings.database_id == "db"
    assert settings.site_author == "Jane"
    assert str(settings.output_dir) == "site/thoughts"
    assert settings.images_dir.name == "images"
    assert settings.git_branch == "main"


def test_settings_require_api_key(env):
    with pytest.raises(ValueError):
        Settings.from_env()


def test_main_without_api_key_exits_nonzero(env):
    with patch("notion_publisher.main.configure_logging"):
        assert cli.main([]) == 1


@pytest.fixture
def fake_client():
    """Fixture providing a NotionClient stand-in with two posts."""
    posts = [
        Post(id="p1", title="Second", published=date(2024, 5, 1), slug="second"),
        Post(id="p2", title="First", published=date(2023, 1, 1), slug="first"),
    ]
    pages = {
        "p1": [
            text_block("paragraph", "hello", "b1"),
            block("image", "b2", type="file", file={"url": "https://s3.example/x.png?sig=1"}),
        ],
        "p2": [text_block("toggle", "more", "b3", has_children=True)],
    }
    children = FakeChildren({"b3": [text_block("paragraph", "inside", "b4")]})

    client = MagicMock()
    client.list_published_posts = AsyncMock(return_value=posts)
    client.get_page_content = AsyncMock(
        side_effect=lambda post: PageContent(post=post, blocks=pages[post.id])
    )
    client.get_block_children = children
    return client


def test_sync_writes_pages_and_index(tmp_path, fake_client, session):
    settings = Settings(notion_api_key="k", database_id="db", output_dir=tmp_path / "thoughts")
    session.responses["https://s3.example/x.png?sig=1"] = FakeResponse(200, b"png")
    cache = ImageCache(settings.images_dir, session=session)
    (tmp_path / "thoughts").mkdir()
    (tmp_path / "thoughts" / "renamed-post.html").write_text("old")

    report = asyncio.run(cli.sync(settings, client=fake_client, image_cache=cache))

    assert report.posts == ["second", "first"]
    assert report.images_downloaded == 1
    assert report.orphans_removed == ["renamed-post.html"]

    output = settings.output_dir
    assert sorted(p.name for p in output.glob("*.html")) == [
        "first.html",
        "index.html",
        "second.html",
    ]
    second = (output / "second.html").read_text(encoding="utf-8")
    assert "<p>hello</p>" in second
    assert 'src="images/second-' in second
    assert "<p>inside</p>" in (output / "first.html").read_text(encoding="utf-8")


def test_second_sync_is_byte_identical(tmp_path, fake_client, session):
    settings = Settings(notion_api_key="k", database_id="db", output_dir=tmp_path / "thoughts")
    session.responses["https://s3.example/x.png?sig=1"] = FakeResponse(200, b"png")
    cache = ImageCache(settings.images_dir, session=session)

    asyncio.run(cli.sync(settings, client=fake_client, image_cache=cache))
    first = (settings.output_dir / "second.html").read_bytes()

    report = asyncio.run(cli.sync(settings, client=fake_client, image_cache=cache))
    assert (settings.output_dir / "second.html").read_bytes() == first
    assert report.images_skipped == 1
    assert report.images_downloaded == 0
    assert session.calls == ["https://s3.example/x.png?sig=1"]


def test_build_parser_flags():
    args = cli.build_parser().parse_args(["--push", "--output-dir", "out", "-v"])
    assert args.push is True
    assert args.output_dir == "out"
    assert args.verbose is True
    assert args.database_id is None
