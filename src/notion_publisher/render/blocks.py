import logging
import re
from typing import Awaitable, Callable, Dict, List, Optional

from ..api.models import LIST_TYPES, BlockType, NotionBlock
from ..errors import ChildFetchError, DownloadError, RenderError, TransportError
from .images import ImageCache
from .rich_text import escape_attr, escape_text, plain_text, render_rich_text

logger = logging.getLogger(__name__)

FetchChildren = Callable[[str], Awaitable[List[NotionBlock]]]
Handler = Callable[[NotionBlock, str], Awaitable[str]]

SEPARATOR = "\n\n"

EDGE_BREAKS_RE = re.compile(r"^(?:<br>)+|(?:<br>)+$")
YOUTUBE_RE = re.compile(r"(?:youtube\.com/watch\?v=|youtu\.be/)([^&\s]+)")
VIMEO_RE = re.compile(r"vimeo\.com/(\d+)")

LIST_TAGS = {
    BlockType.BULLETED_LIST_ITEM: "ul",
    BlockType.NUMBERED_LIST_ITEM: "ol",
}
HEADING_TAGS = {
    BlockType.HEADING_1: "h1",
    BlockType.HEADING_2: "h2",
    BlockType.HEADING_3: "h3",
}
EXTERNAL_LINK = 'target="_blank" rel="noopener noreferrer"'


class BlockRenderer:
    """Turns a page's block tree into an HTML fragment.

    Children of container blocks are fetched lazily through ``fetch_children``
    and rendered depth first, one fetch at a time. Image blocks are downloaded
    through ``image_cache`` when one is given.
    """

    def __init__(
        self, fetch_children: FetchChildren, image_cache: Optional[ImageCache] = None
    ):
        self.fetch_children = fetch_children
        self.image_cache = image_cache

        self._handlers: Dict[BlockType, Handler] = {
            BlockType.PARAGRAPH: self._paragraph,
            BlockType.HEADING_1: self._heading,
            BlockType.HEADING_2: self._heading,
            BlockType.HEADING_3: self._heading,
            BlockType.QUOTE: self._quote,
            BlockType.CODE: self._code,
            BlockType.DIVIDER: self._divider,
            BlockType.IMAGE: self._image,
            BlockType.CALLOUT: self._callout,
            BlockType.TO_DO: self._to_do,
            BlockType.BOOKMARK: self._bookmark,
            BlockType.LINK_PREVIEW: self._link_preview,
            BlockType.VIDEO: self._video,
            BlockType.AUDIO: self._audio,
            BlockType.FILE: self._file,
            BlockType.PDF: self._pdf,
            BlockType.EMBED: self._embed,
            BlockType.TOGGLE: self._toggle,
            BlockType.TABLE: self._table,
            BlockType.COLUMN_LIST: self._column_list,
            BlockType.COLUMN: self._column,
            BlockType.SYNCED_BLOCK: self._synced_block,
            BlockType.EQUATION: self._equation,
            # Rows are only meaningful inside their table.
            BlockType.TABLE_ROW: self._nothing,
            BlockType.TABLE_OF_CONTENTS: self._nothing,
            BlockType.BREADCRUMB: self._nothing,
            BlockType.CHILD_PAGE: self._nothing,
            BlockType.CHILD_DATABASE: self._nothing,
            BlockType.UNSUPPORTED: self._unsupported,
        }
        # List items are handled as runs in render().
        missing = set(BlockType) - set(self._handlers) - set(LIST_TYPES)
        if missing:
            raise RuntimeError(
                f"no renderer for {sorted(t.value for t in missing)}"
            )

    async def render(self, blocks: List[NotionBlock], slug: str) -> str:
        """Render an ordered block sequence to a single HTML fragment."""
        parts = []
        i = 0
        while i < len(blocks):
            block = blocks[i]
            if block.type in LIST_TYPES:
                end = i
                while end < len(blocks) and blocks[end].type == block.type:
                    end += 1
                html = await self._list(blocks[i:end], slug)
                i = end
            else:
                html = await self._render_block(block, slug)
                i += 1

            if html:
                parts.append(html)

        return SEPARATOR.join(parts)

    async def _render_block(self, block: NotionBlock, slug: str) -> str:
        try:
            return await self._handlers[block.type](block, slug)
        except RenderError:
            raise
        except Exception as e:
            raise RenderError(block.id, block.raw_type or block.type.value, e) from e

    async def _children(self, block: NotionBlock) -> List[NotionBlock]:
        if block.children is not None:
            return block.children
        if not block.has_children:
            return []
        return await self.fetch_children(block.id)

    async def _render_children(self, block: NotionBlock, slug: str) -> str:
        if block.children is None and not block.has_children:
            return ""
        return await self.render(await self._children(block), slug)

    async def _list(self, items: List[NotionBlock], slug: str) -> str:
        tag = LIST_TAGS[items[0].type]
        rendered = []
        for item in items:
            try:
                html = f"<li>{render_rich_text(item.rich_text)}"
                children = await self._render_children(item, slug)
            except RenderError:
                raise
            except Exception as e:
                raise RenderError(item.id, item.type.value, e) from e
            if children:
                html += f"\n{children}"
            rendered.append(html + "</li>")
        return f"<{tag}>\n" + "\n".join(rendered) + f"\n</{tag}>"

    async def _paragraph(self, block: NotionBlock, slug: str) -> str:
        text = EDGE_BREAKS_RE.sub("", render_rich_text(block.rich_text))
        html = f"<p>{text}</p>" if text else ""
        children = await self._render_children(block, slug)
        if children:
            html += f'<div class="indented">{children}</div>'
        return html

    async def _heading(self, block: NotionBlock, slug: str) -> str:
        tag = HEADING_TAGS[block.type]
        heading = f"<{tag}>{render_rich_text(block.rich_text)}</{tag}>"
        # Toggleable headings carry their folded content as children.
        children = await self._render_children(block, slug)
        if not children:
            return heading
        return (
            f'<details class="toggle toggle-heading"><summary>{heading}</summary>'
            f'<div class="toggle-content">{children}</div></details>'
        )

    async def _quote(self, block: NotionBlock, slug: str) -> str:
        content = render_rich_text(block.rich_text)
        children = await self._render_children(block, slug)
        if children:
            content += f"\n{children}"
        return f"<blockquote>{content}</blockquote>"

    async def _code(self, block: NotionBlock, slug: str) -> str:
        language = block.language or "plaintext"
        code = escape_text(plain_text(block.rich_text))
        caption = ""
        if block.caption:
            caption = (
                f'<figcaption class="code-caption">{render_rich_text(block.caption)}'
                "</figcaption>"
            )
        return (
            f'<figure class="code-block"><pre><code class="language-{escape_attr(language)}">'
            f"{code}</code></pre>{caption}</figure>"
        )

    async def _divider(self, block: NotionBlock, slug: str) -> str:
        return "<hr>"

    async def _image(self, block: NotionBlock, slug: str) -> str:
        url = block.media.url if block.media else ""
        caption = render_rich_text(block.caption)
        src = url

        if self.image_cache is not None and url:
            try:
                result = await self.image_cache.resolve(url, slug)
            except (DownloadError, TransportError) as e:
                logger.warning("Failed to download image, using remote URL: %s", e)
            else:
                src = result.path
                if result.skipped:
                    logger.info("Image exists: %s", result.path)
                else:
                    logger.info("Downloaded: %s", result.path)

        html = (
            f'<figure><img src="{escape_attr(src)}" '
            f'alt="{escape_attr(plain_text(block.caption))}" loading="lazy">'
        )
        if caption:
            html += f"<figcaption>{caption}</figcaption>"
        return html + "</figure>"

    async def _callout(self, block: NotionBlock, slug: str) -> str:
        icon = block.icon or "💡"
        if icon.startswith(("http://", "https://")):
            icon = f'<img src="{escape_attr(icon)}" alt="">'
        color = block.color or "default"
        content = render_rich_text(block.rich_text)
        children = await self._render_children(block, slug)
        if children:
            content += f"\n{children}"
        return (
            f'<div class="callout callout-{escape_attr(color)}">'
            f'<span class="callout-icon">{icon}</span>'
            f'<div class="callout-content">{content}</div></div>'
        )

    async def _to_do(self, block: NotionBlock, slug: str) -> str:
        content = render_rich_text(block.rich_text)
        children = await self._render_children(block, slug)
        if children:
            content += f'\n<div class="todo-children">{children}</div>'
        if block.checked:
            return (
                '<div class="todo-item"><input type="checkbox" checked disabled>'
                f'<span class="todo-checked">{content}</span></div>'
            )
        return (
            '<div class="todo-item"><input type="checkbox" disabled>'
            f"<span>{content}</span></div>"
        )

    async def _bookmark(self, block: NotionBlock, slug: str) -> str:
        url = block.url or ""
        label = render_rich_text(block.caption) if block.caption else escape_text(url)
        return f'<a href="{escape_attr(url)}" class="bookmark-link" {EXTERNAL_LINK}>{label}</a>'

    async def _link_preview(self, block: NotionBlock, slug: str) -> str:
        url = block.url or ""
        return (
            f'<a href="{escape_attr(url)}" class="link-preview" {EXTERNAL_LINK}>'
            f"{escape_text(url)}</a>"
        )

    async def _video(self, block: NotionBlock, slug: str) -> str:
        url = block.media.url if block.media else ""

        embed = None
        if "youtube.com" in url or "youtu.be" in url:
            match = YOUTUBE_RE.search(url)
            if match:
                embed = f"https://www.youtube.com/embed/{match.group(1)}"
        elif "vimeo.com" in url:
            match = VIMEO_RE.search(url)
            if match:
                embed = f"https://player.vimeo.com/video/{match.group(1)}"

        if embed:
            return (
                f'<div class="video-embed"><iframe src="{escape_attr(embed)}" '
                'frameborder="0" allowfullscreen loading="lazy"></iframe></div>'
            )
        return f'<video controls><source src="{escape_attr(url)}"></video>'

    async def _audio(self, block: NotionBlock, slug: str) -> str:
        url = block.media.url if block.media else ""
        return (
            f'<audio controls class="audio-player"><source src="{escape_attr(url)}">'
            "Your browser does not support audio.</audio>"
        )

    async def _file(self, block: NotionBlock, slug: str) -> str:
        url = block.media.url if block.media else ""
        name = block.name or url.split("?")[0].rstrip("/").split("/")[-1] or "Download"
        label = render_rich_text(block.caption) if block.caption else escape_text(name)
        return (
            f'<a href="{escape_attr(url)}" class="file-download" {EXTERNAL_LINK} download>'
            f"📎 {label}</a>"
        )

    async def _pdf(self, block: NotionBlock, slug: str) -> str:
        url = block.media.url if block.media else ""
        caption = render_rich_text(block.caption) if block.caption else "PDF Document"
        return (
            f'<figure class="pdf-embed"><iframe src="{escape_attr(url)}" loading="lazy">'
            f"</iframe><figcaption>{caption}</figcaption></figure>"
        )

    async def _embed(self, block: NotionBlock, slug: str) -> str:
        return (
            f'<div class="embed-container"><iframe src="{escape_attr(block.url or "")}" '
            'frameborder="0" loading="lazy"></iframe></div>'
        )

    async def _toggle(self, block: NotionBlock, slug: str) -> str:
        summary = render_rich_text(block.rich_text)
        content = await self._render_children(block, slug)
        return (
            f'<details class="toggle"><summary>{summary}</summary>'
            f'<div class="toggle-content">{content}</div></details>'
        )

    async def _table(self, block: NotionBlock, slug: str) -> str:
        rows = await self._children(block)
        if not rows:
            return ""

        html = '<table class="notion-table">'
        row_index = 0
        for row in rows:
            if row.type != BlockType.TABLE_ROW:
                logger.warning(
                    "Skipping %s block %s inside table %s", row.raw_type, row.id, block.id
                )
                continue
            header_row = block.has_column_header and row_index == 0
            html += "<tr>"
            for cell_index, cell in enumerate(row.cells):
                header_cell = block.has_row_header and cell_index == 0
                tag = "th" if header_row or header_cell else "td"
                html += f"<{tag}>{render_rich_text(cell)}</{tag}>"
            html += "</tr>"
            row_index += 1
        return html + "</table>"

    async def _column_list(self, block: NotionBlock, slug: str) -> str:
        columns = await self._children(block)
        if not columns:
            return ""
        rendered = []
        for column in columns:
            if column.type != BlockType.COLUMN:
                logger.warning(
                    "Skipping %s block %s inside column list %s",
                    column.raw_type,
                    column.id,
                    block.id,
                )
                continue
            rendered.append(await self._render_block(column, slug))
        return '<div class="columns">' + "".join(rendered) + "</div>"

    async def _column(self, block: NotionBlock, slug: str) -> str:
        return f'<div class="column">{await self._render_children(block, slug)}</div>'

    async def _synced_block(self, block: NotionBlock, slug: str) -> str:
        if not block.synced_from:
            return await self._render_children(block, slug)

        try:
            children = await self.fetch_children(block.synced_from)
        except ChildFetchError as e:
            logger.warning("Failed to fetch synced block %s: %s", block.synced_from, e)
            return ""
        return await self.render(children, slug)

    async def _equation(self, block: NotionBlock, slug: str) -> str:
        expression = block.expression or ""
        return (
            f'<div class="equation" data-equation="{escape_attr(expression)}">'
            f"\\[{escape_text(expression)}\\]</div>"
        )

    async def _nothing(self, block: NotionBlock, slug: str) -> str:
        return ""

    async def _unsupported(self, block: NotionBlock, slug: str) -> str:
        logger.warning("Unsupported block type: %s (%s)", block.raw_type, block.id)
        return ""
