from datetime import date
from enum import Enum
from typing import Any, Dict, List, Optional
from pydantic import BaseModel, Field


class BlockType(str, Enum):
    PARAGRAPH = "paragraph"
    HEADING_1 = "heading_1"
    HEADING_2 = "heading_2"
    HEADING_3 = "heading_3"
    BULLETED_LIST_ITEM = "bulleted_list_item"
    NUMBERED_LIST_ITEM = "numbered_list_item"
    QUOTE = "quote"
    CODE = "code"
    DIVIDER = "divider"
    IMAGE = "image"
    CALLOUT = "callout"
    TO_DO = "to_do"
    BOOKMARK = "bookmark"
    LINK_PREVIEW = "link_preview"
    VIDEO = "video"
    AUDIO = "audio"
    FILE = "file"
    PDF = "pdf"
    EMBED = "embed"
    TOGGLE = "toggle"
    TABLE = "table"
    TABLE_ROW = "table_row"
    COLUMN_LIST = "column_list"
    COLUMN = "column"
    SYNCED_BLOCK = "synced_block"
    EQUATION = "equation"
    TABLE_OF_CONTENTS = "table_of_contents"
    BREADCRUMB = "breadcrumb"
    CHILD_PAGE = "child_page"
    CHILD_DATABASE = "child_database"
    UNSUPPORTED = "unsupported"

    @classmethod
    def parse(cls, value: str) -> "BlockType":
        try:
            return cls(value)
        except ValueError:
            return cls.UNSUPPORTED


LIST_TYPES = (BlockType.BULLETED_LIST_ITEM, BlockType.NUMBERED_LIST_ITEM)


class Annotations(BaseModel):
    bold: bool = False
    italic: bool = False
    strikethrough: bool = False
    underline: bool = False
    code: bool = False
    color: str = "default"


class MentionDate(BaseModel):
    start: str
    end: Optional[str] = None


class Mention(BaseModel):
    type: str
    date: Optional[MentionDate] = None


class RichText(BaseModel):
    type: str = "text"
    plain_text: str = ""
    annotations: Annotations = Field(default_factory=Annotations)
    href: Optional[str] = None
    expression: Optional[str] = None
    mention: Optional[Mention] = None

    @classmethod
    def from_api(cls, item: Dict[str, Any]) -> "RichText":
        """Parse one rich text object as returned by the Notion API."""
        span_type = item.get("type", "text")
        expression = None
        mention = None
        if span_type == "equation":
            expression = item.get("equation", {}).get("expression", "")
        elif span_type == "mention":
            data = item.get("mention", {})
            mention_type = data.get("type", "")
            mention_date = None
            if mention_type == "date" and data.get("date"):
                mention_date = MentionDate(**data["date"])
            mention = Mention(type=mention_type, date=mention_date)

        return cls(
            type=span_type,
            plain_text=item.get("plain_text", ""),
            annotations=Annotations(**(item.get("annotations") or {})),
            href=item.get("href"),
            expression=expression,
            mention=mention,
        )


def parse_rich_text(items: Optional[List[Dict[str, Any]]]) -> List[RichText]:
    return [RichText.from_api(item) for item in items or []]


class FileSource(BaseModel):
    """A media locator, hosted by Notion ("file") or elsewhere ("external")."""

    type: str = "external"
    external_url: Optional[str] = None
    file_url: Optional[str] = None

    @property
    def url(self) -> str:
        if self.type == "external":
            return self.external_url or ""
        return self.file_url or ""

    @classmethod
    def from_api(cls, data: Dict[str, Any]) -> "FileSource":
        return cls(
            type=data.get("type", "external"),
            external_url=(data.get("external") or {}).get("url"),
            file_url=(data.get("file") or {}).get("url"),
        )


MEDIA_TYPES = (
    BlockType.IMAGE,
    BlockType.VIDEO,
    BlockType.AUDIO,
    BlockType.FILE,
    BlockType.PDF,
)


class NotionBlock(BaseModel):
    id: str
    type: BlockType
    raw_type: str = ""
    has_children: bool = False
    children: Optional[List["NotionBlock"]] = None

    rich_text: List[RichText] = Field(default_factory=list)
    caption: List[RichText] = Field(default_factory=list)
    color: Optional[str] = None
    checked: Optional[bool] = None
    language: Optional[str] = None
    icon: Optional[str] = None
    url: Optional[str] = None
    media: Optional[FileSource] = None
    name: Optional[str] = None
    expression: Optional[str] = None
    has_column_header: bool = False
    has_row_header: bool = False
    cells: List[List[RichText]] = Field(default_factory=list)
    synced_from: Optional[str] = None

    @classmethod
    def from_api(cls, block: Dict[str, Any]) -> "NotionBlock":
        """Parse a raw block object into a typed block."""
        raw_type = block.get("type", "")
        block_type = BlockType.parse(raw_type)
        data = block.get(raw_type) or {}

        fields: Dict[str, Any] = {
            "rich_text": parse_rich_text(data.get("rich_text")),
            "caption": parse_rich_text(data.get("caption")),
            "color": data.get("color"),
        }

        if block_type == BlockType.TO_DO:
            fields["checked"] = data.get("checked", False)
        elif block_type == BlockType.CODE:
            fields["language"] = data.get("language")
        elif block_type == BlockType.CALLOUT:
            icon = data.get("icon") or {}
            fields["icon"] = (
                icon.get("emoji")
                or (icon.get("external") or {}).get("url")
                or (icon.get("file") or {}).get("url")
            )
        elif block_type in (BlockType.BOOKMARK, BlockType.LINK_PREVIEW, BlockType.EMBED):
            fields["url"] = data.get("url", "")
        elif block_type in MEDIA_TYPES:
            fields["media"] = FileSource.from_api(data)
            fields["name"] = data.get("name")
        elif block_type == BlockType.EQUATION:
            fields["expression"] = data.get("expression", "")
        elif block_type == BlockType.TABLE:
            fields["has_column_header"] = data.get("has_column_header", False)
            fields["has_row_header"] = data.get("has_row_header", False)
        elif block_type == BlockType.TABLE_ROW:
            fields["cells"] = [parse_rich_text(cell) for cell in data.get("cells", [])]
        elif block_type == BlockType.SYNCED_BLOCK:
            synced_from = data.get("synced_from") or {}
            fields["synced_from"] = synced_from.get("block_id")

        return cls(
            id=block["id"],
            type=block_type,
            raw_type=raw_type,
            has_children=block.get("has_children", False),
            **fields,
        )


class Post(BaseModel):
    id: str
    title: str
    published: date
    slug: str


class PageContent(BaseModel):
    post: Post
    blocks: List[NotionBlock]
