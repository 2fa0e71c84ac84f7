from datetime import date
from html import escape
from typing import List, Optional

from ..api.models import MentionDate, RichText

# Applied in order, so later entries wrap earlier ones.
ANNOTATION_TAGS = (
    ("bold", "strong"),
    ("italic", "em"),
    ("strikethrough", "del"),
    ("underline", "u"),
    ("code", "code"),
)


def escape_text(text: str) -> str:
    return escape(text, quote=False)


def escape_attr(value: str) -> str:
    return escape(value, quote=True)


def format_date(value: str) -> str:
    """Render an ISO date or datetime string as e.g. ``March 28, 2024``."""
    day = date.fromisoformat(value[:10])
    return f"{day.strftime('%B')} {day.day}, {day.year}"


def format_date_range(value: MentionDate) -> str:
    start = format_date(value.start)
    if value.end:
        return f"{start} → {format_date(value.end)}"
    return start


def render_equation(expression: str) -> str:
    return (
        f'<span class="inline-equation" data-equation="{escape_attr(expression)}">'
        f"\\({escape_text(expression)}\\)</span>"
    )


def render_mention(span: RichText) -> str:
    mention = span.mention
    kind = mention.type if mention else ""

    if kind == "date" and mention.date:
        return f'<span class="mention mention-date">{format_date_range(mention.date)}</span>'
    if kind == "user":
        name = escape_text(span.plain_text.lstrip("@"))
        return f'<span class="mention mention-user">@{name}</span>'
    if kind in ("page", "database"):
        return f'<span class="mention mention-page">{escape_text(span.plain_text)}</span>'
    return escape_text(span.plain_text)


def render_span(span: RichText) -> str:
    if span.type == "equation":
        return render_equation(span.expression or "")
    if span.type == "mention":
        return render_mention(span)

    content = escape_text(span.plain_text).replace("\n", "<br>")

    annotations = span.annotations
    for attribute, tag in ANNOTATION_TAGS:
        if getattr(annotations, attribute):
            content = f"<{tag}>{content}</{tag}>"

    if annotations.color and annotations.color != "default":
        content = f'<span class="text-{escape_attr(annotations.color)}">{content}</span>'

    if span.href:
        content = f'<a href="{escape_attr(span.href)}">{content}</a>'

    return content


def render_rich_text(spans: Optional[List[RichText]]) -> str:
    """Concatenate the inline markup of each span, in order."""
    if not spans:
        return ""
    return "".join(render_span(span) for span in spans)


def plain_text(spans: Optional[List[RichText]]) -> str:
    return "".join(span.plain_text for span in spans or [])
