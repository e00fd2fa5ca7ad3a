"""Turn a notice and its template into the message that gets posted.

Templates are Slack attachment JSON kept as raw text with ``<key>``
placeholders.  Substitution is textual, so every value is first escaped
as the inside of a JSON string literal; the result must still parse as a
JSON object.  Nothing here touches the database or the network.
"""

from __future__ import annotations

import json
import re
from typing import Any

import structlog
from pydantic import ValidationError

from modules.notifier.errors import AssemblyError, TemplateNotFoundError
from shared.models.notice_schedule import MessageKind, NoticeSchedule
from shared.models.template import Template
from shared.schemas.notices import AssembledMessage, SlackAttachment

logger = structlog.get_logger()

MENTION_HERE = "<!here> \n"
MENTION_CHANNEL = "<!channel> \n"

# Content key reserved for the notification title; never substituted into a template
TITLE_KEY = "title"


def parse_content(raw: str, notice_id=None) -> dict[str, str]:
    """Decode a notice's content document into a flat str -> str mapping."""
    try:
        data = json.loads(raw)
    except (TypeError, json.JSONDecodeError) as e:
        raise AssemblyError(
            f"Notice content is not valid JSON: {e}", notice_id=notice_id
        ) from e

    if not isinstance(data, dict):
        raise AssemblyError("Notice content must be a JSON object", notice_id=notice_id)

    for key, value in data.items():
        if not isinstance(value, str):
            raise AssemblyError(
                f"Notice content value for {key!r} must be a string",
                notice_id=notice_id,
                key=key,
            )
    return data


def build_mention_prefix(here: bool, channel: bool) -> str:
    prefix = ""
    if here:
        prefix += MENTION_HERE
    if channel:
        prefix += MENTION_CHANNEL
    return prefix


def normalize_newlines(value: str) -> str:
    return value.replace("\r\n", "\n").replace("\r", "\n")


def escape_json_fragment(value: str) -> str:
    """Escape ``value`` for insertion between the quotes of a JSON string.

    ``<``, ``>`` and ``&`` are kept literal rather than written as
    ``\\u003c``, ``\\u003e`` and ``\\u0026``.  The rendered text therefore
    differs byte-for-byte from an HTML-safe encoder's output, but decodes
    to the same values.
    """
    return json.dumps(normalize_newlines(value), ensure_ascii=False)[1:-1]


def render_template(template_text: str, content: dict[str, str]) -> str:
    """Replace each ``<key>`` placeholder with its escaped content value.

    All placeholders are replaced in a single pass, so text inserted for
    one key is never scanned for another key's placeholder.  Unknown
    placeholders are left as they are.
    """
    replacements = {
        f"<{key}>": escape_json_fragment(value)
        for key, value in content.items()
        if key != TITLE_KEY
    }
    if not replacements:
        return template_text

    # Longest first so "<content_extra>" wins over a "<content>" prefix
    pattern = re.compile(
        "|".join(re.escape(p) for p in sorted(replacements, key=len, reverse=True))
    )
    return pattern.sub(lambda m: replacements[m.group(0)], template_text)


def parse_attachment(rendered: str, notice_id=None) -> SlackAttachment:
    try:
        data: Any = json.loads(rendered)
    except json.JSONDecodeError as e:
        raise AssemblyError(
            f"Template/content parsing failed at line {e.lineno} column {e.colno}: {e.msg}",
            notice_id=notice_id,
        ) from e

    if not isinstance(data, dict):
        raise AssemblyError(
            "Template/content parsing failed: attachment must be a JSON object",
            notice_id=notice_id,
        )

    try:
        return SlackAttachment.model_validate(data)
    except ValidationError as e:
        raise AssemblyError(
            f"Template/content parsing failed: {e.error_count()} invalid attachment field(s)",
            notice_id=notice_id,
        ) from e


def assemble_message(
    notice: NoticeSchedule,
    template: Template | None = None,
) -> AssembledMessage:
    """Build the mention prefix, display title and body for ``notice``.

    ``template`` is ignored for plain notices and required otherwise.
    """
    content = parse_content(notice.contents, notice.id)
    mention_prefix = build_mention_prefix(notice.here_mention, notice.channel_mention)
    display_title = content.get(TITLE_KEY, "")

    if notice.is_plain:
        body = f"{content.get('content', '')}\n{content.get('refer', '')}"
        return AssembledMessage(
            notice_id=notice.id,
            kind=MessageKind.PLAIN,
            mention_prefix=mention_prefix,
            display_title=display_title,
            body=body,
        )

    if template is None:
        raise TemplateNotFoundError(
            f"Template {notice.template_id} is required for a templated notice",
            notice_id=notice.id,
        )

    rendered = render_template(template.contents, content)
    attachment = parse_attachment(rendered, notice.id)
    logger.debug(
        "notice_assembled",
        notice_id=str(notice.id),
        template_id=str(template.id),
        placeholders=len(content) - (TITLE_KEY in content),
    )
    return AssembledMessage(
        notice_id=notice.id,
        kind=MessageKind.TEMPLATED,
        mention_prefix=mention_prefix,
        display_title=display_title,
        body=attachment,
    )
