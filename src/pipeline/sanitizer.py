"""Free-text sanitizer for candidate records.

Order per pass:
  1. HTML: decode entities until none remain, drop script/style/iframe/object/
     embed subtrees, keep text, then remove tag delimiters that still touch a
     word (``<b``, ``x>``). A free-standing ``<`` or ``>`` is ordinary text.
  2. Markdown: links -> text, images dropped, emphasis/heading/code markers stripped.
  3. Encoding noise and whitespace runs normalized.

HTML always runs before markdown so the markdown pass only sees plain text.
Passes repeat until the text stops changing, which makes ``sanitize``
idempotent however deeply the input was entity-encoded.
"""

import html
import logging
import re

from bs4 import BeautifulSoup

from src.core.config import SanitizerConfig
from src.core.schemas import CandidateRecord

logger = logging.getLogger(__name__)

HAZARD_TAGS = ("script", "style", "iframe", "object", "embed", "noscript", "template", "svg")
TEXT_FIELDS = ("title", "company", "location", "pay", "schedule", "description")

_TAG_DELIMS = re.compile(r"<(?=\S)|(?<=\S)>")
_ANGLE = re.compile(r"[<>]")
_ANY_TAG = re.compile(r"<[^>]*>")
_HAZARD_BLOCK = re.compile(
    r"<(script|style|iframe|object|embed|noscript|template|svg)\b.*?(?:</\1\s*>|$)",
    re.IGNORECASE | re.DOTALL,
)
_SCRIPT_SCHEME = re.compile(r"(?:java|vb)script\s*:", re.IGNORECASE)
_MD_IMAGE = re.compile(r"!\[[^\]]*\]\([^)]*\)")
_MD_LINK = re.compile(r"\[([^\]]+)\]\([^)]*\)")
_MD_HEADING = re.compile(r"#{2,}|(?:^|(?<=\s))#(?=\s)")
_MD_BOLD = re.compile(r"\*\*|__")
_MD_STRIKE = re.compile(r"~~")
_MD_CODE = re.compile(r"`+")
_MD_LIST_MARKER = re.compile(r"^\s*(?:[-*+•]|\d+\.)\s+")
_WHITESPACE = re.compile(r"\s+")
_UNSAFE_URL = re.compile(r"^\s*(?:javascript|vbscript|data):", re.IGNORECASE)

_CHAR_FIXES = str.maketrans({
    "\u00a0": " ",
    "\u2013": "-",
    "\u2014": "-",
    "\u2018": "'",
    "\u2019": "'",
    "\u201c": '"',
    "\u201d": '"',
    "\u200b": "",
})


def unescape_all(text: str) -> str:
    """Decode HTML entities repeatedly until the text no longer changes."""
    # Each decoding round that changes anything makes the text shorter.
    while "&" in text:
        decoded = html.unescape(text)
        if decoded == text:
            break
        text = decoded
    return text


def strip_html(text: str) -> str:
    """Return the visible text of ``text`` with hazardous subtrees removed.

    Entities are decoded before parsing, so ``&amp;lt;script&amp;gt;`` at any
    depth reaches the parser as a real tag and is dropped with its body.
    Only markup that contains ``<`` is handed to BeautifulSoup.
    """
    text = unescape_all(text)
    if "<" in text:
        try:
            soup = BeautifulSoup(text, "html.parser")
            for tag in soup.find_all(list(HAZARD_TAGS)):
                if not tag.decomposed:
                    tag.decompose()
            text = soup.get_text(" ")
        except Exception:
            logger.debug("HTML parser failed, falling back to regex strip", exc_info=True)
            text = _ANY_TAG.sub(" ", _HAZARD_BLOCK.sub(" ", text))
    text = _TAG_DELIMS.sub("", text)
    return _SCRIPT_SCHEME.sub("", text)


def strip_markdown(text: str) -> str:
    """Remove markdown formatting markers, keeping the readable text."""
    text = _MD_IMAGE.sub("", text)
    text = _MD_LINK.sub(r"\1", text)
    text = _MD_LIST_MARKER.sub("", text)
    text = _MD_HEADING.sub("", text)
    text = _MD_BOLD.sub("", text)
    text = _MD_STRIKE.sub("", text)
    return _MD_CODE.sub("", text)


def normalize_whitespace(text: str) -> str:
    return _WHITESPACE.sub(" ", text.translate(_CHAR_FIXES)).strip()


def clean_text(text: str) -> str:
    """Apply HTML, markdown, and whitespace cleanup until a fixed point."""
    # Passes never lengthen the text, so this bound is never reached.
    for _ in range(len(text) + 2):
        cleaned = normalize_whitespace(strip_markdown(strip_html(text)))
        if cleaned == text:
            break
        text = cleaned
    return text


def clean_url(url: str) -> str:
    """Drop script-bearing URLs; otherwise return the trimmed href."""
    url = _WHITESPACE.sub("", _ANGLE.sub("", url))
    if _UNSAFE_URL.match(url):
        return ""
    return url


def truncate(text: str, limit: int) -> tuple[str, bool]:
    """Cut ``text`` to ``limit`` characters. Returns (text, was_truncated)."""
    if len(text) <= limit:
        return text, False
    return text[:limit].rstrip(), True


def sanitize(record: CandidateRecord, config: SanitizerConfig | None = None) -> CandidateRecord:
    """Return a copy of ``record`` with every text field cleaned.

    Never raises. Truncation of an oversized description is silent here and
    surfaces later as a soft validation issue via ``description_truncated``.
    """
    config = config or SanitizerConfig()
    updates: dict[str, object] = {
        field: clean_text(getattr(record, field) or "") for field in TEXT_FIELDS
    }

    description, truncated = truncate(str(updates["description"]), config.max_description_length)
    if truncated:
        logger.debug(
            "Description truncated from %d to %d chars (%s)",
            len(str(updates["description"])), len(description), record.source_site,
        )
    updates["description"] = description
    updates["description_truncated"] = record.description_truncated or truncated
    updates["url"] = clean_url(record.url or "")
    return record.model_copy(update=updates)
