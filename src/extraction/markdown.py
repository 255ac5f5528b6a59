"""Markdown-block extraction for inputs without HTML.

Level-2 headings (``## ``) mark listing boundaries; text before the first one
is page preamble and ignored. A document with no level-2 heading is read as a
single block. Inside a block:

  line 1          -> title
  next line       -> company (unless it carries another field's label)
  labelled lines  -> the labelled field ("Location: ...", "Salary: ...")
  other lines     -> pay / location / schedule by pattern cues, else description
"""

import logging
import re

from src.core.schemas import GENERIC_SITE, CandidateRecord, ParsingMethod
from src.extraction.base import ExtractionStrategy

logger = logging.getLogger(__name__)

_LEVEL2_HEADING = re.compile(r"^[ \t]*##(?!#)[ \t]*", re.MULTILINE)
_BULLET = re.compile(r"^(?:[-*+•]|\d+\.)\s+")
_LABEL = re.compile(
    r"^(?:\*\*)?(company|employer|location|where|pay|salary|compensation|schedule|"
    r"job type|type|description|summary|url|link|apply)(?:\*\*)?\s*:\s*(?:\*\*)?\s*",
    re.IGNORECASE,
)
_LABEL_FIELDS = {
    "company": "company",
    "employer": "company",
    "location": "location",
    "where": "location",
    "pay": "pay",
    "salary": "pay",
    "compensation": "pay",
    "schedule": "schedule",
    "job type": "schedule",
    "type": "schedule",
    "description": "description",
    "summary": "description",
    "url": "url",
    "link": "url",
    "apply": "url",
}

_MD_LINK_URL = re.compile(r"\[[^\]]*\]\((\S+?)\)")
_BARE_URL = re.compile(r"^(?:<)?(https?://\S+?)(?:>)?$", re.IGNORECASE)
_CURRENCY = re.compile(
    r"[$€£¥₹]|\b(?:USD|EUR|GBP)\b|\bper\s+(?:hour|year|annum)\b|/\s*(?:hr|hour|yr|year)\b",
    re.IGNORECASE,
)
_REMOTE = re.compile(r"^(?:fully\s+)?(?:remote|hybrid|on-?site|work from home)\b", re.IGNORECASE)
_CITY_STATE = re.compile(
    r"^[A-Za-z][A-Za-z .'-]{0,40},\s*(?:[A-Z]{2}|[A-Z][a-z]+(?:\s[A-Z][a-z]+)*)(?:\s+\d{5})?\s*$"
)
_SCHEDULE = re.compile(
    r"\b(?:full[- ]time|part[- ]time|contract|temporary|seasonal|internship|per diem)\b",
    re.IGNORECASE,
)


class MarkdownExtractor(ExtractionStrategy):
    """Segments markdown on level-2 headings, one candidate per block."""

    @property
    def method(self) -> ParsingMethod:
        return ParsingMethod.MARKDOWN

    def extract(self, text: str, site_id: str) -> list[CandidateRecord]:
        """Parse every block, skipping any that fail."""
        if not text or not text.strip():
            return []

        results: list[CandidateRecord] = []
        for index, block in enumerate(split_blocks(text)):
            try:
                candidate = self.parse_block(block, site_id)
            except Exception:
                logger.debug("Failed to parse block %d, skipping", index, exc_info=True)
                continue
            if candidate is None:
                logger.debug("Block %d has no title, skipping", index)
                continue
            results.append(candidate)
        return results

    def parse_block(self, block: str, site_id: str) -> CandidateRecord | None:
        """Build a CandidateRecord from one block, or None without a title."""
        lines = [line.strip() for line in block.splitlines()]
        lines = [line for line in lines if line]
        if not lines:
            return None

        title = lines[0]
        if not title.strip("#*_` "):
            return None

        fields: dict[str, str] = {}
        description: list[str] = []
        url = _link_target(title)

        for position, raw in enumerate(lines[1:]):
            line = _BULLET.sub("", raw)
            label = _LABEL.match(line)
            if label:
                field = _LABEL_FIELDS[label.group(1).lower()]
                value = line[label.end():].strip()
                if field == "description":
                    description.append(value)
                elif field == "url":
                    url = url or _link_target(value) or value
                else:
                    fields.setdefault(field, value)
                continue

            if position == 0 and "company" not in fields:
                fields["company"] = line
                continue

            target = _link_target(line)
            if target and not url and _is_link_only(line):
                url = target
                continue

            kind = classify_line(line)
            if kind and kind not in fields:
                fields[kind] = line
            else:
                description.append(line)

        return CandidateRecord(
            title=title,
            company=fields.get("company", ""),
            location=fields.get("location", ""),
            pay=fields.get("pay", ""),
            schedule=fields.get("schedule", ""),
            description=" ".join(description),
            url=url,
            source_site=site_id or GENERIC_SITE,
        )


def split_blocks(text: str) -> list[str]:
    """Split markdown into listing blocks at level-2 headings."""
    parts = _LEVEL2_HEADING.split(text)
    if len(parts) == 1:
        return [text]
    # parts[0] is whatever preceded the first heading.
    return [p for p in parts[1:] if p.strip()]


def classify_line(line: str) -> str | None:
    """Guess which field an unlabelled line belongs to."""
    if _CURRENCY.search(line):
        return "pay"
    if len(line) <= 80 and (_REMOTE.match(line) or _CITY_STATE.match(line)):
        return "location"
    if len(line) <= 80 and _SCHEDULE.search(line):
        return "schedule"
    return None


def _link_target(text: str) -> str:
    match = _MD_LINK_URL.search(text)
    if match:
        return match.group(1)
    bare = _BARE_URL.match(text.strip())
    return bare.group(1) if bare else ""


def _is_link_only(line: str) -> bool:
    stripped = _MD_LINK_URL.sub("", line).strip(" -:|")
    return not stripped or bool(_BARE_URL.match(line.strip()))
