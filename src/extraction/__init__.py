"""Extraction strategies and the per-invocation strategy choice.

Usage:
    from src.extraction import select_strategy

    strategy = select_strategy(html, markdown, settings.extraction)
    candidates = strategy.extract(source, site_id)
"""

from collections.abc import Mapping

from src.core.config import ExtractionConfig
from src.core.schemas import ParsingMethod, SitePolicy
from src.extraction.base import ExtractionStrategy
from src.extraction.dom import DomExtractor
from src.extraction.markdown import MarkdownExtractor
from src.extraction.policies import SITE_POLICIES

__all__ = [
    "DomExtractor",
    "ExtractionStrategy",
    "MarkdownExtractor",
    "get_strategy",
    "select_method",
    "select_strategy",
]


def select_method(html: str, markdown: str, config: ExtractionConfig | None = None) -> ParsingMethod:
    """Pick the parsing method once for an invocation.

    HTML wins when both inputs are present unless ``prefer_html`` is off.
    With neither present the markdown strategy is chosen (and finds nothing).
    """
    config = config or ExtractionConfig()
    has_html = bool(html and html.strip())
    has_markdown = bool(markdown and markdown.strip())
    if has_html and (config.prefer_html or not has_markdown):
        return ParsingMethod.DOM
    return ParsingMethod.MARKDOWN


def get_strategy(
    method: ParsingMethod,
    policies: Mapping[str, SitePolicy] = SITE_POLICIES,
) -> ExtractionStrategy:
    """Instantiate the strategy for ``method``."""
    if method is ParsingMethod.DOM:
        return DomExtractor(policies)
    return MarkdownExtractor()


def select_strategy(
    html: str,
    markdown: str,
    config: ExtractionConfig | None = None,
    policies: Mapping[str, SitePolicy] = SITE_POLICIES,
) -> ExtractionStrategy:
    """Shortcut for ``get_strategy(select_method(...))``."""
    return get_strategy(select_method(html, markdown, config), policies)
