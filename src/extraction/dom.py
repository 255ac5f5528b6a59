"""DOM-shape extraction: HTML listing containers -> CandidateRecord objects.

Design rules:
  - Every field lookup walks a selector tuple in order (site policy first).
  - A field the site policy cannot find falls back to the generic selectors.
  - Fields are taken as inner HTML; stripping is the sanitizer's job.
  - A container without a title is skipped (structural, not a validation error).
  - One broken container never aborts the batch.
"""

import logging
import re
from collections.abc import Mapping

from bs4 import BeautifulSoup, Tag

from src.core.schemas import GENERIC_SITE, CandidateRecord, ParsingMethod, SitePolicy
from src.extraction.base import ExtractionStrategy
from src.extraction.policies import FIELDS, SITE_POLICIES, generic_policy, resolve_policy

logger = logging.getLogger(__name__)

_LABEL_PREFIX = re.compile(r"^\s*(?:new|posted|updated|urgent|featured)\s*:\s*", re.IGNORECASE)


class DomExtractor(ExtractionStrategy):
    """Walks HTML using the site selector policy table."""

    def __init__(self, policies: Mapping[str, SitePolicy] = SITE_POLICIES) -> None:
        self._policies = policies

    @property
    def method(self) -> ParsingMethod:
        return ParsingMethod.DOM

    def extract(self, text: str, site_id: str) -> list[CandidateRecord]:
        """Parse every listing container, skipping any that fail."""
        if not text or not text.strip():
            return []
        try:
            soup = BeautifulSoup(text, "html.parser")
        except Exception:
            logger.debug("HTML could not be parsed for '%s'", site_id, exc_info=True)
            return []

        site_key = site_id if site_id in self._policies else GENERIC_SITE
        policy = resolve_policy(site_id, self._policies)
        generic = generic_policy(self._policies)

        self._remove_excluded(soup, policy)
        containers = self._find_containers(soup, policy)
        if not containers and policy is not generic:
            logger.debug("No '%s' containers matched, trying generic selectors", site_key)
            containers = self._find_containers(soup, generic)
        logger.debug("Found %d containers for '%s'", len(containers), site_key)

        results: list[CandidateRecord] = []
        for index, container in enumerate(containers):
            try:
                candidate = self.parse_container(container, policy, generic, site_key)
            except Exception:
                logger.debug("Failed to parse container %d, skipping", index, exc_info=True)
                continue
            if candidate is None:
                logger.debug("Container %d has no title, skipping", index)
                continue
            results.append(candidate)
        return results

    def parse_container(
        self,
        container: Tag,
        policy: SitePolicy,
        generic: SitePolicy,
        site_key: str,
    ) -> CandidateRecord | None:
        """Build a CandidateRecord from one container, or None without a title."""
        values: dict[str, str] = {}
        title_el: Tag | None = None
        for field in FIELDS:
            el = self._find_field(container, field, policy, generic)
            if field == "title":
                title_el = el
            values[field] = self._element_html(el) if el is not None else ""

        if title_el is None or not title_el.get_text(strip=True):
            return None

        return CandidateRecord(
            **values,
            url=self._title_url(title_el),
            source_site=site_key,
        )

    # --- Private helpers ---

    def _find_field(
        self, container: Tag, field: str, policy: SitePolicy, generic: SitePolicy,
    ) -> Tag | None:
        el = self._find_first(container, policy.selectors_for(field))
        if el is None and policy is not generic:
            el = self._find_first(container, generic.selectors_for(field))
        return el

    def _find_containers(self, soup: BeautifulSoup, policy: SitePolicy) -> list[Tag]:
        """Return outermost matches of the container selectors, in document order."""
        selectors = [s for s in policy.container if self._selector_ok(soup, s)]
        if not selectors:
            return []
        matches = soup.select(", ".join(selectors))
        matched = {id(el) for el in matches}
        return [el for el in matches if not any(id(p) in matched for p in el.parents)]

    def _remove_excluded(self, soup: BeautifulSoup, policy: SitePolicy) -> None:
        for selector in policy.exclude:
            try:
                for el in soup.select(selector):
                    if not el.decomposed:
                        el.decompose()
            except Exception:
                logger.debug("Exclude selector '%s' raised, ignoring", selector, exc_info=True)

    @staticmethod
    def _find_first(parent: Tag, selectors: tuple[str, ...]) -> Tag | None:
        """Return the first element matching any selector in order."""
        for selector in selectors:
            try:
                el = parent.select_one(selector)
                if el is not None:
                    return el
            except Exception:
                logger.debug("Selector '%s' raised, trying next", selector, exc_info=True)
        return None

    @staticmethod
    def _selector_ok(soup: BeautifulSoup, selector: str) -> bool:
        try:
            soup.select_one(selector)
        except Exception:
            logger.debug("Invalid container selector '%s'", selector, exc_info=True)
            return False
        return True

    @staticmethod
    def _element_html(el: Tag) -> str:
        """Inner markup of ``el`` with leading listing labels removed."""
        return _LABEL_PREFIX.sub("", el.decode_contents().strip())

    @staticmethod
    def _title_url(title_el: Tag) -> str:
        """href of the title link: the element itself, its ancestor, or a child."""
        link = title_el if title_el.name == "a" else title_el.find_parent("a")
        if link is None:
            link = title_el.find("a")
        if link is None:
            return ""
        href = link.get("href")
        return href.strip() if isinstance(href, str) else ""
