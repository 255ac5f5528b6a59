"""Site selector policies: site id -> CSS selector tuples per field.

Each field is a tuple so callers iterate until a match is found. Adding a site
means adding a row here (or under ``sites:`` in settings.yaml), never editing
the extraction code. The ``generic`` row is mandatory: it is used for unknown
site ids and as the per-field fallback when a site selector finds nothing.
"""

from collections.abc import Mapping
from types import MappingProxyType

from src.core.schemas import GENERIC_SITE, SitePolicy

FIELDS: tuple[str, ...] = ("title", "company", "location", "pay", "schedule", "description")


GENERIC_POLICY = SitePolicy(
    container=(".job", ".listing", ".position", ".vacancy", "article", ".job-card", ".job-item"),
    title=("h1", "h2", "h3", ".title", ".job-title", ".position-title"),
    company=(".company", ".employer", ".organization"),
    location=(".location", ".address", ".city"),
    pay=(".salary", ".pay", ".wage", ".compensation"),
    schedule=(".type", ".schedule", ".hours"),
    description=(".description", ".summary", ".details", "p"),
    exclude=(".nav", ".header", ".footer", ".sidebar", ".pagination", ".ad", ".advertisement"),
)

_BUILTIN: dict[str, SitePolicy] = {
    "indeed": SitePolicy(
        container=(
            'td[id*="job_"]',
            ".job_seen_beacon",
            ".jobsearch-SerpJobCard",
            "div[data-jk]",
            ".slider_container .slider_item",
        ),
        title=(
            "h2 a span[title]",
            ".jobTitle a span",
            "h2.jobTitle a",
            '[data-testid="job-title"]',
            ".jobTitle-color-purple",
        ),
        company=(".companyName", '[data-testid="company-name"]', ".company", "span.companyName a"),
        location=(
            '[data-testid="job-location"]',
            ".companyLocation",
            ".locationsContainer",
        ),
        pay=(".salary-snippet", ".estimated-salary", '[data-testid="job-salary"]', ".salaryText"),
        schedule=(".jobMetadata .metadata", ".jobMetadata", ".attribute_snippet"),
        description=(".job-snippet", ".summary", '[data-testid="job-snippet"]'),
        exclude=(".pn", "#searchCountPages", ".np", ".slider_container .slider_nav", ".jobsearch-NoResult"),
    ),
    "aarp": SitePolicy(
        container=(".job-listing", ".job-result", ".listing-item", ".job-item"),
        title=(".job-title a", ".listing-title a", "h3 a", "h2 a"),
        company=(".company-name", ".employer", ".company"),
        location=(".location", ".job-location", ".listing-location"),
        pay=(".salary", ".pay", ".wage"),
        schedule=(".job-type", ".schedule", ".employment-type"),
        description=(".job-summary", ".job-description", ".snippet"),
        exclude=(".pagination", ".filter", ".search-filters", ".sidebar"),
    ),
    "usajobs": SitePolicy(
        container=(".usajobs-search-result--core", ".job-listing", ".search-result"),
        title=(".usajobs-search-result--title a", ".job-title a", "h3 a"),
        company=(".usajobs-search-result--agency", ".agency", ".department"),
        location=(".usajobs-search-result--location", ".location"),
        pay=(".usajobs-search-result--pay", ".pay", ".salary-range"),
        schedule=(".usajobs-search-result--schedule", ".schedule"),
        description=(".usajobs-search-result--summary", ".job-summary"),
        exclude=(".usajobs-search-filters", ".pagination", ".header", ".footer"),
    ),
    GENERIC_SITE: GENERIC_POLICY,
}

SITE_POLICIES: Mapping[str, SitePolicy] = MappingProxyType(_BUILTIN)


def build_policy_table(extra: Mapping[str, SitePolicy] | None = None) -> Mapping[str, SitePolicy]:
    """Merge configured policies over the built-in table (read-only result)."""
    if not extra:
        return SITE_POLICIES
    merged = dict(_BUILTIN)
    merged.update(extra)
    return MappingProxyType(merged)


def resolve_policy(site_id: str, table: Mapping[str, SitePolicy] = SITE_POLICIES) -> SitePolicy:
    """Return the policy for ``site_id`` (case-sensitive), else the generic one."""
    policy = table.get(site_id)
    if policy is None:
        return table.get(GENERIC_SITE, GENERIC_POLICY)
    return policy


def generic_policy(table: Mapping[str, SitePolicy] = SITE_POLICIES) -> SitePolicy:
    return table.get(GENERIC_SITE, GENERIC_POLICY)
