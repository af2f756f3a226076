"""Vacancy Bot — Link Extraction.

Pulls candidate vacancy links out of a rendered search page. Parsing
uses selectolax; the filtering rule is a plain substring and path heuristic that
matches work.ua and robota.ua detail URLs.
"""

from __future__ import annotations

import re
from typing import Iterable, Optional, Sequence
from urllib.parse import urljoin, urlparse

from selectolax.parser import HTMLParser

from vacancy_bot.utils.logger import get_logger

logger = get_logger(__name__)

DEFAULT_LINK_LIMIT = 10

_SKIPPED_SCHEMES = ("javascript:", "mailto:", "tel:")
_COMPANY_JOB_ID = re.compile(r"\d{5,}")
# work.ua detail pages: /jobs/<id>/ (listings are /jobs/ and /jobs-<city>/)
_JOBS_ID_PATH = re.compile(r"/jobs/\d+(?:[/?#]|$)")


def collect_hrefs(html: str, base_url: Optional[str] = None) -> list[str]:
    """Return the href of every anchor on the page, in document order.

    Relative links are resolved against ``base_url``. Script, mail and
    phone links and fragment-only anchors are dropped.

    Args:
        html: Rendered page HTML.
        base_url: URL the page was loaded from.

    Returns:
        Absolute hrefs, duplicates included.
    """
    tree = HTMLParser(html)
    hrefs: list[str] = []

    for node in tree.css("a[href]"):
        href = (node.attributes.get("href") or "").strip()
        if not href or href.startswith("#"):
            continue
        if href.lower().startswith(_SKIPPED_SCHEMES):
            continue
        hrefs.append(urljoin(base_url, href) if base_url else href)

    logger.debug("Collected %d anchors from %s", len(hrefs), base_url or "page")
    return hrefs


def is_job_link(href: str) -> bool:
    """Heuristic for a vacancy detail link.

    A link qualifies if it mentions ``vacancy`` or ``/job/``, has a
    ``/jobs/<id>`` path, or points under ``/company`` and carries a
    numeric id of 5+ digits.
    """
    if "vacancy" in href or "/job/" in href:
        return True
    if _JOBS_ID_PATH.search(href):
        return True
    return "/company" in href and _COMPANY_JOB_ID.search(href) is not None


def extract_job_links(
    hrefs: Iterable[str], limit: int = DEFAULT_LINK_LIMIT,
) -> list[str]:
    """Select vacancy links from all anchors on a search page.

    Args:
        hrefs: Anchor hrefs in document order.
        limit: Maximum number of links to return.

    Returns:
        At most ``limit`` matching hrefs in first-seen order. Duplicates
        are not removed.
    """
    if limit <= 0:
        return []

    links: list[str] = []
    for href in hrefs:
        if is_job_link(href):
            links.append(href)
            if len(links) >= limit:
                break
    return links


def is_supported_search_url(url: str, domains: Sequence[str]) -> bool:
    """Check that a search URL belongs to one of the supported job boards.

    Args:
        url: URL submitted by the user.
        domains: Allowed base domains, e.g. ("work.ua", "robota.ua").

    Returns:
        True if the host is one of the domains or a subdomain of one.
    """
    try:
        parsed = urlparse(url)
    except ValueError:
        return False
    if parsed.scheme not in ("http", "https"):
        return False

    host = (parsed.hostname or "").lower()
    if not host:
        return False
    return any(
        host == domain or host.endswith("." + domain)
        for domain in (d.lower() for d in domains)
    )
