"""Fetch a fly shop's fishing-report page and pull out its text.

Shop sites are usually blog listings.  When a reports page links to
individual posts, each candidate link is scored with a keyword heuristic
and the best few are tried in order; the first post with a real body of
text wins.  Otherwise the listing page itself is mined for content.
"""

import logging
import re
from dataclasses import dataclass
from typing import Optional
from urllib.parse import urljoin

import httpx
from bs4 import BeautifulSoup

from .source_registry import FlyShopSource

logger = logging.getLogger(__name__)

# Broad net for post links across Shopify/WordPress/Squarespace style blogs.
CANDIDATE_LINK_SELECTOR = (
    'a[href*="fishing-report"], a[href*="report"], a[href*="conditions"], '
    "article a, .post-title a, .article-title a, .blog-post a, "
    ".card a, .blog-card a, h2 a, h3 a, h4 a, "
    ".grid a, .collection a, .article-link"
)

# Content areas of an individual post, most specific first.
POST_CONTENT_SELECTORS = [
    "article .content",
    "article",
    ".post-content",
    ".entry-content",
    ".blog-post-content",
    ".rte",  # Shopify rich text
    "main",
]

# Content areas of a listing page used when no post qualifies.
PAGE_CONTENT_SELECTORS = [
    "article",
    ".fishing-report",
    ".report-content",
    ".post-content",
    ".entry-content",
    ".page-content",
    ".rte",
    "main",
    ".content",
]

POST_DATE_SELECTORS = [
    "time",
    ".date",
    ".post-date",
    ".published",
    ".blog-date",
    'meta[property="article:published_time"]',
]

PAGE_DATE_SELECTORS = ["time", ".date", ".post-date", ".published"]

# Empirically tuned; kept as data so they can be adjusted without code changes.
LINK_SCORE_WEIGHTS: dict[str, int] = {
    "fishing_report_text": 15,
    "conditions_report_text": 15,
    "river_report_text": 10,
    "conditions_text": 5,
    "month_name": 10,
    "year": 10,
    "date_like": 8,
    "fly_pattern_text": -15,
    "gear_text": -10,
    "product_text": -10,
    "pattern_without_report": -5,
    "report_url": 5,
    "gear_url": -10,
}

DEFAULT_MIN_LINK_SCORE = 5
DEFAULT_MAX_CANDIDATES = 3
DEFAULT_MIN_CONTENT_CHARS = 300
DEFAULT_MAX_REPORT_CHARS = 5000
DEFAULT_TIMEOUT = 15.0

_MONTH_RE = re.compile(
    r"\b(january|february|march|april|may|june|july|august|"
    r"september|october|november|december)\b"
)
_YEAR_RE = re.compile(r"\b20\d{2}\b")
_SLASH_DATE_RE = re.compile(r"\b\d{1,2}/\d{1,2}\b")
_ORDINAL_RE = re.compile(r"\b\d{1,2}(st|nd|rd|th)\b")
_WS_RE = re.compile(r"\s+")


@dataclass
class RawReport:
    """Text pulled from one source; lives only until extraction."""
    source_name: str
    url: str
    text: str
    date_text: Optional[str] = None


@dataclass
class ScoredLink:
    url: str
    score: int
    text: str


def collapse_whitespace(text: str) -> str:
    return _WS_RE.sub(" ", text or "").strip()


def score_link(link_text: str, href: str, weights: dict[str, int] = LINK_SCORE_WEIGHTS) -> int:
    """Heuristic likelihood that a link points at a dated fishing report."""
    text = link_text.lower()
    url = href.lower()
    score = 0

    if "fishing report" in text:
        score += weights["fishing_report_text"]
    if "conditions" in text and "report" in text:
        score += weights["conditions_report_text"]
    elif "conditions" in text:
        score += weights["conditions_text"]
    if "river report" in text:
        score += weights["river_report_text"]
    if _MONTH_RE.search(text):
        score += weights["month_name"]
    if _YEAR_RE.search(text):
        score += weights["year"]
    if _SLASH_DATE_RE.search(text) or _ORDINAL_RE.search(text):
        score += weights["date_like"]

    if "fly pattern" in text or "fly tying" in text:
        score += weights["fly_pattern_text"]
    if "gear" in text or "equipment" in text:
        score += weights["gear_text"]
    if "product" in text or "shop" in text:
        score += weights["product_text"]
    if "report" not in text:
        if "streamer" in text:
            score += weights["pattern_without_report"]
        if "nymph" in text:
            score += weights["pattern_without_report"]

    if "fishing-report" in url or "river-report" in url:
        score += weights["report_url"]
    if "/gear/" in url or "/products/" in url:
        score += weights["gear_url"]

    return score


def find_report_links(soup: BeautifulSoup, page_url: str) -> list[ScoredLink]:
    """Positively scored candidate links, best first (stable for ties)."""
    best: dict[str, ScoredLink] = {}
    for anchor in soup.select(CANDIDATE_LINK_SELECTOR):
        href = (anchor.get("href") or "").strip()
        if not href or href.startswith(("#", "mailto:", "tel:", "javascript:")):
            continue
        try:
            url = urljoin(page_url, href)
            httpx.URL(url)
        except (ValueError, httpx.InvalidURL):
            logger.debug("Skipping malformed link %r on %s", href, page_url)
            continue
        if url == page_url:
            continue
        text = collapse_whitespace(anchor.get_text(" "))
        score = score_link(text, href)
        if score <= 0:
            continue
        existing = best.get(url)
        if existing is None or score > existing.score:
            best[url] = ScoredLink(url=url, score=score, text=text)
    return sorted(best.values(), key=lambda link: link.score, reverse=True)


def extract_content(soup: BeautifulSoup, selectors: list[str], min_chars: int) -> str:
    """Text of the first selector match longer than ``min_chars``, else ''."""
    for selector in selectors:
        element = soup.select_one(selector)
        if element is None:
            continue
        text = collapse_whitespace(element.get_text(" "))
        if len(text) > min_chars:
            return text
    return ""


def page_text(soup: BeautifulSoup) -> str:
    root = soup.body if soup.body is not None else soup
    return collapse_whitespace(root.get_text(" "))


def find_date_text(soup: BeautifulSoup, selectors: list[str]) -> Optional[str]:
    """Human-readable date near the content, independent of the oracle."""
    for selector in selectors:
        element = soup.select_one(selector)
        if element is None:
            continue
        value = (
            element.get("datetime")
            or element.get("content")
            or collapse_whitespace(element.get_text(" "))
        )
        if value and value.strip():
            return value.strip()
    return None


def parse_html(html: str) -> BeautifulSoup:
    soup = BeautifulSoup(html, "html.parser")
    for tag in soup(["script", "style", "noscript"]):
        tag.decompose()
    return soup


class ReportFetcher:
    """Retrieves a source's report text over HTTP."""

    def __init__(
        self,
        client: httpx.AsyncClient,
        user_agent: str = "HatchMatch Fishing App/1.0",
        timeout: float = DEFAULT_TIMEOUT,
        min_link_score: int = DEFAULT_MIN_LINK_SCORE,
        max_candidates: int = DEFAULT_MAX_CANDIDATES,
        min_content_chars: int = DEFAULT_MIN_CONTENT_CHARS,
        max_report_chars: int = DEFAULT_MAX_REPORT_CHARS,
    ) -> None:
        self._client = client
        self._user_agent = user_agent
        self._timeout = timeout
        self._min_link_score = min_link_score
        self._max_candidates = max_candidates
        self._min_content_chars = min_content_chars
        self._max_report_chars = max_report_chars

    async def _get_html(self, url: str) -> Optional[str]:
        try:
            resp = await self._client.get(
                url,
                headers={"User-Agent": self._user_agent},
                timeout=self._timeout,
                follow_redirects=True,
            )
        except (httpx.HTTPError, httpx.InvalidURL, ValueError) as exc:
            logger.warning("Fetch failed for %s: %s", url, exc)
            return None
        if not resp.is_success:
            logger.warning("Fetch failed for %s: HTTP %d", url, resp.status_code)
            return None
        return resp.text

    async def fetch(self, source: FlyShopSource, water_body_name: str) -> Optional[RawReport]:
        """Return the report text for ``source``, or None when nothing usable came back."""
        html = await self._get_html(source.reports_url)
        if html is None:
            return None

        listing = parse_html(html)
        links = find_report_links(listing, source.reports_url)
        logger.debug(
            "%s: %d candidate report links for %s", source.name, len(links), water_body_name,
        )

        text = ""
        date_text: Optional[str] = None
        url = source.reports_url

        for link in links[: self._max_candidates]:
            if link.score < self._min_link_score:
                break
            post_html = await self._get_html(link.url)
            if post_html is None:
                continue
            post = parse_html(post_html)
            candidate = extract_content(post, POST_CONTENT_SELECTORS, self._min_content_chars)
            if candidate:
                logger.info("%s: using report post %s (score %d)", source.name, link.url, link.score)
                text = candidate
                url = link.url
                date_text = find_date_text(post, POST_DATE_SELECTORS)
                break

        if not text:
            text = (
                extract_content(listing, PAGE_CONTENT_SELECTORS, self._min_content_chars)
                or page_text(listing)
            )

        text = text[: self._max_report_chars]
        if not text:
            logger.warning("%s: no text extracted from %s", source.name, source.reports_url)
            return None

        if date_text is None:
            date_text = find_date_text(listing, PAGE_DATE_SELECTORS)

        return RawReport(source_name=source.name, url=url, text=text, date_text=date_text)
