"""Discover a fly shop that publishes reports for a water body.

Used when the registry has no active source for a water.  The oracle
suggests a shop; its URLs are then checked for real before anything is
trusted.
"""

import logging
import textwrap
from dataclasses import dataclass
from typing import Optional

import httpx

from ..exceptions import ExtractionError, OracleError
from .oracle import Oracle, extract_json_object

logger = logging.getLogger(__name__)

# Probed in order against the website root when the suggested URL is dead.
REPORT_PATH_SUFFIXES = [
    "/fishing-reports",
    "/fishing-report",
    "/reports",
    "/blog",
    "/pages/fishing-reports",
    "/pages/fishing-report",
]

URL_VALIDATION_TIMEOUT = 10.0

BROWSER_HEADERS = {
    "User-Agent": (
        "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
        "(KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36"
    ),
    "Accept": "text/html,application/xhtml+xml,application/xml;q=0.9,*/*;q=0.8",
}


@dataclass
class DiscoveredShop:
    name: str
    website: str
    reports_url: str


def _build_prompt(water_body_name: str, state: str, city: str) -> str:
    near = f", near {city}" if city else ""
    return textwrap.dedent(
        f"""
        Find the most reputable local fly fishing shop that posts fishing reports
        for {water_body_name} in {state}{near}.

        I need a fly shop that:
        1. Is located near this water body
        2. Posts regular fishing reports on their website
        3. Is well-known in the local fly fishing community

        Return ONLY a JSON object with:
        - name: the shop name
        - website: their main website URL (e.g., https://example.com)
        - reports_url: the specific URL to their fishing reports page

        For the reports_url, use common patterns like /fishing-reports, /reports,
        /fishing-report or /blog (if they post reports on their blog).

        If you're not confident about a specific shop, return null.

        Example response:
        {{"name": "Blue Ribbon Flies", "website": "https://blueribbonflies.com", "reports_url": "https://blueribbonflies.com/fishing-reports"}}
        """
    ).strip()


class ShopDiscovery:
    """Oracle-assisted fly shop lookup with URL validation."""

    def __init__(
        self,
        oracle: Oracle,
        client: httpx.AsyncClient,
        validation_timeout: float = URL_VALIDATION_TIMEOUT,
    ) -> None:
        self._oracle = oracle
        self._client = client
        self._validation_timeout = validation_timeout

    async def validate_url(self, url: str) -> bool:
        """True when a GET answers with a status in 200-399."""
        try:
            resp = await self._client.get(
                url,
                headers=BROWSER_HEADERS,
                timeout=self._validation_timeout,
                follow_redirects=True,
            )
        except (httpx.HTTPError, httpx.InvalidURL, ValueError) as exc:
            logger.debug("URL validation error for %s: %s", url, exc)
            return False
        is_valid = 200 <= resp.status_code < 400
        logger.debug("URL validation %s -> %d (%s)", url, resp.status_code, is_valid)
        return is_valid

    async def resolve_reports_url(self, website: str, suggested: str) -> Optional[str]:
        """Pick the first working reports URL, falling back to the bare website."""
        if suggested and await self.validate_url(suggested):
            return suggested

        base_url = website.rstrip("/")
        for suffix in REPORT_PATH_SUFFIXES:
            candidate = base_url + suffix
            if await self.validate_url(candidate):
                logger.info("Found working reports URL pattern: %s", candidate)
                return candidate

        if await self.validate_url(website):
            logger.info("Using main website as reports URL: %s", website)
            return website

        return None

    async def discover(
        self,
        water_body_name: str,
        state: str = "",
        city: str = "",
    ) -> Optional[DiscoveredShop]:
        """Ask the oracle for a shop and validate its URLs; None if nothing works."""
        try:
            reply = await self._oracle.complete(
                _build_prompt(water_body_name, state, city), max_tokens=500,
            )
        except OracleError as exc:
            logger.warning("Shop discovery oracle call failed for %s: %s", water_body_name, exc)
            return None

        try:
            parsed = extract_json_object(reply)
        except ExtractionError:
            logger.info("Oracle suggested no fly shop for %s", water_body_name)
            return None

        name = str(parsed.get("name") or "").strip()
        website = str(parsed.get("website") or "").strip()
        suggested = str(parsed.get("reports_url") or "").strip()
        if not (name and website and suggested):
            logger.info("Incomplete shop suggestion for %s: %s", water_body_name, parsed)
            return None

        logger.info("Oracle suggested shop %s (%s) for %s", name, suggested, water_body_name)
        reports_url = await self.resolve_reports_url(website, suggested)
        if reports_url is None:
            logger.info("No valid URL found for shop %s", name)
            return None

        return DiscoveredShop(name=name, website=website, reports_url=reports_url)
