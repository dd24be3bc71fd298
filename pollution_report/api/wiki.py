"""Wikipedia summary client used to tell real cities from other things."""

from typing import Any, Dict, Optional

import httpx
from pollution_report.config import Settings, settings
from pollution_report.data.models import CityDescriptor
from pollution_report.utils.cache import BaseCache, MemoryCache
from pollution_report.utils.logger import setup_logger

logger = setup_logger(__name__)

POSITIVE_TERMS = ("city", "town", "capital", "metropolis", "municipality", "urban", "conurbation")
NEGATIVE_TERMS = (
    "company",
    "film",
    "album",
    "band",
    "software",
    "character",
    "tv",
    "series",
    "song",
    "video game",
    "person",
)


def is_cityish(description: Optional[str], extract: Optional[str]) -> bool:
    """
    Decide from summary text whether a page describes an inhabited place.

    Matching is by substring on the lower-cased text. Any negative term wins
    over positive ones; with no term at all, the extract must mention " city ".
    """
    desc = (description or "").lower()
    ext = (extract or "").lower()

    if any(term in desc or term in ext for term in NEGATIVE_TERMS):
        return False
    if any(term in desc or term in ext for term in POSITIVE_TERMS):
        return True
    return " city " in ext


class WikiClient:
    """Client for the Wikipedia action API."""

    def __init__(
        self,
        base_url: str = None,
        cache: Optional[BaseCache] = None,
        config: Optional[Settings] = None,
        client: Optional[httpx.Client] = None,
    ):
        """
        Initialize Wikipedia client.

        Args:
            base_url: Full URL of the api.php endpoint
            cache: Store for descriptors
            config: Settings (default: process settings)
            client: Preconfigured httpx client
        """
        self.config = config or settings
        self.base_url = base_url or self.config.wiki_api_base
        self.cache = cache if cache is not None else MemoryCache()
        self.client = client or httpx.Client(
            headers={
                "Accept": "application/json",
                "User-Agent": "pollution-report/1.0",
            },
            timeout=httpx.Timeout(self.config.wiki_timeout),
            follow_redirects=True,
        )

    def classify(self, title: str) -> Optional[CityDescriptor]:
        """
        Get the summary of a page and classify it.

        Args:
            title: Page title, usually a normalized city name

        Returns:
            CityDescriptor, or None if the lookup failed or no page matched
        """
        if not title or not title.strip():
            return None

        key = f"wiki:action_summary:{title.lower()}"
        return self.cache.fetch(
            key,
            lambda: self._fetch_summary(title),
            ttl=self.config.descriptor_cache_ttl_seconds,
        )

    def _fetch_summary(self, title: str) -> Optional[CityDescriptor]:
        logger.debug(f"Fetching summary for {title}...")
        params = {
            "action": "query",
            "prop": "extracts|description",
            "titles": title,
            "exintro": 1,
            "explaintext": 1,
            "redirects": 1,
            "format": "json",
        }
        try:
            response = self.client.get(self.base_url, params=params)
            if response.status_code != 200:
                logger.warning(f"Summary for {title} -> {response.status_code}")
                return None
            page = _first_page(response.json())
        except (httpx.HTTPError, ValueError) as e:
            logger.warning(f"Summary error for {title}: {type(e).__name__}: {e}")
            return None

        if page is None or "missing" in page or "invalid" in page:
            logger.debug(f"No page for {title}")
            return None

        description = page.get("description")
        extract = page.get("extract")
        logger.debug(f"Fetched summary for {title}: {page.get('title')}")
        return CityDescriptor(
            title=page.get("title") or title,
            description=description,
            extract=extract,
            is_cityish=is_cityish(description, extract),
        )

    def close(self):
        """Close HTTP client."""
        self.client.close()


def _first_page(body: Any) -> Optional[Dict[str, Any]]:
    query = body.get("query") if isinstance(body, dict) else None
    if not isinstance(query, dict):
        return None
    pages = query.get("pages")
    # formatversion=1 keys pages by id, formatversion=2 returns a list
    if isinstance(pages, dict):
        pages = list(pages.values())
    if not pages or not isinstance(pages[0], dict):
        return None
    return pages[0]
