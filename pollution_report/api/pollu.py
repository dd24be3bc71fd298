"""Pollution API client: health-checked, authenticated, paginated reads."""

from typing import Any, Dict, List, Optional, Tuple

import httpx
from pollution_report.api.auth import AuthTokenManager
from pollution_report.config import Settings, settings
from pollution_report.data.models import RawReading
from pollution_report.utils.cache import BaseCache, MemoryCache
from pollution_report.utils.logger import setup_logger
from pollution_report.utils.rate_limiter import RateLimiter, RetryHandler

logger = setup_logger(__name__)


def cache_key(suffix: str) -> str:
    return f"pollu_api:{suffix}"


def _is_unauthorized(response: httpx.Response) -> bool:
    return response.status_code == 401


class PolluApiClient:
    """Client for the pollution API."""

    def __init__(
        self,
        base_url: str = None,
        cache: Optional[BaseCache] = None,
        config: Optional[Settings] = None,
        auth: Optional[AuthTokenManager] = None,
        rate_limiter: Optional[RateLimiter] = None,
        client: Optional[httpx.Client] = None,
    ):
        """
        Initialize pollution API client.

        Args:
            base_url: API base URL
            cache: Shared store for pages, session and rate window
            config: Settings (default: process settings)
            auth: Token manager (default: one bound to this client)
            rate_limiter: Limiter for /pollution calls
            client: Preconfigured httpx client
        """
        self.config = config or settings
        self.base_url = base_url or self.config.pollu_api_base
        self.cache = cache if cache is not None else MemoryCache()

        self.client = client or httpx.Client(
            base_url=self.base_url,
            headers={"Accept": "application/json"},
            timeout=httpx.Timeout(self.config.pollu_api_timeout),
        )
        self.auth = auth or AuthTokenManager(self.client, self.cache, config=self.config)
        self.rate_limiter = rate_limiter or RateLimiter(
            self.cache,
            max_requests=self.config.pollu_rate_limit,
            time_window=self.config.pollu_rate_window_seconds,
            window_ttl=self.config.rate_window_ttl_seconds,
        )
        self.retry_handler = RetryHandler(
            max_retries=1,
            retry_if=_is_unauthorized,
            before_retry=self.auth.force_refresh,
        )

    def health_check(self) -> bool:
        """Probe /healthz; anything but a 200 counts as unhealthy."""
        try:
            response = self.client.get("/healthz")
        except httpx.HTTPError as e:
            logger.warning(f"GET /healthz error: {type(e).__name__}: {e}")
            return False

        if response.status_code != 200:
            logger.warning(f"GET /healthz -> {response.status_code} {response.text[:200]}")
            return False
        return True

    def get_pollution_page(
        self, country_code: str, page: int, limit: int = None
    ) -> Optional[Dict[str, Any]]:
        """
        Get one page of pollution results for a country.

        A 401 refreshes the credentials and retries the page once.

        Returns:
            Decoded response body, or None if the page could not be fetched

        Raises:
            AuthError: If new credentials cannot be obtained
        """
        params = {
            "country": country_code,
            "page": page,
            "limit": limit or self.config.pollu_page_limit,
        }

        def _request() -> httpx.Response:
            token = self.auth.ensure_valid_token()
            self.rate_limiter.acquire_slot()
            logger.debug(f"Making request to /pollution with params: {params}")
            return self.client.get(
                "/pollution",
                params=params,
                headers={"Authorization": f"Bearer {token}"},
            )

        try:
            response = self.retry_handler.execute(_request)
            if response.status_code == 200:
                body = response.json()
                if isinstance(body, dict):
                    return body
            logger.warning(
                f"GET /pollution {country_code} p{page} -> {response.status_code} {response.text[:200]}"
            )
        except (httpx.HTTPError, ValueError) as e:
            logger.warning(f"GET /pollution {country_code} p{page} error: {type(e).__name__}: {e}")
        return None

    def _fetch_country_pages(self, country_code: str) -> Tuple[List[Dict[str, Any]], bool]:
        """Walk every page of a country; the flag tells whether all pages arrived."""
        if not self.health_check():
            logger.warning(f"Health check failed, skipping {country_code} this cycle")
            return [], False

        logger.debug(f"Fetching {country_code} pollution page records...")
        rows: List[Dict[str, Any]] = []
        page = 1
        while True:
            body = self.get_pollution_page(country_code, page)
            if body is None:
                logger.warning(f"Abandoning {country_code} at page {page}")
                return rows, False

            results = body.get("results")
            results = [r for r in results if isinstance(r, dict)] if isinstance(results, list) else []
            rows.extend({**result, "countryCode": country_code} for result in results)

            meta = body.get("meta") if isinstance(body.get("meta"), dict) else {}
            total_pages = _to_int(meta.get("totalPages"), default=1)
            logger.debug(f"Page {page}/{total_pages} of {country_code}: {len(results)} records")

            # An empty page means the API stopped making progress
            if page >= total_pages or not results:
                break
            page += 1

        logger.debug(f"Fetched {len(rows)} {country_code} pollution records")
        return rows, True

    def fetch_country_rows(self, country_code: str) -> Tuple[List[Dict[str, Any]], bool]:
        """
        Get all result rows for a country, tagged with countryCode.

        Complete fetches are cached for the raw data TTL; partial ones are
        returned but not cached so the next cycle retries them.

        Returns:
            (rows, complete)
        """
        key = cache_key(f"country:{country_code}:pages_v1")
        cached = self.cache.get(key)
        if cached is not None:
            logger.debug(f"Cache hit for {country_code} pages")
            return cached, True

        rows, complete = self._fetch_country_pages(country_code)
        if complete:
            self.cache.set(key, rows, ttl=self.config.raw_cache_ttl_seconds)
        return rows, complete

    def fetch_all(self, country_codes: Optional[List[str]] = None) -> List[RawReading]:
        """
        Fetch and normalize readings for every country code.

        A failing country never aborts the others.

        Args:
            country_codes: ISO codes to fetch (default: configured countries)

        Returns:
            List of raw readings

        Raises:
            AuthError: If the API rejects the configured credentials
        """
        codes = list(country_codes if country_codes is not None else self.config.pollu_countries)
        key = cache_key(f"pollution_rows_v2:{','.join(codes)}")
        cached = self.cache.get(key)
        if cached is not None:
            logger.debug("Cache hit for pollution rows")
            return cached

        readings: List[RawReading] = []
        all_complete = True
        for country_code in codes:
            rows, complete = self.fetch_country_rows(country_code)
            all_complete = all_complete and complete
            readings.extend(r for r in (normalize_row(row) for row in rows) if r is not None)

        logger.info(f"Retrieved {len(readings)} pollution readings for {len(codes)} countries")
        if all_complete:
            self.cache.set(key, readings, ttl=self.config.raw_cache_ttl_seconds)
        return readings

    def close(self):
        """Close HTTP client."""
        self.client.close()

    def __enter__(self):
        """Context manager entry."""
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        """Context manager exit."""
        self.close()


def normalize_row(row: Any) -> Optional[RawReading]:
    """Turn an API result row into a RawReading, or None if a field is missing."""
    if not isinstance(row, dict):
        return None

    country = _text(row.get("country") or row.get("countryCode"))
    city = _text(row.get("name"))
    pollution = row.get("pollution")
    if not country or not city or pollution is None or isinstance(pollution, bool):
        return None

    try:
        metric = float(pollution)
    except (TypeError, ValueError):
        return None
    return RawReading(country=country, city=city, metric=metric)


def _text(value: Any) -> str:
    if value is None:
        return ""
    return str(value).encode("utf-8", errors="ignore").decode("utf-8").strip()


def _to_int(value: Any, default: int) -> int:
    try:
        return int(value)
    except (TypeError, ValueError):
        return default
