"""Fetch-and-report cycle."""

from typing import List, Optional

from pollution_report.api.pollu import PolluApiClient
from pollution_report.api.wiki import WikiClient
from pollution_report.config import Settings, settings
from pollution_report.data.models import Report, get_country_name
from pollution_report.data.transform import CountryResolver, build_report
from pollution_report.utils.cache import BaseCache, create_cache
from pollution_report.utils.logger import setup_logger

logger = setup_logger(__name__)

REPORT_KEY = "pollu_api:daily_rows"


class ReportPipeline:
    """Fetch pollution readings, build the report and cache it for readers."""

    def __init__(
        self,
        cache: Optional[BaseCache] = None,
        config: Optional[Settings] = None,
        pollu_client: Optional[PolluApiClient] = None,
        wiki_client: Optional[WikiClient] = None,
        country_resolver: CountryResolver = get_country_name,
    ):
        """
        Initialize report pipeline.

        Args:
            cache: Shared store (default: configured backend)
            config: Settings (default: process settings)
            pollu_client: Pollution API client
            wiki_client: Wikipedia client used as the city gate
            country_resolver: Maps tidied country strings to display names
        """
        self.config = config or settings
        self.cache = cache if cache is not None else create_cache(self.config.cache_backend)
        self.pollu_client = pollu_client or PolluApiClient(cache=self.cache, config=self.config)
        self.wiki_client = wiki_client or WikiClient(cache=self.cache, config=self.config)
        self.country_resolver = country_resolver

    def refresh(self, country_codes: Optional[List[str]] = None) -> Report:
        """
        Run one fetch cycle and replace the cached report.

        Args:
            country_codes: ISO codes to fetch (default: configured countries)

        Returns:
            The new report

        Raises:
            AuthError: If the pollution API rejects the credentials
        """
        readings = self.pollu_client.fetch_all(country_codes)
        entries = build_report(readings, self.wiki_client.classify, self.country_resolver)

        report = Report(entries=entries)
        self.cache.set(REPORT_KEY, report, ttl=self.config.report_cache_ttl_seconds)
        logger.info(f"Cached {report.count} rows")
        return report

    def read_report(self) -> Optional[Report]:
        """Return the cached report without recomputing it."""
        report = self.cache.get(REPORT_KEY)
        return report if isinstance(report, Report) else None

    def get_or_refresh(self) -> Report:
        """Cached report, or a freshly built one when none is cached."""
        return self.read_report() or self.refresh()

    def close(self):
        """Close HTTP clients."""
        self.pollu_client.close()
        self.wiki_client.close()

    def __enter__(self):
        """Context manager entry."""
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        """Context manager exit."""
        self.close()
