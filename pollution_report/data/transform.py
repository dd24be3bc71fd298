"""Reduce raw readings to the worst city of each country."""

import math
from typing import Callable, Dict, Iterable, List, Optional

import pandas as pd
from pollution_report.data.models import (
    NO_DESCRIPTION,
    CityDescriptor,
    CountryWorst,
    NormalizedReading,
    RawReading,
    ReportEntry,
    get_country_name,
)
from pollution_report.data.validation import CityValidator, tidy_country
from pollution_report.utils.logger import setup_logger

logger = setup_logger(__name__)

Classifier = Callable[[str], Optional[CityDescriptor]]
CountryResolver = Callable[[str], str]


def normalize_reading(reading: RawReading) -> Optional[NormalizedReading]:
    """
    Tidy the country and normalize the city of one reading.

    Returns:
        NormalizedReading, or None if any field fails validation
    """
    country = tidy_country(reading.country)
    city = CityValidator.normalize(reading.city)
    metric = reading.metric

    if not country or not city or not CityValidator.valid_syntax(city):
        return None
    if not isinstance(metric, (int, float)) or not math.isfinite(metric) or metric < 0:
        return None

    logger.debug(f"Normalized country={country} city={city} metric={metric}")
    return NormalizedReading(country=country, city=city, metric=float(metric))


def normalize_readings(readings: Iterable[RawReading]) -> List[NormalizedReading]:
    """Normalize readings, silently dropping the ones that fail validation."""
    normalized = [normalize_reading(r) for r in readings]
    return [r for r in normalized if r is not None]


def classify_cities(
    readings: Iterable[NormalizedReading], classify: Classifier
) -> Dict[str, Optional[CityDescriptor]]:
    """Look up each distinct city name once."""
    descriptors: Dict[str, Optional[CityDescriptor]] = {}
    for reading in readings:
        if reading.city not in descriptors:
            descriptors[reading.city] = classify(reading.city)
    return descriptors


def worst_city_per_country(readings: List[NormalizedReading]) -> List[CountryWorst]:
    """
    Keep the worst reading per (country, city), then the worst city per country.

    Ties keep the first reading encountered; countries come out in order of
    first appearance.
    """
    if not readings:
        return []

    df = pd.DataFrame(
        {
            "country": [r.country for r in readings],
            "city": [r.city for r in readings],
            "metric": [r.metric for r in readings],
        }
    )

    # idxmax returns the first occurrence of the maximum
    per_city = df.loc[df.groupby(["country", "city"], sort=False)["metric"].idxmax()]
    per_country = per_city.loc[per_city.groupby("country", sort=False)["metric"].idxmax()]

    return [
        CountryWorst(country=row.country, city=row.city, metric=float(row.metric))
        for row in per_country.itertuples(index=False)
    ]


def enrich(
    worst: CountryWorst,
    descriptor: Optional[CityDescriptor],
    country_resolver: CountryResolver = get_country_name,
) -> ReportEntry:
    """Attach display country, rounded metric and description."""
    description = descriptor.summary if descriptor else None
    return ReportEntry(
        country=country_resolver(worst.country),
        city=worst.city,
        pollution=round(worst.metric, 2),
        description=description or NO_DESCRIPTION,
    )


def build_report(
    readings: Iterable[RawReading],
    classify: Classifier,
    country_resolver: CountryResolver = get_country_name,
) -> List[ReportEntry]:
    """
    Build the worst-city-per-country report from raw readings.

    Args:
        readings: Raw readings of one fetch cycle
        classify: City name -> descriptor lookup (None when unknown)
        country_resolver: Maps a tidied country string to its display name

    Returns:
        Report entries sorted by pollution, highest first
    """
    normalized = normalize_readings(readings)
    descriptors = classify_cities(normalized, classify)

    cities = [
        r for r in normalized
        if descriptors.get(r.city) is not None and descriptors[r.city].is_cityish
    ]
    logger.info(
        f"{len(cities)} of {len(normalized)} normalized readings are cities "
        f"({len(descriptors)} distinct names)"
    )

    entries = [
        enrich(worst, descriptors[worst.city], country_resolver)
        for worst in worst_city_per_country(cities)
    ]

    # sorted() is stable, so equal pollution keeps insertion order
    return sorted(entries, key=lambda e: e.pollution, reverse=True)
