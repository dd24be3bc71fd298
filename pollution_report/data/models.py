"""Data models for readings, city descriptors and the report."""

from dataclasses import asdict, dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

import pycountry

NO_DESCRIPTION = "No description available."


@dataclass(frozen=True)
class RawReading:
    """A single upstream measurement, before validation."""

    country: str
    city: str
    metric: float


@dataclass(frozen=True)
class NormalizedReading:
    """Reading with a tidied country and a canonical city name."""

    country: str
    city: str
    metric: float

    def __post_init__(self):
        """Validate reading data."""
        if not self.country or not self.city:
            raise ValueError(f"Empty country or city: {self.country!r}, {self.city!r}")


@dataclass(frozen=True)
class CityDescriptor:
    """Wikipedia summary of a name and whether it reads like a place."""

    title: str
    description: Optional[str] = None
    extract: Optional[str] = None
    is_cityish: bool = False

    @property
    def summary(self) -> Optional[str]:
        """Extract if present, otherwise the short description."""
        return self.extract or self.description


@dataclass(frozen=True)
class CountryWorst:
    """The worst reading of one country."""

    country: str
    city: str
    metric: float


@dataclass(frozen=True)
class ReportEntry:
    """One row of the worst-city-per-country report."""

    country: str
    city: str
    pollution: float
    description: str = NO_DESCRIPTION

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass
class Report:
    """Ranked report as served to readers."""

    entries: List[ReportEntry]
    generated_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    @property
    def count(self) -> int:
        return len(self.entries)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "generated_at": self.generated_at.isoformat(),
            "count": self.count,
            "data": [entry.to_dict() for entry in self.entries],
        }


def get_country_name(country: str) -> str:
    """Resolve an ISO 3166-1 alpha-2 code (any case) to its name, else pass through."""
    code = country.strip().upper()
    if len(code) != 2:
        return country

    try:
        match = pycountry.countries.get(alpha_2=code)
    except KeyError:
        match = None
    if match is None:
        return country
    return getattr(match, "common_name", None) or match.name
