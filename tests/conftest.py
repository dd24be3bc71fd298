"""Pytest configuration and fixtures."""

import pytest

from pollution_report.config import Settings
from pollution_report.data.models import CityDescriptor
from pollution_report.utils.cache import MemoryCache

POLLU_BASE = "http://pollu.test"
WIKI_URL = "https://wiki.test/w/api.php"


class FakeClock:
    """Controllable epoch clock whose sleep advances time."""

    def __init__(self, now: float = 1_700_000_000.0):
        self.now = now
        self.sleeps = []

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds

    def sleep(self, seconds: float) -> None:
        self.sleeps.append(seconds)
        self.now += seconds


@pytest.fixture
def clock():
    """Fake clock starting at a fixed epoch."""
    return FakeClock()


@pytest.fixture
def cache():
    """Empty in-memory store."""
    return MemoryCache()


@pytest.fixture
def test_settings():
    """Settings pointing at test hosts."""
    return Settings(
        pollu_api_base=POLLU_BASE,
        pollu_api_username="user",
        pollu_api_password="secret",
        pollu_countries=["PL", "DE"],
        wiki_api_base=WIKI_URL,
        cache_backend="memory",
    )


@pytest.fixture
def city_descriptors():
    """Descriptors keyed by normalized city name."""
    return {
        "Delhi": CityDescriptor(title="Delhi", extract="Delhi is a city...", is_cityish=True),
        "Paris": CityDescriptor(title="Paris", extract="Paris is a city...", is_cityish=True),
        "Notacitycorp": CityDescriptor(title="NotACityCorp", is_cityish=False),
    }
