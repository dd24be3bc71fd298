"""Tests for city and country name validation."""

import pytest

from pollution_report.data.validation import CityValidator, tidy_country


class TestNormalize:
    """Tests for CityValidator.normalize."""

    def test_collapses_whitespace_and_strips_symbols(self):
        """Test whitespace and punctuation clean-up."""
        assert CityValidator.normalize("  new   york! ") == "New York"

    def test_capitalizes_hyphenated_parts(self):
        """Test hyphen-delimited capitalization."""
        assert CityValidator.normalize("saint-louis") == "Saint-Louis"

    def test_keeps_diacritics(self):
        """Test letters with diacritics survive."""
        assert CityValidator.normalize("łódź") == "Łódź"
        assert CityValidator.normalize("SÃO paulo") == "SÃO Paulo"

    def test_preserves_acronyms(self):
        assert CityValidator.normalize("LA") == "LA"
        assert CityValidator.normalize("NYC area") == "NYC Area"

    def test_preserves_capitalized_prefixes(self):
        """Test Mc, Mac and O' names keep their inner capitals."""
        assert CityValidator.normalize("McAllen") == "McAllen"
        assert CityValidator.normalize("MacKay") == "MacKay"
        assert CityValidator.normalize("O'Fallon") == "O'Fallon"

    def test_lowercase_prefix_is_capitalized(self):
        assert CityValidator.normalize("mcallen") == "Mcallen"

    def test_removes_digits(self):
        assert CityValidator.normalize("Station 42 Krakow") == "Station Krakow"

    @pytest.mark.parametrize("raw", [None, "", "   ", "123", "$%^", "\t\n"])
    def test_empty_results_are_none(self, raw):
        assert CityValidator.normalize(raw) is None

    @pytest.mark.parametrize(
        "raw",
        ["  new   york! ", "saint-louis", "McAllen", "o'hare", "LA", "straßburg", "ß-ville", "a--b"],
    )
    def test_idempotent(self, raw):
        """Test normalizing twice changes nothing."""
        once = CityValidator.normalize(raw)
        assert CityValidator.normalize(once) == once


class TestValidSyntax:
    """Tests for CityValidator.valid_syntax."""

    def test_rejects_junk(self):
        assert CityValidator.valid_syntax("$%^") is False
        assert CityValidator.valid_syntax("A") is False
        assert CityValidator.valid_syntax("12-34") is False
        assert CityValidator.valid_syntax("") is False
        assert CityValidator.valid_syntax(None) is False

    def test_accepts_short_names(self):
        assert CityValidator.valid_syntax("LA") is True
        assert CityValidator.valid_syntax("Łódź") is True


class TestTidyCountry:
    """Tests for tidy_country."""

    def test_titlecases_tokens(self):
        assert tidy_country("  UNITED   kingdom. ") == "United Kingdom"

    def test_codes(self):
        assert tidy_country("PL") == "Pl"

    def test_empty(self):
        assert tidy_country("  !! ") == ""
        assert tidy_country(None) == ""
