"""City and country name validation and normalization."""

import re
import unicodedata
from typing import Optional

_WHITESPACE = re.compile(r"\s+")
_KEEP_PUNCTUATION = "-' "
_PRESERVED_PREFIX = re.compile(r"^(?:mc|mac|o')", re.IGNORECASE)


def _clean(raw: Optional[str]) -> str:
    """Drop undecodable characters, collapse whitespace, keep letters, marks, - ' and spaces."""
    if raw is None:
        return ""
    text = str(raw).encode("utf-8", errors="ignore").decode("utf-8")
    text = _WHITESPACE.sub(" ", text)
    text = "".join(
        ch for ch in text
        if ch in _KEEP_PUNCTUATION or unicodedata.category(ch)[0] in ("L", "M")
    )
    return text.strip()


class CityValidator:
    """Normalize free-text city names and check that they look like names."""

    @classmethod
    def normalize(cls, raw: Optional[str]) -> Optional[str]:
        """
        Turn a raw city string into its canonical display form.

        Args:
            raw: City name as received from upstream

        Returns:
            Capitalized name, or None if nothing usable remains
        """
        cleaned = _clean(raw)
        if not cleaned:
            return None

        return " ".join(
            "-".join(cls.smart_cap(part) for part in token.split("-"))
            for token in cleaned.split()
        )

    @staticmethod
    def valid_syntax(name: Optional[str]) -> bool:
        """True if the name holds at least 2 alphabetic characters."""
        if not name:
            return False
        return sum(1 for ch in name if ch.isalpha()) >= 2

    @staticmethod
    def smart_cap(word: str) -> str:
        if not word:
            return word
        # Acronym
        if len(word) >= 2 and word.isalpha() and word.isupper():
            return word
        # McDonald, MacArthur, O'Neil
        if _PRESERVED_PREFIX.match(word) and word[0] == word[0].upper():
            return word
        first = word[0].upper()
        # Keep letters whose capital is longer than one character (ß -> SS)
        if len(first) != 1:
            first = word[0]
        return first + word[1:].lower()


def tidy_country(raw: Optional[str]) -> str:
    """Trim, strip stray punctuation and capitalize each token of a country string."""
    cleaned = _clean(raw)
    return " ".join(token[:1].upper() + token[1:].lower() for token in cleaned.split())
