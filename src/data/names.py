"""Player name normalization for matching feed records to predictions."""

import re
import unicodedata

_SUFFIX = re.compile(r"\s+(jr|sr|ii|iii|iv)\.?$")


def normalize_name(name: str) -> str:
    """
    Lowercase, strip accents and drop a trailing generational suffix.

    "Félix Auger-Aliassime" -> "felix auger-aliassime"
    "Tommy Paul Jr." -> "tommy paul"
    """
    decomposed = unicodedata.normalize("NFD", name)
    plain = "".join(c for c in decomposed if not unicodedata.combining(c))
    plain = " ".join(plain.lower().split())
    return _SUFFIX.sub("", plain)


def normalized_pair_key(name1: str, name2: str) -> str:
    """Order-independent key built from normalized names."""
    first, second = sorted((normalize_name(name1), normalize_name(name2)))
    return f"{first}|{second}"
