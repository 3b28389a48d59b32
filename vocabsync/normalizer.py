"""Canonical dedup keys for vocabulary entries."""

import re
import unicodedata

from vocabsync.models import Language

_WHITESPACE_RUN = re.compile(r"\s+")
_TRAILING_PUNCTUATION = re.compile(r"[\s.,!?]+$")


def normalize(raw: str) -> str:
    """
    Normalize a written form for comparison.

    Trims, lowercases, collapses whitespace runs to one space and strips
    trailing ``.``, ``,``, ``!`` and ``?`` (repeated). Accented characters are
    kept; NFC composition makes precomposed and combining spellings compare equal.

    Args:
        raw: Word or phrase as typed or as stored

    Returns:
        Normalized form (possibly empty)
    """
    text = unicodedata.normalize("NFC", raw.lower())
    text = _WHITESPACE_RUN.sub(" ", text).strip()
    return _TRAILING_PUNCTUATION.sub("", text)


def build_key(language: Language | str, raw: str) -> str:
    """Build the dedup key ``"<languageCode>|<normalized headword>"``."""
    code = language.value if isinstance(language, Language) else language
    return f"{code}|{normalize(raw)}"
