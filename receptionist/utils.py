"""Shared text helpers used across the turn engine."""

import re

_PUNCTUATION_RE = re.compile(r"[^\w\s]")
_WHITESPACE_RE = re.compile(r"\s+")
_CONTROL_RE = re.compile(r"[\x00-\x1f\x7f]")

# Order matters: longest suffix first.
_STEM_SUFFIXES = ("ing", "ed", "s")
_MIN_STEM_LENGTH = 3


def normalize_text(value: str) -> str:
    """Lowercase, strip punctuation, and collapse whitespace.

    Examples:
        >>> normalize_text("  Do you clean DUCTS?! ")
        'do you clean ducts'
        >>> normalize_text("A/C  tune-up")
        'a c tune up'
    """
    lowered = _PUNCTUATION_RE.sub(" ", value.lower())
    return _WHITESPACE_RE.sub(" ", lowered).strip()


def stem_word(word: str) -> str:
    """Strip one common English suffix so 'ducts' and 'duct' compare equal."""
    for suffix in _STEM_SUFFIXES:
        if word.endswith(suffix) and len(word) - len(suffix) >= _MIN_STEM_LENGTH:
            return word[: -len(suffix)]
    return word


def stem_tokens(value: str) -> list[str]:
    """Normalize text and return its stemmed word tokens."""
    return [stem_word(w) for w in normalize_text(value).split()]


def strip_control_chars(value: str) -> str:
    """Remove control characters and collapse the whitespace left behind."""
    return _WHITESPACE_RE.sub(" ", _CONTROL_RE.sub(" ", value)).strip()


def normalize_phone(value: str) -> str:
    """Normalize a phone number to a canonical digit grouping.

    Ten-digit numbers (optionally prefixed with country code 1) are grouped
    as ``XXX-XXX-XXXX``. Anything else is reduced to its digits, keeping a
    leading ``+``.

    Examples:
        >>> normalize_phone("(239) 555 0142")
        '239-555-0142'
        >>> normalize_phone("+1 239.555.0142")
        '239-555-0142'
        >>> normalize_phone("+61 (412) 345-678")
        '+61412345678'
    """
    value = value.strip()
    digits = re.sub(r"[^\d]", "", value)
    if len(digits) == 11 and digits.startswith("1"):
        digits = digits[1:]
    if len(digits) == 10:
        return f"{digits[:3]}-{digits[3:6]}-{digits[6:]}"
    if value.startswith("+"):
        return "+" + digits
    return digits
