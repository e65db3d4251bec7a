import re
import unicodedata
from typing import Any

_non_key = re.compile(r"[^0-9a-z]+")


def normalize_text(
    value: Any,
    *,
    lowercase: bool = True,
    strip: bool = True,
    collapse_whitespace: bool = True,
    normalize_unicode: bool = True,
) -> str:
    """
    Generic text normalizer for stable keys and comparisons.
    """

    if value is None:
        return ""

    text = str(value)

    if normalize_unicode:
        text = unicodedata.normalize("NFKC", text)

    text = text.replace("\r\n", "\n").replace("\r", "\n")

    if strip:
        text = text.strip()

    if collapse_whitespace:
        text = re.sub(r"\s+", " ", text)

    if lowercase:
        text = text.lower()

    return text


def field_key(title: Any) -> str:
    """Turn a ticket field title into a snake_case event key ("Priority Level" -> "priority_level")."""
    return _non_key.sub("_", normalize_text(title)).strip("_")
