"""Path, slug and title helpers shared across the index builder."""

from __future__ import annotations

import hashlib
import re
import unicodedata
from datetime import date, datetime
from typing import List, Optional

URL_SEPARATOR = "/"
BREADCRUMB_SEPARATOR = "\\"

_REPLACEMENT_CHAR = "-"
_UNACCEPTABLE_URL_CHARACTERS = re.compile(r"[^\w\-/]")
_REPEATING_HYPHENS = re.compile(r"-{2,}")
_HYPHENS_NEXT_TO_SLASH = re.compile(r"-*/-*")
_DATE_PREFIX = re.compile(r"^(19|20)\d\d([- /.])(0[1-9]|1[012])\2(0[1-9]|[12][0-9]|3[01])")
_NAME_PREFIX_STRIP_CHARACTERS = " -"
_CHARACTER_FOLDING = {"ł": "l", "Ł": "L", "ß": "B", "ø": "o"}


def ensure_terminated_path(path: str) -> str:
    return path if path.endswith(URL_SEPARATOR) else path + URL_SEPARATOR


def ensure_terminated_breadcrumbs(path: str) -> str:
    return path if path.endswith(BREADCRUMB_SEPARATOR) else path + BREADCRUMB_SEPARATOR


def split_path(path: str) -> List[str]:
    return [fragment for fragment in path.split(URL_SEPARATOR) if fragment.strip()]


def split_breadcrumbs(breadcrumbs: str) -> List[str]:
    return [fragment for fragment in breadcrumbs.split(BREADCRUMB_SEPARATOR) if fragment.strip()]


def join_path(fragments: List[str]) -> str:
    """Build the canonical "/"-terminated path for the given fragments."""
    return ensure_terminated_path(URL_SEPARATOR + URL_SEPARATOR.join(fragments))


def parent_path(path: str) -> Optional[str]:
    if path == URL_SEPARATOR:
        return None
    fragments = split_path(path)
    return join_path(fragments[:-1])


def _remove_diacritics(value: str) -> str:
    decomposed = unicodedata.normalize("NFKD", value)
    kept = (
        _CHARACTER_FOLDING.get(char, char)
        for char in decomposed
        if unicodedata.category(char) not in {"Mn", "Mc", "Me"}
    )
    return "".join(kept)


def build_url_safe_path(base_path: str) -> str:
    """Convert a display path into its lower-case URL-safe form.

    Diacritics are folded away, possessive apostrophes are dropped, any other
    character outside ``[\\w-/]`` becomes a hyphen and hyphen runs collapse.
    The result always ends with "/".
    """
    root = _remove_diacritics(base_path.strip() + URL_SEPARATOR)
    root = root.replace("'s", "s").replace("'S", "S")
    root = root.replace(BREADCRUMB_SEPARATOR, URL_SEPARATOR)
    root = _UNACCEPTABLE_URL_CHARACTERS.sub(_REPLACEMENT_CHAR, root)
    root = _REPEATING_HYPHENS.sub(_REPLACEMENT_CHAR, root)
    root = _HYPHENS_NEXT_TO_SLASH.sub(URL_SEPARATOR, root)
    return root.rstrip(_REPLACEMENT_CHAR).lower()


def build_keyword_slug(keyword: str) -> str:
    return build_url_safe_path(keyword.lower()).rstrip(URL_SEPARATOR).strip(_REPLACEMENT_CHAR)


_MONTH_NAMES = (
    "January",
    "February",
    "March",
    "April",
    "May",
    "June",
    "July",
    "August",
    "September",
    "October",
    "November",
    "December",
)


def format_long_date(value: date) -> str:
    return f"{value.day} {_MONTH_NAMES[value.month - 1]} {value.year:04d}"


def _match_date_prefix(name: str) -> Optional[tuple]:
    match = _DATE_PREFIX.match(name)
    if not match:
        return None
    token = match.group(0).strip()
    separator = match.group(2)
    try:
        parsed = datetime.strptime(token, f"%Y{separator}%m{separator}%d").date()
    except ValueError:
        return None
    return parsed, match.group(0)


def reformat_title(name: str) -> str:
    """Turn a leading ``YYYY-MM-DD`` token into a readable long date.

    ``"2020-01-05-new-year-walk"`` becomes ``"5 January 2020 - new-year-walk"``;
    names without a valid date prefix are returned unchanged.
    """
    if not name:
        return ""
    found = _match_date_prefix(name)
    if found is None:
        return name
    parsed, matched = found
    rest = name[len(matched):].lstrip(_NAME_PREFIX_STRIP_CHARACTERS)
    if not rest:
        return format_long_date(parsed)
    return f"{format_long_date(parsed)} - {rest}"


def extract_date(name: str) -> str:
    if not name:
        return ""
    found = _match_date_prefix(name)
    if found is None:
        return ""
    return format_long_date(found[0])


def as_empty(value: Optional[str]) -> str:
    if value is None or not value.strip():
        return ""
    return value


def hash_text(value: str) -> str:
    return hashlib.sha512(value.encode("utf-8")).hexdigest()


__all__ = [
    "BREADCRUMB_SEPARATOR",
    "URL_SEPARATOR",
    "as_empty",
    "build_keyword_slug",
    "build_url_safe_path",
    "ensure_terminated_breadcrumbs",
    "ensure_terminated_path",
    "extract_date",
    "format_long_date",
    "hash_text",
    "join_path",
    "parent_path",
    "reformat_title",
    "split_breadcrumbs",
    "split_path",
]
