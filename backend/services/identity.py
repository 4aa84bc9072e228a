"""Canonical identity keys for places.

The key is the only deduplication mechanism for recent searches and
favorites; provider place ids are never relied upon.
"""
from __future__ import annotations

import re
from typing import Optional

_WHITESPACE_RE = re.compile(r"\s+")


def _normalize(value: Optional[str]) -> str:
    if not value:
        return ""
    return _WHITESPACE_RE.sub(" ", value.strip().lower())


def make_place_key(name: str, country: Optional[str] = None) -> str:
    """Return ``"<name>|<country>"`` lowercased with whitespace collapsed.

    >>> make_place_key("  New   York ", "us")
    'new york|us'
    """
    return f"{_normalize(name)}|{_normalize(country)}"
