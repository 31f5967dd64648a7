"""
Extract an artist/entity name from a free-text campaign title.

Common shapes:
    "Artist - Song Title"
    "Artist | Song Title"
    'Artist "Song Title" Campaign'
    "Artist x Artist - Song"

Rules are tried in order and the first structurally valid candidate wins, so
explicit separators take precedence over the bare-string fallback.
"""
from __future__ import annotations

import re
from typing import Callable, Optional

MIN_ENTITY_LENGTH = 2
MAX_ENTITY_LENGTH = 80
MAX_FALLBACK_WORDS = 4

_MONTHS = (
    "January|February|March|April|May|June|July|August|September|October|November|December"
)
_PLATFORMS = "TikTok|Instagram|IG|Twitter|YouTube|Snapchat"
_CAMPAIGN_SUFFIXES = "Campaign|Seeding|Promo|Push|Spike|Content|Tour|Event|Master|INTL|US|UK|MIX|UGC"

# Applied once, in order.
_NOISE_PATTERNS: tuple[re.Pattern[str], ...] = (
    re.compile(rf"\s*\b(?:{_PLATFORMS})\b(?:\s*\b(?:Campaign|Seeding|Promo|Push|Content)\b)?", re.IGNORECASE),
    # "X" only counts as a platform next to a campaign word; a bare "x" is a collab separator.
    re.compile(r"\s*\bX\s+(?:Campaign|Seeding|Promo|Push)\b", re.IGNORECASE),
    re.compile(r"\s*\bTargets?\s*template\s*\d*", re.IGNORECASE),
    # Date ranges such as "May 6-12 2024" or "(June 1 - 15)".
    re.compile(
        rf"\s*\(?\b(?:{_MONTHS})\b\.?\s*\d{{1,2}}\s*[-–]\s*\d{{1,2}}(?:,?\s*\d{{4}})?\)?\s*$",
        re.IGNORECASE,
    ),
    re.compile(r"\s+\w+-ongoing\s*$", re.IGNORECASE),
    re.compile(rf"\s*\(?\b\d{{1,2}}\s*(?:{_MONTHS})\b\s*\d{{4}}\)?", re.IGNORECASE),
    re.compile(rf"\s*\(?\b(?:{_MONTHS})\b\s*/?\s*(?:\d{{4}}|\d{{1,2}}\b)?\)?", re.IGNORECASE),
)

# Applied repeatedly until the title stops changing.
_TRAILING_PATTERNS: tuple[re.Pattern[str], ...] = (
    re.compile(rf"\s*\b(?:{_CAMPAIGN_SUFFIXES})\b\s*$", re.IGNORECASE),
    re.compile(r"\s*\b\d{4}\s*$"),
    re.compile(r"\s*[-–—|]\s*$"),
)

_FEAT_RE = re.compile(r"\s*\b(?:feat\.?|ft\.?|featuring)(?:\s+|$).*$", re.IGNORECASE)
_BRACKETS_RE = re.compile(r"\s*[\[(].*?[\])]\s*")
_WHITESPACE_RE = re.compile(r"\s+")

_DASH_RE = re.compile(r"^(.+?)(?:\s+-\s*|-\s+|\s*[–—]\s*)(.+)$")
_PIPE_RE = re.compile(r"^(.+?)\s*\|\s*(.+)$")
_QUOTE_RE = re.compile(r'^(.+?)\s+["“](.+?)["”].*$')
_COLLAB_RE = re.compile(r"^(.+?)\s+[xX]\s+(.+)$")
_NAME_LIKE_RE = re.compile(r"^[A-Za-z0-9\s.'$&]+$")


def strip_noise(title: str) -> str:
    """Remove platform names, campaign suffixes, months, trailing years and date ranges."""
    cleaned = (title or "").strip()
    for pattern in _NOISE_PATTERNS:
        cleaned = pattern.sub("", cleaned)
    previous = None
    while previous != cleaned:
        previous = cleaned
        for pattern in _TRAILING_PATTERNS:
            cleaned = pattern.sub("", cleaned).strip()
    return _WHITESPACE_RE.sub(" ", cleaned).strip()


def _clean_candidate(candidate: str) -> str:
    candidate = _FEAT_RE.sub("", candidate.strip())
    candidate = _BRACKETS_RE.sub(" ", candidate)
    return _WHITESPACE_RE.sub(" ", candidate).strip()


def _valid(candidate: Optional[str]) -> Optional[str]:
    if candidate and MIN_ENTITY_LENGTH <= len(candidate) <= MAX_ENTITY_LENGTH:
        return candidate
    return None


def _left_of(pattern: re.Pattern[str]) -> Callable[[str], Optional[str]]:
    def rule(cleaned: str) -> Optional[str]:
        match = pattern.match(cleaned)
        if not match:
            return None
        return _valid(_clean_candidate(match.group(1)))

    return rule


def _name_like(cleaned: str) -> Optional[str]:
    if _NAME_LIKE_RE.match(cleaned) and len(cleaned.split()) <= MAX_FALLBACK_WORDS:
        return _valid(cleaned)
    return None


RULES: tuple[Callable[[str], Optional[str]], ...] = (
    _left_of(_DASH_RE),
    _left_of(_PIPE_RE),
    _left_of(_QUOTE_RE),
    _left_of(_COLLAB_RE),
    _name_like,
)


def parse_entity(title: str) -> Optional[str]:
    if not title:
        return None
    cleaned = strip_noise(title)
    if not cleaned:
        return None
    for rule in RULES:
        candidate = rule(cleaned)
        if candidate:
            return candidate
    return None
