"""Profile search: conjunctive keyword matching, match highlighting, result cards.

Matching rules:
- the query is trimmed, lower-cased and split on whitespace runs into search words;
- no search words means no results (browsing uses the unfiltered listing instead);
- a profile matches iff every search word is a substring of at least one of its
  lower-cased keywords, so "fat loss guildford" matches keywords
  ["fat-loss-coaching", "guildford-surrey"].

Highlighting works on the whole trimmed query, not per word, and the query is always
escaped before it is compiled.
"""

import re
from typing import Iterable, Sequence

from bodyvantage.core import DEFAULT_SPECIALISATION, ELLIPSIS, SPECIALISATION_SLOTS
from bodyvantage.schemas import HighlightRun, Profile, ProfileCard, SearchResults

_WHITESPACE = re.compile(r"\s+")

DEFAULT_DESCRIPTION_MAX_CHARS = 180


# -----------------------------------------------------------------------------
# Query and keyword normalization
# -----------------------------------------------------------------------------
def normalize_query(query: str | None) -> list[str]:
    """Trim, lower-case and split into non-empty search words."""
    if not query or not isinstance(query, str):
        return []
    s = query.strip().lower()
    if not s:
        return []
    return [w for w in _WHITESPACE.split(s) if w]


def profile_keywords(profile: Profile) -> frozenset[str]:
    return frozenset(k.lower() for k in profile.keywords if k)


def matches(search_words: Sequence[str], keywords: Iterable[str]) -> bool:
    """Every search word must be a substring of at least one keyword."""
    if not search_words:
        return False
    kws = list(keywords)
    if not kws:
        return False
    return all(any(word in kw for kw in kws) for word in search_words)


def search(query: str | None, profiles: Sequence[Profile]) -> list[Profile]:
    """Profiles matching query, in input order. Empty query yields []."""
    words = normalize_query(query)
    if not words:
        return []
    return [p for p in profiles if matches(words, profile_keywords(p))]


# -----------------------------------------------------------------------------
# Presentation helpers
# -----------------------------------------------------------------------------
def highlight(text: str | None, raw_query: str | None) -> list[HighlightRun]:
    """Split text into unmatched/matched runs of the whole trimmed query (case-insensitive)."""
    s = text or ""
    needle = (raw_query or "").strip()
    if not s:
        return []
    if not needle:
        return [HighlightRun(text=s, matched=False)]
    pattern = re.compile(re.escape(needle), re.IGNORECASE)
    runs: list[HighlightRun] = []
    pos = 0
    for m in pattern.finditer(s):
        if m.start() > pos:
            runs.append(HighlightRun(text=s[pos:m.start()], matched=False))
        runs.append(HighlightRun(text=m.group(0), matched=True))
        pos = m.end()
    if pos < len(s):
        runs.append(HighlightRun(text=s[pos:], matched=False))
    return runs


def truncate_description(text: str | None, max_chars: int = DEFAULT_DESCRIPTION_MAX_CHARS) -> str:
    if not text:
        return ""
    if len(text) <= max_chars:
        return text
    return f"{text[:max_chars]}{ELLIPSIS}"


def specialisation_slots(profile: Profile) -> list[str]:
    """Exactly SPECIALISATION_SLOTS labels; empty slots get the default label."""
    slots = list(profile.specialisations[:SPECIALISATION_SLOTS])
    slots += [DEFAULT_SPECIALISATION] * (SPECIALISATION_SLOTS - len(slots))
    return [s if s else DEFAULT_SPECIALISATION for s in slots]


def profile_card(profile: Profile, raw_query: str | None, description_max_chars: int) -> ProfileCard:
    return ProfileCard(
        id=profile.id,
        name_runs=highlight(profile.name, raw_query),
        description=truncate_description(profile.description, description_max_chars),
        specialisations=specialisation_slots(profile),
        rating=profile.rating,
        num_reviews=profile.num_reviews,
        image_url=profile.profile_image or None,
    )


class SearchEngine:
    """Stateless facade handed to views alongside the request state table."""

    def __init__(self, description_max_chars: int = DEFAULT_DESCRIPTION_MAX_CHARS):
        self.description_max_chars = description_max_chars

    def search(self, query: str | None, profiles: Sequence[Profile]) -> list[Profile]:
        return search(query, profiles)

    def highlight(self, text: str | None, raw_query: str | None) -> list[HighlightRun]:
        return highlight(text, raw_query)

    def result_cards(self, query: str | None, profiles: Sequence[Profile]) -> SearchResults:
        found = search(query, profiles)
        return SearchResults(
            query=(query or "").strip(),
            cards=[profile_card(p, query, self.description_max_chars) for p in found],
        )

    def match_summary(self, query: str | None, profiles: Sequence[Profile]) -> str:
        n = len(search(query, profiles))
        return f"{n} profile[s] found that match your search criteria."
