"""Autocomplete suggestions from a fixed list of popular searches."""

from collections.abc import Sequence
from functools import lru_cache

from app.core.config import settings

POPULAR_SEARCHES = (
    "PUBG Mobile account",
    "PUBG Mobile",
    "Free Fire diamonds",
    "Call of Duty Mobile",
    "Fortnite V-Bucks",
    "PlayStation gift cards",
    "Steam wallet codes",
    "Valorant account",
    "FIFA coins",
    "Counter-Strike skins",
    "Xbox Game Pass",
)


class SuggestionEngine:
    """
    Case-insensitive substring matcher over a static corpus.

    Results keep corpus order and never include the input itself.
    """

    def __init__(self, corpus: Sequence[str] = POPULAR_SEARCHES, limit: int = 5):
        self.corpus = tuple(corpus)
        self.limit = limit

    def suggest(self, text: str) -> list[str]:
        if len(text) <= 1:
            return []

        needle = text.lower()
        suggestions = []
        for candidate in self.corpus:
            lowered = candidate.lower()
            if needle in lowered and lowered != needle:
                suggestions.append(candidate)
                if len(suggestions) == self.limit:
                    break
        return suggestions


@lru_cache
def get_suggestion_engine() -> SuggestionEngine:
    """Get cached suggestion engine instance"""
    return SuggestionEngine(limit=settings.SUGGESTION_LIMIT)
