"""
Keyword rules mapping GKG theme tags to a single topical category.
"""

from __future__ import annotations

from typing import Iterable, List, Optional, Sequence, Tuple

WAR = "war"
CRIME = "crime"
POLITICS = "politics"
ENTERTAINMENT = "entertainment"
DISASTER = "disaster"
SPORTS = "sports"
TECH = "tech"
ECONOMY = "economy"

# Evaluated top to bottom; the first rule with a matching keyword wins.
CATEGORY_RULES: List[Tuple[str, frozenset[str]]] = [
    (WAR, frozenset({"WAR", "MILITARY", "ARMS", "CONFLICT", "TERROR"})),
    (CRIME, frozenset({"CRIME", "KIDNAP", "MURDER", "ARREST", "CORRUPTION"})),
    (POLITICS, frozenset({"ELECTION", "POLITICS", "GOVERNMENT", "PROTEST"})),
    (ENTERTAINMENT, frozenset({"ENTERTAINMENT", "CELEBRITY", "FILM", "MUSIC"})),
    (DISASTER, frozenset({"NATURAL_DISASTER", "EARTHQUAKE", "FLOOD", "HURRICANE", "WILDFIRE"})),
    (SPORTS, frozenset({"SPORTS", "SOCCER", "BASKETBALL", "OLYMPICS"})),
    (TECH, frozenset({"TECH", "AI", "CYBERSECURITY"})),
    (ECONOMY, frozenset({"ECONOMY", "MARKETS", "INFLATION", "JOBS"})),
]


def classify_themes(
    themes: Sequence[str],
    rules: Iterable[Tuple[str, Iterable[str]]] = CATEGORY_RULES,
) -> Optional[str]:
    """Return the first category whose keywords occur in any theme tag, else None."""
    upper_themes = [theme.upper() for theme in themes if theme]
    if not upper_themes:
        return None
    for category, keywords in rules:
        for keyword in keywords:
            needle = keyword.upper()
            if any(needle in theme for theme in upper_themes):
                return category
    return None
