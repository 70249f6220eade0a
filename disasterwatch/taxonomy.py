"""
Disaster-type taxonomy and the keyword matching rule shared by filters and stats.
"""

from typing import Dict, Iterable, List, Tuple

DISASTER_KEYWORDS: Dict[str, Tuple[str, ...]] = {
    "hurricane": ("hurricane", "tropical storm", "typhoon", "cyclone"),
    "flood": ("flood", "flooding", "flash flood", "river flood", "coastal flood"),
    "fire": ("fire", "wildfire", "forest fire", "brush fire", "grass fire"),
    "tornado": ("tornado", "tornadoes", "severe thunderstorm", "straight-line winds"),
    "earthquake": ("earthquake", "seismic", "tremor", "aftershock"),
    "winter": ("winter storm", "blizzard", "ice storm", "snow storm", "freeze"),
    "drought": ("drought", "dry conditions", "water shortage"),
    "severe_weather": ("severe weather", "thunderstorm", "hail", "damaging winds"),
}


def keywords_for(disaster_type: str) -> Tuple[str, ...]:
    """Synonyms for a disaster type. Unknown types match on their own name."""
    return DISASTER_KEYWORDS.get(disaster_type.lower(), (disaster_type,))


def matches_any(text: str, terms: Iterable[str]) -> bool:
    """Case-insensitive substring match of any term against text."""
    haystack = text.lower()
    return any(term.lower() in haystack for term in terms)


def classify(text: str) -> List[str]:
    """All disaster types whose synonyms appear in text."""
    return [
        disaster_type
        for disaster_type, synonyms in DISASTER_KEYWORDS.items()
        if matches_any(text, synonyms)
    ]
