"""
Story Catalog
=============

Static lookup tables used to phrase the story prompt:
- Genres: the ten recognized narrative genres and their descriptive glosses
- Lengths: word-count band and style hint per target length
- Languages: display name and instruction line per output language

Read-only module-level data, safe to share across concurrent requests.
"""

from dataclasses import dataclass
from enum import Enum


class Genre(str, Enum):
    """Recognized narrative genres."""

    HORROR = "horror"
    FANTASY = "fantasy"
    SCI_FI = "sci-fi"
    ROMANCE = "romance"
    ADVENTURE = "adventure"
    MYSTERY = "mystery"
    COMEDY = "comedy"
    DRAMA = "drama"
    THRILLER = "thriller"
    HISTORICAL = "historical"


class StoryLength(str, Enum):
    """Recognized target lengths."""

    SHORT = "short"
    MEDIUM = "medium"
    LONG = "long"


@dataclass(frozen=True)
class LengthSpec:
    """Word-count band plus stylistic hint for one target length."""

    word_range: str
    style_hint: str


@dataclass(frozen=True)
class LanguageProfile:
    """How a language is named and announced in the prompt."""

    display_name: str
    instruction_line: str


# =============================================
# Genres
# =============================================

GENRE_DESCRIPTIONS: dict[str, str] = {
    Genre.HORROR.value: "terrifying atmosphere, suspense, supernatural or psychological dread",
    Genre.FANTASY.value: "magical elements, fantastic creatures, imaginary worlds",
    Genre.SCI_FI.value: "advanced technology, the future, space exploration, scientific concepts",
    Genre.ROMANCE.value: "love stories, emotions, deep human connections",
    Genre.ADVENTURE.value: "action, exploration, discoveries, epic journeys",
    Genre.MYSTERY.value: "riddles, secrets to uncover, gradual revelations",
    Genre.COMEDY.value: "amusing situations, humor, lightness, funny moments",
    Genre.DRAMA.value: "intense emotions, human conflict, complex situations",
    Genre.THRILLER.value: "constant tension, suspense, plot twists, sustained pace",
    Genre.HISTORICAL.value: "precise historical setting, a past era, cultural authenticity",
}

VALID_GENRES: tuple[str, ...] = tuple(genre.value for genre in Genre)

MIN_GENRES = 1
MAX_GENRES = 3


# =============================================
# Lengths
# =============================================

LENGTH_SPECS: dict[str, LengthSpec] = {
    StoryLength.SHORT.value: LengthSpec(word_range="100-200", style_hint="concise and impactful"),
    StoryLength.MEDIUM.value: LengthSpec(word_range="300-500", style_hint="developed with detail"),
    StoryLength.LONG.value: LengthSpec(word_range="600-1000", style_hint="rich and in-depth"),
}


# =============================================
# Languages
# =============================================

DEFAULT_LANGUAGE = "fr"

LANGUAGE_PROFILES: dict[str, LanguageProfile] = {
    "fr": LanguageProfile(display_name="Français", instruction_line="LANGUE: Français"),
    "en": LanguageProfile(display_name="English", instruction_line="LANGUAGE: English"),
    "es": LanguageProfile(display_name="Español", instruction_line="IDIOMA: Español"),
    "de": LanguageProfile(display_name="Deutsch", instruction_line="SPRACHE: Deutsch"),
    "it": LanguageProfile(display_name="Italiano", instruction_line="LINGUA: Italiano"),
    "ru": LanguageProfile(display_name="Русский", instruction_line="ЯЗЫК: Русский"),
}


def get_genre_description(genre: Genre | str) -> str:
    """
    Get the descriptive gloss for a genre.

    Args:
        genre: Genre enum or identifier

    Returns:
        Gloss used in the prompt's genre line

    Raises:
        ValueError: If the genre is not recognized
    """
    key = genre.value if isinstance(genre, Genre) else genre
    if key not in GENRE_DESCRIPTIONS:
        available = ", ".join(VALID_GENRES)
        raise ValueError(f"Unknown genre: {key}. Available: {available}")
    return GENRE_DESCRIPTIONS[key]


def get_length_spec(length: StoryLength | str) -> LengthSpec:
    """
    Get the length spec for a target length.

    Raises:
        ValueError: If the length is not recognized
    """
    key = length.value if isinstance(length, StoryLength) else length
    if key not in LENGTH_SPECS:
        available = ", ".join(LENGTH_SPECS.keys())
        raise ValueError(f"Unknown length: {key}. Available: {available}")
    return LENGTH_SPECS[key]


def resolve_language(language: str | None, default: str = DEFAULT_LANGUAGE) -> str:
    """Return the language id if recognized, otherwise the default id."""
    if language and language in LANGUAGE_PROFILES:
        return language
    return default if default in LANGUAGE_PROFILES else DEFAULT_LANGUAGE


def get_language_profile(language: str | None) -> LanguageProfile:
    """Get the profile for a language, falling back to the default profile."""
    return LANGUAGE_PROFILES[resolve_language(language)]
