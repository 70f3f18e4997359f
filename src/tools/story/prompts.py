"""
Story Prompt Composer
=====================

Builds the instruction text sent to the vision model alongside the image.
The output is a pure function of (genres, length, language): no request ids,
no timestamps, no randomness.
"""

from typing import Sequence

from src.tools.story.catalog import (
    Genre,
    StoryLength,
    get_genre_description,
    get_language_profile,
    get_length_spec,
)


def _genre_ids(genres: Sequence[Genre | str]) -> list[str]:
    return [g.value if isinstance(g, Genre) else g for g in genres]


def compose_story_prompt(
    genres: Sequence[Genre | str],
    length: StoryLength | str,
    language: str | None = None,
) -> str:
    """
    Compose the story generation prompt.

    Args:
        genres: 1-3 genre identifiers, in request order
        length: Target length identifier
        language: Output language id (unknown ids use the default language)

    Returns:
        Prompt text ending with the JSON template the model must fill in
    """
    genre_ids = _genre_ids(genres)
    genre_glosses = ", ".join(get_genre_description(g) for g in genre_ids)
    length_spec = get_length_spec(length)
    language_profile = get_language_profile(language)
    language_name = language_profile.display_name

    return f"""Analyze this image carefully and create a captivating story of {length_spec.word_range} words.

GENRES: {", ".join(genre_ids)} ({genre_glosses})
LENGTH: {length_spec.style_hint} ({length_spec.word_range} words)
{language_profile.instruction_line}

INSTRUCTIONS:
1. Observe every visual detail of the image (characters, objects, setting, mood, colors, composition)
2. Create a story that naturally integrates the requested genres
3. The story must be directly inspired by the visual elements you observed
4. Complete narrative structure: opening situation, development, resolution
5. Engaging and fluid writing style
6. Strictly respect the requested word count ({length_spec.word_range} words)
7. Write the title, story, themes and inspiration entirely in {language_name}

RESPONSE FORMAT (JSON only):
{{
  "title": "Catchy story title in {language_name}",
  "story": "Complete story text in {language_name}",
  "themes": ["theme1", "theme2", "theme3"],
  "inspiration": "Visual elements of the image that inspired the story",
  "wordCount": approximate_word_count_number
}}

IMPORTANT: Respond ONLY with the JSON, without any additional text."""
