#!/usr/bin/env python3
"""
Image Story Generator CLI

Generate a short story from an image file with Google Gemini.

Usage:
    python story_cli.py --image photo.jpg --genres horror comedy --length short
    python story_cli.py --image photo.png --genres fantasy --language en --json
"""

import argparse
import asyncio
import base64
import json
import logging
import sys
from mimetypes import guess_type
from pathlib import Path

from dotenv import load_dotenv

from src.tools.story import (
    DEFAULT_LANGUAGE,
    LANGUAGE_PROFILES,
    MAX_GENRES,
    GeminiStoryClient,
    Genre,
    PipelineError,
    StoryConfig,
    StoryLength,
    StoryPipeline,
)

load_dotenv()

logging.basicConfig(
    level=logging.WARNING,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
)
logger = logging.getLogger("story_cli")


def print_header():
    """Print CLI header."""
    print("\n" + "=" * 70)
    print("📖 IMAGE STORY GENERATOR")
    print("=" * 70 + "\n")


def read_image_as_base64(image_path: str) -> str:
    """Read image file and convert to base64 data URI."""
    path = Path(image_path)
    if not path.exists():
        print(f"❌ Error: Image file not found: {image_path}")
        sys.exit(1)

    mime_type, _ = guess_type(str(path))
    if not mime_type or not mime_type.startswith("image/"):
        print(f"❌ Error: Not a valid image file: {image_path}")
        sys.exit(1)

    with open(path, "rb") as f:
        image_data = base64.b64encode(f.read()).decode("utf-8")

    return f"data:{mime_type};base64,{image_data}"


async def generate_story(image: str, genres: list[str], length: str, language: str):
    """Run the pipeline once and return the GenerationResult."""
    config = StoryConfig()
    pipeline = StoryPipeline(GeminiStoryClient(config), config)
    return await pipeline.generate_detailed(
        image=image,
        genres=genres,
        length=length,
        language=language,
    )


def print_story(result, file_name: str):
    """Print a generated story."""
    story = result.story
    print("=" * 70)
    print(f"✅ {story.title}")
    print("=" * 70 + "\n")
    print(story.story)
    print()
    print(f"  🎭 Themes: {', '.join(story.themes)}")
    print(f"  💡 Inspiration: {story.inspiration}")
    print(f"  📏 Words: {story.word_count}")
    print(f"  🖼️  Image: {file_name}")
    print(f"  ⏱️  Generated in {result.execution_time_ms}ms ({result.tier.value})")
    if result.degraded:
        print("  ⚠️  The model reply could not be parsed, story text was salvaged")
    print()


def main():
    """Main CLI entry point."""
    parser = argparse.ArgumentParser(
        description="Generate a short story from an image",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  %(prog)s --image beach.jpg --genres adventure
  %(prog)s --image castle.png --genres fantasy mystery --length long --language en
  %(prog)s --image city.jpg --genres sci-fi --json
        """,
    )
    parser.add_argument(
        "-i",
        "--image",
        metavar="PATH",
        required=True,
        help="Image file (PNG, JPG, WEBP)",
    )
    parser.add_argument(
        "-g",
        "--genres",
        nargs="+",
        choices=[genre.value for genre in Genre],
        required=True,
        help=f"1 to {MAX_GENRES} genres",
    )
    parser.add_argument(
        "--length",
        choices=[length.value for length in StoryLength],
        default=StoryLength.MEDIUM.value,
        help="Story length (default: medium)",
    )
    parser.add_argument(
        "--language",
        choices=sorted(LANGUAGE_PROFILES),
        default=DEFAULT_LANGUAGE,
        help=f"Output language (default: {DEFAULT_LANGUAGE})",
    )
    parser.add_argument(
        "--json",
        action="store_true",
        help="Print the story record as JSON",
    )
    parser.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        help="Show pipeline logs",
    )

    args = parser.parse_args()

    if len(args.genres) > MAX_GENRES:
        parser.error(f"at most {MAX_GENRES} genres may be selected")

    if args.verbose:
        logging.getLogger().setLevel(logging.INFO)

    if not args.json:
        print_header()
        print(f"🖼️  Reading image file: {args.image}\n")

    image = read_image_as_base64(args.image)

    try:
        result = asyncio.run(
            generate_story(
                image=image,
                genres=args.genres,
                length=args.length,
                language=args.language,
            )
        )
    except ValueError as e:
        print(f"❌ Configuration error: {e}")
        sys.exit(1)
    except PipelineError as e:
        if args.json:
            print(json.dumps({"success": False, "error": e.to_dict()}, ensure_ascii=False))
        else:
            print(f"\n❌ Story generation failed: {e.message} ({e.code})")
            if e.retryable:
                print("ℹ️  This error is transient, try again in a moment")
        sys.exit(1)

    if args.json:
        print(result.story.model_dump_json(by_alias=True, indent=2))
    else:
        print_story(result, Path(args.image).name)


if __name__ == "__main__":
    main()
