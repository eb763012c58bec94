"""
Title to URL slug conversion.
"""
import re

_DISALLOWED = re.compile(r"[^\w\s-]")
_SEPARATORS = re.compile(r"[\s_]+")
_DASH_RUNS = re.compile(r"-+")


def slugify(title: str) -> str:
    """
    Turn a human title into a URL-safe identifier.

    "My Cool Game!!" -> "my-cool-game". Titles made only of punctuation
    produce an empty string; callers decide whether that is acceptable.
    """
    slug = title.lower().strip()
    slug = _DISALLOWED.sub("", slug)
    slug = _SEPARATORS.sub("-", slug)
    slug = _DASH_RUNS.sub("-", slug)
    return slug.strip("-")
