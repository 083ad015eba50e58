"""Naming heuristics: PascalCase pattern and plural-form detection.

Pluralization is heuristic.  Only the last PascalCase word of a name is
inspected, and it is compared against fixed suffix rules plus small
irregular and uncountable word lists.  Words outside those lists that break
the suffix rules (``Criteria``, ``Cacti``) are misjudged; that is accepted.
"""

from __future__ import annotations

import re

# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------

PASCAL_CASE_PATTERN: re.Pattern[str] = re.compile(r"[A-Z][A-Za-z0-9]*")

# Splits "BlogPostTags" into ["Blog", "Post", "Tags"], "HTTPLogs" into ["HTTP", "Logs"]
# and "ExternalAPIs" into ["External", "APIs"].
_WORD_PATTERN: re.Pattern[str] = re.compile(
    r"[A-Z]{2,}s(?![a-z])|[A-Z]+(?![a-z])|[A-Z]?[a-z]+|[0-9]+"
)

# An acronym followed by a lowercase "s" ("APIs", "URLs").
_ACRONYM_PLURAL: re.Pattern[str] = re.compile(r"[A-Z]{2,}s")

IRREGULAR_PLURALS: dict[str, str] = {
    "person": "people",
    "child": "children",
    "man": "men",
    "woman": "women",
    "mouse": "mice",
    "goose": "geese",
    "foot": "feet",
    "tooth": "teeth",
    "ox": "oxen",
    "datum": "data",
    "medium": "media",
    "criterion": "criteria",
    "phenomenon": "phenomena",
    "index": "indices",
    "matrix": "matrices",
    "vertex": "vertices",
    "leaf": "leaves",
    "life": "lives",
    "knife": "knives",
    "wife": "wives",
    "half": "halves",
    "shelf": "shelves",
}

UNCOUNTABLE_WORDS: frozenset[str] = frozenset(
    {
        "equipment",
        "information",
        "metadata",
        "money",
        "news",
        "rice",
        "series",
        "sheep",
        "species",
        "fish",
        "deer",
        "feedback",
        "staff",
        "software",
        "aircraft",
    }
)

PLURAL_SUFFIXES: tuple[str, ...] = ("ies", "ches", "shes", "xes", "zes", "ses")

# Words ending in these are singular even though they end in "s".
_SINGULAR_S_ENDINGS: tuple[str, ...] = ("ss", "us", "is")

_IRREGULAR_PLURAL_FORMS: frozenset[str] = frozenset(IRREGULAR_PLURALS.values())


# ---------------------------------------------------------------------------
# Public helpers
# ---------------------------------------------------------------------------


def is_pascal_case(name: str) -> bool:
    """Return True if *name* starts uppercase and holds only letters and digits."""
    return PASCAL_CASE_PATTERN.fullmatch(name) is not None


def split_words(name: str) -> list[str]:
    """Split a PascalCase/camelCase identifier into its words."""
    return _WORD_PATTERN.findall(name)


def last_word(name: str) -> str:
    """Return the final word of an identifier, or the whole name if it has none."""
    words = split_words(name)
    return words[-1] if words else name


def is_plural(name: str) -> bool:
    """Return True if the last word of *name* looks like an English plural.

    Resolution order: acronym plurals ("APIs"), uncountable words and
    irregular plurals are plural; irregular singulars are not; then the
    suffix rules decide.
    """
    raw = last_word(name)
    if _ACRONYM_PLURAL.fullmatch(raw):
        return True

    word = raw.lower()
    if not word:
        return False

    if word in UNCOUNTABLE_WORDS or word in _IRREGULAR_PLURAL_FORMS:
        return True
    if word in IRREGULAR_PLURALS:
        return False

    if any(word.endswith(suffix) and len(word) > len(suffix) for suffix in PLURAL_SUFFIXES):
        return True
    if word.endswith(_SINGULAR_S_ENDINGS):
        return False
    return word.endswith("s") and len(word) > 1
