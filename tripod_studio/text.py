from __future__ import annotations

import re
from typing import List, Tuple

from tripod_studio.tags import is_known_tag

_TAG_RE = re.compile(r"\[([^\]]+)\]")
_TAG_TOKEN_RE = re.compile(r"\[[^\]]+\]")
_WHITESPACE_RE = re.compile(r"\s+")
# Sentence ends: Latin terminators plus the Devanagari danda used in Hindi.
_SENTENCE_BOUNDARY_RE = re.compile(r"(?<=[.!?।])\s+")


def is_tag_token(token: str) -> bool:
    """True when a whitespace-delimited token is a bracketed tag like ``[pause]``."""

    return _TAG_TOKEN_RE.fullmatch(token) is not None


def strip_tags(text: str) -> List[str]:
    """Return the literal words of ``text`` with every ``[...]`` token removed.

    Words keep their punctuation; empty input yields an empty list.
    """

    return _TAG_TOKEN_RE.sub(" ", text).split()


def split_sentences(text: str) -> List[str]:
    """Split on sentence-ending punctuation followed by whitespace.

    Punctuation stays attached to its sentence. Text without a terminator is a
    single sentence; blank text yields no sentences.
    """

    stripped = text.strip()
    if not stripped:
        return []
    return [sentence for sentence in _SENTENCE_BOUNDARY_RE.split(stripped) if sentence]


def normalize_whitespace(text: str) -> str:
    return _WHITESPACE_RE.sub(" ", text).strip()


def plain_text(markup: str) -> str:
    """Markup with tags removed and whitespace collapsed."""

    return " ".join(strip_tags(markup))


def words_preserved(sacred_text: str, markup: str) -> bool:
    """Check that ``markup`` carries exactly the words of ``sacred_text``, in order."""

    return strip_tags(markup) == strip_tags(sacred_text)


def markup_tags(markup: str) -> List[str]:
    """Tag names used in ``markup`` in order of appearance (lowercased)."""

    return [match.group(1).strip().lower() for match in _TAG_RE.finditer(markup)]


def unknown_tags(markup: str) -> List[str]:
    return [name for name in markup_tags(markup) if not is_known_tag(name)]


def text_counts(text: str) -> Tuple[int, int]:
    """Return ``(characters, words)`` as shown beside the text editor."""

    return len(text), len(text.split())
