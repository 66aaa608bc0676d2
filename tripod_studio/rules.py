"""
Rule-based feedback interpreter.

Maps ``(sacred text, feedback, current markup)`` to new markup without any
network access. The tag comes from the keyword vocabulary; the position comes
from, in order: a quoted or prepositional target word, an "end" cue, and
finally the front of the text. Words of the sacred text are never touched;
only tag tokens are inserted.
"""

from __future__ import annotations

import re
from enum import Enum
from typing import List, Optional

from loguru import logger

from tripod_studio.tags import Tag, classify, render_tag
from tripod_studio.text import (
    is_tag_token,
    normalize_whitespace,
    split_sentences,
    strip_tags,
)

# Opening quote must not follow a letter so apostrophes ("don't") are ignored.
_QUOTED_RE = re.compile(r"(?<!\w)[\"'“‘]([^\"'“”‘’]+)[\"'”’]")
_PREPOSITION_RE = re.compile(
    r"\b(?:at|before|near|around)\s+(?:(?:the|a|an)\s+)?[\"'“‘]?([^\s\"'“”‘’.,!?;:]+)"
)
_WORD_PUNCTUATION_RE = re.compile(r"[.,!?;:\"'“”‘’()।]")

_BEGINNING_CUES = ("beginning", "start", "first")
_END_CUES = ("end", "ending", "last")
_THROUGHOUT_CUES = ("throughout", "whole", "entire", "all")
# "at the end" names a position, not a word to find in the text.
_POSITION_WORDS = frozenset(
    {"beginning", "start", "first", "end", "ending", "last", "throughout", "whole"}
)

# Tags inserted for an "end" cue on a single sentence land this many words
# before the end.
_END_OFFSET_WORDS = 3


class Position(str, Enum):
    """Where feedback asks for a tag when no target word is given."""

    end = "end"
    beginning = "beginning"
    throughout = "throughout"
    unspecified = "unspecified"


def detect_position(feedback: str) -> Position:
    lowered = feedback.lower()
    if any(cue in lowered for cue in _END_CUES):
        return Position.end
    if any(cue in lowered for cue in _BEGINNING_CUES):
        return Position.beginning
    if any(cue in lowered for cue in _THROUGHOUT_CUES):
        return Position.throughout
    return Position.unspecified


def resolve_target_word(feedback: str) -> Optional[str]:
    """Extract the word (or quoted phrase) the feedback points at, lowercased.

    A quoted substring wins over ``at|before|near|around <word>``; articles
    after the preposition are skipped, and position words ("at the end") are
    not targets.
    """

    quoted = _QUOTED_RE.search(feedback)
    if quoted:
        phrase = normalize_whitespace(quoted.group(1)).lower()
        if phrase:
            return phrase

    for match in _PREPOSITION_RE.finditer(feedback.lower()):
        word = match.group(1)
        if word not in _POSITION_WORDS:
            return word
    return None


def _normalize_word(word: str) -> str:
    return _WORD_PUNCTUATION_RE.sub("", word.lower())


def find_target_index(words: List[str], target: str) -> Optional[int]:
    """Zero-based index of the first word matching ``target``.

    Multi-word targets first look for the exact phrase. Otherwise a word
    matches when its punctuation-free lowercase form contains the target or
    is contained in it.
    """

    normalized = [_normalize_word(word) for word in words]
    phrase = [_normalize_word(part) for part in target.split()]
    phrase = [part for part in phrase if part]
    if not phrase:
        return None

    if len(phrase) > 1:
        span = len(phrase)
        for index in range(len(normalized) - span + 1):
            if normalized[index : index + span] == phrase:
                return index

    needle = " ".join(phrase)
    for index, word in enumerate(normalized):
        if not word:
            continue
        if needle in word or word in needle:
            return index
    return None


def _insert_before_word(base: str, word_index: int, token: str) -> str:
    tokens = base.split()
    insert_at = 0
    seen = 0
    for position, current in enumerate(tokens):
        if is_tag_token(current):
            continue
        if seen == word_index:
            insert_at = position
            break
        seen += 1
    tokens.insert(insert_at, token)
    return " ".join(tokens)


def _insert_at_end(base: str, token: str) -> str:
    sentences = split_sentences(base)
    if len(sentences) > 1:
        sentences[-1] = f"{token} {sentences[-1]}"
        return " ".join(sentences)
    tokens = base.split()
    tokens.insert(max(0, len(tokens) - _END_OFFSET_WORDS), token)
    return " ".join(tokens)


def _insert_at_front(base: str, token: str) -> str:
    if base.startswith(token):
        return base
    return f"{token} {base}"


def interpret_with_rules(sacred_text: str, feedback: str, current_markup: str = "") -> str:
    """Apply one piece of feedback to the markup using keyword rules.

    Args:
        sacred_text: Canonical untagged text.
        feedback: Free-form direction such as ``"make 'heavens' more reverent"``.
        current_markup: Existing markup to build on; empty means start from
            ``sacred_text``.

    Returns:
        New markup whose words, with tags removed, equal ``sacred_text``.
    """

    base = normalize_whitespace(current_markup or sacred_text)
    tag: Tag = classify(feedback)
    token = render_tag(tag)

    target = resolve_target_word(feedback)
    target_index = (
        find_target_index(strip_tags(sacred_text), target) if target else None
    )

    if target_index is not None:
        branch = "target"
        result = _insert_before_word(base, target_index, token)
    else:
        position = detect_position(feedback)
        branch = position.value
        if position is Position.end:
            result = _insert_at_end(base, token)
        else:
            result = _insert_at_front(base, token)

    logger.debug(
        "rules.interpret tag={tag} target={target} index={index} branch={branch}",
        tag=tag.value,
        target=target,
        index=target_index,
        branch=branch,
    )
    return normalize_whitespace(result)
