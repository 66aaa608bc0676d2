from typing import List

import pytest

from tripod_studio.rules import (
    Position,
    detect_position,
    find_target_index,
    interpret_with_rules,
    resolve_target_word,
)
from tripod_studio.settings import LANGUAGES
from tripod_studio.text import strip_tags, words_preserved


def test_quoted_word_gets_tag_immediately_before_it(genesis: str) -> None:
    result = interpret_with_rules(genesis, "make 'heavens' more reverent", "")
    assert result == "In the beginning, God created the [reverent] heavens and the earth."


def test_end_of_single_sentence_lands_within_last_three_words(genesis: str) -> None:
    result = interpret_with_rules(genesis, "whisper at the end", "")
    tokens = result.split()
    position = tokens.index("[whisper]")
    assert position != 0
    assert position >= len(tokens) - 4
    assert result == "In the beginning, God created the heavens [whisper] and the earth."


def test_end_of_multiple_sentences_prefixes_last_sentence() -> None:
    text = "Let there be light. And there was light."
    result = interpret_with_rules(text, "slow down at the end", "")
    assert result == "Let there be light. [slow] And there was light."


def test_end_of_hindi_passage_uses_danda_boundaries() -> None:
    text = "आदि में परमेश्‍वर ने आकाश बनाया। और पृथ्वी की सृष्टि की।"
    result = interpret_with_rules(text, "pause at the end", "")
    assert result == "आदि में परमेश्‍वर ने आकाश बनाया। [pause] और पृथ्वी की सृष्टि की।"


def test_whole_passage_tag_is_not_duplicated(genesis: str) -> None:
    once = interpret_with_rules(genesis, "make the whole thing joyful", "")
    twice = interpret_with_rules(genesis, "make the whole thing joyful", once)
    assert once == "[joyful] In the beginning, God created the heavens and the earth."
    assert twice == once
    assert twice.count("[joyful]") == 1


def test_unpositioned_feedback_prepends(genesis: str) -> None:
    result = interpret_with_rules(genesis, "more emphasis please", "")
    assert result == "[emphasis] In the beginning, God created the heavens and the earth."


def test_missing_target_word_falls_back_to_front(genesis: str) -> None:
    result = interpret_with_rules(genesis, "pause before Jerusalem", "")
    assert result == "[pause] In the beginning, God created the heavens and the earth."


def test_existing_tags_do_not_shift_target(genesis: str) -> None:
    base = "[joyful] In the [awe] beginning, God created the heavens and the earth."
    result = interpret_with_rules(genesis, "pause before the earth", base)
    assert result == (
        "[joyful] In the [awe] beginning, God created the heavens and the [pause] earth."
    )


def test_quoted_phrase_matches_whole_phrase(genesis: str) -> None:
    result = interpret_with_rules(genesis, "emphasize 'the earth'", "")
    assert result == "In the beginning, God created the heavens and [emphasis] the earth."


def test_apostrophes_are_not_quotes(genesis: str) -> None:
    result = interpret_with_rules(genesis, "don't rush 'heavens'", "")
    assert result == "In the beginning, God created the [emphasis] heavens and the earth."


def test_whitespace_is_collapsed() -> None:
    assert interpret_with_rules("In  the\nbeginning.", "pause", "") == "[pause] In the beginning."


def test_empty_text_never_raises() -> None:
    assert interpret_with_rules("", "pause", "") == "[pause]"


@pytest.mark.parametrize(
    "feedback, expected",
    [
        ("make 'heavens' reverent", "heavens"),
        ('say "God" with awe', "god"),
        ("pause before earth", "earth"),
        ("slow down around the heavens", "heavens"),
        ("whisper at the end", None),
        ("pause at the beginning", None),
        ("make it great", None),
    ],
)
def test_resolve_target_word(feedback: str, expected: str) -> None:
    assert resolve_target_word(feedback) == expected


def test_find_target_index_is_bidirectional_substring() -> None:
    words = strip_tags("In the beginning, God created the heavens and the earth.")
    assert find_target_index(words, "heaven") == 6
    assert find_target_index(words, "earthly") == 9
    assert find_target_index(words, "jerusalem") is None


def test_find_target_index_skips_punctuation_only_words() -> None:
    assert find_target_index(["Behold", "...", "light"], "light") == 2


@pytest.mark.parametrize(
    "feedback, expected",
    [
        ("whisper at the end", Position.end),
        ("the last line is sad", Position.end),
        ("start with awe", Position.beginning),
        ("joyful throughout", Position.throughout),
        ("make it joyful", Position.unspecified),
    ],
)
def test_detect_position(feedback: str, expected: Position) -> None:
    assert detect_position(feedback) is expected


_FEEDBACK_SEQUENCE: List[str] = [
    "make 'heavens' more reverent",
    "whisper at the end",
    "make the whole thing joyful",
    "pause before earth",
    "slow down",
    "sad at the beginning",
    "fast near 'God'",
    "make the whole thing joyful",
]


@pytest.mark.parametrize(
    "sacred_text",
    [language.sample_text for language in LANGUAGES.values()]
    + ["Let there be light. And there was light! Was it good?"],
)
def test_sequences_preserve_every_word(sacred_text: str) -> None:
    markup = ""
    for feedback in _FEEDBACK_SEQUENCE:
        markup = interpret_with_rules(sacred_text, feedback, markup)
        assert words_preserved(sacred_text, markup), markup
        assert " ".join(strip_tags(markup)) == " ".join(sacred_text.split())
