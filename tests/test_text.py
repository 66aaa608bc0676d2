from tripod_studio.text import (
    is_tag_token,
    markup_tags,
    normalize_whitespace,
    plain_text,
    split_sentences,
    strip_tags,
    text_counts,
    unknown_tags,
    words_preserved,
)


def test_strip_tags_keeps_words_and_punctuation() -> None:
    markup = "[joyful] In the [pause] beginning, God  created"
    assert strip_tags(markup) == ["In", "the", "beginning,", "God", "created"]


def test_strip_tags_handles_tags_glued_to_words() -> None:
    assert strip_tags("heavens[pause]and") == ["heavens", "and"]


def test_strip_tags_empty() -> None:
    assert strip_tags("") == []
    assert strip_tags("[pause]") == []


def test_split_sentences_keeps_terminators() -> None:
    assert split_sentences("Let there be light. And there was light!  Was it good?") == [
        "Let there be light.",
        "And there was light!",
        "Was it good?",
    ]


def test_split_sentences_devanagari_danda() -> None:
    text = "आदि में परमेश्‍वर ने आकाश बनाया। और पृथ्वी की सृष्टि की।"
    assert split_sentences(text) == [
        "आदि में परमेश्‍वर ने आकाश बनाया।",
        "और पृथ्वी की सृष्टि की।",
    ]


def test_split_sentences_without_delimiter_is_single_sentence() -> None:
    assert split_sentences("No princípio, Deus criou os céus e a terra") == [
        "No princípio, Deus criou os céus e a terra"
    ]


def test_split_sentences_empty() -> None:
    assert split_sentences("") == []
    assert split_sentences("   \n") == []


def test_is_tag_token() -> None:
    assert is_tag_token("[reverent]")
    assert not is_tag_token("[reverent]heavens")
    assert not is_tag_token("heavens")


def test_words_preserved() -> None:
    sacred = "In the beginning, God created the heavens and the earth."
    assert words_preserved(sacred, "[awe] In the beginning, God created the [reverent] heavens and the earth.")
    assert not words_preserved(sacred, "[awe] In the beginning, God made the heavens and the earth.")
    assert not words_preserved(sacred, "In the beginning, God created the earth and the heavens.")


def test_tag_inventory() -> None:
    markup = "[Joyful] In the [pause] beginning [shout] God"
    assert markup_tags(markup) == ["joyful", "pause", "shout"]
    assert unknown_tags(markup) == ["shout"]


def test_plain_text_and_whitespace() -> None:
    assert normalize_whitespace("  a \n b\t c ") == "a b c"
    assert plain_text("[pause]  In the\nbeginning.") == "In the beginning."


def test_text_counts() -> None:
    assert text_counts("In the beginning.") == (17, 3)
    assert text_counts("   ") == (3, 0)
