import pytest

from tripod_studio.tags import DEFAULT_TAG, TAG_KEYWORDS, Tag, classify, is_known_tag, render_tag


def test_every_tag_has_keywords() -> None:
    assert list(TAG_KEYWORDS) == list(Tag)
    assert all(TAG_KEYWORDS[tag] for tag in Tag)


def test_render_tag_brackets_name() -> None:
    assert render_tag(Tag.pause) == "[pause]"
    assert Tag.awe.token == "[awe]"


@pytest.mark.parametrize(
    "feedback, expected",
    [
        ("make it more solemn", Tag.reverent),
        ("this should sound HAPPY", Tag.joyful),
        ("a note of grief here", Tag.sorrowful),
        ("whisper it", Tag.whisper),
        ("add a break", Tag.pause),
        ("read it more carefully", Tag.slow),
        ("speed up a little", Tag.fast),
        ("calm and serene", Tag.peaceful),
        ("full of wonder", Tag.awe),
        ("sound a caution", Tag.warning),
        ("say it tenderly", Tag.gentle),
        ("more powerful please", Tag.strong),
    ],
)
def test_classify_keywords(feedback: str, expected: Tag) -> None:
    assert classify(feedback) is expected


def test_classify_defaults_to_emphasis() -> None:
    assert classify("do something different") is DEFAULT_TAG
    assert classify("") is Tag.emphasis


def test_classify_accepts_keyword_fragments() -> None:
    assert classify("joy") is Tag.joyful


@pytest.mark.parametrize("feedback", ["solemn but happy", "happy but solemn"])
def test_earlier_tag_wins_regardless_of_wording_order(feedback: str) -> None:
    for _ in range(3):
        assert classify(feedback) is Tag.reverent


def test_shared_keyword_resolves_to_first_tag() -> None:
    # "important" belongs to both urgent and emphasis.
    assert classify("this is important") is Tag.urgent


def test_is_known_tag() -> None:
    assert is_known_tag("Reverent")
    assert not is_known_tag("angry")
