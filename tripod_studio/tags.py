from __future__ import annotations

from enum import Enum
from typing import Dict, List, Tuple


# ---------- Performance tags ----------


# Member order is the classification priority: when feedback mentions keywords
# of several tags, the earliest member wins.
class Tag(str, Enum):
    """Closed vocabulary of performance tags understood by the studio."""

    reverent = "reverent"
    joyful = "joyful"
    sorrowful = "sorrowful"
    urgent = "urgent"
    whisper = "whisper"
    pause = "pause"
    slow = "slow"
    fast = "fast"
    emphasis = "emphasis"
    peaceful = "peaceful"
    awe = "awe"
    warning = "warning"
    gentle = "gentle"
    strong = "strong"

    @property
    def token(self) -> str:
        return render_tag(self)


DEFAULT_TAG = Tag.emphasis
_TAG_NAMES = frozenset(tag.value for tag in Tag)

# Trigger keywords, matched case-insensitively as substrings of the feedback.
TAG_KEYWORDS: Dict[Tag, Tuple[str, ...]] = {
    Tag.reverent: ("reverent", "reverence", "respectful", "solemn", "holy", "sacred"),
    Tag.joyful: ("joyful", "happy", "excited", "celebration", "joy", "cheerful"),
    Tag.sorrowful: ("sorrowful", "sad", "grief", "lament", "mourning", "melancholy"),
    Tag.urgent: ("urgent", "pressing", "hurry", "important", "critical"),
    Tag.whisper: ("whisper", "soft", "quiet", "gentle voice", "softly"),
    Tag.pause: ("pause", "stop", "break", "wait", "silence"),
    Tag.slow: ("slow", "slower", "carefully", "deliberate", "drawn out"),
    Tag.fast: ("fast", "faster", "quick", "rapid", "speed up"),
    Tag.emphasis: ("emphasis", "stress", "highlight", "emphasize", "important"),
    Tag.peaceful: ("peaceful", "calm", "serene", "tranquil", "restful"),
    Tag.awe: ("awe", "wonder", "amazed", "marvel", "astonished"),
    Tag.warning: ("warning", "warn", "caution", "danger", "stern"),
    Tag.gentle: ("gentle", "gently", "tender", "tenderly", "kindly"),
    Tag.strong: ("strong", "powerful", "bold", "forceful", "louder"),
}


def render_tag(tag: Tag) -> str:
    """Return the bracketed token inserted into markup, e.g. ``[pause]``."""

    return f"[{tag.value}]"


def tag_names() -> List[str]:
    return [tag.value for tag in Tag]


def is_known_tag(name: str) -> bool:
    return name.strip().lower() in _TAG_NAMES


def classify(feedback: str) -> Tag:
    """Pick the performance tag a piece of feedback asks for.

    Tags are scanned in ``Tag`` declaration order. A tag matches when one of its
    keywords occurs in the lowercased feedback, or when the whole feedback is a
    fragment of a keyword ("joy" matches "joyful"). Falls back to
    ``DEFAULT_TAG`` when nothing matches.
    """

    lowered = feedback.strip().lower()
    if not lowered:
        return DEFAULT_TAG
    for tag in Tag:
        for keyword in TAG_KEYWORDS[tag]:
            if keyword in lowered or lowered in keyword:
                return tag
    return DEFAULT_TAG
