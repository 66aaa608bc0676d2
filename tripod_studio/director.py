"""
Language-model feedback interpreter.

The model acts as a performance director: it receives the sacred text, the
current markup and the latest feedback, and returns the text with tags
inserted. It may only insert tags from the closed vocabulary. Any failure is
reported as an ``UpstreamResult`` carrying an ``InterpreterUpstreamError`` and
the caller falls back to ``interpret_with_rules``; nothing here raises past
that boundary.
"""

from __future__ import annotations

import asyncio
from typing import Any, List, Literal, Optional

from langchain_core.callbacks import UsageMetadataCallbackHandler
from langchain_core.language_models import BaseChatModel
from langchain_core.messages import HumanMessage, SystemMessage
from langchain_core.runnables import RunnableConfig
from loguru import logger
from pydantic import BaseModel, ConfigDict
from pydantic_xml import BaseXmlModel, element, wrapped

from tripod_studio.errors import InterpreterUpstreamError
from tripod_studio.rules import interpret_with_rules
from tripod_studio.tags import Tag, render_tag, tag_names
from tripod_studio.text import unknown_tags, words_preserved

DEFAULT_TIMEOUT_SECONDS = 30.0

_TAG_LIST = ", ".join(render_tag(tag) for tag in Tag)

DIRECTOR_PROMPT = f"""
You are the voice performance director for recordings of sacred text in an oral Bible translation studio.
Revise the performance markup of the passage so it follows the director's latest feedback.

Hard rules:
- Never change, add, remove or reorder any word of the sacred text. Punctuation and spelling stay exactly as given.
- Only insert performance tags, each written in square brackets, and only from this list: {_TAG_LIST}.
- Place a tag immediately BEFORE the word or phrase it affects rather than stacking every tag at the start.
- When the feedback names a word or phrase, put the tag right before that word or phrase.
- "beginning" or "start" puts the tag at the very start; "end" or "ending" puts it before the last sentence or phrase.
- "throughout", "whole" or "entire" may be expressed with a single tag at the start.
- Keep the tags already present in the current markup unless the feedback asks to change them.
- Return ONLY the marked-up text: no quotes, no explanation, no commentary.

Examples for the passage "In the beginning, God created the heavens and the earth.":
- "make 'heavens' more reverent" -> In the beginning, God created the [reverent] heavens and the earth.
- "add a pause after heavens" -> In the beginning, God created the heavens [pause] and the earth.
- "whisper at the end" -> In the beginning, God created the heavens and [whisper] the earth.
- "make the whole thing joyful" -> [joyful] In the beginning, God created the heavens and the earth.
"""


class MarkupRequest(BaseXmlModel, tag="markup-request", skip_empty=True):
    """Task envelope sent to the director model."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    sacred_text: str = element(
        tag="sacred-text", description="Canonical passage; words are immutable."
    )
    current_markup: Optional[str] = element(
        tag="current-markup",
        default=None,
        description="Markup produced by earlier feedback, if any.",
    )
    feedback: str = element(tag="feedback", description="Director's latest note.")
    tags: List[str] = wrapped(
        "vocabulary",
        element(tag="tag", default_factory=list),
    )


class UpstreamResult(BaseModel):
    """Either markup from the model or the reason it could not be used."""

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    markup: Optional[str] = None
    error: Optional[InterpreterUpstreamError] = None

    @property
    def ok(self) -> bool:
        return self.error is None and self.markup is not None


class Interpretation(BaseModel):
    """Markup that replaces the session's current markup, with its provenance."""

    model_config = ConfigDict(frozen=True)

    markup: str
    source: Literal["llm", "rules"]
    fallback_reason: Optional[str] = None


def build_messages(sacred_text: str, feedback: str, current_markup: str = "") -> list:
    request = MarkupRequest(
        sacred_text=sacred_text,
        current_markup=current_markup or None,
        feedback=feedback,
        tags=tag_names(),
    )
    payload = request.to_xml(encoding="unicode", pretty_print=True, skip_empty=True)
    assert isinstance(payload, str)
    return [
        SystemMessage(content=DIRECTOR_PROMPT),
        HumanMessage(
            content=(
                "== TASK ==\n"
                f"{payload}\n\n"
                "Apply the feedback by placing tags at the appropriate positions. "
                "Return ONLY the marked-up text."
            )
        ),
    ]


def _message_text(message: Any) -> str:
    content = getattr(message, "content", message)
    if isinstance(content, str):
        return content
    if isinstance(content, list):
        parts: List[str] = []
        for block in content:
            if isinstance(block, str):
                parts.append(block)
            elif isinstance(block, dict) and block.get("type") == "text":
                parts.append(str(block.get("text", "")))
        return "".join(parts)
    raise InterpreterUpstreamError(
        f"Unexpected response payload: {type(content).__name__}"
    )


def _failure(reason: str) -> UpstreamResult:
    return UpstreamResult(error=InterpreterUpstreamError(reason))


async def request_llm_markup(
    llm: BaseChatModel,
    sacred_text: str,
    feedback: str,
    current_markup: str = "",
    *,
    validate: bool = True,
    timeout: float = DEFAULT_TIMEOUT_SECONDS,
) -> UpstreamResult:
    """Ask the director model for new markup.

    Args:
        llm: Chat model used for the request.
        sacred_text: Canonical untagged text.
        feedback: Director's feedback utterance.
        current_markup: Existing markup, omitted from the request when empty.
        validate: Reject output that alters words or uses unknown tags.
        timeout: Seconds to wait for the model before giving up.

    Returns:
        ``UpstreamResult`` with ``markup`` on success, ``error`` otherwise.
    """

    callback = UsageMetadataCallbackHandler()
    try:
        messages = build_messages(sacred_text, feedback, current_markup)
        response = await asyncio.wait_for(
            llm.ainvoke(messages, config=RunnableConfig(callbacks=[callback])),
            timeout=timeout,
        )
        markup = _message_text(response).strip()
    except asyncio.TimeoutError:
        logger.warning("director.timeout seconds={seconds}", seconds=timeout)
        return _failure(f"Language model timed out after {timeout}s")
    except Exception as exc:  # noqa: BLE001
        logger.warning("director.request_failed error={error}", error=exc)
        return _failure(str(exc) or type(exc).__name__)
    logger.debug("director.tokens usage={usage}", usage=callback.usage_metadata)

    if not markup:
        return _failure("Language model returned empty markup")
    if validate:
        unknown = unknown_tags(markup)
        if unknown:
            logger.warning("director.unknown_tags tags={tags}", tags=unknown)
            return _failure(f"Markup uses unknown tags: {', '.join(unknown)}")
        if not words_preserved(sacred_text, markup):
            logger.warning("director.words_altered markup={markup}", markup=markup)
            return _failure("Markup does not preserve the sacred text")
    return UpstreamResult(markup=markup)


async def interpret_with_llm(
    llm: BaseChatModel,
    sacred_text: str,
    feedback: str,
    current_markup: str = "",
    *,
    validate: bool = True,
    timeout: float = DEFAULT_TIMEOUT_SECONDS,
) -> str:
    """Model-backed interpretation that always yields markup.

    Falls back to ``interpret_with_rules`` with the same inputs on any failure.
    """

    interpretation = await interpret_feedback(
        sacred_text,
        feedback,
        current_markup,
        llm=llm,
        validate=validate,
        timeout=timeout,
    )
    return interpretation.markup


async def interpret_feedback(
    sacred_text: str,
    feedback: str,
    current_markup: str = "",
    *,
    llm: Optional[BaseChatModel] = None,
    validate: bool = True,
    timeout: float = DEFAULT_TIMEOUT_SECONDS,
) -> Interpretation:
    """Dispatch to the model when one is configured, otherwise to the rules."""

    if llm is None:
        return Interpretation(
            markup=interpret_with_rules(sacred_text, feedback, current_markup),
            source="rules",
        )

    result = await request_llm_markup(
        llm,
        sacred_text,
        feedback,
        current_markup,
        validate=validate,
        timeout=timeout,
    )
    if result.ok:
        assert result.markup is not None
        return Interpretation(markup=result.markup, source="llm")

    reason = str(result.error)
    logger.info("director.fallback_to_rules reason={reason}", reason=reason)
    return Interpretation(
        markup=interpret_with_rules(sacred_text, feedback, current_markup),
        source="rules",
        fallback_reason=reason,
    )
