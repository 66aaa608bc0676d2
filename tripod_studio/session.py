"""
Feedback orchestration for a single recording session.

A ``Session`` owns the sacred text, the current markup, the feedback history
and the list of synthesized versions, and is the only writer of all four.
Feedback is processed one request at a time; a result computed against text
that has since been edited is discarded instead of applied.
"""

from __future__ import annotations

import asyncio
from collections import deque
from datetime import datetime
from typing import Callable, Deque, List, Optional, Set

from langchain_core.language_models import BaseChatModel
from langchain_openai import ChatOpenAI
from loguru import logger
from pydantic import BaseModel, ConfigDict

from tripod_studio.director import interpret_feedback
from tripod_studio.errors import (
    ConfigurationError,
    MissingInputError,
    StudioError,
    SynthesisError,
)
from tripod_studio.settings import DEFAULT_LANGUAGE, StudioSettings, get_language
from tripod_studio.synthesis import ElevenLabsSynthesizer, Synthesizer

HISTORY_LIMIT = 20


class FeedbackEvent(BaseModel):
    model_config = ConfigDict(frozen=True)

    text: str
    timestamp: datetime


class PerformanceVersion(BaseModel):
    """One synthesized take of the passage."""

    model_config = ConfigDict(frozen=True)

    version: int
    text: str
    timestamp: datetime
    audio: bytes


class Session:
    """In-memory studio state plus the feedback → markup → synthesis sequence."""

    def __init__(
        self,
        settings: Optional[StudioSettings] = None,
        *,
        language: str = DEFAULT_LANGUAGE,
        sacred_text: Optional[str] = None,
        llm: Optional[BaseChatModel] = None,
        synthesizer: Optional[Synthesizer] = None,
        on_error: Optional[Callable[[StudioError], None]] = None,
        auto_synthesize: bool = True,
    ) -> None:
        """Create a session.

        Args:
            settings: Credentials and voice selections; defaults to empty settings.
            language: Language code; its sample passage is used when
                ``sacred_text`` is omitted.
            sacred_text: Initial passage to direct.
            llm: Chat model for interpretation. Built from ``settings`` when
                omitted and an LLM key is configured.
            synthesizer: Speech client. Built from ``settings`` when omitted
                and an ElevenLabs key is configured.
            on_error: Receives failures from synthesis triggered by feedback.
            auto_synthesize: Voice the new markup after each feedback when
                synthesis is configured.
        """
        self.settings = settings or StudioSettings()
        self.language = get_language(language).code
        self._sacred_text = (
            sacred_text if sacred_text is not None else get_language(language).sample_text
        )
        self._markup = ""
        self._generation = 0
        self._history: Deque[FeedbackEvent] = deque(maxlen=HISTORY_LIMIT)
        self.versions: List[PerformanceVersion] = []
        self.on_error = on_error
        self.auto_synthesize = auto_synthesize
        self._llm = llm
        self._synthesizer = synthesizer
        self._lock = asyncio.Lock()
        self._pending: Set[asyncio.Task] = set()

    # —————————————————— State ——————————————————

    @property
    def sacred_text(self) -> str:
        return self._sacred_text

    @property
    def markup(self) -> str:
        return self._markup

    @property
    def generation(self) -> int:
        return self._generation

    @property
    def history(self) -> List[FeedbackEvent]:
        """Feedback events, newest first."""
        return list(self._history)

    def set_sacred_text(self, text: str) -> None:
        """Replace the passage; any edit invalidates the markup built on the old words."""
        if text == self._sacred_text:
            return
        self._sacred_text = text
        self._markup = ""
        self._generation += 1
        logger.debug(
            "session.text_changed generation={generation} chars={chars}",
            generation=self._generation,
            chars=len(text),
        )

    def set_language(self, code: str) -> None:
        language = get_language(code)
        self.language = language.code
        self.set_sacred_text(language.sample_text)
        logger.info("session.language code={code}", code=language.code)

    def copy_markup(self) -> str:
        return self._markup or self._sacred_text

    def recent_versions(self, count: int = 5) -> List[PerformanceVersion]:
        return list(reversed(self.versions[-count:])) if count > 0 else []

    # —————————————————— Collaborators ——————————————————

    @property
    def llm(self) -> Optional[BaseChatModel]:
        if self._llm is None and self.settings.has_llm:
            self._llm = ChatOpenAI(
                model=self.settings.llm_model,
                api_key=self.settings.llm_api_key,
                temperature=0,
                max_retries=3,
            )
        return self._llm

    @property
    def synthesizer(self) -> Optional[Synthesizer]:
        if self._synthesizer is None and self.settings.has_synthesis:
            self._synthesizer = ElevenLabsSynthesizer(self.settings.elevenlabs_key)
        return self._synthesizer

    @property
    def synthesis_configured(self) -> bool:
        return self._synthesizer is not None or self.settings.has_synthesis

    # —————————————————— Feedback ——————————————————

    async def process_feedback(self, feedback_text: str) -> Optional[str]:
        """Record feedback, interpret it and store the new markup.

        Requests queue behind one another. When synthesis is configured a
        performance is generated in the background afterwards.

        Returns:
            The new markup, or ``None`` when the feedback was blank or the
            passage changed while it was being interpreted.

        Raises:
            MissingInputError: If there is no sacred text to mark up.
        """
        feedback = feedback_text.strip()
        if not feedback:
            return None
        self._history.appendleft(FeedbackEvent(text=feedback, timestamp=datetime.now()))

        async with self._lock:
            sacred_text = self._sacred_text.strip()
            if not sacred_text:
                raise MissingInputError("Please enter sacred text first.")
            generation = self._generation
            logger.info(
                "feedback.start generation={generation} feedback={feedback}",
                generation=generation,
                feedback=feedback,
            )
            interpretation = await interpret_feedback(
                sacred_text,
                feedback,
                self._markup,
                llm=self.llm,
                validate=self.settings.validate_llm_markup,
                timeout=self.settings.llm_timeout_seconds,
            )
            if generation != self._generation:
                logger.warning(
                    "feedback.stale_discarded started={started} current={current}",
                    started=generation,
                    current=self._generation,
                )
                return None
            self._markup = interpretation.markup

        logger.info(
            "feedback.applied source={source} markup={markup}",
            source=interpretation.source,
            markup=interpretation.markup,
        )
        if self.auto_synthesize and self.synthesis_configured:
            self._schedule_synthesis()
        return interpretation.markup

    # —————————————————— Synthesis ——————————————————

    async def generate_performance(self) -> PerformanceVersion:
        """Voice the current markup (or the plain passage) and record a new version.

        Raises:
            ConfigurationError: Without a speech credential or a voice for the
                current language.
            MissingInputError: If the passage is empty.
            SynthesisError: If the speech service fails.
        """
        synthesizer = self.synthesizer
        if synthesizer is None:
            raise ConfigurationError("Please add your ElevenLabs API key in Settings.")
        text = self._sacred_text.strip()
        if not text:
            raise MissingInputError("Please enter some text first.")
        voice_id = self.settings.voice_for_language(self.language)
        if not voice_id:
            raise ConfigurationError(
                f"Please select a voice for {get_language(self.language).name} in Settings."
            )

        to_speak = self._markup or text
        audio = await synthesizer.synthesize(to_speak, voice_id, self.settings.tts_model)
        version = PerformanceVersion(
            version=len(self.versions) + 1,
            text=to_speak,
            timestamp=datetime.now(),
            audio=audio,
        )
        self.versions.append(version)
        logger.info(
            "performance.generated version={version} bytes={size}",
            version=version.version,
            size=len(audio),
        )
        return version

    def _schedule_synthesis(self) -> None:
        task = asyncio.get_running_loop().create_task(self._synthesize_in_background())
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)

    async def _synthesize_in_background(self) -> None:
        try:
            await self.generate_performance()
        except StudioError as exc:
            self._report(exc)
        except Exception as exc:  # noqa: BLE001
            self._report(SynthesisError(str(exc) or type(exc).__name__))

    def _report(self, error: StudioError) -> None:
        logger.error("performance.failed error={error}", error=error)
        if self.on_error is not None:
            self.on_error(error)

    async def drain(self) -> None:
        """Wait for background synthesis started by feedback."""
        while self._pending:
            await asyncio.gather(*list(self._pending))

    async def close(self) -> None:
        await self.drain()
        close = getattr(self._synthesizer, "close", None)
        if close is not None:
            await close()
