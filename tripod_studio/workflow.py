"""
Voice Performance Studio (Feedback → Markup → Performance)

Command-line front end for directing oral Bible translation recordings. A
director supplies free-form feedback about how a passage should be performed;
each note is turned into performance tags inserted into the passage, without
altering a single word, and the tagged passage can be voiced with ElevenLabs.

    python -m tripod_studio.workflow interpret "In the beginning..." "whisper at the end"
    python -m tripod_studio.workflow direct "make 'heavens' reverent" "pause at the end" --out take.mp3
"""

from __future__ import annotations

import asyncio
import os
import sys
from pathlib import Path
from typing import Dict, List, Optional

import fire
from loguru import logger

from tripod_studio.director import interpret_feedback
from tripod_studio.errors import StudioError
from tripod_studio.render import decode_audio, waveform_peaks
from tripod_studio.session import Session
from tripod_studio.settings import (
    LANGUAGES,
    StudioSettings,
    load_settings,
    parse_custom_voices,
    save_settings,
    settings_path,
)
from tripod_studio.synthesis import ElevenLabsSynthesizer
from tripod_studio.tags import TAG_KEYWORDS, Tag


class Studio:
    """Feedback-driven performance markup exposed as CLI commands."""

    def __init__(
        self,
        debug: bool = False,
        settings_file: Path | str | None = None,
        language: str = "en-IN",
    ) -> None:
        """Load settings and configure logging.

        Args:
            debug: Enable verbose logging.
            settings_file: Settings JSON path; defaults to the studio home.
            language: Language code used by `direct` when no text is given.
        """
        logger.remove()
        logger.add(sys.stderr, level="DEBUG" if debug else "INFO")
        self.debug = debug
        self.settings_file = Path(settings_file) if settings_file else settings_path()
        self.language = language
        self.settings = self._with_env_credentials(load_settings(self.settings_file))

    @staticmethod
    def _with_env_credentials(settings: StudioSettings) -> StudioSettings:
        update: Dict[str, str] = {}
        if not settings.elevenlabs_key and os.environ.get("ELEVENLABS_API_KEY"):
            update["elevenlabs_key"] = os.environ["ELEVENLABS_API_KEY"]
        if not settings.llm_api_key and os.environ.get("OPENAI_API_KEY"):
            update["llm_api_key"] = os.environ["OPENAI_API_KEY"]
        return settings.model_copy(update=update) if update else settings

    # —————————————————— Commands ——————————————————

    def tags(self) -> Dict[str, List[str]]:
        """Show the tag vocabulary in priority order with its trigger keywords."""
        return {f"[{tag.value}]": list(TAG_KEYWORDS[tag]) for tag in Tag}

    def languages(self) -> Dict[str, str]:
        return {code: f"{lang.name} · {lang.sample_text}" for code, lang in LANGUAGES.items()}

    def interpret(
        self, text: str, feedback: str, markup: str = "", rules_only: bool = False
    ) -> str:
        """Apply one piece of feedback to `text` (or to existing `markup`).

        Args:
            text: Sacred text to tag.
            feedback: Director's feedback.
            markup: Existing markup to build on.
            rules_only: Skip the language model even when a key is configured.
        """
        session = Session(self.settings, sacred_text=text)
        llm = None if rules_only else session.llm
        interpretation = asyncio.run(
            interpret_feedback(
                text.strip(),
                feedback,
                markup,
                llm=llm,
                validate=self.settings.validate_llm_markup,
                timeout=self.settings.llm_timeout_seconds,
            )
        )
        logger.debug("interpret.source source={source}", source=interpretation.source)
        return interpretation.markup

    def direct(
        self,
        *feedback: str,
        text: str = "",
        language: Optional[str] = None,
        out: str = "",
        rules_only: bool = False,
    ) -> str:
        """Apply a sequence of feedback notes and optionally voice the result.

        Args:
            feedback: Feedback notes applied in order.
            text: Sacred text; defaults to the language's sample passage.
            language: Language code overriding the CLI default.
            out: Write the synthesized performance (MPEG) to this path.
            rules_only: Skip the language model even when a key is configured.

        Returns:
            Final markup.
        """
        settings = self.settings
        if rules_only:
            settings = settings.model_copy(update={"llm_api_key": ""})
        return asyncio.run(
            self._direct(settings, list(feedback), text, language or self.language, out)
        )

    async def _direct(
        self,
        settings: StudioSettings,
        feedback: List[str],
        text: str,
        language: str,
        out: str,
    ) -> str:
        session = Session(
            settings,
            language=language,
            sacred_text=text or None,
            auto_synthesize=False,
        )
        try:
            for note in feedback:
                markup = await session.process_feedback(note)
                logger.info("direct.step feedback={note} markup={markup}", note=note, markup=markup)
            if out:
                version = await session.generate_performance()
                Path(out).write_bytes(version.audio)
                logger.info("direct.saved path={path} version={version}", path=out, version=version.version)
        except StudioError as exc:
            logger.error("direct.failed error={error}", error=exc)
            raise
        finally:
            await session.close()
        return session.copy_markup()

    def configure(
        self,
        elevenlabs_key: Optional[str] = None,
        llm_api_key: Optional[str] = None,
        llm_model: Optional[str] = None,
        tts_model: Optional[str] = None,
        voice: Optional[str] = None,
        voice_language: Optional[str] = None,
        custom_voices: Optional[str] = None,
    ) -> str:
        """Update and persist settings.

        Args:
            elevenlabs_key: ElevenLabs API key.
            llm_api_key: OpenAI API key for the director model.
            llm_model: Director model identifier.
            tts_model: ElevenLabs model identifier.
            voice: Voice id selected for `voice_language` (defaults to the CLI language).
            voice_language: Language code the voice applies to.
            custom_voices: Voice list as `Name | id` lines.
        """
        settings = load_settings(self.settings_file)
        update: Dict[str, object] = {
            key: value
            for key, value in {
                "elevenlabs_key": elevenlabs_key,
                "llm_api_key": llm_api_key,
                "llm_model": llm_model,
                "tts_model": tts_model,
            }.items()
            if value is not None
        }
        if voice is not None:
            update["selected_voices"] = {
                **settings.selected_voices,
                voice_language or self.language: voice,
            }
        if custom_voices:
            parsed = parse_custom_voices(custom_voices)
            if parsed:
                update["custom_voices"] = parsed
        saved = save_settings(settings.model_copy(update=update), self.settings_file)
        return str(saved)

    def voices(self, refresh: bool = False) -> List[str]:
        """List known voices, optionally refreshing them from ElevenLabs."""
        settings = load_settings(self.settings_file)
        if refresh:
            key = settings.elevenlabs_key or self.settings.elevenlabs_key
            fetched = asyncio.run(self._fetch_voices(key))
            settings = settings.model_copy(update={"custom_voices": fetched})
            save_settings(settings, self.settings_file)
        return [f"{voice.name} | {voice.id}" for voice in settings.voices()]

    @staticmethod
    async def _fetch_voices(api_key: str):
        synthesizer = ElevenLabsSynthesizer(api_key)
        try:
            return await synthesizer.fetch_voices()
        finally:
            await synthesizer.close()

    def waveform(self, audio_file: str, buckets: int = 60, audio_format: str = "") -> List[float]:
        """Peak envelope of an audio file for waveform display."""
        path = Path(audio_file)
        if not path.exists():
            raise FileNotFoundError(f"Audio file {path} does not exist.")
        segment = decode_audio(path.read_bytes(), audio_format or path.suffix.lstrip(".") or "mp3")
        peaks = waveform_peaks(segment, buckets)
        logger.info(
            "waveform.done path={path} seconds={seconds:.1f} buckets={count}",
            path=path,
            seconds=segment.duration_seconds,
            count=len(peaks),
        )
        return [round(value, 3) for value in peaks]


def main() -> None:
    fire.Fire(Studio)


if __name__ == "__main__":
    main()
