from __future__ import annotations

import os
from pathlib import Path
from typing import Dict, List, Optional

from loguru import logger
from pydantic import BaseModel, ConfigDict, Field, ValidationError

from tripod_studio.errors import ConfigurationError

SETTINGS_KEY = "voicePerformanceStudioSettings"
STUDIO_HOME = Path(os.environ.get("STUDIO_HOME", Path.home() / ".tripod_studio"))

DEFAULT_LLM_MODEL = "gpt-5-mini"
DEFAULT_TTS_MODEL = "eleven_multilingual_v2"


# ---------- Languages ----------


class Language(BaseModel):
    """A recording language with its speech-recognition locale and sample passage."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    code: str
    name: str
    native_name: str
    speech_recognition_lang: str
    sample_text: str


LANGUAGES: Dict[str, Language] = {
    "hi-IN": Language(
        code="hi-IN",
        name="Hindi",
        native_name="हिन्दी",
        speech_recognition_lang="hi-IN",
        sample_text="आदि में परमेश्‍वर ने आकाश और पृथ्वी की सृष्टि की।",
    ),
    "en-IN": Language(
        code="en-IN",
        name="Indian English",
        native_name="Indian English",
        speech_recognition_lang="en-IN",
        sample_text="In the beginning, God created the heavens and the earth.",
    ),
    "pt-BR": Language(
        code="pt-BR",
        name="Portuguese (Sertanejo)",
        native_name="Português Sertanejo",
        speech_recognition_lang="pt-BR",
        sample_text="No princípio, Deus criou os céus e a terra.",
    ),
}

DEFAULT_LANGUAGE = "hi-IN"


def get_language(code: str) -> Language:
    try:
        return LANGUAGES[code]
    except KeyError:
        raise ConfigurationError(
            f"Unknown language {code!r}; expected one of {', '.join(LANGUAGES)}."
        ) from None


# ---------- Voices ----------


class Voice(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str
    name: str


DEFAULT_VOICES: List[Voice] = [
    Voice(id="pMsXgVXv3BLzUgSXRplE", name="Aria (Female)"),
    Voice(id="EXAVITQu4vr4xnSDxMaL", name="Sarah (Female)"),
    Voice(id="onwK4e9ZLuTAKqWW03F9", name="Daniel (Male)"),
    Voice(id="21m00Tcm4TlvDq8ikWAM", name="Rachel (Female)"),
    Voice(id="AZnzlk1XvdvUeBnXmlld", name="Domi (Female)"),
    Voice(id="MF3mGyEYCl7XYWbV9V6O", name="Elli (Female)"),
    Voice(id="TxGEqnHWrfWFTfGW9XjX", name="Josh (Male)"),
    Voice(id="VR6AewLTigWG4xSOukaG", name="Arnold (Male)"),
    Voice(id="pNInz6obpgDQGcFmaJgB", name="Adam (Male)"),
    Voice(id="yoZ06aMxZJJ28mfd3POQ", name="Sam (Male)"),
]


def parse_custom_voices(text: str) -> List[Voice]:
    """Parse ``Name | voice_id`` lines; a bare line serves as both name and id."""

    voices: List[Voice] = []
    for line in text.splitlines():
        parts = [part.strip() for part in line.split("|")]
        if len(parts) == 2 and parts[0] and parts[1]:
            voices.append(Voice(name=parts[0], id=parts[1]))
        elif len(parts) == 1 and parts[0]:
            voices.append(Voice(name=parts[0], id=parts[0]))
    return voices


def format_custom_voices(voices: List[Voice]) -> str:
    return "\n".join(f"{voice.name} | {voice.id}" for voice in voices)


# ---------- Settings blob ----------


class StudioSettings(BaseModel):
    """Credentials, voice selections and model identifiers for the studio."""

    model_config = ConfigDict(extra="ignore")

    elevenlabs_key: str = ""
    llm_api_key: str = ""
    llm_model: str = DEFAULT_LLM_MODEL
    tts_model: str = DEFAULT_TTS_MODEL
    selected_voices: Dict[str, str] = Field(
        default_factory=dict,
        description="Voice id chosen per language code.",
    )
    custom_voices: List[Voice] = Field(default_factory=list)
    validate_llm_markup: bool = Field(
        default=True,
        description="Fall back to rules when model output alters words or uses unknown tags.",
    )
    llm_timeout_seconds: float = Field(default=30.0, gt=0)

    @property
    def has_llm(self) -> bool:
        return bool(self.llm_api_key)

    @property
    def has_synthesis(self) -> bool:
        return bool(self.elevenlabs_key)

    def voices(self) -> List[Voice]:
        return self.custom_voices or list(DEFAULT_VOICES)

    def voice_for_language(self, code: str) -> Optional[str]:
        return self.selected_voices.get(code) or None


def settings_path(home: Optional[Path] = None) -> Path:
    return (home or STUDIO_HOME) / f"{SETTINGS_KEY}.json"


def load_settings(path: Optional[Path] = None) -> StudioSettings:
    """Read saved settings; missing or unreadable files yield defaults."""

    path = path or settings_path()
    settings = StudioSettings()
    if path.exists():
        try:
            settings = StudioSettings.model_validate_json(path.read_text())
        except (ValidationError, ValueError) as exc:
            logger.error(
                "settings.load_failed path={path} error={error}", path=path, error=exc
            )
    if not settings.custom_voices:
        settings = settings.model_copy(update={"custom_voices": list(DEFAULT_VOICES)})
    return settings


def save_settings(settings: StudioSettings, path: Optional[Path] = None) -> Path:
    path = path or settings_path()
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(settings.model_dump_json(indent=2))
    logger.info("settings.saved path={path}", path=path)
    return path
