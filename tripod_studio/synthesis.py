"""ElevenLabs text-to-speech client used to voice the current markup."""

from __future__ import annotations

from typing import List, Optional, Protocol

import httpx
from loguru import logger
from pydantic import BaseModel, ConfigDict

from tripod_studio.errors import ConfigurationError, SynthesisError
from tripod_studio.settings import Voice

ELEVENLABS_API_URL = "https://api.elevenlabs.io/v1"
_DEFAULT_TIMEOUT_SECONDS = 60.0


class Synthesizer(Protocol):
    async def synthesize(self, text: str, voice_id: str, model_id: str) -> bytes: ...


class VoiceSettings(BaseModel):
    model_config = ConfigDict(frozen=True)

    stability: float = 0.5
    similarity_boost: float = 0.75
    style: float = 0.5
    use_speaker_boost: bool = True


def _error_message(response: httpx.Response) -> str:
    try:
        payload = response.json()
    except ValueError:
        payload = {}
    detail = payload.get("detail") if isinstance(payload, dict) else None
    if isinstance(detail, dict) and detail.get("message"):
        return str(detail["message"])
    return f"API Error: {response.status_code}"


class ElevenLabsSynthesizer:
    """Async client for the ElevenLabs speech and voice catalog endpoints."""

    def __init__(
        self,
        api_key: str,
        *,
        voice_settings: Optional[VoiceSettings] = None,
        base_url: str = ELEVENLABS_API_URL,
        timeout: float = _DEFAULT_TIMEOUT_SECONDS,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        if not api_key:
            raise ConfigurationError("An ElevenLabs API key is required for synthesis.")
        self.api_key = api_key
        self.voice_settings = voice_settings or VoiceSettings()
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self._transport = transport
        self._client: Optional[httpx.AsyncClient] = None

    async def _get_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(
                base_url=self.base_url,
                timeout=self.timeout,
                transport=self._transport,
                headers={"xi-api-key": self.api_key},
            )
        return self._client

    async def close(self) -> None:
        if self._client:
            await self._client.aclose()
            self._client = None

    async def synthesize(self, text: str, voice_id: str, model_id: str) -> bytes:
        """Render ``text`` (tags included) to MPEG audio bytes.

        Raises:
            SynthesisError: On transport failure or a non-success status.
        """

        client = await self._get_client()
        body = {
            "text": text,
            "model_id": model_id,
            "voice_settings": self.voice_settings.model_dump(),
        }
        logger.info(
            "synthesis.request voice={voice} model={model} chars={chars}",
            voice=voice_id,
            model=model_id,
            chars=len(text),
        )
        try:
            response = await client.post(
                f"/text-to-speech/{voice_id}",
                json=body,
                headers={"Accept": "audio/mpeg"},
            )
        except httpx.HTTPError as exc:
            raise SynthesisError(f"Speech service unreachable: {exc}") from exc
        if response.is_error:
            message = _error_message(response)
            logger.warning(
                "synthesis.failed status={status} message={message}",
                status=response.status_code,
                message=message,
            )
            raise SynthesisError(message)
        logger.debug("synthesis.done bytes={size}", size=len(response.content))
        return response.content

    async def fetch_voices(self) -> List[Voice]:
        """List the voices available to this account."""

        client = await self._get_client()
        try:
            response = await client.get("/voices")
        except httpx.HTTPError as exc:
            raise SynthesisError(f"Speech service unreachable: {exc}") from exc
        if response.is_error:
            raise SynthesisError(_error_message(response))
        try:
            voices = [
                Voice(id=entry["voice_id"], name=entry["name"])
                for entry in response.json()["voices"]
            ]
        except (KeyError, TypeError, ValueError) as exc:
            raise SynthesisError(f"Malformed voice catalog: {exc}") from exc
        logger.info("synthesis.voices count={count}", count=len(voices))
        return voices
