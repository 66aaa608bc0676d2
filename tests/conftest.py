import asyncio
from typing import Any, Callable, List, Optional, Sequence, Union

import pytest
from langchain_core.messages import AIMessage

from tripod_studio.errors import SynthesisError

GENESIS = "In the beginning, God created the heavens and the earth."


class _FakeChatModel:
    """Chat model stub: replies with fixed text, a callable's output, or an error."""

    def __init__(
        self,
        reply: Union[str, Callable[[Sequence[Any]], str], None] = None,
        error: Optional[Exception] = None,
        gate: Optional[asyncio.Event] = None,
    ) -> None:
        self.reply = reply
        self.error = error
        self.gate = gate
        self.calls: List[Sequence[Any]] = []
        self.started = asyncio.Event()

    async def ainvoke(self, messages: Sequence[Any], config: object = None) -> AIMessage:
        self.calls.append(messages)
        self.started.set()
        if self.gate is not None:
            await self.gate.wait()
        if self.error is not None:
            raise self.error
        text = self.reply(messages) if callable(self.reply) else self.reply
        return AIMessage(content=text or "")


class _FakeSynthesizer:
    def __init__(self, audio: bytes = b"ID3-fake-audio", error: Optional[Exception] = None) -> None:
        self.audio = audio
        self.error = error
        self.calls: List[tuple] = []

    async def synthesize(self, text: str, voice_id: str, model_id: str) -> bytes:
        self.calls.append((text, voice_id, model_id))
        if self.error is not None:
            raise self.error
        return self.audio


@pytest.fixture()
def genesis() -> str:
    return GENESIS


@pytest.fixture()
def fake_chat_model():
    return _FakeChatModel


@pytest.fixture()
def fake_synthesizer():
    return _FakeSynthesizer


@pytest.fixture()
def failing_synthesizer() -> _FakeSynthesizer:
    return _FakeSynthesizer(error=SynthesisError("quota exceeded"))
