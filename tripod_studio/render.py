from __future__ import annotations

import html
import math
import re
from datetime import datetime
from io import BytesIO
from typing import List, Optional, Sequence

from pydub import AudioSegment

PLAYBACK_SPEEDS: Sequence[float] = (0.5, 0.75, 1, 1.25, 1.5, 2)

_ESCAPED_TAG_RE = re.compile(r"\[([^\]]+)\]")


def highlight_markup(markup: str) -> str:
    """HTML for the markup panel: text escaped, each tag wrapped in ``span.tag``."""

    return _ESCAPED_TAG_RE.sub(r'<span class="tag">[\1]</span>', html.escape(markup))


def format_time(seconds: Optional[float]) -> str:
    if seconds is None or not math.isfinite(seconds):
        return "0:00"
    minutes, secs = divmod(int(seconds), 60)
    return f"{minutes}:{secs:02d}"


def format_time_ago(moment: datetime, now: Optional[datetime] = None) -> str:
    elapsed = ((now or datetime.now()) - moment).total_seconds()
    if elapsed < 60:
        return "Just now"
    if elapsed < 3600:
        return f"{int(elapsed // 60)} min ago"
    if elapsed < 86400:
        return f"{int(elapsed // 3600)} hours ago"
    return moment.strftime("%x")


def next_playback_speed(current: float) -> float:
    """Cycle through ``PLAYBACK_SPEEDS``; unknown speeds restart at the first."""

    try:
        index = list(PLAYBACK_SPEEDS).index(current)
    except ValueError:
        index = -1
    return PLAYBACK_SPEEDS[(index + 1) % len(PLAYBACK_SPEEDS)]


def decode_audio(data: bytes, audio_format: str = "mp3") -> AudioSegment:
    return AudioSegment.from_file(BytesIO(data), format=audio_format)


def waveform_peaks(audio: AudioSegment, buckets: int = 100) -> List[float]:
    """Mean absolute amplitude of the first channel per bucket, scaled to a 1.0 peak.

    Silent or empty audio yields zeros; fewer samples than buckets yields one
    bucket per sample.
    """

    if buckets <= 0:
        raise ValueError("buckets must be positive")
    samples = audio.get_array_of_samples()[:: max(1, audio.channels)]
    if not samples:
        return [0.0] * buckets
    block = max(1, len(samples) // buckets)
    count = min(buckets, len(samples))
    means = [
        sum(abs(value) for value in samples[index * block : (index + 1) * block]) / block
        for index in range(count)
    ]
    loudest = max(means)
    if loudest == 0:
        return [0.0] * count
    return [value / loudest for value in means]
