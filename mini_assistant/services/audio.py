# File: mini_assistant/services/audio.py
# Project: Mini Assistant Sidecar
# Description: Playback of synthesized speech through the host's default audio output.

# Copyright (C) 2025 Tencent. All rights reserved.
# License: Licensed under the License Terms of Youtu-Tip (see license at repository root).
# Warranty: Provided on an "AS IS" basis, without warranties or conditions of any kind.
# Modifications must retain this notice.

from __future__ import annotations

from typing import Protocol

import structlog

logger = structlog.get_logger(__name__)


class AudioPlayer(Protocol):
    def play(self, pcm: bytes, sample_rate: int) -> None:
        ...


class SoundDevicePlayer:
    """Plays raw 16-bit mono PCM and blocks until playback finishes."""

    def play(self, pcm: bytes, sample_rate: int) -> None:
        # sounddevice 依赖系统 PortAudio，只在真正播放时导入。
        import numpy as np
        import sounddevice as sd

        samples = np.frombuffer(pcm, dtype=np.int16)
        if samples.size == 0:
            logger.debug('audio.play_skipped', reason='empty buffer')
            return
        sd.play(samples, samplerate=sample_rate)
        sd.wait()
