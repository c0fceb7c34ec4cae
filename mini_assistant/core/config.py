# File: mini_assistant/core/config.py
# Project: Mini Assistant Sidecar
# Description: Filesystem locations, env-driven knobs and compiled-in provider defaults.

# Copyright (C) 2025 Tencent. All rights reserved.
# License: Licensed under the License Terms of Youtu-Tip (see license at repository root).
# Warranty: Provided on an "AS IS" basis, without warranties or conditions of any kind.
# Modifications must retain this notice.

from __future__ import annotations

import os
from pathlib import Path


def _get_env_bool(name: str, default: bool) -> bool:
    raw = os.environ.get(name)
    if raw is None:
        return default
    return raw.strip().lower() not in {'', '0', 'false', 'no', 'off'}


def _get_env_float(name: str, default: float) -> float:
    raw = (os.environ.get(name) or '').strip()
    if not raw:
        return default
    try:
        return float(raw)
    except ValueError:
        return default


def _resolve_app_home() -> Path:
    # MINI_ASSISTANT_HOME 便于测试或多实例时隔离配置目录。
    override = (os.environ.get('MINI_ASSISTANT_HOME') or '').strip()
    if override:
        return Path(override).expanduser()
    return Path.home() / '.mini-assistant'


APP_HOME = _resolve_app_home()
USER_SETTINGS_FILE = APP_HOME / 'settings.json'
LOG_DIR = APP_HOME / 'logs'

HTTP_TIMEOUT_SECONDS = max(_get_env_float('MINI_ASSISTANT_HTTP_TIMEOUT', 60.0), 1.0)
LOG_TO_FILE = _get_env_bool('MINI_ASSISTANT_LOG_TO_FILE', True)

# Provider defaults shared by migration, resolver and assistants.
DEFAULT_TEXT_MODEL = 'gpt-4o-mini'
DEFAULT_IMAGE_MODEL = 'gpt-image-1'
DEFAULT_SPEECH_MODEL = 'whisper-1'
DEFAULT_API_BASE_URL = 'https://api.openai.com/v1'
DEFAULT_MAX_TOKENS = 0

DEFAULT_ANTHROPIC_BASE_URL = 'https://api.anthropic.com/v1'
DEFAULT_ANTHROPIC_MODEL = 'claude-3-5-sonnet-latest'
# Messages API 要求 max_tokens，未配置时使用该值。
DEFAULT_ANTHROPIC_MAX_TOKENS = 1024
ANTHROPIC_VERSION = '2023-06-01'

TTS_MODEL = 'tts-1'
TTS_VOICE = 'alloy'
TTS_SAMPLE_RATE = 24000
HD_IMAGE_MODEL = 'dall-e-3'

OAI_IMAGE_CAPABLE_MODELS = (
    'o1',
    'o1-pro',
    'o1-mini',
    'o3',
    'o3-mini',
    'o4-mini',
    'gpt-4o',
    'gpt-4o-mini',
    'gpt-4-turbo',
    'gpt-4.1',
)
