# File: mini_assistant/services/assistant_factory.py
# Project: Mini Assistant Sidecar
# Description: Picks the provider family from a base URL and builds the matching assistant.

# Copyright (C) 2025 Tencent. All rights reserved.
# License: Licensed under the License Terms of Youtu-Tip (see license at repository root).
# Warranty: Provided on an "AS IS" basis, without warranties or conditions of any kind.
# Modifications must retain this notice.

from __future__ import annotations

from typing import Callable

from ..core.config import DEFAULT_API_BASE_URL
from ..core.settings import Settings
from .assistants import AnthropicAssistant, BaseAssistant, OpenAIAssistant, ProviderFamily
from .notices import NotifyFunc

ANTHROPIC_DOMAIN = 'anthropic.com'

AssistantFactory = Callable[[str, str, Settings, NotifyFunc], BaseAssistant]


def effective_base_url(base_url: str) -> str:
    return (base_url or '').strip() or DEFAULT_API_BASE_URL


def classify_provider(base_url: str) -> ProviderFamily:
    """URL substring check is the whole detection rule; nothing else is consulted."""
    if ANTHROPIC_DOMAIN in effective_base_url(base_url).lower():
        return 'anthropic'
    return 'openai_compatible'


def create_assistant(api_key: str, base_url: str, settings: Settings, notify: NotifyFunc) -> BaseAssistant:
    effective = effective_base_url(base_url)
    if classify_provider(effective) == 'anthropic':
        return AnthropicAssistant(
            api_key,
            effective,
            settings.modelName,
            settings.maxTokens,
            notify,
        )
    return OpenAIAssistant(
        api_key,
        effective,
        settings.modelName,
        settings.maxTokens,
        settings.speechModelName,
        notify,
    )
