# File: mini_assistant/services/commands.py
# Project: Mini Assistant Sidecar
# Description: Host-facing commands (chat, prompt on selection, speech-to-text, read aloud)
# that look up the assistant for a capability and report missing configuration as notices.

# Copyright (C) 2025 Tencent. All rights reserved.
# License: Licensed under the License Terms of Youtu-Tip (see license at repository root).
# Warranty: Provided on an "AS IS" basis, without warranties or conditions of any kind.
# Modifications must retain this notice.

from __future__ import annotations

from contextlib import asynccontextmanager
from typing import Any, AsyncIterator, Optional, Sequence

import structlog

from ..core.settings import Capability
from .assistant_registry import AssistantRegistry
from .assistants import BaseAssistant, Message, RenderTarget
from .notices import NoticeBoard
from .settings_manager import SettingsManager

logger = structlog.get_logger(__name__)

CHAT_UNCONFIGURED = 'Configure a provider for chat in mini assistant settings.'
SPEECH_UNCONFIGURED = 'Configure a provider for speech-to-text in mini assistant settings.'


class AssistantCommands:
    def __init__(
        self,
        settings_manager: SettingsManager,
        registry: AssistantRegistry,
        notices: NoticeBoard,
    ) -> None:
        self._settings_manager = settings_manager
        self._registry = registry
        self._notices = notices

    def _report_unconfigured(self, capability: Capability, message: str) -> None:
        logger.info('command.unconfigured', capability=capability)
        self._notices.show(message)

    def _require(self, capability: Capability, message: str) -> Optional[BaseAssistant]:
        assistant = self._registry.get(capability)
        if assistant is None:
            self._report_unconfigured(capability, message)
        return assistant

    @asynccontextmanager
    async def _using(self, capability: Capability, message: str) -> AsyncIterator[Optional[BaseAssistant]]:
        # 取到的实例在整个请求期间保持不变，设置变更只影响后续请求。
        async with self._registry.lease(capability) as assistant:
            if assistant is None:
                self._report_unconfigured(capability, message)
            yield assistant

    def open_chat(self) -> Optional[BaseAssistant]:
        return self._require('text', CHAT_UNCONFIGURED)

    async def chat(
        self,
        messages: Sequence[Message],
        render_target: Optional[RenderTarget] = None,
    ) -> Optional[str]:
        async with self._using('text', CHAT_UNCONFIGURED) as assistant:
            if assistant is None:
                return None
            return await assistant.text_call(messages, render_target)

    async def run_prompt(self, prompt_text: str, selected_text: str) -> Optional[str]:
        """Answer a prompt about the editor selection; returns the replacement text."""
        selection = (selected_text or '').strip()
        async with self._using('text', CHAT_UNCONFIGURED) as assistant:
            if assistant is None:
                return None
            answer = await assistant.text_call([
                {'role': 'user', 'content': f'{prompt_text} : {selection}'},
            ])
        if not answer:
            return None
        if not self._settings_manager.get_settings().replaceSelection:
            answer = f'{selection}\n{answer.strip()}'
        return answer.strip()

    async def speech_to_text(self, audio: Any) -> Optional[str]:
        language = self._settings_manager.get_settings().language
        async with self._using('speech', SPEECH_UNCONFIGURED) as assistant:
            if assistant is None:
                return None
            return await assistant.transcribe_call(audio, language)

    async def read_aloud(self, text: str) -> None:
        async with self._using('text', CHAT_UNCONFIGURED) as assistant:
            if assistant is not None:
                await assistant.speak_call(text)
