# File: mini_assistant/services/assistant_registry.py
# Project: Mini Assistant Sidecar
# Description: Resolves provider slots from settings and holds the capability -> assistant mapping,
# rebuilt wholesale on every relevant settings change.

# Copyright (C) 2025 Tencent. All rights reserved.
# License: Licensed under the License Terms of Youtu-Tip (see license at repository root).
# Warranty: Provided on an "AS IS" basis, without warranties or conditions of any kind.
# Modifications must retain this notice.

from __future__ import annotations

from contextlib import asynccontextmanager
from dataclasses import dataclass
from typing import AsyncIterator, Dict, List, Mapping, Optional

import structlog

from ..core.config import DEFAULT_API_BASE_URL
from ..core.settings import CAPABILITIES, Capability, ProviderSlot, Settings, normalize_slot
from .assistant_factory import AssistantFactory, create_assistant
from .assistants import BaseAssistant
from .notices import NotifyFunc

logger = structlog.get_logger(__name__)


@dataclass(frozen=True)
class ProviderConfig:
    slot: ProviderSlot
    api_key: str
    base_url: str

    @property
    def configured(self) -> bool:
        return bool(self.api_key)


def resolve_provider_config(settings: Settings, slot: object) -> ProviderConfig:
    """Read one slot's trimmed credentials; only slot 1 falls back to the default base URL."""
    normalized = normalize_slot(slot)
    api_key = (settings.api_key_for(normalized) or '').strip()
    base_url = (settings.base_url_for(normalized) or '').strip()
    if not base_url and normalized == 1:
        base_url = DEFAULT_API_BASE_URL
    return ProviderConfig(slot=normalized, api_key=api_key, base_url=base_url)


class AssistantRegistry:
    """Capability -> assistant map; replaced assistants are closed once no request holds them."""

    def __init__(self, notify: NotifyFunc, factory: AssistantFactory = create_assistant) -> None:
        self._notify = notify
        self._factory = factory
        self._assistants: Dict[Capability, Optional[BaseAssistant]] = {}
        # 以 id 计数：同一实例可能同时服务 text 和 speech。
        self._leases: Dict[int, int] = {}
        self._retired: List[BaseAssistant] = []

    def rebuild(self, settings: Settings) -> None:
        # 每次重建使用独立的 slot 缓存：两种能力指向同一 slot 时只构造一次。
        slot_cache: Dict[ProviderSlot, Optional[BaseAssistant]] = {}

        def resolve_slot(slot: ProviderSlot) -> Optional[BaseAssistant]:
            if slot in slot_cache:
                return slot_cache[slot]
            config = resolve_provider_config(settings, slot)
            assistant: Optional[BaseAssistant] = None
            if config.configured:
                assistant = self._factory(config.api_key, config.base_url, settings, self._notify)
            slot_cache[slot] = assistant
            return assistant

        assistants: Dict[Capability, Optional[BaseAssistant]] = {}
        for capability in CAPABILITIES:
            assistants[capability] = resolve_slot(settings.slot_for(capability))
        previous = self._assistants
        # 整体替换映射；进行中的请求仍持有旧实例。
        self._assistants = assistants
        current = {id(assistant) for assistant in assistants.values() if assistant is not None}
        for assistant in previous.values():
            if assistant is None or id(assistant) in current:
                continue
            if all(assistant is not retired for retired in self._retired):
                self._retired.append(assistant)
        logger.info(
            'assistants.rebuilt',
            text=self._describe('text'),
            speech=self._describe('speech'),
            retired=len(self._retired),
        )

    def get(self, capability: Capability) -> Optional[BaseAssistant]:
        return self._assistants.get(capability)

    def snapshot(self) -> Mapping[Capability, Optional[BaseAssistant]]:
        return dict(self._assistants)

    @asynccontextmanager
    async def lease(self, capability: Capability) -> AsyncIterator[Optional[BaseAssistant]]:
        """Hold the current assistant for one request so a rebuild cannot close it mid-call."""
        assistant = self.get(capability)
        if assistant is None:
            yield None
            return
        key = id(assistant)
        self._leases[key] = self._leases.get(key, 0) + 1
        try:
            yield assistant
        finally:
            remaining = self._leases[key] - 1
            if remaining:
                self._leases[key] = remaining
            else:
                del self._leases[key]
            await self.close_retired()

    async def close_retired(self) -> None:
        idle = [assistant for assistant in self._retired if id(assistant) not in self._leases]
        self._retired = [assistant for assistant in self._retired if id(assistant) in self._leases]
        for assistant in idle:
            await self._close(assistant)

    async def aclose(self) -> None:
        """Close every assistant, current and retired; used on shutdown."""
        pending = list(self._retired)
        for assistant in self._assistants.values():
            if assistant is not None and all(assistant is not seen for seen in pending):
                pending.append(assistant)
        self._assistants = {}
        self._retired = []
        for assistant in pending:
            await self._close(assistant)

    async def _close(self, assistant: BaseAssistant) -> None:
        try:
            await assistant.aclose()
        except Exception as exc:
            logger.warning('assistants.close_failed', assistant=repr(assistant), error=str(exc))

    def _describe(self, capability: Capability) -> Optional[str]:
        assistant = self._assistants.get(capability)
        return assistant.provider if assistant else None
