# File: mini_assistant/core/settings.py
# Project: Mini Assistant Sidecar
# Description: Settings model for the two provider slots plus slot normalization shared by migration and resolver.

# Copyright (C) 2025 Tencent. All rights reserved.
# License: Licensed under the License Terms of Youtu-Tip (see license at repository root).
# Warranty: Provided on an "AS IS" basis, without warranties or conditions of any kind.
# Modifications must retain this notice.

from __future__ import annotations

import re
from typing import Any, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from .config import (
    DEFAULT_API_BASE_URL,
    DEFAULT_MAX_TOKENS,
    DEFAULT_SPEECH_MODEL,
    DEFAULT_TEXT_MODEL,
)

ProviderSlot = Literal[1, 2]
Capability = Literal['text', 'speech']

CAPABILITIES: tuple[Capability, ...] = ('text', 'speech')

_INT_PREFIX = re.compile(r'^\s*([+-]?\d+)')


def parse_int_prefix(value: Any) -> Optional[int]:
    """Parse the leading integer of ``value`` the way a lenient text field would.

    ``"2abc"`` gives 2 and ``"3.7"`` gives 3; blanks, booleans and anything
    without leading digits give ``None``.
    """
    if value is None or isinstance(value, bool):
        return None
    match = _INT_PREFIX.match(str(value))
    if not match:
        return None
    return int(match.group(1))


def normalize_slot(value: Any) -> ProviderSlot:
    """Map any stored or submitted slot value onto 1 or 2 (only exact 2 selects slot 2)."""
    if parse_int_prefix(value) == 2:
        return 2
    return 1


class Settings(BaseModel):
    """Persisted assistant settings; the on-disk blob uses the same camelCase keys."""
    apiKey1: str = ''
    apiBaseUrl1: str = DEFAULT_API_BASE_URL
    apiKey2: str = ''
    apiBaseUrl2: str = ''
    textProvider: ProviderSlot = 1
    speechProvider: ProviderSlot = 1
    modelName: str = DEFAULT_TEXT_MODEL
    speechModelName: str = DEFAULT_SPEECH_MODEL
    maxTokens: int = Field(default=DEFAULT_MAX_TOKENS, ge=0)
    replaceSelection: bool = True
    language: str = ''

    model_config = ConfigDict(extra='ignore', validate_assignment=True)

    @field_validator('textProvider', 'speechProvider', mode='before')
    @classmethod
    def _coerce_slot(cls, value: Any) -> ProviderSlot:
        return normalize_slot(value)

    def slot_for(self, capability: Capability) -> ProviderSlot:
        """Return the provider slot configured for a capability."""
        if capability == 'speech':
            return normalize_slot(self.speechProvider)
        return normalize_slot(self.textProvider)

    def api_key_for(self, slot: ProviderSlot) -> str:
        return self.apiKey2 if slot == 2 else self.apiKey1

    def base_url_for(self, slot: ProviderSlot) -> str:
        return self.apiBaseUrl2 if slot == 2 else self.apiBaseUrl1

