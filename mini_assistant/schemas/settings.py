# File: mini_assistant/schemas/settings.py
# Project: Mini Assistant Sidecar
# Description: Pydantic schemas for reading settings and patching them from the settings form.

# Copyright (C) 2025 Tencent. All rights reserved.
# License: Licensed under the License Terms of Youtu-Tip (see license at repository root).
# Warranty: Provided on an "AS IS" basis, without warranties or conditions of any kind.
# Modifications must retain this notice.

from __future__ import annotations

from typing import Optional, Union

from pydantic import BaseModel

from ..core.settings import Settings


class SettingsResponse(Settings):
    """Public-facing settings payload returned by the API layer."""
    pass


class SettingsUpdate(BaseModel):
    """Partial update payload; form fields arrive as typed text, so slots and max tokens accept strings."""
    apiKey1: Optional[str] = None
    apiBaseUrl1: Optional[str] = None
    apiKey2: Optional[str] = None
    apiBaseUrl2: Optional[str] = None
    textProvider: Optional[Union[int, str]] = None
    speechProvider: Optional[Union[int, str]] = None
    modelName: Optional[str] = None
    speechModelName: Optional[str] = None
    maxTokens: Optional[Union[int, str]] = None
    replaceSelection: Optional[bool] = None
    language: Optional[str] = None
