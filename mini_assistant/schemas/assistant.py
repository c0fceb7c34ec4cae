# File: mini_assistant/schemas/assistant.py
# Project: Mini Assistant Sidecar
# Description: Request and response models for prompt, transcription and read-aloud commands.

# Copyright (C) 2025 Tencent. All rights reserved.
# License: Licensed under the License Terms of Youtu-Tip (see license at repository root).
# Warranty: Provided on an "AS IS" basis, without warranties or conditions of any kind.
# Modifications must retain this notice.

from __future__ import annotations

from typing import Any, List, Optional

from pydantic import BaseModel, Field


class Notice(BaseModel):
    id: str
    message: str
    created_at: float


class PromptRequest(BaseModel):
    prompt_text: str
    selected_text: str = ''


class SpeakRequest(BaseModel):
    text: str


class ChatRequest(BaseModel):
    # messages 由宿主维护，sidecar 不保存多轮历史。
    messages: List[dict[str, Any]]
    stream: bool = True


class AssistantResponse(BaseModel):
    """Result of a host command; ``text`` is None when the failure was already reported as a notice.

    ``notices`` drains the single process-wide board, so it can also carry notices
    raised by a concurrent command or chat socket. The sidecar serves one local user.
    """
    text: Optional[str] = None
    notices: List[Notice] = Field(default_factory=list)
