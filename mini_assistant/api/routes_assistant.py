# File: mini_assistant/api/routes_assistant.py
# Project: Mini Assistant Sidecar
# Description: Command endpoints for prompt-on-selection, speech-to-text and read-aloud.

# Copyright (C) 2025 Tencent. All rights reserved.
# License: Licensed under the License Terms of Youtu-Tip (see license at repository root).
# Warranty: Provided on an "AS IS" basis, without warranties or conditions of any kind.
# Modifications must retain this notice.

from fastapi import APIRouter, Depends, File, UploadFile

from ..core.deps import get_commands, get_notice_board
from ..schemas.assistant import AssistantResponse, Notice, PromptRequest, SpeakRequest
from ..services.commands import AssistantCommands
from ..services.notices import NoticeBoard

router = APIRouter(prefix='/assistant', tags=['assistant'])


@router.post('/prompt', response_model=AssistantResponse)
async def run_prompt(
    payload: PromptRequest,
    commands: AssistantCommands = Depends(get_commands),
    notices: NoticeBoard = Depends(get_notice_board),
) -> AssistantResponse:
    """Return the text that should replace the editor selection."""
    text = await commands.run_prompt(payload.prompt_text, payload.selected_text)
    return AssistantResponse(text=text, notices=notices.drain())


@router.post('/transcribe', response_model=AssistantResponse)
async def transcribe(
    audio: UploadFile = File(...),
    commands: AssistantCommands = Depends(get_commands),
    notices: NoticeBoard = Depends(get_notice_board),
) -> AssistantResponse:
    content = await audio.read()
    # openai SDK accepts (filename, bytes, content_type) tuples for uploads.
    upload = (audio.filename or 'recording.webm', content, audio.content_type or 'application/octet-stream')
    text = await commands.speech_to_text(upload)
    return AssistantResponse(text=text, notices=notices.drain())


@router.post('/speak', response_model=AssistantResponse)
async def speak(
    payload: SpeakRequest,
    commands: AssistantCommands = Depends(get_commands),
    notices: NoticeBoard = Depends(get_notice_board),
) -> AssistantResponse:
    await commands.read_aloud(payload.text)
    return AssistantResponse(text=None, notices=notices.drain())


@router.get('/notices', response_model=list[Notice])
def drain_notices(notices: NoticeBoard = Depends(get_notice_board)) -> list[Notice]:
    """Hand pending notices to the host, e.g. ones raised by settings validation."""
    return notices.drain()
