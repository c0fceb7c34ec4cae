# File: mini_assistant/api/routes_chat.py
# Project: Mini Assistant Sidecar
# Description: Websocket endpoint that streams chat completions as full-text render events.

# Copyright (C) 2025 Tencent. All rights reserved.
# License: Licensed under the License Terms of Youtu-Tip (see license at repository root).
# Warranty: Provided on an "AS IS" basis, without warranties or conditions of any kind.
# Modifications must retain this notice.

from fastapi import APIRouter, Depends, WebSocket, WebSocketDisconnect
from pydantic import ValidationError
import structlog

from ..core.deps import get_commands_ws, get_notice_board_ws
from ..schemas.assistant import ChatRequest
from ..services.commands import AssistantCommands
from ..services.notices import NoticeBoard

router = APIRouter(tags=['chat'])
logger = structlog.get_logger(__name__)


class WebSocketRenderTarget:
    """Forwards every render to the client; each event carries the whole text so far."""

    def __init__(self, websocket: WebSocket) -> None:
        self._websocket = websocket

    async def render(self, text: str) -> None:
        await self._websocket.send_json({'event': 'render', 'content': text})


async def _send_notices(websocket: WebSocket, notices: NoticeBoard) -> None:
    for notice in notices.drain():
        await websocket.send_json({'event': 'notice', 'content': notice.message})


@router.websocket('/chat')
async def chat_socket(
    websocket: WebSocket,
    commands: AssistantCommands = Depends(get_commands_ws),
    notices: NoticeBoard = Depends(get_notice_board_ws),
):
    await websocket.accept()
    if commands.open_chat() is None:
        await _send_notices(websocket, notices)
        await websocket.close(code=4001)
        return
    logger.info('chat websocket connected')
    try:
        while True:
            payload = await websocket.receive_text()
            try:
                # 非 JSON 文本与字段错误同样以 ValidationError 报告。
                request = ChatRequest.model_validate_json(payload)
            except ValidationError as exc:
                await websocket.send_json({'event': 'error', 'content': str(exc)})
                continue
            if not request.messages:
                continue
            target = WebSocketRenderTarget(websocket) if request.stream else None
            text = await commands.chat(request.messages, target)
            await _send_notices(websocket, notices)
            await websocket.send_json({'event': 'done', 'content': text or ''})
    except WebSocketDisconnect:
        # The in-flight request (if any) has already completed; nothing to cancel.
        logger.info('chat websocket disconnected')
