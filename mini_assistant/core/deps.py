# File: mini_assistant/core/deps.py
# Project: Mini Assistant Sidecar
# Description: FastAPI dependency providers exposing shared services from application state.

# Copyright (C) 2025 Tencent. All rights reserved.
# License: Licensed under the License Terms of Youtu-Tip (see license at repository root).
# Warranty: Provided on an "AS IS" basis, without warranties or conditions of any kind.
# Modifications must retain this notice.

from fastapi import Request, WebSocket

from ..services.assistant_registry import AssistantRegistry
from ..services.commands import AssistantCommands
from ..services.notices import NoticeBoard
from ..services.settings_manager import SettingsManager


def get_settings_manager(request: Request) -> SettingsManager:
    return request.app.state.settings_manager


def get_assistant_registry(request: Request) -> AssistantRegistry:
    return request.app.state.assistant_registry


def get_notice_board(request: Request) -> NoticeBoard:
    return request.app.state.notice_board


def get_commands(request: Request) -> AssistantCommands:
    return request.app.state.commands


def get_commands_ws(websocket: WebSocket) -> AssistantCommands:
    return websocket.app.state.commands


def get_notice_board_ws(websocket: WebSocket) -> NoticeBoard:
    return websocket.app.state.notice_board
