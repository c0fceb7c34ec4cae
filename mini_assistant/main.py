# File: mini_assistant/main.py
# Project: Mini Assistant Sidecar
# Description: FastAPI application factory wiring settings, notices, assistants and routers onto app state.

# Copyright (C) 2025 Tencent. All rights reserved.
# License: Licensed under the License Terms of Youtu-Tip (see license at repository root).
# Warranty: Provided on an "AS IS" basis, without warranties or conditions of any kind.
# Modifications must retain this notice.

from __future__ import annotations

from contextlib import asynccontextmanager
from pathlib import Path
from typing import AsyncIterator, Optional

import structlog
from fastapi import FastAPI

from .api import routes_assistant, routes_chat, routes_health, routes_settings
from .core.logging import setup_logging
from .services.assistant_factory import AssistantFactory, create_assistant
from .services.assistant_registry import AssistantRegistry
from .services.commands import AssistantCommands
from .services.notices import NoticeBoard
from .services.settings_manager import SettingsManager
from .version import SIDECAR_VERSION


def create_app(
    settings_path: Optional[Path] = None,
    *,
    setup_logs: bool = True,
    factory: AssistantFactory = create_assistant,
) -> FastAPI:
    if setup_logs:
        setup_logging()
    logger = structlog.get_logger(__name__)

    settings_manager = SettingsManager(settings_path)
    notice_board = NoticeBoard()
    registry = AssistantRegistry(notice_board.show, factory=factory)
    # 启动时按当前设置构建一次，之后只在提供方相关字段变化时重建。
    registry.rebuild(settings_manager.get_settings())
    commands = AssistantCommands(settings_manager, registry, notice_board)

    @asynccontextmanager
    async def lifespan(_app: FastAPI) -> AsyncIterator[None]:
        yield
        await registry.aclose()
        logger.info('sidecar.stopped')

    app = FastAPI(title='Mini Assistant Sidecar', version=SIDECAR_VERSION, lifespan=lifespan)
    app.state.settings_manager = settings_manager
    app.state.notice_board = notice_board
    app.state.assistant_registry = registry
    app.state.commands = commands

    app.include_router(routes_health.router)
    app.include_router(routes_settings.router)
    app.include_router(routes_assistant.router)
    app.include_router(routes_chat.router)

    logger.info('sidecar.started', version=SIDECAR_VERSION, settings_path=str(settings_manager.path))
    return app
