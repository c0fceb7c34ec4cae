# File: mini_assistant/core/logging.py
# Project: Mini Assistant Sidecar
# Description: Logging setup for the sidecar using structlog and rotating file handlers with env-controlled level.

# Copyright (C) 2025 Tencent. All rights reserved.
# License: Licensed under the License Terms of Youtu-Tip (see license at repository root).
# Warranty: Provided on an "AS IS" basis, without warranties or conditions of any kind.
# Modifications must retain this notice.

from __future__ import annotations

import logging
import os
from logging.handlers import TimedRotatingFileHandler
from pathlib import Path
from typing import List, Optional

import structlog

from .config import LOG_DIR, LOG_TO_FILE


def _resolve_log_level() -> int:
    level_name = os.environ.get('MINI_ASSISTANT_LOG_LEVEL', 'INFO').upper()
    return getattr(logging, level_name, logging.INFO)


def setup_logging(log_dir: Optional[Path] = None, *, to_file: bool = LOG_TO_FILE) -> None:
    log_level = _resolve_log_level()
    stream_handler = logging.StreamHandler()
    stream_handler.setLevel(log_level)
    handlers: List[logging.Handler] = [stream_handler]
    if to_file:
        target_dir = log_dir or LOG_DIR
        target_dir.mkdir(parents=True, exist_ok=True)
        file_handler = TimedRotatingFileHandler(
            target_dir / 'sidecar.log',
            when='midnight',
            backupCount=7,
            encoding='utf-8',
        )
        file_handler.setLevel(log_level)
        handlers.append(file_handler)
    logging.basicConfig(
        level=log_level,
        format='%(asctime)s [%(levelname)s] %(name)s: %(message)s',
        handlers=handlers,
        force=True,
    )
    structlog.configure(
        processors=[
            structlog.processors.TimeStamper(fmt='iso'),
            structlog.processors.add_log_level,
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.dev.ConsoleRenderer(colors=False),
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
    )
