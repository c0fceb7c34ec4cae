# File: mini_assistant/services/notices.py
# Project: Mini Assistant Sidecar
# Description: In-memory board of user-visible notices raised by assistants and commands.

# Copyright (C) 2025 Tencent. All rights reserved.
# License: Licensed under the License Terms of Youtu-Tip (see license at repository root).
# Warranty: Provided on an "AS IS" basis, without warranties or conditions of any kind.
# Modifications must retain this notice.

from __future__ import annotations

import time
import uuid
from collections import deque
from threading import Lock
from typing import Callable, Deque, List

import structlog

from ..schemas.assistant import Notice

logger = structlog.get_logger(__name__)

NotifyFunc = Callable[[str], None]


class NoticeBoard:
    def __init__(self, max_pending: int = 50) -> None:
        # 有界队列：宿主长时间不拉取时丢弃最旧的提示。
        self._pending: Deque[Notice] = deque(maxlen=max_pending)
        self._lock = Lock()

    def show(self, message: object) -> None:
        text = str(message or '').strip()
        if not text:
            return
        notice = Notice(id=uuid.uuid4().hex, message=text, created_at=time.time())
        with self._lock:
            self._pending.append(notice)
        logger.info('notice.shown', message=text)

    def drain(self) -> List[Notice]:
        with self._lock:
            notices = list(self._pending)
            self._pending.clear()
        return notices
