# File: mini_assistant/services/settings_manager.py
# Project: Mini Assistant Sidecar
# Description: Thread-safe settings loader/writer that migrates legacy blobs, merges defaults,
# and validates settings-UI patches before persisting them.

# Copyright (C) 2025 Tencent. All rights reserved.
# License: Licensed under the License Terms of Youtu-Tip (see license at repository root).
# Warranty: Provided on an "AS IS" basis, without warranties or conditions of any kind.
# Modifications must retain this notice.

from __future__ import annotations

import json
from pathlib import Path
from threading import RLock
from typing import Any, Dict, Optional

import structlog
from pydantic import ValidationError

from ..core.config import USER_SETTINGS_FILE
from ..core.settings import Settings, normalize_slot, parse_int_prefix
from .settings_migration import migrate_settings

logger = structlog.get_logger(__name__)

MAX_TOKENS_INPUT_ERROR = 'Max tokens must be a positive number or blank.'

# 设置页会 trim 的文本字段；language 原样保存。
TRIMMED_FIELDS = ('apiKey1', 'apiBaseUrl1', 'apiKey2', 'apiBaseUrl2', 'modelName', 'speechModelName')

# 这些字段变化后需要重建 capability -> assistant 映射。
ASSISTANT_FIELDS = frozenset(
    {
        'apiKey1',
        'apiBaseUrl1',
        'apiKey2',
        'apiBaseUrl2',
        'textProvider',
        'speechProvider',
        'modelName',
        'speechModelName',
        'maxTokens',
    }
)


def parse_max_tokens_input(value: Any) -> int:
    """Validate a max-tokens entry typed into the settings form; blank means 0."""
    if value is None:
        return 0
    if isinstance(value, bool):
        raise ValueError(MAX_TOKENS_INPUT_ERROR)
    if isinstance(value, int):
        parsed = value
    else:
        text = str(value).strip()
        if not text:
            return 0
        # 与设置页一致按前导整数解析："1.5" 取 1，"300 tokens" 取 300。
        parsed = parse_int_prefix(text)
        if parsed is None:
            raise ValueError(MAX_TOKENS_INPUT_ERROR)
    if parsed < 0:
        raise ValueError(MAX_TOKENS_INPUT_ERROR)
    return parsed


def affects_assistants(patch: Dict[str, Any]) -> bool:
    return any(key in ASSISTANT_FIELDS for key in patch)


class SettingsManager:
    def __init__(self, settings_path: Optional[Path] = None) -> None:
        self._path = settings_path or USER_SETTINGS_FILE
        # RLock 确保 API 请求线程与后台任务共用时的安全
        self._lock = RLock()
        self._settings = self._load_settings()

    @property
    def path(self) -> Path:
        return self._path

    def _read_raw(self) -> Any:
        if not self._path.exists():
            return None
        try:
            return json.loads(self._path.read_text(encoding='utf-8'))
        except (OSError, ValueError) as exc:
            logger.warning('settings.load.user_failed', error=str(exc), path=str(self._path))
            return None

    def _load_settings(self) -> Settings:
        # 读取旧格式或缺字段的数据后统一迁移，并立即按当前 schema 写回
        raw = self._read_raw()
        patch = migrate_settings(raw)
        settings = self._validate_merged(patch)
        if raw is not None and raw != settings.model_dump(mode='json'):
            logger.info('settings.load.migrated', path=str(self._path))
        self._write_settings_file(settings)
        return settings

    def _validate_merged(self, patch: Dict[str, Any]) -> Settings:
        merged = Settings().model_dump()
        merged.update(patch)
        try:
            return Settings.model_validate(merged)
        except ValidationError as exc:
            # 仅丢弃校验失败的字段，其余用户配置保留
            invalid = {str(error['loc'][0]) for error in exc.errors() if error.get('loc')}
            logger.warning('settings.load.invalid_fields', fields=sorted(invalid))
            defaults = Settings().model_dump()
            for field in invalid:
                if field in defaults:
                    merged[field] = defaults[field]
                else:
                    merged.pop(field, None)
            return Settings.model_validate(merged)

    def get_settings(self) -> Settings:
        # 返回副本以避免调用方修改内部状态
        with self._lock:
            return self._settings.model_copy(deep=True)

    def save_settings(self, payload: Dict[str, Any]) -> Settings:
        """Apply a partial update from the settings form and persist it.

        Raises ``ValueError`` on malformed input; the stored settings are left
        untouched in that case.
        """
        with self._lock:
            normalized = self._normalize_payload(payload)
            data = self._settings.model_dump()
            data.update(normalized)
            try:
                updated = Settings.model_validate(data)
            except ValidationError as exc:
                raise ValueError(str(exc)) from exc
            self._settings = updated
            self._write_settings_file(updated)
            logger.info('settings.saved', fields=sorted(normalized))
            return updated.model_copy(deep=True)

    def reset_to_default(self) -> Settings:
        with self._lock:
            self._settings = Settings()
            self._write_settings_file(self._settings)
            return self._settings.model_copy(deep=True)

    def _normalize_payload(self, payload: Dict[str, Any]) -> Dict[str, Any]:
        normalized = {key: value for key, value in payload.items() if key in Settings.model_fields}
        for field in TRIMMED_FIELDS:
            if field in normalized:
                normalized[field] = str(normalized[field] or '').strip()
        if 'maxTokens' in normalized:
            normalized['maxTokens'] = parse_max_tokens_input(normalized['maxTokens'])
        for field in ('textProvider', 'speechProvider'):
            if field in normalized:
                normalized[field] = normalize_slot(normalized[field])
        return normalized

    def _write_settings_file(self, settings: Settings) -> None:
        try:
            self._path.parent.mkdir(parents=True, exist_ok=True)
            self._path.write_text(settings.model_dump_json(indent=2), encoding='utf-8')
        except Exception as exc:  # pragma: no cover - best effort
            # 写入失败仅记录日志，不抛异常以避免中断主流程
            logger.warning('settings.write_failed', error=str(exc), path=str(self._path))
