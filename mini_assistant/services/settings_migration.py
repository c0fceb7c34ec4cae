# File: mini_assistant/services/settings_migration.py
# Project: Mini Assistant Sidecar
# Description: Pure transform from legacy or partial settings blobs into a patch over the current schema.

# Copyright (C) 2025 Tencent. All rights reserved.
# License: Licensed under the License Terms of Youtu-Tip (see license at repository root).
# Warranty: Provided on an "AS IS" basis, without warranties or conditions of any kind.
# Modifications must retain this notice.

from __future__ import annotations

from typing import Any, Dict, Optional

from ..core.config import DEFAULT_API_BASE_URL, DEFAULT_MAX_TOKENS, DEFAULT_SPEECH_MODEL
from ..core.settings import normalize_slot, parse_int_prefix

# 旧版单一 key 字段，按优先级依次尝试。
LEGACY_KEY_FIELDS = ('apiKey', 'openAIapiKey', 'anthropicApiKey')

OBSOLETE_FIELDS = (
    'openAIapiKey',
    'anthropicApiKey',
    'apiKey',
    'apiBaseUrl',
    'apiKey3',
    'apiBaseUrl3',
    'imageProvider',
    'imageModelName',
    'imgFolder',
    'mySetting',
)


def _as_text(value: Any) -> str:
    if value is None:
        return ''
    return str(value)


def _legacy_api_key(data: Dict[str, Any]) -> Optional[str]:
    for field in LEGACY_KEY_FIELDS:
        value = data.get(field)
        if isinstance(value, str) and value.strip():
            return value.strip()
    return None


def _legacy_base_url(data: Dict[str, Any]) -> str:
    value = data.get('apiBaseUrl')
    if isinstance(value, str) and value.strip():
        return value.strip()
    return DEFAULT_API_BASE_URL


def _migrate_max_tokens(data: Dict[str, Any], migrated: Dict[str, Any]) -> int:
    raw = data.get('maxTokens')
    if raw is None:
        raw = migrated.get('maxTokens')
    parsed = parse_int_prefix(raw)
    # 0 既表示“未设置”也表示“显式为 0”，这里不做区分。
    if parsed is None or parsed < 0:
        return DEFAULT_MAX_TOKENS
    return parsed


def migrate_settings(data: Any) -> Dict[str, Any]:
    """Normalize a persisted settings blob into a patch over the defaults.

    Absent input yields an empty patch. Legacy single-provider keys seed slot 1
    only when slot 1 has no key of its own, slot selectors collapse to 1 or 2,
    ``maxTokens`` is re-parsed and clamped, and obsolete fields are dropped.
    The input is never mutated.
    """
    if not data or not isinstance(data, dict):
        return {}
    migrated: Dict[str, Any] = dict(data)

    if not isinstance(migrated.get('apiKey1'), str):
        migrated['apiKey1'] = _legacy_api_key(data) or ''
    migrated['apiKey1'] = _as_text(migrated.get('apiKey1')).strip()
    migrated['apiKey2'] = _as_text(migrated.get('apiKey2')).strip()

    if not isinstance(migrated.get('apiBaseUrl1'), str):
        migrated['apiBaseUrl1'] = _legacy_base_url(data)
    migrated['apiBaseUrl1'] = _as_text(migrated.get('apiBaseUrl1')).strip()
    migrated['apiBaseUrl2'] = _as_text(migrated.get('apiBaseUrl2')).strip()
    if not migrated['apiBaseUrl1']:
        migrated['apiBaseUrl1'] = DEFAULT_API_BASE_URL

    migrated['textProvider'] = normalize_slot(migrated.get('textProvider'))
    migrated['speechProvider'] = normalize_slot(migrated.get('speechProvider'))

    speech_model = migrated.get('speechModelName')
    if not isinstance(speech_model, str) or not speech_model.strip():
        migrated['speechModelName'] = DEFAULT_SPEECH_MODEL

    migrated['maxTokens'] = _migrate_max_tokens(data, migrated)

    for field in OBSOLETE_FIELDS:
        migrated.pop(field, None)
    return migrated
