# File: mini_assistant/api/routes_settings.py
# Project: Mini Assistant Sidecar
# Description: Settings endpoints for reading and patching settings; provider changes rebuild assistants.

# Copyright (C) 2025 Tencent. All rights reserved.
# License: Licensed under the License Terms of Youtu-Tip (see license at repository root).
# Warranty: Provided on an "AS IS" basis, without warranties or conditions of any kind.
# Modifications must retain this notice.

from fastapi import APIRouter, Depends, HTTPException

from ..core.deps import get_assistant_registry, get_notice_board, get_settings_manager
from ..schemas.settings import SettingsResponse, SettingsUpdate
from ..services.assistant_registry import AssistantRegistry
from ..services.notices import NoticeBoard
from ..services.settings_manager import SettingsManager, affects_assistants

router = APIRouter(prefix='/settings', tags=['settings'])


@router.get('', response_model=SettingsResponse)
def read_settings(manager: SettingsManager = Depends(get_settings_manager)) -> SettingsResponse:
    """Return the current migrated settings payload."""
    return manager.get_settings()


@router.put('', response_model=SettingsResponse)
async def update_settings(
    payload: SettingsUpdate,
    manager: SettingsManager = Depends(get_settings_manager),
    registry: AssistantRegistry = Depends(get_assistant_registry),
    notices: NoticeBoard = Depends(get_notice_board),
) -> SettingsResponse:
    """Persist a partial settings update and return the latest snapshot."""
    # model_dump(exclude_unset=True) keeps untouched fields out of the patch.
    data = payload.model_dump(exclude_unset=True)
    try:
        updated = manager.save_settings(data)
    except ValueError as exc:
        notices.show(str(exc))
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    if affects_assistants(data):
        registry.rebuild(updated)
        # 设置页逐键保存，被替换的客户端需要及时释放连接池。
        await registry.close_retired()
    return updated


@router.post('/reset', response_model=SettingsResponse)
async def reset_settings(
    manager: SettingsManager = Depends(get_settings_manager),
    registry: AssistantRegistry = Depends(get_assistant_registry),
) -> SettingsResponse:
    """Restore defaults; every provider slot ends up unconfigured."""
    settings = manager.reset_to_default()
    registry.rebuild(settings)
    await registry.close_retired()
    return settings
