# File: mini_assistant/api/routes_health.py
# Project: Mini Assistant Sidecar
# Description: Health endpoint exposing status, version, and which capabilities are configured.

# Copyright (C) 2025 Tencent. All rights reserved.
# License: Licensed under the License Terms of Youtu-Tip (see license at repository root).
# Warranty: Provided on an "AS IS" basis, without warranties or conditions of any kind.
# Modifications must retain this notice.

from fastapi import APIRouter, Depends

from ..core.deps import get_assistant_registry
from ..services.assistant_registry import AssistantRegistry
from ..version import SIDECAR_VERSION

router = APIRouter(prefix='/health', tags=['health'])


@router.get('', summary='Health check')
async def health_check(registry: AssistantRegistry = Depends(get_assistant_registry)):
    capabilities = {
        capability: (assistant.provider if assistant else None)
        for capability, assistant in registry.snapshot().items()
    }
    return {'status': 'ok', 'version': SIDECAR_VERSION, 'capabilities': capabilities}
