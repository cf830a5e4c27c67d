"""
语言 REST API 路由

列出支持的语言及其执行配置。
"""
from fastapi import APIRouter, Depends

from sandbox_stream.domain.services.language_registry import LanguageRegistry
from sandbox_stream.infrastructure.dependencies import get_language_registry
from sandbox_stream.interfaces.rest.schemas.response import (
    LanguageListResponse,
    LanguageResponse,
)

router = APIRouter(prefix="/languages", tags=["languages"])


@router.get("", response_model=LanguageListResponse)
async def list_languages(
    registry: LanguageRegistry = Depends(get_language_registry),
) -> LanguageListResponse:
    """支持的语言列表"""
    return LanguageListResponse(
        languages=[
            LanguageResponse(
                language=profile.language.value,
                image=profile.image,
                timeout_ms=profile.timeout_ms,
                compiled=profile.compiled,
            )
            for profile in registry
        ]
    )
