"""
REST API 响应模式

定义 FastAPI 的响应 Pydantic 模型。
"""
from pydantic import BaseModel, Field


class HealthResponse(BaseModel):
    """健康检查响应"""
    status: str
    version: str
    uptime: float


class DetailedHealthResponse(HealthResponse):
    """详细健康检查响应"""
    dependencies: dict[str, str] = Field(default_factory=dict)


class LanguageResponse(BaseModel):
    """语言执行配置"""
    language: str
    image: str
    timeout_ms: int
    compiled: bool


class LanguageListResponse(BaseModel):
    """支持的语言列表"""
    languages: list[LanguageResponse]
