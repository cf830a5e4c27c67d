"""
应用配置

使用 Pydantic Settings 管理应用配置。
"""
from functools import lru_cache

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """应用配置类"""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # ============== 应用配置 ==============
    app_name: str = Field(default="Sandbox Stream")
    app_version: str = Field(default="0.1.0")
    environment: str = Field(default="development")
    debug: bool = Field(default=False)

    # ============== 服务器配置 ==============
    host: str = Field(default="0.0.0.0")
    port: int = Field(default=8080)

    # ============== Docker 配置 ==============
    docker_host: str = Field(default="unix:///var/run/docker.sock")
    container_name_prefix: str = Field(default="sandbox-exec")
    container_stop_timeout: int = Field(default=1, ge=0, description="docker stop 的宽限时间（秒）")
    prune_on_failure: bool = Field(default=True, description="执行失败后清理悬空镜像")

    # ============== 执行配置 ==============
    # 覆盖所有语言的超时时间（毫秒），None 表示使用各语言默认值
    timeout_override_ms: int | None = Field(default=None, ge=100, le=600_000)

    # ============== 日志配置 ==============
    log_level: str = Field(default="INFO")
    log_format: str = Field(default="text")  # json, text

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        allowed = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}
        if v.upper() not in allowed:
            raise ValueError(f"log_level must be one of {allowed}")
        return v.upper()

    @field_validator("log_format")
    @classmethod
    def validate_log_format(cls, v: str) -> str:
        allowed = {"json", "text"}
        if v not in allowed:
            raise ValueError(f"log_format must be one of {allowed}")
        return v

    @field_validator("environment")
    @classmethod
    def validate_environment(cls, v: str) -> str:
        allowed = {"development", "staging", "production"}
        if v not in allowed:
            raise ValueError(f"environment must be one of {allowed}")
        return v

    @field_validator("docker_host")
    @classmethod
    def validate_docker_host(cls, v: str) -> str:
        # 确保 docker_host 有正确的协议前缀
        if not v.startswith(("unix://", "tcp://", "http://", "https://")):
            return f"unix://{v}"
        return v


@lru_cache()
def get_settings() -> Settings:
    """
    获取配置单例

    使用 lru_cache 确保配置只加载一次。
    """
    return Settings()
