"""配置包"""
from sandbox_stream.infrastructure.config.settings import Settings, get_settings

__all__ = ["Settings", "get_settings"]
