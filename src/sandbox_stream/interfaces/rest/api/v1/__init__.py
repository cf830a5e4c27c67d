"""
API v1 路由包

包含所有 v1 版本的 API 路由。
"""
from sandbox_stream.interfaces.rest.api.v1 import health
from sandbox_stream.interfaces.rest.api.v1 import languages

__all__ = ["health", "languages"]
