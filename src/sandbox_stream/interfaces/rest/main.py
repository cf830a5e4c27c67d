"""
FastAPI 主应用

执行服务的 FastAPI 应用入口：WebSocket 执行端点与健康检查 API。
"""
from contextlib import asynccontextmanager
from typing import AsyncGenerator, Optional

from fastapi import FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from sandbox_stream import __version__
from sandbox_stream.infrastructure.config.settings import Settings, get_settings
from sandbox_stream.infrastructure.container_scheduler.base import IContainerEngine
from sandbox_stream.infrastructure.dependencies import (
    cleanup_dependencies,
    initialize_dependencies,
)
from sandbox_stream.infrastructure.logging import configure_logging, get_logger
from sandbox_stream.interfaces.rest.api.v1 import health, languages
from sandbox_stream.interfaces.websocket import execution_gateway

logger = get_logger(__name__)


def create_app(
    settings: Optional[Settings] = None,
    engine: Optional[IContainerEngine] = None,
) -> FastAPI:
    """
    创建 FastAPI 应用

    使用工厂模式创建应用，便于测试时注入配置与容器引擎。
    """
    settings = settings or get_settings()

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
        """
        应用生命周期管理

        启动时创建容器引擎与执行服务，关闭时释放 Docker 连接。
        """
        logger.info("Starting execution service", environment=settings.environment)
        initialize_dependencies(app, settings=settings, engine=engine)
        yield
        logger.info("Shutting down execution service")
        await cleanup_dependencies(app)

    app = FastAPI(
        title=settings.app_name,
        description="Sandboxed code execution with streamed output",
        version=__version__,
        debug=settings.debug,
        lifespan=lifespan,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    _register_exception_handlers(app)
    _register_routes(app)
    return app


def _register_exception_handlers(app: FastAPI) -> None:
    """注册异常处理器"""

    @app.exception_handler(Exception)
    async def global_exception_handler(
        request: Request,
        exc: Exception
    ) -> JSONResponse:
        """全局异常处理"""
        logger.error(
            "Unhandled exception",
            path=request.url.path,
            method=request.method,
            error=str(exc),
            exc_info=exc,
        )
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={
                "error": "Internal Server Error",
                "message": "An unexpected error occurred",
                "detail": str(exc) if app.debug else None,
            },
        )


def _register_routes(app: FastAPI) -> None:
    """注册路由"""
    app.include_router(health.router, prefix="/api/v1")
    app.include_router(languages.router, prefix="/api/v1")
    app.include_router(execution_gateway.router)

    @app.get("/", tags=["root"])
    async def root() -> dict:
        """根端点"""
        return {
            "name": app.title,
            "version": __version__,
            "status": "operational",
            "websocket": ["/ws", "/"],
        }


def entry_point() -> None:
    """命令行入口：sandbox-stream"""
    import uvicorn

    settings = get_settings()
    configure_logging(log_level=settings.log_level, log_format=settings.log_format)
    uvicorn.run(
        create_app(settings),
        host=settings.host,
        port=settings.port,
        log_level=settings.log_level.lower(),
        ws="websockets",
    )


if __name__ == "__main__":
    entry_point()
