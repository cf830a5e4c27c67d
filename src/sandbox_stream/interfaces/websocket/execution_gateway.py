"""
执行网关

每个 WebSocket 连接一个网关实例：解析请求信封、校验、派发给执行服务，
并在连接关闭时中止仍在进行的执行。
"""
import asyncio
import json
import uuid
from typing import Any, Optional

from fastapi import APIRouter, WebSocket
from pydantic import ValidationError

from sandbox_stream.application.services.execution_service import ExecutionService
from sandbox_stream.domain.entities.execution_handle import ExecutionHandle
from sandbox_stream.domain.ports.message_sink_port import IMessageSink
from sandbox_stream.domain.services.language_registry import LanguageRegistry
from sandbox_stream.domain.value_objects.client_message import ClientMessage
from sandbox_stream.domain.value_objects.execution_profile import ExecutionProfile
from sandbox_stream.domain.value_objects.execution_request import (
    MAX_CODE_BYTES,
    ExecutionRequest,
)
from sandbox_stream.infrastructure.dependencies import (
    get_execution_service,
    get_language_registry,
)
from sandbox_stream.infrastructure.logging import bind_context, clear_context, get_logger
from sandbox_stream.interfaces.websocket.schemas import ExecuteMessage
from sandbox_stream.shared.errors.domain import EmptyCodeError, InvalidRequestError

logger = get_logger(__name__)

router = APIRouter(tags=["execution"])

CONNECTED_TEXT = "Connected to execution service"
BUSY_TEXT = "An execution is already running for this session"


class WebSocketMessageSink(IMessageSink):
    """通过 WebSocket 发送 JSON 消息，串行化并发发送"""

    def __init__(self, websocket: WebSocket):
        self._websocket = websocket
        self._lock = asyncio.Lock()

    async def send(self, message: ClientMessage) -> None:
        async with self._lock:
            await self._websocket.send_json(message.to_dict())


class ExecutionGateway:
    """
    会话网关

    同一连接上同时只允许一个执行；执行进行中收到的新请求会被拒绝。
    """

    def __init__(
        self,
        websocket: WebSocket,
        service: ExecutionService,
        registry: LanguageRegistry,
        connection_id: Optional[str] = None,
    ):
        self._websocket = websocket
        self._service = service
        self._registry = registry
        self._connection_id = connection_id or f"conn_{uuid.uuid4().hex[:12]}"
        self._sink = WebSocketMessageSink(websocket)
        self._active: Optional[ExecutionHandle] = None

    @property
    def active_execution(self) -> Optional[ExecutionHandle]:
        return self._active

    async def serve(self) -> None:
        """处理连接直到客户端断开"""
        bind_context(connection_id=self._connection_id)
        logger.info("Client connected")
        try:
            await self._reply(ClientMessage.system(CONNECTED_TEXT, timestamp=False))
            while True:
                message = await self._websocket.receive()
                if message["type"] == "websocket.disconnect":
                    break
                raw = message.get("text")
                if raw is None:
                    raw = (message.get("bytes") or b"").decode("utf-8", errors="replace")
                await self.handle_message(raw)
        finally:
            await self.close()
            logger.info("Client disconnected")
            clear_context()

    async def handle_message(self, raw: str) -> Optional[ExecutionHandle]:
        """处理一条入站消息，校验失败时只回复错误，不创建容器"""
        try:
            request, profile = self.parse_request(raw)
        except InvalidRequestError as e:
            logger.info("Rejected request", reason=e.message)
            await self._reply(ClientMessage.error(e.message))
            return None

        if self._active is not None and self._active.is_active:
            logger.info("Rejected concurrent request", active_execution=self._active.execution_id)
            await self._reply(ClientMessage.error(BUSY_TEXT))
            return None

        self._active = self._service.execute(request, profile, self._sink)
        logger.info(
            "Execution dispatched",
            execution_id=self._active.execution_id,
            language=profile.language.value,
            session_id=request.session_id,
        )
        return self._active

    def parse_request(self, raw: str) -> tuple[ExecutionRequest, ExecutionProfile]:
        """
        解析并校验请求信封

        Raises:
            InvalidRequestError: JSON 无效、语言不支持或代码为空
        """
        try:
            payload: Any = json.loads(raw)
        except (TypeError, ValueError):
            raise InvalidRequestError("Invalid JSON format") from None
        if not isinstance(payload, dict):
            raise InvalidRequestError("Request must be a JSON object")

        try:
            message = ExecuteMessage.model_validate(payload)
        except ValidationError as e:
            fields = ", ".join(".".join(str(p) for p in err["loc"]) for err in e.errors())
            raise InvalidRequestError(f"Invalid request fields: {fields}") from None

        profile = self._registry.resolve(message.language)
        if not message.code.strip():
            raise EmptyCodeError()
        if len(message.code.encode("utf-8")) > MAX_CODE_BYTES:
            raise InvalidRequestError(f"Code exceeds the {MAX_CODE_BYTES // 1024} KiB limit")

        request = ExecutionRequest(
            code=message.code,
            language=profile.language.value,
            session_id=message.session_id or self._connection_id,
        )
        return request, profile

    async def close(self) -> None:
        """中止仍在进行的执行并等待清理完成"""
        handle = self._active
        if handle is None:
            return
        await self._service.abort(handle)
        await self._service.wait(handle)

    async def _reply(self, message: ClientMessage) -> None:
        try:
            await self._sink.send(message)
        except Exception as e:
            logger.debug("Client unreachable, reply dropped", error=str(e))


@router.websocket("/ws")
@router.websocket("/")
async def execution_endpoint(websocket: WebSocket) -> None:
    """代码执行 WebSocket 端点"""
    await websocket.accept()
    gateway = ExecutionGateway(
        websocket,
        service=get_execution_service(websocket),
        registry=get_language_registry(websocket),
    )
    await gateway.serve()
