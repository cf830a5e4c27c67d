"""
沙箱执行应用服务

编排一次执行的完整生命周期：

    Idle -> Provisioning -> Running -> {Completed | TimedOut | Aborted | Failed}

四个终态互斥，由 ExecutionHandle.terminate() 闩锁保证。容器清理只在执行任务的
finally 中进行，因此无论经由哪条路径结束，每个句柄恰好清理一次。
"""
import asyncio
from typing import AsyncIterator, Optional

from sandbox_stream.domain.entities.execution_handle import ExecutionHandle
from sandbox_stream.domain.ports.message_sink_port import IMessageSink
from sandbox_stream.domain.services.output_formatter import (
    classify_fault,
    describe_fault,
    format_output,
)
from sandbox_stream.domain.value_objects.client_message import ClientMessage
from sandbox_stream.domain.value_objects.execution_profile import ExecutionProfile
from sandbox_stream.domain.value_objects.execution_request import ExecutionRequest
from sandbox_stream.domain.value_objects.execution_status import ExecutionPhase
from sandbox_stream.domain.value_objects.output_frame import OutputFrame
from sandbox_stream.domain.value_objects.resource_limit import SandboxLimits
from sandbox_stream.infrastructure.container_scheduler.base import (
    ContainerConfig,
    IContainerEngine,
)
from sandbox_stream.infrastructure.container_scheduler.stream_demuxer import StreamDemultiplexer
from sandbox_stream.infrastructure.logging import bind_context, get_logger
from sandbox_stream.shared.errors.domain import ExecutionTimeoutError
from sandbox_stream.shared.errors.infrastructure import ContainerNotFoundError

logger = get_logger(__name__)

BASE_ENV = {
    "LANG": "C.UTF-8",
    "PATH": "/usr/local/sbin:/usr/local/bin:/usr/sbin:/usr/bin:/sbin:/bin",
    "NODE_ENV": "production",
}

NO_OUTPUT_TEXT = "(no output)"


class ExecutionService:
    """
    沙箱执行服务

    不持有任何跨执行的状态：句柄由发起执行的连接持有，并传给需要取消它的一方。
    引擎错误不自动重试，客户端可以重新提交。
    """

    def __init__(
        self,
        engine: IContainerEngine,
        limits: Optional[SandboxLimits] = None,
        container_name_prefix: str = "sandbox-exec",
        stop_timeout: int = 1,
        prune_on_failure: bool = True,
    ):
        self._engine = engine
        self._limits = limits or SandboxLimits.default()
        self._container_name_prefix = container_name_prefix
        self._stop_timeout = stop_timeout
        self._prune_on_failure = prune_on_failure
        self._background_tasks: set[asyncio.Task] = set()

    # ============== 入口 ==============

    def execute(
        self,
        request: ExecutionRequest,
        profile: ExecutionProfile,
        sink: IMessageSink,
    ) -> ExecutionHandle:
        """
        启动一次执行

        请求必须已经校验过。返回的句柄由调用方持有，用于中止或等待执行。
        """
        handle = ExecutionHandle(
            session_id=request.session_id,
            language=profile.language.value,
        )
        handle.runner = asyncio.create_task(
            self.run(handle, request, profile, sink),
            name=f"execution-{handle.execution_id}",
        )
        return handle

    async def wait(self, handle: ExecutionHandle) -> None:
        """
        等待执行任务（含清理与超时通知）结束

        等待方被取消时不会取消执行任务。
        """
        if handle.runner is not None:
            await asyncio.wait({handle.runner})
        # 执行任务被再次取消时，清理任务可能仍在停止容器
        if handle.cleanup is not None:
            await asyncio.wait({handle.cleanup})
        # 超时路径下计时器在执行任务结束后仍可能在发送超时消息
        if handle.timer is not None:
            await asyncio.wait({handle.timer})

    async def abort(self, handle: ExecutionHandle) -> bool:
        """
        连接关闭时中止执行，不再向客户端发送任何消息

        Returns:
            是否由本次调用终止了执行
        """
        never_started = handle.phase == ExecutionPhase.IDLE
        if not handle.terminate(ExecutionPhase.ABORTED):
            return False

        logger.info(
            "Aborting execution",
            execution_id=handle.execution_id,
            session_id=handle.session_id,
        )
        handle.cancel_timer()
        if handle.runner is not None and not handle.runner.done():
            handle.runner.cancel()
        if never_started:
            # 任务在第一步之前被取消，不会进入 run() 的 finally
            await self._teardown(handle)
        return True

    async def on_timeout(
        self,
        handle: ExecutionHandle,
        sink: IMessageSink,
        timeout_ms: int,
    ) -> bool:
        """
        超时处理；执行已结束时为空操作

        Returns:
            是否由本次调用终止了执行
        """
        if not handle.terminate(ExecutionPhase.TIMED_OUT):
            logger.debug("Timeout ignored, execution already finished", execution_id=handle.execution_id)
            return False

        logger.warning(
            "Execution timed out",
            execution_id=handle.execution_id,
            timeout_ms=timeout_ms,
        )
        # 先取消执行任务（其 finally 停止容器），停止不依赖客户端是否在读取
        if handle.runner is not None and not handle.runner.done():
            handle.runner.cancel()
        await self._send(handle, sink, ClientMessage.error(ExecutionTimeoutError(timeout_ms).message))
        return True

    # ============== 状态机 ==============

    async def run(
        self,
        handle: ExecutionHandle,
        request: ExecutionRequest,
        profile: ExecutionProfile,
        sink: IMessageSink,
    ) -> None:
        """执行任务主体"""
        bind_context(
            execution_id=handle.execution_id,
            session_id=handle.session_id,
            language=handle.language,
        )
        try:
            handle.mark_provisioning()
            await self._send(handle, sink, ClientMessage.system(f"Executing {profile.language.value} code..."))
            await self._engine.ensure_image(profile.image)

            handle.timer = asyncio.create_task(
                self._watchdog(handle, sink, profile),
                name=f"watchdog-{handle.execution_id}",
            )
            container_id = await self._provision_container(handle, request, profile)
            handle.mark_running(container_id)

            # 先附加再启动，AutoRemove 不会在附加前删掉已退出的容器
            async with self._engine.attach_output(container_id) as chunks:
                await self._engine.start_container(container_id)
                logger.info("Execution running", container_id=container_id)
                await self._relay_output(handle, chunks, sink)

            if handle.terminate(ExecutionPhase.COMPLETED):
                if not handle.has_output:
                    await self._send(handle, sink, ClientMessage.output(NO_OUTPUT_TEXT))
                await self._send(handle, sink, ClientMessage.end())
                logger.info("Execution completed", outputs=handle.output_count)
        except asyncio.CancelledError:
            # 超时或中止已持有闩锁；否则是服务关闭
            if handle.terminate(ExecutionPhase.ABORTED):
                logger.info("Execution cancelled by shutdown")
            raise
        except Exception as e:
            await self._fail(handle, sink, e)
        finally:
            if handle.phase != ExecutionPhase.TIMED_OUT:
                handle.cancel_timer()
            handle.cleanup = asyncio.ensure_future(self._teardown(handle))
            await asyncio.shield(handle.cleanup)

    async def _provision_container(
        self,
        handle: ExecutionHandle,
        request: ExecutionRequest,
        profile: ExecutionProfile,
    ) -> str:
        """创建容器，代码通过环境变量传入"""
        name = f"{self._container_name_prefix}-{handle.execution_id}"
        handle.assign_container(name)
        config = ContainerConfig(
            image=profile.image,
            name=name,
            command=profile.command,
            env_vars={**BASE_ENV, **profile.build_env(request.code)},
            labels={
                "sandbox-stream.execution": handle.execution_id,
                "sandbox-stream.session": handle.session_id,
                "sandbox-stream.language": profile.language.value,
            },
            limits=self._limits,
        )
        return await self._engine.create_container(config)

    async def _relay_output(
        self,
        handle: ExecutionHandle,
        chunks: AsyncIterator[bytes],
        sink: IMessageSink,
    ) -> None:
        """逐块解析输出流并立即转发，不做缓冲"""
        demuxer = StreamDemultiplexer()
        async for chunk in chunks:
            for frame in demuxer.feed(chunk):
                await self._relay_frame(handle, frame, sink)
        if demuxer.pending:
            logger.warning("Discarding incomplete log frame", pending_bytes=demuxer.pending)
        for frame in demuxer.flush():
            await self._relay_frame(handle, frame, sink)

    async def _relay_frame(
        self,
        handle: ExecutionHandle,
        frame: OutputFrame,
        sink: IMessageSink,
    ) -> None:
        if handle.terminated:
            return
        text = format_output(frame.text, frame.channel, handle.language)
        if not text.strip():
            return
        handle.record_output()
        await self._send(handle, sink, ClientMessage.from_frame(frame, text))

    async def _watchdog(self, handle: ExecutionHandle, sink: IMessageSink, profile: ExecutionProfile) -> None:
        await asyncio.sleep(profile.timeout_seconds)
        await self.on_timeout(handle, sink, profile.timeout_ms)

    async def _fail(self, handle: ExecutionHandle, sink: IMessageSink, error: Exception) -> None:
        """故障处理：分类、通知客户端、后台清理悬空镜像"""
        if not handle.terminate(ExecutionPhase.FAILED):
            logger.debug("Fault after termination ignored", error=str(error))
            return

        kind = classify_fault(error)
        logger.error(
            "Execution failed",
            fault=kind.value,
            error=str(error),
            exc_info=error,
        )
        await self._send(handle, sink, ClientMessage.error(describe_fault(error, kind)))
        if self._prune_on_failure:
            task = asyncio.create_task(self._prune_images())
            self._background_tasks.add(task)
            task.add_done_callback(self._background_tasks.discard)

    async def _prune_images(self) -> None:
        try:
            await self._engine.prune_images()
        except Exception as e:
            logger.warning("Image pruning failed", error=str(e))

    async def _teardown(self, handle: ExecutionHandle) -> None:
        """停止并删除容器；失败只记录日志"""
        handle.teardown_count += 1
        if handle.teardown_count > 1:
            logger.error("Duplicate teardown skipped", execution_id=handle.execution_id)
            return

        container_ref = handle.container_id or handle.container_ref
        if container_ref is None:
            return

        try:
            await self._engine.stop_container(container_ref, timeout=self._stop_timeout)
        except ContainerNotFoundError:
            logger.debug("Container already gone", container=container_ref)
        except Exception as e:
            logger.warning("Failed to stop container", container=container_ref, error=str(e))

        try:
            await self._engine.remove_container(container_ref, force=True)
        except Exception as e:
            logger.warning("Failed to remove container", container=container_ref, error=str(e))

        logger.info(
            "Execution torn down",
            container=container_ref,
            phase=handle.phase.value,
            duration_ms=handle.duration_ms,
        )

    async def _send(self, handle: ExecutionHandle, sink: IMessageSink, message: ClientMessage) -> bool:
        """发送消息；客户端已断开时静默失败"""
        try:
            await sink.send(message)
            return True
        except Exception as e:
            logger.debug(
                "Client unreachable, message dropped",
                execution_id=handle.execution_id,
                type=message.type.value,
                error=str(e),
            )
            return False

    async def close(self) -> None:
        """等待后台清理任务结束"""
        if self._background_tasks:
            await asyncio.gather(*self._background_tasks, return_exceptions=True)
