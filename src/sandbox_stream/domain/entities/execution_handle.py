"""
执行句柄实体

一次执行请求的全部可变状态，由发起连接独占持有。
"""
import asyncio
import uuid
from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional

from sandbox_stream.domain.value_objects.execution_status import ExecutionPhase


def _new_execution_id() -> str:
    return f"exec_{uuid.uuid4().hex[:12]}"


@dataclass(eq=False)
class ExecutionHandle:
    """
    执行句柄实体

    phase 同时充当一次性终止闩锁：自然结束、超时、连接关闭、引擎错误
    四条路径中第一个调用 terminate() 的获胜并负责后续处理，其余调用均为空操作。
    所有状态变更都在同一个事件循环内同步完成，无需加锁。
    """
    session_id: str
    language: str
    execution_id: str = field(default_factory=_new_execution_id)
    container_ref: Optional[str] = None  # 容器名称，在创建前分配
    container_id: Optional[str] = None
    phase: ExecutionPhase = ExecutionPhase.IDLE
    timer: Optional[asyncio.Task] = None
    runner: Optional[asyncio.Task] = None
    cleanup: Optional[asyncio.Task] = None  # 清理任务，执行任务再次被取消时仍可等待
    output_count: int = 0
    teardown_count: int = 0
    created_at: datetime = field(default_factory=datetime.now)
    finished_at: Optional[datetime] = None

    # ============== 领域行为 ==============

    def mark_provisioning(self) -> None:
        """标记为准备中"""
        if self.phase != ExecutionPhase.IDLE:
            raise ValueError(f"Cannot provision execution from phase: {self.phase}")
        self.phase = ExecutionPhase.PROVISIONING

    def assign_container(self, container_ref: str) -> None:
        """在创建容器之前分配容器名称，清理时即使创建调用被中断也能定位容器"""
        self.container_ref = container_ref

    def mark_running(self, container_id: str) -> None:
        """标记为运行中；若已终止则保持终态"""
        self.container_id = container_id
        if self.phase == ExecutionPhase.PROVISIONING:
            self.phase = ExecutionPhase.RUNNING

    def terminate(self, phase: ExecutionPhase) -> bool:
        """
        尝试进入终态

        Returns:
            True 表示调用方赢得闩锁，负责发送终止消息；False 表示已被其他路径终止
        """
        if not phase.is_terminal:
            raise ValueError(f"{phase} is not a terminal phase")
        if self.phase.is_terminal:
            return False
        self.phase = phase
        self.finished_at = datetime.now()
        return True

    def cancel_timer(self) -> None:
        """取消超时计时器"""
        if self.timer is not None and not self.timer.done():
            self.timer.cancel()
        self.timer = None

    def record_output(self) -> None:
        self.output_count += 1

    # ============== 领域查询 ==============

    @property
    def terminated(self) -> bool:
        """是否已终止"""
        return self.phase.is_terminal

    @property
    def is_active(self) -> bool:
        """执行任务是否仍在进行（含终止后的清理阶段）"""
        if self.runner is not None and not self.runner.done():
            return True
        return self.cleanup is not None and not self.cleanup.done()

    @property
    def has_output(self) -> bool:
        return self.output_count > 0

    @property
    def duration_ms(self) -> Optional[int]:
        """从创建到终止的耗时（毫秒），未终止时为 None"""
        if self.finished_at is None:
            return None
        return int((self.finished_at - self.created_at).total_seconds() * 1000)
