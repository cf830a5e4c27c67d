"""
执行阶段值对象

Idle -> Provisioning -> Running -> {Completed | TimedOut | Aborted | Failed}
"""
from enum import Enum


class ExecutionPhase(str, Enum):
    """执行阶段枚举"""
    IDLE = "idle"
    PROVISIONING = "provisioning"
    RUNNING = "running"
    COMPLETED = "completed"
    TIMED_OUT = "timed_out"
    ABORTED = "aborted"
    FAILED = "failed"

    @property
    def is_terminal(self) -> bool:
        """是否为终态（不可再变更）"""
        return self in TERMINAL_PHASES


TERMINAL_PHASES = frozenset({
    ExecutionPhase.COMPLETED,
    ExecutionPhase.TIMED_OUT,
    ExecutionPhase.ABORTED,
    ExecutionPhase.FAILED,
})
