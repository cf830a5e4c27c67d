"""
沙箱资源与安全限制值对象

定义内存、CPU、进程数、网络、权限等容器限制，并转换为 Docker HostConfig。
"""
from dataclasses import dataclass
from typing import Any

MIB = 1024 * 1024


@dataclass(frozen=True)
class SandboxLimits:
    """沙箱限制值对象（不可变）"""
    memory_bytes: int = 100 * MIB
    memory_swap_bytes: int = 200 * MIB
    cpu_period: int = 100_000
    cpu_quota: int = 50_000  # 0.5 核
    cpu_shares: int = 512
    blkio_weight: int = 300
    pids_limit: int = 100
    network_mode: str = "none"
    oom_kill_disable: bool = False
    auto_remove: bool = True

    def __post_init__(self):
        """验证资源限制值"""
        if self.memory_bytes <= 0:
            raise ValueError("memory_bytes must be positive")
        if self.memory_swap_bytes < self.memory_bytes:
            raise ValueError("memory_swap_bytes must not be lower than memory_bytes")
        if self.cpu_quota <= 0 or self.cpu_period <= 0:
            raise ValueError("cpu_quota and cpu_period must be positive")
        if not 10 <= self.blkio_weight <= 1000:
            raise ValueError("blkio_weight must be between 10 and 1000")
        if self.pids_limit <= 0:
            raise ValueError("pids_limit must be positive")

    @property
    def cpu_fraction(self) -> float:
        return self.cpu_quota / self.cpu_period

    def to_host_config(self) -> dict[str, Any]:
        """转换为 Docker HostConfig"""
        return {
            "AutoRemove": self.auto_remove,
            "Memory": self.memory_bytes,
            "MemorySwap": self.memory_swap_bytes,
            "CpuPeriod": self.cpu_period,
            "CpuQuota": self.cpu_quota,
            "CpuShares": self.cpu_shares,
            "BlkioWeight": self.blkio_weight,
            "OomKillDisable": self.oom_kill_disable,
            "PidsLimit": self.pids_limit,
            "NetworkMode": self.network_mode,
            "CapDrop": ["ALL"],
            "SecurityOpt": ["no-new-privileges"],
        }

    @classmethod
    def default(cls) -> "SandboxLimits":
        """返回默认沙箱限制"""
        return cls()
