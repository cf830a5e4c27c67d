"""
执行配置值对象

每种语言一个执行配置：镜像、容器内调用脚本、超时时间。
用户代码从不拼接进命令行，而是以 base64 编码后通过环境变量传入容器，
由容器内脚本解码写入源文件。
"""
import base64
from dataclasses import dataclass
from enum import Enum

CODE_ENV_VAR = "SANDBOX_CODE"


class Language(str, Enum):
    """支持的语言枚举"""
    PYTHON = "python"
    JAVASCRIPT = "javascript"
    C = "c"
    CPP = "cpp"
    HTML = "html"


@dataclass(frozen=True)
class ExecutionProfile:
    """执行配置值对象（不可变）"""
    language: Language
    image: str
    script: str  # sh 脚本，只通过 $SANDBOX_CODE 读取代码
    timeout_ms: int
    source_path: str
    compiled: bool = False

    def __post_init__(self):
        """验证执行配置"""
        if not self.image:
            raise ValueError("image cannot be empty")
        if self.timeout_ms <= 0:
            raise ValueError("timeout_ms must be positive")
        if f"${CODE_ENV_VAR}" not in self.script and f"${{{CODE_ENV_VAR}}}" not in self.script:
            raise ValueError(f"script must read code from ${CODE_ENV_VAR}")

    @property
    def command(self) -> list[str]:
        """容器启动命令（与用户代码无关）"""
        return ["sh", "-c", self.script]

    @property
    def timeout_seconds(self) -> float:
        return self.timeout_ms / 1000

    def build_env(self, code: str) -> dict[str, str]:
        """构建携带代码的环境变量"""
        payload = base64.b64encode(code.encode("utf-8")).decode("ascii")
        return {CODE_ENV_VAR: payload}

    def with_timeout(self, timeout_ms: int) -> "ExecutionProfile":
        """返回新的超时配置（不修改原对象）"""
        return ExecutionProfile(
            language=self.language,
            image=self.image,
            script=self.script,
            timeout_ms=timeout_ms,
            source_path=self.source_path,
            compiled=self.compiled,
        )
