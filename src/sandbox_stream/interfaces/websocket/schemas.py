"""
WebSocket 消息模式

定义客户端提交执行请求的 Pydantic 模型。
"""
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class ExecuteMessage(BaseModel):
    """
    执行请求信封

    {"code": "...", "language": "python", "sessionId": "room-1"}

    code 与 language 缺省为空字符串，交由注册表与非空校验给出具体错误。
    """
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    code: str = Field(default="", description="要执行的代码")
    language: str = Field(default="", description="语言标识")
    session_id: Optional[str] = Field(default=None, alias="sessionId", description="协作房间/会话 ID")
