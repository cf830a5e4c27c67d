"""
Message Sink Port Interface

Defines where execution messages are delivered.
This is an output port - implemented by the WebSocket gateway.
"""

from abc import ABC, abstractmethod

from sandbox_stream.domain.value_objects.client_message import ClientMessage


class IMessageSink(ABC):
    """
    Port interface for delivering messages to the client that owns an execution.
    """

    @abstractmethod
    async def send(self, message: ClientMessage) -> None:
        """
        Deliver a message to the client.

        Raises:
            Exception: If the underlying connection is closed or broken
        """
        pass
