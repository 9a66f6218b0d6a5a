"""Transport interface.

This is the (small) contract that transport implementations should follow.
A transport moves outbound messages to the remote engine and invokes the
callbacks of its attached listener (normally a :class:`droidctl.Engine`)
from its own thread as remote events arrive.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any, Optional

from ..message import Message


# Transport agnostic exceptions

class TransportError(Exception):
    """Base class for all transport-layer errors."""


class TransportConnectionError(TransportError):
    """The transport could not establish or maintain a connection."""


class TransportPortError(TransportError):
    """No suitable port could be bound or connected."""


class Transport(ABC):
    """Minimal contract for a controller-side transport.

    The ``send_*`` methods return False on immediate local failure; they do
    not raise for ordinary "could not send" conditions.

    Exactly one listener callback is invoked per remote event:
    ``on_connection``, ``on_ready``, ``on_running``, ``on_result_scalar``,
    ``on_result_message``, ``on_free_message``, ``on_exception``,
    ``on_debug``, ``on_local_shutdown`` or ``on_remote_shutdown``.
    """

    listener: Optional[Any] = None

    def attach(self, listener: Any) -> None:
        """Deliver all subsequent callbacks to *listener*."""
        self.listener = listener

    @abstractmethod
    def open(self) -> None:
        """Establish the underlying connection/socket."""

    @abstractmethod
    def close(self) -> None:
        """Tear down the underlying connection/socket."""

    @abstractmethod
    def send_dispatch(self, msg: Message) -> bool:
        """Send a command dispatch."""

    @abstractmethod
    def send_dispatch_file(self, path: str) -> bool:
        """Send a dispatch by reference to a file."""

    @abstractmethod
    def send_free_message(self, text: str) -> bool:
        """Send a free-form message."""

    @abstractmethod
    def send_shutdown(self) -> bool:
        """Ask the remote engine to shut down."""

    @property
    def is_open(self) -> bool:
        """Whether the transport is currently connected."""
        return False
