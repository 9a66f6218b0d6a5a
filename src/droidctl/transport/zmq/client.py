"""ZeroMQ controller-side transport.

The controller connects a DEALER socket to the remote engine. A single
background thread owns that socket: it writes queued outbound frames and
turns inbound frames into listener callbacks. Calling threads never touch the
socket directly, ZeroMQ sockets are not thread-safe.
"""

from __future__ import annotations

import logging
import queue
import threading
from typing import Optional, Tuple

import zmq

from ... import fields
from ...message import Message
from ..base import Transport, TransportConnectionError
from . import framing


logger = logging.getLogger(__name__)

zmq_context = zmq.Context.instance()


# Frame type -> listener callback, for frames without a body.

_SIGNALS = {
    fields.CONNECTED: "on_connection",
    fields.READY: "on_ready",
    fields.RUNNING: "on_running",
}

# Frame type -> listener callback, for frames with a single decoded value.

_EVENTS = {
    fields.RESULTPROPS: "on_result_message",
    fields.EXCEPTION: "on_exception",
    fields.MESSAGE: "on_free_message",
    fields.DEBUG: "on_debug",
    fields.REMOTESHUTDOWN: "on_remote_shutdown",
    fields.SHUTDOWN: "on_local_shutdown",
}


class Client(Transport):
    """Connect to a remote engine listening at *address* and *port*."""

    poll_interval = 1000  # milliseconds
    join_timeout = 5.0

    def __init__(self, address: str, port: int):
        self.address = address
        self.port = int(port)

        self.socket: Optional[zmq.Socket] = None
        self._outbox: "queue.SimpleQueue[Tuple[bytes, ...]]" = queue.SimpleQueue()
        self._signal_rx: Optional[zmq.Socket] = None
        self._signal_tx: Optional[zmq.Socket] = None
        self._signal_lock = threading.Lock()
        self._thread: Optional[threading.Thread] = None
        self._shutdown = False

    @property
    def is_open(self) -> bool:
        return self.socket is not None and not self._shutdown

    def open(self) -> None:
        if self.socket is not None:
            return

        server = f"tcp://{self.address}:{self.port}"
        identity = f"droidctl.Client.{id(self)}".encode()

        try:
            self.socket = zmq_context.socket(zmq.DEALER)
            self.socket.setsockopt(zmq.LINGER, 0)
            self.socket.identity = identity
            self.socket.connect(server)
        except zmq.ZMQError as exc:
            raise TransportConnectionError(f"cannot connect to {server}: {exc}") from exc

        internal = f"inproc://droidctl.Client:signal:{id(self)}"
        self._signal_rx = zmq_context.socket(zmq.PAIR)
        self._signal_rx.bind(internal)
        self._signal_tx = zmq_context.socket(zmq.PAIR)
        self._signal_tx.connect(internal)

        self._thread = threading.Thread(target=self.run, daemon=True)
        self._thread.start()

        # Introduce ourselves; the remote side cannot address us until it
        # has seen our identity.

        self._queue(fields.HELLO)

    def close(self) -> None:
        if self.socket is None or self._shutdown:
            return

        self._shutdown = True
        self._wake()

        if self._thread is not None:
            self._thread.join(self.join_timeout)

        with self._signal_lock:
            self._signal_tx.close()

        listener = self.listener
        if listener is not None:
            listener.on_local_shutdown(fields.CAUSE_REQUESTED)

    # --- outbound ---

    def send_dispatch(self, msg: Message) -> bool:
        return self._queue(fields.DISPATCH, msg)

    def send_dispatch_file(self, path: str) -> bool:
        return self._queue(fields.DISPATCHFILE, path)

    def send_free_message(self, text: str) -> bool:
        return self._queue(fields.MESSAGE, text)

    def send_shutdown(self) -> bool:
        return self._queue(fields.REMOTESHUTDOWN)

    def _queue(self, frame_type: str, value=None) -> bool:
        if not self.is_open:
            return False

        try:
            frames = framing.to_frames(frame_type, value)
        except (framing.FramingError, TypeError, ValueError) as exc:
            logger.warning("cannot encode %s frame: %s", frame_type, exc)
            return False

        self._outbox.put(frames)
        self._wake()
        return True

    def _wake(self) -> None:
        with self._signal_lock:
            if self._signal_tx.closed:
                return
            self._signal_tx.send(b"")

    def _handle_outgoing(self) -> None:
        # Clear one signal and send one message, if there is one; a wakeup
        # can also mean the thread is being asked to exit.
        self._signal_rx.recv(flags=zmq.NOBLOCK)
        try:
            frames = self._outbox.get(block=False)
        except queue.Empty:
            return
        self.socket.send_multipart(frames)

    # --- inbound ---

    def _handle_incoming(self, parts) -> None:
        listener = self.listener
        if listener is None:
            return

        try:
            frame = framing.from_frames(parts)
        except framing.VersionMismatch as exc:
            logger.warning("%s:%d: %s", self.address, self.port, exc)
            listener.on_exception(str(exc))
            return
        except framing.FramingError as exc:
            logger.warning("%s:%d: malformed frame: %s", self.address, self.port, exc)
            listener.on_free_message(framing.describe(parts[1:]))
            return

        frame_type = frame.frame_type

        if frame_type in _SIGNALS:
            getattr(listener, _SIGNALS[frame_type])()
        elif frame_type == fields.RESULT:
            code, info = frame.value
            listener.on_result_scalar(code, info)
        elif frame_type in _EVENTS:
            getattr(listener, _EVENTS[frame_type])(frame.value)
        else:
            listener.on_free_message(frame.value)

    def run(self) -> None:
        poller = zmq.Poller()
        poller.register(self.socket, zmq.POLLIN)
        poller.register(self._signal_rx, zmq.POLLIN)

        while not self._shutdown:
            for active, _flag in poller.poll(self.poll_interval):
                if active == self._signal_rx:
                    self._handle_outgoing()
                elif active == self.socket:
                    parts = tuple(self.socket.recv_multipart())
                    try:
                        self._handle_incoming(parts)
                    except Exception:
                        logger.exception("listener failed handling inbound frame")

        self.socket.close()
        self._signal_rx.close()
