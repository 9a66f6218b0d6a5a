"""ZeroMQ remote-side endpoint.

The :class:`Server` is the counterpart of :class:`.client.Client`: it runs
alongside the test-automation engine, accepts dispatches from a controller,
and reports readiness, progress and results back to it. Subclasses implement
the ``req_*`` hooks to do the actual work.
"""

from __future__ import annotations

import concurrent.futures
import logging
import queue
import threading
from typing import Any, Optional, Set, Tuple

import zmq

from ... import fields
from ... import json
from ...message import Message
from ..base import TransportPortError
from . import framing


logger = logging.getLogger(__name__)

minimum_port = 10079
maximum_port = 13679
zmq_context = zmq.Context.instance()


class Server:
    """Receive dispatches via a ZeroMQ ROUTER socket and report on them.

    The default behavior is to listen on every interface, on the first
    available port in the default range; a fixed *port* may be requested
    instead. The *avoid* set enumerates port numbers that should not be
    automatically assigned.

    One controller is served at a time: the most recent controller to send a
    HELLO is the recipient of every outbound frame. It is answered with
    CONNECTED followed by READY.

    Each inbound request is handled on a worker thread: RUNNING is reported,
    the matching ``req_*`` hook is invoked, and its return value (if any) is
    reported as the result, followed by READY. A hook that raises is reported
    as an EXCEPTION carrying the error text.
    """

    worker_count = 4
    poll_interval = 1000  # milliseconds
    join_timeout = 5.0

    def __init__(self, address: Optional[str] = None, port: Optional[int] = None, avoid: Optional[Set[int]] = None):
        self.address = address or "*"
        self.avoid = set(avoid or set())
        self.controller: Optional[bytes] = None

        self.socket = zmq_context.socket(zmq.ROUTER)
        self.socket.setsockopt(zmq.LINGER, 0)

        if port is None:
            self.port = self._bind_any()
        else:
            self.port = int(port)
            try:
                self.socket.bind(f"tcp://{self.address}:{self.port}")
            except zmq.ZMQError as exc:
                self.socket.close()
                raise TransportPortError(f"port already in use: {self.port}") from exc

        self._outbox: "queue.SimpleQueue[Tuple[bytes, ...]]" = queue.SimpleQueue()

        internal = f"inproc://droidctl.Server:signal:{id(self)}"
        self._signal_rx = zmq_context.socket(zmq.PAIR)
        self._signal_rx.bind(internal)
        self._signal_tx = zmq_context.socket(zmq.PAIR)
        self._signal_tx.connect(internal)
        self._signal_lock = threading.Lock()

        self.shutdown = False
        self.workers = concurrent.futures.ThreadPoolExecutor(max_workers=self.worker_count)
        self.thread = threading.Thread(target=self.run, daemon=True)
        self.thread.start()

    def _bind_any(self) -> int:
        for port in range(minimum_port, maximum_port + 1):
            if port in self.avoid:
                continue
            try:
                self.socket.bind(f"tcp://{self.address}:{port}")
                return port
            except zmq.ZMQError:
                continue
        self.socket.close()
        raise TransportPortError(
            f"no ports available in range {minimum_port}:{maximum_port}"
        )

    def close(self) -> None:
        if self.shutdown:
            return

        self.shutdown = True
        self._wake()
        self.thread.join(self.join_timeout)
        self.workers.shutdown(wait=False)

        with self._signal_lock:
            self._signal_tx.close()

    # --- request handling hooks ---

    def req_dispatch(self, message: Message) -> Any:
        """Override in subclasses.

        Return:
          - Message or dict   -> reported as RESULTPROPS
          - (code, info)      -> reported as RESULT
          - None              -> no result (hook is responsible for reporting)
        """

        # Default: report success, echoing the command name.
        return (fields.STATUS_OK, message.command)

    def req_dispatch_file(self, path: str) -> Any:
        """Load dispatch properties from the JSON file at *path* and hand
        them to :func:`req_dispatch`."""

        with open(path, "rb") as reader:
            properties = json.loads_object(reader.read(), path)

        return self.req_dispatch(Message(properties))

    def req_message(self, text: str) -> None:
        """Override in subclasses. Free-form messages have no result."""

    def req_shutdown(self) -> None:
        """Override in subclasses. Invoked before REMOTESHUTDOWN is sent."""

    # --- outbound ---

    def send(self, frame_type: str, value: Any = None) -> bool:
        """Queue one frame for the current controller. Returns False if no
        controller has connected, or the frame cannot be encoded."""

        controller = self.controller
        if controller is None or self.shutdown:
            return False

        try:
            frames = framing.to_frames(frame_type, value, prefix=(controller,))
        except (framing.FramingError, TypeError, ValueError) as exc:
            logger.warning("cannot encode %s frame: %s", frame_type, exc)
            return False

        self._outbox.put(frames)
        self._wake()
        return True

    def send_ready(self) -> bool:
        return self.send(fields.READY)

    def send_running(self) -> bool:
        return self.send(fields.RUNNING)

    def send_result(self, code: int, info: Optional[str] = None) -> bool:
        return self.send(fields.RESULT, (code, info))

    def send_result_message(self, result) -> bool:
        return self.send(fields.RESULTPROPS, result)

    def send_exception(self, text: str) -> bool:
        return self.send(fields.EXCEPTION, text)

    def send_message(self, text: str) -> bool:
        return self.send(fields.MESSAGE, text)

    def send_debug(self, text: str) -> bool:
        return self.send(fields.DEBUG, text)

    def send_shutdown(self, cause: int = fields.CAUSE_REQUESTED) -> bool:
        return self.send(fields.REMOTESHUTDOWN, cause)

    def _wake(self) -> None:
        with self._signal_lock:
            if self._signal_tx.closed:
                return
            self._signal_tx.send(b"")

    # --- internal ---

    def _rep_outgoing(self) -> None:
        self._signal_rx.recv(flags=zmq.NOBLOCK)
        try:
            frames = self._outbox.get(block=False)
        except queue.Empty:
            return
        self.socket.send_multipart(frames)

    def _report(self, returned: Any) -> None:
        if returned is None:
            return
        if isinstance(returned, tuple):
            code, info = returned
            self.send_result(code, info)
        else:
            self.send_result_message(returned)

    def _req_incoming(self, frame: framing.Frame) -> None:
        frame_type = frame.frame_type
        self.send_running()

        try:
            if frame_type == fields.DISPATCH:
                self._report(self.req_dispatch(frame.value))
            elif frame_type == fields.DISPATCHFILE:
                self._report(self.req_dispatch_file(frame.value))
            elif frame_type == fields.MESSAGE:
                self.req_message(frame.value)
            elif frame_type == fields.REMOTESHUTDOWN:
                self.req_shutdown()
                self.send_shutdown(fields.CAUSE_REQUESTED)
                return
        except Exception as exc:
            logger.debug("%s handler failed", frame_type, exc_info=True)
            self.send_exception(f"{type(exc).__name__}: {exc}")

        self.send_ready()

    def _handle_incoming(self, parts: Tuple[bytes, ...]) -> None:
        try:
            frame = framing.from_frames(parts, routed=True)
        except framing.FramingError as exc:
            logger.warning("malformed frame from controller: %s", exc)
            return

        if frame.frame_type == fields.HELLO:
            self.controller = frame.prefix[0]
            self.send(fields.CONNECTED)
            self.send_ready()
            return

        if frame.frame_type in (fields.DISPATCH, fields.DISPATCHFILE, fields.MESSAGE, fields.REMOTESHUTDOWN):
            self.workers.submit(self._req_incoming, frame)
        else:
            logger.warning("unexpected %s frame from controller", frame.frame_type)

    def run(self) -> None:
        poller = zmq.Poller()
        poller.register(self.socket, zmq.POLLIN)
        poller.register(self._signal_rx, zmq.POLLIN)

        while not self.shutdown:
            for active, _flag in poller.poll(self.poll_interval):
                if active == self._signal_rx:
                    self._rep_outgoing()
                elif active == self.socket:
                    parts = tuple(self.socket.recv_multipart())
                    self._handle_incoming(parts)

        self.socket.close()
        self._signal_rx.close()
