"""Transports connecting an :class:`droidctl.Engine` to a remote engine.

The ``DROIDCTL_TRANSPORT`` environment variable names the backend imported
here; :func:`droidctl.connect` uses whichever backend that is.
"""

import os

from .base import Transport, TransportError, TransportConnectionError, TransportPortError

backends = ("zmq",)
backend = os.environ.get("DROIDCTL_TRANSPORT", "zmq")

if backend not in backends:
    raise ImportError(f"DROIDCTL_TRANSPORT must be one of {backends}, not {backend!r}")

from . import zmq
