"""ZeroMQ transport: controller-side :class:`Client` and remote-side
:class:`Server` speaking the frames defined in :mod:`.framing`."""

from . import framing
from .client import Client
from .server import Server
