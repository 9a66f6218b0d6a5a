""" Python controller for a remote test-automation engine. Commands are sent
    as property messages over an asynchronous transport; the
    :class:`Engine` turns the transport callbacks into blocking,
    timeout-bounded request/response operations.
"""

# Utility components.

from . import json
from . import fields
from . import errors

# Submodules used by multiple other components.

from . import message
from . import listener
from . import config
home = config.directory

from . import engine
from . import transport

# Primary public-facing interfaces.

from . import begin
connect = begin.connect
disconnect = begin.disconnect

from .message import Message, RemoteResults, encode_list, decode_list
from .listener import Listener
from .engine import Engine

# vim: set expandtab tabstop=8 softtabstop=4 shiftwidth=4 autoindent:
