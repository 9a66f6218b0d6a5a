""" Implementation of the top-level :func:`connect` method. This is intended
    to be the principal entry point for users driving a remote engine.
"""

import logging
import threading

from . import config
from . import transport
from .engine import Engine


logger = logging.getLogger(__name__)

_cache = dict()
_cache_lock = threading.Lock()


def _clear(address, port):
    """ Remove the cached :class:`Engine` instance for the *address* and
        *port*, if any, and return it. Returns None if nothing was cached.
    """

    with _cache_lock:
        try:
            existing = _cache[(address, port)]
        except KeyError:
            return

        del _cache[(address, port)]

    return existing



def connect(address=None, port=None, wait=True):
    """ The :func:`connect` method returns a started :class:`Engine` bound
        to a ZeroMQ transport for the remote engine at *address* and *port*;
        either one defaults to the value in :func:`droidctl.config.get`.

        If *wait* is True the call blocks until the remote engine reports the
        connection, up to the configured ``connect_timeout``.

        Repeated calls with the same *address* and *port* return the same
        :class:`Engine` instance, until :func:`disconnect` is called for it.
    """

    configuration = config.get()

    if address is None:
        address = configuration['address']
    if port is None:
        port = configuration['port']

    address = str(address)
    port = int(port)

    with _cache_lock:
        try:
            engine = _cache[(address, port)]
        except KeyError:
            engine = None

        if engine is None:
            engine = Engine(transport.zmq.Client(address, port), configuration)
            engine.set_log(logger)
            engine.start()
            _cache[(address, port)] = engine

    if wait == True:
        engine.wait_for_connected()

    return engine



def disconnect(address=None, port=None):
    """ Shut down and forget the cached :class:`Engine` for *address* and
        *port*. A no-op if there is no such engine.
    """

    configuration = config.get()

    if address is None:
        address = configuration['address']
    if port is None:
        port = configuration['port']

    engine = _clear(str(address), int(port))

    if engine is not None:
        engine.shutdown()


# vim: set expandtab tabstop=8 softtabstop=4 shiftwidth=4 autoindent:
