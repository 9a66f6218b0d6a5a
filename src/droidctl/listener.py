""" Observers of engine activity. A listener may implement any subset of
    the hooks defined by the capability classes below; a hook that is not
    implemented is simply never called for that listener. Subclassing the
    capability classes is a convenience, not a requirement: the
    :class:`Registry` locates hooks by name.
"""

import logging
import threading


logger = logging.getLogger(__name__)


class DebugListener:
    """ Receives protocol debug text. """

    def on_debug(self, text):
        pass


class ConnectionListener:
    """ Notified when the remote engine connects. """

    def on_connection(self):
        pass


class ProtocolListener:
    """ Notified of every protocol phase transition reported by the remote
        engine, and of shutdowns from either side.
    """

    def on_ready(self):
        pass

    def on_running(self):
        pass

    def on_result_scalar(self, code, info):
        pass

    def on_result_message(self, message):
        pass

    def on_free_message(self, text):
        pass

    def on_exception(self, text):
        pass

    def on_local_shutdown(self, cause):
        pass

    def on_remote_shutdown(self, cause):
        pass


class Listener(DebugListener, ConnectionListener, ProtocolListener):
    """ Convenience base class implementing every hook as a no-op. """
    pass



class Registry:
    """ Unordered collection of listeners. Adding a listener that is already
        present, or removing one that is absent, is a no-op. Notification
        operates on a snapshot of the registry taken when the event occurs,
        so listeners may add or remove themselves (or others) from within a
        hook.
    """

    def __init__(self):
        self._listeners = list()
        self._lock = threading.Lock()


    def __contains__(self, listener):
        with self._lock:
            return listener in self._listeners


    def __len__(self):
        with self._lock:
            return len(self._listeners)


    def add(self, listener):
        with self._lock:
            if listener not in self._listeners:
                self._listeners.append(listener)


    def remove(self, listener):
        with self._lock:
            try:
                self._listeners.remove(listener)
            except ValueError:
                pass


    def snapshot(self):
        with self._lock:
            return tuple(self._listeners)


    def notify(self, hook, *args):
        """ Invoke the method named *hook* on every registered listener that
            has one, with the supplied arguments. An exception raised by one
            listener is logged and otherwise ignored; it does not prevent
            delivery to the remaining listeners. Returns the number of
            listeners that handled the event without raising.
        """

        delivered = 0

        for listener in self.snapshot():
            method = getattr(listener, hook, None)

            if method is None:
                continue

            try:
                method(*args)
            except Exception:
                logger.debug("listener %r failed in %s()", listener, hook, exc_info=True)
            else:
                delivered += 1

        return delivered


# end of class Registry


# vim: set expandtab tabstop=8 softtabstop=4 shiftwidth=4 autoindent:
