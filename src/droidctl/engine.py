""" The synchronization core: turns the asynchronous, callback-driven
    transport into blocking, timeout-bounded request/response operations.

    A single :class:`State` record is shared by every operation on an
    :class:`Engine`, and is guarded by one lock with one associated
    condition variable. Callbacks from the transport thread update the
    record and wake every waiter; each waiter re-checks its own condition.
    Concurrent :func:`Engine.perform_command` calls against the same engine
    share that record and are not arbitrated; an application issuing
    commands from more than one thread must ensure that only one command is
    in flight at a time.
"""

import logging
import threading
import time

from . import errors
from . import fields
from . import message
from .listener import Registry


logger = logging.getLogger(__name__)


class State:
    """ The state record shared between the transport callbacks and any
        blocked callers. Access is only permitted while holding the
        owning :class:`Engine` lock.
    """

    def __init__(self):

        self.connected = False
        self.ready = False
        self.running = False
        self.result = False
        self.message = False
        self.exception = False
        self.local_shutdown = False
        self.remote_shutdown = False

        self.result_code = fields.STATUS_UNKNOWN
        self.result_info = None
        self.result_message = None
        self.free_message_text = None
        self.shutdown_cause = fields.CAUSE_UNKNOWN
        self.exception_text = None


    def aborted(self):
        return self.local_shutdown or self.remote_shutdown or self.exception


    def reset_results(self):
        """ Clear everything pertaining to the previous command. The sticky
            ``connected`` flag, the ``ready`` flag, and the shutdown flags
            are left alone.
        """

        self.result = False
        self.result_code = fields.STATUS_UNKNOWN
        self.result_info = None
        self.result_message = None
        self.exception = False
        self.exception_text = None
        self.message = False
        self.free_message_text = None
        self.running = False


# end of class State



class Engine:
    """ Drive a remote test-automation engine through an attached transport.
        The *transport* is any object honoring the
        :class:`droidctl.transport.Transport` contract; the transport invokes
        the ``on_*`` methods of this class from its own thread as remote
        events arrive. If a :class:`droidctl.config.Configuration` is
        supplied as *configuration* the default timeouts and protocol options
        are taken from it.

        All timeouts are expressed in seconds. A timeout less than one means
        "do not wait at all": the corresponding wait returns immediately
        without checking its condition, and the operation proceeds
        optimistically.

        :ivar listeners: The :class:`droidctl.listener.Registry` of observers.
        :ivar log: Optional sink for debug text no listener accepted; any
            object with a ``debug()`` method, such as a :class:`logging.Logger`.
        :ivar max_timeout_extensions: If not None, the maximum number of
            times a single result wait will be extended at the remote
            side's request before raising :class:`errors.TimedOut`.
    """

    ready_timeout = 15
    running_timeout = 15
    result_timeout = 60
    shutdown_timeout = 15
    connect_timeout = 30

    def __init__(self, transport=None, configuration=None):

        self.state = State()
        self.lock = threading.Lock()
        self.condition = threading.Condition(self.lock)

        self.listeners = Registry()
        self.log = None
        self.protocol_debug = True
        self.max_timeout_extensions = None
        self.transport = None

        if configuration is not None:
            self.configure(configuration)

        if transport is not None:
            self.attach(transport)


    def add_listener(self, listener):
        self.listeners.add(listener)


    def remove_listener(self, listener):
        self.listeners.remove(listener)


    def attach(self, transport):
        """ Bind the *transport* to this engine. The transport will deliver
            its callbacks to this instance.
        """

        self.transport = transport
        transport.attach(self)


    def configure(self, configuration):
        """ Take default timeouts and protocol options from the supplied
            :class:`droidctl.config.Configuration` instance.
        """

        self.connect_timeout = configuration['connect_timeout']
        self.ready_timeout = configuration['ready_timeout']
        self.running_timeout = configuration['running_timeout']
        self.result_timeout = configuration['result_timeout']
        self.shutdown_timeout = configuration['shutdown_timeout']
        self.max_timeout_extensions = configuration['max_timeout_extensions']
        self.protocol_debug = configuration['protocol_debug']


    def set_log(self, log):
        self.log = log


    def start(self):
        """ Open the attached transport. """

        if self.transport is None:
            raise RuntimeError('no transport attached')

        self.transport.open()


    def shutdown(self):
        """ Close the attached transport. The transport is expected to
            report the closure via :func:`on_local_shutdown`.
        """

        if self.transport is None:
            return

        self.transport.close()


    def debug(self, text):
        """ Deliver protocol debug text to every listener with an ``on_debug``
            hook. If no listener accepted it, the text goes to :attr:`log`;
            if that is not set, or fails, the text is printed. This method
            never raises.
        """

        if self.protocol_debug == False:
            return

        delivered = self.listeners.notify('on_debug', text)

        if delivered > 0:
            return

        log = self.log

        if log is not None:
            try:
                log.debug(text)
            except Exception:
                logger.debug("log sink failed for debug text", exc_info=True)
            else:
                return

        print(text)


    # State management.

    def reset_result_state(self):
        """ Clear the result of the previous command. This does not clear
            the sticky ``connected`` flag, nor any pending ``ready`` signal.
        """

        with self.lock:
            self.state.reset_results()


    def reset_running_state(self):
        """ Clear all per-command state, including any recorded shutdown.
            This allows the engine to be reused after a shutdown was reported.
        """

        with self.lock:
            self.state.reset_results()
            self.state.shutdown_cause = fields.CAUSE_UNKNOWN
            self.state.local_shutdown = False
            self.state.remote_shutdown = False


    def _reset_ready(self):
        with self.lock:
            self.state.ready = False


    def consolidate_result(self):
        """ Return the consolidated result :class:`droidctl.message.Message`
            for the current command. See :func:`droidctl.message.consolidate`.
        """

        with self.lock:
            return self._consolidate()


    def _consolidate(self):

        state = self.state
        consolidated = message.consolidate(state.result_message, state.result, state.result_code, state.result_info)
        state.result_message = consolidated
        return consolidated


    # Blocking primitives. The lock must be held when calling _block() and
    # _check_aborts().

    def _block(self, satisfied, timeout):
        """ Block until *satisfied* returns True, an abort condition is
            raised, or *timeout* seconds elapse. The deadline is absolute;
            spurious wakeups do not extend it.
        """

        deadline = time.monotonic() + timeout
        state = self.state

        while satisfied() == False and state.aborted() == False:
            remaining = deadline - time.monotonic()
            if remaining <= 0:
                break
            self.condition.wait(remaining)


    def _check_aborts(self):
        """ Raise the appropriate exception if an abort condition has been
            raised. A local shutdown takes precedence over a remote shutdown,
            which takes precedence over a remote exception.
        """

        state = self.state

        if state.local_shutdown:
            raise errors.LocalShutdown('local shutdown has been initiated', state.shutdown_cause)
        if state.remote_shutdown:
            raise errors.RemoteShutdown('remote shutdown has been initiated', state.shutdown_cause)
        if state.exception:
            raise errors.RemoteException(state.exception_text)


    def wait_for_connected(self, timeout=None):
        """ Block until the remote engine has connected. """

        if timeout is None:
            timeout = self.connect_timeout

        if timeout < 1:
            return

        state = self.state

        with self.lock:
            self._block(lambda: state.connected, timeout)
            self._check_aborts()

            if state.connected == False:
                raise errors.TimedOut("timed out after %ss waiting for connection" % (timeout))


    def wait_for_ready(self, timeout):
        """ Block until the remote engine signals it is ready for a new
            dispatch. A ready signal is consumed by the wait that observes it;
            one ready signal authorizes exactly one dispatch.
        """

        if timeout < 1:
            return

        state = self.state

        with self.lock:
            self._block(lambda: state.ready, timeout)
            self._check_aborts()

            if state.ready == False:
                raise errors.TimedOut("timed out after %ss waiting for ready" % (timeout))

            state.ready = False


    def wait_for_running(self, timeout):
        """ Block until the remote engine signals it is running the dispatch.
            A result arriving first also satisfies the wait, since a fast
            remote side can skip straight to the result.
        """

        if timeout < 1:
            return

        state = self.state

        with self.lock:
            self._block(lambda: state.running or state.result, timeout)
            self._check_aborts()

            if state.running == False and state.result == False:
                raise errors.TimedOut("timed out after %ss waiting for running" % (timeout))


    def _wait_for_result_once(self, timeout):
        """ Wait for one result, and return it along with the timeout
            extension it requests, if any. When an extension is requested,
            or the request is malformed, the result state is cleared before
            the lock is released; a result that arrives immediately
            afterward is retained for the next wait.
        """

        state = self.state

        with self.lock:
            if timeout >= 1:
                self._block(lambda: state.result, timeout)
                self._check_aborts()

                if state.result == False:
                    raise errors.TimedOut("timed out after %ss waiting for result" % (timeout))

            result = self._consolidate()

            try:
                extension = timeout_extension(result)
            except errors.MalformedTimeoutExtension:
                state.reset_results()
                raise

            if extension is not None:
                state.reset_results()

            return result, extension


    def wait_for_result(self, timeout):
        """ Block until a result is available and return the consolidated
            result message.

            If the result carries a ``changeTimeout`` key with a positive
            integer value, the result is discarded and the wait starts over
            using that value as the new timeout. If the value cannot be parsed
            the wait starts over with the original *timeout*. There is no
            limit on the number of extensions unless
            :attr:`max_timeout_extensions` is set.
        """

        original = timeout
        extensions = 0

        while True:
            try:
                result, extension = self._wait_for_result_once(timeout)
            except errors.MalformedTimeoutExtension as e:
                self.debug('wait_for_result ignoring %s and waiting again: %s' % (type(e).__name__, e))
                timeout = original
            else:
                if extension is None:
                    return result

                self.debug('wait_for_result detected a remote timeout extension of %d seconds' % (extension))
                timeout = extension

            extensions += 1
            limit = self.max_timeout_extensions

            if limit is not None and extensions > limit:
                raise errors.TimedOut("result wait extended more than %d times" % (limit))


    def wait_for_shutdown(self, timeout):
        """ Block until either side reports a shutdown. Returns the
            shutdown cause. With a *timeout* less than one there is no wait:
            the cause is returned if a shutdown was already reported, and
            None otherwise.
        """

        state = self.state

        if timeout < 1:
            with self.lock:
                if state.remote_shutdown or state.local_shutdown:
                    return state.shutdown_cause
            return None

        with self.lock:
            self._block(lambda: state.remote_shutdown or state.local_shutdown, timeout)

            if state.remote_shutdown or state.local_shutdown:
                return state.shutdown_cause

            if state.exception:
                raise errors.RemoteException(state.exception_text)

            raise errors.TimedOut("timed out after %ss waiting for shutdown" % (timeout))


    # Full round-trip operations.

    def _timeouts(self, ready, running, other, other_default):

        if ready is None:
            ready = self.ready_timeout
        if running is None:
            running = self.running_timeout
        if other is None:
            other = other_default

        return ready, running, other


    def _send(self, operation, *args):
        """ Hand an outbound message to the transport. A refusal is raised
            as :class:`errors.LocalSendFailure`; it is never retried, as the
            readiness of the remote side is unknown after a failed send.
        """

        transport = self.transport

        if transport is None:
            raise errors.LocalSendFailure(operation)

        method = getattr(transport, operation)
        sent = method(*args)

        if sent != True:
            raise errors.LocalSendFailure(operation)


    def _dispatch(self, operation, argument, ready_timeout, running_timeout, result_timeout):

        self.reset_result_state()
        self.wait_for_ready(ready_timeout)
        self._reset_ready()
        self._send(operation, argument)
        self.wait_for_running(running_timeout)
        return self.wait_for_result(result_timeout)


    def perform_command(self, dispatch, ready_timeout=None, running_timeout=None, result_timeout=None):
        """ Perform a full command round-trip: wait for the remote side to be
            ready, send the *dispatch* message, wait for it to be running,
            and wait for the result. The consolidated result
            :class:`droidctl.message.Message` is returned.
        """

        ready_timeout, running_timeout, result_timeout = self._timeouts(ready_timeout, running_timeout, result_timeout, self.result_timeout)

        if isinstance(dispatch, message.Message):
            pass
        else:
            dispatch = message.Message(dispatch)

        self.debug('perform_command dispatching %r' % (dispatch.command))
        return self._dispatch('send_dispatch', dispatch, ready_timeout, running_timeout, result_timeout)


    def perform_file_command(self, path, ready_timeout=None, running_timeout=None, result_timeout=None):
        """ Identical to :func:`perform_command`, except the dispatch is a
            reference to a file containing the command properties.
        """

        ready_timeout, running_timeout, result_timeout = self._timeouts(ready_timeout, running_timeout, result_timeout, self.result_timeout)

        self.debug('perform_file_command dispatching ' + str(path))
        return self._dispatch('send_dispatch_file', str(path), ready_timeout, running_timeout, result_timeout)


    def perform_free_message(self, text, ready_timeout=None, running_timeout=None):
        """ Send a free-form message. The call returns once the remote side
            is running; no result is awaited.
        """

        ready_timeout, running_timeout, _ = self._timeouts(ready_timeout, running_timeout, 0, 0)

        self.reset_result_state()
        self.wait_for_ready(ready_timeout)
        self._reset_ready()
        self._send('send_free_message', text)
        self.wait_for_running(running_timeout)


    def perform_shutdown(self, ready_timeout=None, running_timeout=None, shutdown_timeout=None):
        """ Ask the remote engine to shut down. Only the send is required to
            succeed: a timeout, a remote exception, or a shutdown reported
            while waiting for confirmation is logged and ignored.
        """

        ready_timeout, running_timeout, shutdown_timeout = self._timeouts(ready_timeout, running_timeout, shutdown_timeout, self.shutdown_timeout)

        self.reset_result_state()
        self.wait_for_ready(ready_timeout)
        self._reset_ready()
        self._send('send_shutdown')

        try:
            self.wait_for_running(running_timeout)
            self.wait_for_shutdown(shutdown_timeout)
        except (errors.TimedOut, errors.RemoteException, errors.ShutdownInvocation) as e:
            self.debug('perform_shutdown ignoring %s: %s' % (type(e).__name__, e))


    # Transport callbacks. Each one updates the state record and wakes all
    # waiters while holding the lock, then notifies listeners after the
    # lock is released.

    def on_connection(self):
        with self.lock:
            self.state.connected = True
            self.condition.notify_all()

        self.listeners.notify('on_connection')


    def on_ready(self):
        with self.lock:
            self.state.ready = True
            self.condition.notify_all()

        self.listeners.notify('on_ready')


    def on_running(self):
        with self.lock:
            self.state.running = True
            self.condition.notify_all()

        self.listeners.notify('on_running')


    def on_result_scalar(self, code, info):
        with self.lock:
            state = self.state
            state.result_code = int(code)
            state.result_info = info
            state.result_message = None
            state.result = True
            self.condition.notify_all()

        self.listeners.notify('on_result_scalar', code, info)


    def on_result_message(self, result):

        # The engine keeps its own copy; consolidation adds keys to it, and
        # listeners receive the original.

        copy = message.Message(result)

        with self.lock:
            state = self.state
            state.result_code = fields.STATUS_FAIL
            state.result_info = None
            state.result_message = copy
            state.result = True
            self.condition.notify_all()

        self.listeners.notify('on_result_message', result)


    def on_exception(self, text):
        with self.lock:
            self.state.exception_text = text
            self.state.exception = True
            self.condition.notify_all()

        self.listeners.notify('on_exception', text)


    def on_free_message(self, text):
        with self.lock:
            self.state.free_message_text = text
            self.state.message = True
            self.condition.notify_all()

        self.listeners.notify('on_free_message', text)


    def on_local_shutdown(self, cause):
        with self.lock:
            self.state.shutdown_cause = cause
            self.state.local_shutdown = True
            self.condition.notify_all()

        self.listeners.notify('on_local_shutdown', cause)


    def on_remote_shutdown(self, cause):
        with self.lock:
            self.state.shutdown_cause = cause
            self.state.remote_shutdown = True
            self.state.running = False
            self.condition.notify_all()

        self.listeners.notify('on_remote_shutdown', cause)


    def on_debug(self, text):
        self.debug(text)


# end of class Engine



def timeout_extension(result):
    """ Return the timeout extension, in seconds, requested by the remote
        side in the *result* message, or None if no extension is requested.
        A value that is not an integer raises
        :class:`errors.MalformedTimeoutExtension`; an integer that is not
        positive is treated as no extension.
    """

    try:
        value = result[fields.CHANGE_TIMEOUT]
    except KeyError:
        return None

    try:
        extension = int(value.strip())
    except ValueError:
        raise errors.MalformedTimeoutExtension('%s is not an integer: %r' % (fields.CHANGE_TIMEOUT, value))

    if extension > 0:
        return extension

    logger.debug("ignoring non-positive timeout extension %d", extension)
    return None


# vim: set expandtab tabstop=8 softtabstop=4 shiftwidth=4 autoindent:
