""" Exceptions raised by the blocking :class:`droidctl.Engine` operations.
    Each failure mode has its own class so that callers can tell a timeout
    apart from a remote failure or a shutdown.
"""


class EngineError(Exception):
    """ Base class for all engine errors. """


class TimedOut(EngineError, TimeoutError):
    """ The awaited condition did not occur before the deadline, and no
        abort condition was raised in the meantime.
    """


class RemoteException(EngineError):
    """ The remote engine reported a failure while a wait was in progress.
        The remote-supplied *text* is retained.
    """

    def __init__(self, text=None):
        self.text = text
        EngineError.__init__(self, text)


class ShutdownInvocation(EngineError):
    """ A shutdown was initiated while a wait was in progress. The *cause*
        is the shutdown cause code reported with the shutdown; *remote* is
        True if the remote side initiated it.
    """

    remote = None

    def __init__(self, text, cause):
        self.cause = cause
        EngineError.__init__(self, text)


class LocalShutdown(ShutdownInvocation):
    remote = False


class RemoteShutdown(ShutdownInvocation):
    remote = True


class LocalSendFailure(EngineError):
    """ The transport refused to accept an outbound message. No remote
        interaction occurred; *operation* names the refused send.
    """

    def __init__(self, operation):
        self.operation = operation
        EngineError.__init__(self, 'local transport failed to ' + operation)


class MalformedTimeoutExtension(EngineError, ValueError):
    """ A timeout extension request could not be parsed as an integer.
    """


# vim: set expandtab tabstop=8 softtabstop=4 shiftwidth=4 autoindent:
