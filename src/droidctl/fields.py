""" Protocol constants. Keep these in one place to avoid stringly-typed
    message handling.
"""

# Reserved Property Message keys.

COMMAND = 'command'
TARGET = 'target'
RESULT_CODE = 'resultCode'
RESULT_INFO = 'resultInfo'
IS_REMOTE_RESULT = 'isRemoteResult'
CHANGE_TIMEOUT = 'changeTimeout'
ERROR_MESSAGE = 'errormsg'

# Result status codes.

STATUS_OK = 0
STATUS_FAIL = -1
STATUS_NOT_EXECUTED = -98
STATUS_UNKNOWN = -99

# Shutdown causes.

CAUSE_UNKNOWN = -1
CAUSE_REQUESTED = 0
CAUSE_CONNECTION_LOST = 1

# Wire frame types used by the ZeroMQ transport.

HELLO = 'HELLO'
CONNECTED = 'CONNECTED'
READY = 'READY'
RUNNING = 'RUNNING'
RESULT = 'RESULT'
RESULTPROPS = 'RESULTPROPS'
EXCEPTION = 'EXCEPTION'
MESSAGE = 'MESSAGE'
DEBUG = 'DEBUG'
SHUTDOWN = 'SHUTDOWN'
REMOTESHUTDOWN = 'REMOTESHUTDOWN'
DISPATCH = 'DISPATCH'
DISPATCHFILE = 'DISPATCHFILE'

# This is the version of the on-the-wire protocol implemented here, identified
# by a single byte.

PROTOCOL_VERSION = 'a'


# vim: set expandtab tabstop=8 softtabstop=4 shiftwidth=4 autoindent:
