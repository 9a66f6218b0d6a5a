import logging
import pytest
import threading
import time

import droidctl


class ScriptedTransport(droidctl.transport.Transport):
    """ In-process stand-in for a real transport. Every accepted send is
        recorded in :attr:`sent`. Event scripts queued with :func:`script`
        are replayed, one script per accepted send, on a background thread;
        :func:`play` replays a script immediately.

        A script is a sequence of events; an event is either a tuple naming
        a listener callback followed by its arguments, or a number of
        seconds to sleep before the next event.
    """

    def __init__(self):
        self.accept = True
        self.opened = False
        self.sent = list()
        self.scripts = list()
        self.threads = list()


    def open(self):
        self.opened = True


    def close(self):
        self.opened = False
        self.listener.on_local_shutdown(droidctl.fields.CAUSE_REQUESTED)


    def play(self, *events):
        thread = threading.Thread(target=self._play, args=(events,))
        thread.daemon = True
        thread.start()
        self.threads.append(thread)


    def script(self, *events):
        self.scripts.append(events)


    def _play(self, events):
        for event in events:
            if isinstance(event, (int, float)):
                time.sleep(event)
                continue

            callback = getattr(self.listener, event[0])
            callback(*event[1:])


    def _sent(self, kind, value):
        if self.accept == False:
            return False

        self.sent.append((kind, value))

        if len(self.scripts) > 0:
            self.play(*self.scripts.pop(0))

        return True


    def send_dispatch(self, msg):
        return self._sent('dispatch', msg)

    def send_dispatch_file(self, path):
        return self._sent('file', path)

    def send_free_message(self, text):
        return self._sent('message', text)

    def send_shutdown(self):
        return self._sent('shutdown', None)


    def join(self):
        for thread in self.threads:
            thread.join(10)


class Recorder(droidctl.Listener):
    """ Listener that records every hook invocation. """

    def __init__(self):
        self.events = list()

    def on_debug(self, text):
        self.events.append(('debug', text))

    def on_connection(self):
        self.events.append(('connection',))

    def on_ready(self):
        self.events.append(('ready',))

    def on_running(self):
        self.events.append(('running',))

    def on_result_scalar(self, code, info):
        self.events.append(('result', code, info))

    def on_result_message(self, message):
        self.events.append(('result_message', message))

    def on_free_message(self, text):
        self.events.append(('message', text))

    def on_exception(self, text):
        self.events.append(('exception', text))

    def on_local_shutdown(self, cause):
        self.events.append(('local_shutdown', cause))

    def on_remote_shutdown(self, cause):
        self.events.append(('remote_shutdown', cause))

    def names(self):
        return [event[0] for event in self.events]


@pytest.fixture
def transport():
    scripted = ScriptedTransport()
    yield scripted
    scripted.join()


@pytest.fixture
def engine(transport):
    instance = droidctl.Engine(transport)
    instance.set_log(logging.getLogger('droidctl.tests'))
    return instance


@pytest.fixture
def recorder():
    return Recorder()

# vim: set expandtab tabstop=8 softtabstop=4 shiftwidth=4 autoindent:
