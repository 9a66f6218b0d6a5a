import pytest

import droidctl

from droidctl import errors
from droidctl import fields
from droidctl.message import Message
from droidctl.transport.zmq import framing


def test_frames():

    parts = framing.to_frames(fields.READY)
    assert parts == (b'a', b'READY', b'')

    frame = framing.from_frames(parts)
    assert frame.frame_type == fields.READY
    assert frame.value is None

    parts = framing.to_frames(fields.RESULT, (3, 'three'), prefix=(b'someone',))
    frame = framing.from_frames(parts, routed=True)

    assert frame.prefix == (b'someone',)
    assert frame.value == (3, 'three')

    parts = framing.to_frames(fields.DISPATCH, {'command': 'click', 'x': 10})
    frame = framing.from_frames(parts)

    assert isinstance(frame.value, Message)
    assert frame.value['x'] == '10'


def test_shutdown_cause():

    frame = framing.from_frames((b'a', b'REMOTESHUTDOWN', b''))
    assert frame.value == fields.CAUSE_UNKNOWN

    frame = framing.from_frames(framing.to_frames(fields.REMOTESHUTDOWN, fields.CAUSE_CONNECTION_LOST))
    assert frame.value == fields.CAUSE_CONNECTION_LOST

    with pytest.raises(framing.FramingError):
        framing.from_frames((b'a', b'SHUTDOWN', b'soon'))


def test_malformed_frames():

    with pytest.raises(framing.VersionMismatch):
        framing.from_frames((b'z', b'READY', b''))

    with pytest.raises(framing.FramingError):
        framing.from_frames((b'a',))

    with pytest.raises(framing.FramingError):
        framing.from_frames((b'a', b'RESULTPROPS', b'not json'))

    with pytest.raises(framing.FramingError):
        framing.from_frames((b'a', b'RESULTPROPS', b'[1, 2]'))

    with pytest.raises(framing.FramingError):
        framing.to_frames('NONSENSE', 'value')

    # Unknown frame types are passed along as text.

    frame = framing.from_frames((b'a', b'GREETING', b'hello there'))
    assert frame.frame_type == 'GREETING'
    assert frame.value == 'hello there'


class Widgets(droidctl.transport.zmq.Server):

    def req_dispatch(self, message):

        command = message.command

        if command == 'ping':
            return (fields.STATUS_OK, 'pong')
        if command == 'inspect':
            result = dict()
            result[fields.RESULT_CODE] = fields.STATUS_OK
            result['widgets'] = droidctl.encode_list(['ok', 'cancel'])
            return result
        if command == 'slow':
            self.send_result_message({fields.CHANGE_TIMEOUT: 5})
            return (fields.STATUS_OK, 'finally')

        raise KeyError(command)


@pytest.fixture
def server():
    instance = Widgets('127.0.0.1')
    yield instance
    instance.close()


@pytest.fixture
def client_engine(server):
    client = droidctl.transport.zmq.Client('127.0.0.1', server.port)
    instance = droidctl.Engine(client)
    instance.protocol_debug = False
    instance.start()
    instance.wait_for_connected(10)
    yield instance
    instance.shutdown()


def test_ping(client_engine):

    result = client_engine.perform_command(Message(command='ping'), 5, 5, 5)

    assert result[fields.RESULT_CODE] == '0'
    assert result[fields.RESULT_INFO] == 'pong'
    assert result[fields.IS_REMOTE_RESULT] == 'true'

    # The remote side is ready again after each command.

    result = client_engine.perform_command(Message(command='ping'), 5, 5, 5)
    assert result[fields.RESULT_INFO] == 'pong'


def test_result_message(client_engine):

    result = client_engine.perform_command(Message(command='inspect'), 5, 5, 5)

    assert result[fields.RESULT_CODE] == '0'
    assert droidctl.decode_list(result['widgets']) == ['ok', 'cancel']

    remote = droidctl.RemoteResults(result)
    assert remote.is_remote_result == True
    assert remote.status_code == fields.STATUS_OK


def test_remote_extension(client_engine):

    result = client_engine.perform_command(Message(command='slow'), 5, 5, 5)
    assert result[fields.RESULT_INFO] == 'finally'


def test_remote_failure(client_engine):

    with pytest.raises(errors.RemoteException) as caught:
        client_engine.perform_command(Message(command='explode'), 5, 5, 5)

    assert 'KeyError' in caught.value.text

    result = client_engine.perform_command(Message(command='ping'), 5, 5, 5)
    assert result[fields.RESULT_INFO] == 'pong'


def test_file_command(client_engine, tmp_path):

    path = tmp_path / 'dispatch.json'
    path.write_text('{"command": "ping"}')

    result = client_engine.perform_file_command(str(path), 5, 5, 5)
    assert result[fields.RESULT_INFO] == 'pong'


def test_remote_shutdown(client_engine):

    client_engine.perform_shutdown(5, 5, 5)

    assert client_engine.state.remote_shutdown == True
    assert client_engine.state.shutdown_cause == fields.CAUSE_REQUESTED


def test_local_close(server):

    client = droidctl.transport.zmq.Client('127.0.0.1', server.port)
    engine = droidctl.Engine(client)
    engine.start()
    engine.wait_for_connected(10)

    engine.shutdown()

    assert client.is_open == False
    assert client.send_dispatch(Message(command='ping')) == False

    with pytest.raises(errors.LocalShutdown) as caught:
        engine.wait_for_ready(1)

    assert caught.value.cause == fields.CAUSE_REQUESTED


def test_port_in_use(server):

    with pytest.raises(droidctl.transport.TransportPortError):
        droidctl.transport.zmq.Server('127.0.0.1', server.port)


def test_connect(server, tmp_path, monkeypatch):

    configuration = droidctl.config.Configuration(str(tmp_path / 'droidctl.json'))
    configuration['address'] = '127.0.0.1'
    configuration['port'] = server.port
    configuration['protocol_debug'] = False

    monkeypatch.setattr(droidctl.config, '_cache', configuration)

    engine = droidctl.connect()

    try:
        assert engine is droidctl.connect()

        result = engine.perform_command(Message(command='ping'), 5, 5, 5)
        assert result[fields.RESULT_INFO] == 'pong'
    finally:
        droidctl.disconnect()

    assert engine.state.local_shutdown == True
    assert droidctl.begin._clear('127.0.0.1', server.port) is None


# vim: set expandtab tabstop=8 softtabstop=4 shiftwidth=4 autoindent:
