import os
import pytest

import droidctl

from droidctl import config


def test_defaults(tmp_path):

    configuration = config.Configuration(str(tmp_path / config.filename))

    assert configuration['address'] == 'localhost'
    assert configuration['port'] == 2411
    assert configuration['connect_timeout'] == 30
    assert configuration['ready_timeout'] == 15
    assert configuration['running_timeout'] == 15
    assert configuration['result_timeout'] == 60
    assert configuration['shutdown_timeout'] == 15
    assert configuration['max_timeout_extensions'] is None
    assert configuration['protocol_debug'] == True

    assert len(configuration) == len(config.defaults)
    assert 'port' in configuration
    assert 'colour' not in configuration


def test_load(tmp_path):

    path = tmp_path / config.filename
    path.write_text('{"port": "5000", "result_timeout": 90, "protocol_debug": "off"}')

    configuration = config.Configuration(str(path))

    assert configuration['port'] == 5000
    assert configuration['result_timeout'] == 90
    assert configuration['protocol_debug'] == False
    assert configuration['address'] == 'localhost'


def test_load_invalid(tmp_path):

    path = tmp_path / config.filename

    path.write_text('[1, 2, 3]')

    with pytest.raises(ValueError):
        config.Configuration(str(path))

    path.write_text('{"colour": "blue"}')

    with pytest.raises(ValueError):
        config.Configuration(str(path))


def test_save(tmp_path):

    path = tmp_path / 'nested' / config.filename

    configuration = config.Configuration(str(path))
    configuration.update({'address': 'device.local', 'max_timeout_extensions': 3})
    configuration.save()

    assert os.path.exists(str(path))

    reloaded = config.Configuration(str(path))

    assert reloaded['address'] == 'device.local'
    assert reloaded['max_timeout_extensions'] == 3
    assert reloaded['port'] == 2411


def test_coerce():

    assert config.coerce('port', '42') == 42
    assert config.coerce('ready_timeout', '2.5') == 2.5
    assert config.coerce('protocol_debug', 'Yes') == True
    assert config.coerce('protocol_debug', 0) == False
    assert config.coerce('max_timeout_extensions', None) is None

    with pytest.raises(ValueError):
        config.coerce('port', None)

    with pytest.raises(ValueError):
        config.coerce('port', 'eleven')

    with pytest.raises(ValueError):
        config.coerce('colour', 'blue')


def test_directory(tmp_path, monkeypatch):

    monkeypatch.setattr(config.directory, 'found', None)
    monkeypatch.setenv('DROIDCTL_HOME', str(tmp_path))

    assert config.directory() == str(tmp_path)
    assert droidctl.home() == str(tmp_path)

    monkeypatch.setattr(config.directory, 'found', None)
    monkeypatch.delenv('DROIDCTL_HOME')
    monkeypatch.setenv('HOME', str(tmp_path))

    assert config.directory() == os.path.join(str(tmp_path), '.droidctl')


def test_directory_override(tmp_path, monkeypatch):

    monkeypatch.setattr(config.directory, 'found', None)
    monkeypatch.setenv('DROIDCTL_HOME', '/nonexistent')

    target = tmp_path / 'override'
    assert config.directory(str(target)) == str(target)
    assert os.path.isdir(str(target))

    # The override sticks, without touching the environment.

    assert config.directory() == str(target)
    assert os.environ['DROIDCTL_HOME'] == '/nonexistent'

    with pytest.raises(ValueError):
        config.directory('relative/path')


def test_cached(tmp_path, monkeypatch):

    monkeypatch.setattr(config.directory, 'found', str(tmp_path))
    config._clear()

    try:
        first = config.get()
        assert first is config.get()
        assert first.path == os.path.join(str(tmp_path), config.filename)
    finally:
        config._clear()


# vim: set expandtab tabstop=8 softtabstop=4 shiftwidth=4 autoindent:
