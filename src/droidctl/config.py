""" Persistent configuration for droidctl: connection details for the remote
    engine, and the default timeouts used by :class:`droidctl.Engine`. The
    configuration is a single JSON file, ``droidctl.json``, in the directory
    returned by :func:`directory`.
"""

import os
import threading

from . import json


filename = 'droidctl.json'

defaults = dict()
defaults['address'] = 'localhost'
defaults['port'] = 2411
defaults['connect_timeout'] = 30
defaults['ready_timeout'] = 15
defaults['running_timeout'] = 15
defaults['result_timeout'] = 60
defaults['shutdown_timeout'] = 15
defaults['max_timeout_extensions'] = None
defaults['protocol_debug'] = True

_types = dict()
_types['address'] = str
_types['port'] = int
_types['connect_timeout'] = float
_types['ready_timeout'] = float
_types['running_timeout'] = float
_types['result_timeout'] = float
_types['shutdown_timeout'] = float
_types['max_timeout_extensions'] = int
_types['protocol_debug'] = bool

_cache = None
_cache_lock = threading.Lock()


class Configuration:
    """ A convenience class to represent droidctl configuration data. An
        instance acts like a dictionary restricted to the keys in
        :data:`defaults`; values are coerced to the expected type when set.
        If *path* is not specified the file is located in :func:`directory`.
    """

    def __init__(self, path=None):

        if path is None:
            path = os.path.join(directory(), filename)

        self.path = path
        self._values = dict(defaults)

        self.load()


    def __contains__(self, key):
        return key in self._values


    def __getitem__(self, key):
        return self._values[key]


    def __setitem__(self, key, value):
        self._values[key] = coerce(key, value)


    def __len__(self):
        return len(self._values)


    def load(self):
        """ Load the configuration file, if it exists. Values not present in
            the file retain their current setting.
        """

        try:
            with open(self.path, 'rb') as reader:
                raw = reader.read()
        except FileNotFoundError:
            return

        loaded = json.loads_object(raw, self.path)

        for key,value in loaded.items():
            self[key] = value


    def save(self):
        """ Write the current configuration to disk.
        """

        target_directory = os.path.dirname(self.path)

        if target_directory and os.path.exists(target_directory) == False:
            os.makedirs(target_directory, mode=0o775)

        raw = json.dumps(self._values)

        with open(self.path, 'wb') as writer:
            writer.write(raw)


    def update(self, values):
        for key,value in values.items():
            self[key] = value


# end of class Configuration



def coerce(key, value):
    """ Return *value* converted to the type expected for *key*. A ValueError
        is raised for unknown keys, or values that cannot be converted.
    """

    try:
        expected = _types[key]
    except KeyError:
        raise ValueError('unknown configuration key: ' + repr(key))

    if value is None:
        if defaults[key] is None:
            return None
        raise ValueError('configuration key %s cannot be null' % (key))

    if expected is bool:
        if isinstance(value, str):
            return value.lower() in ('1', 'true', 'yes', 'on')
        return bool(value)

    try:
        return expected(value)
    except (TypeError, ValueError):
        raise ValueError('invalid value for %s: %r' % (key, value))



def directory(override=None):
    """ Return the droidctl configuration directory. An explicit *override*
        takes precedence and is created if necessary; otherwise the
        ``DROIDCTL_HOME`` environment variable is used, falling back to
        ``$HOME/.droidctl``. The answer is cached on first use.
    """

    if override is not None:
        override = os.path.expandvars(str(override))

        if os.path.isabs(override) == False:
            raise ValueError('configuration directory must be an absolute path: ' + override)

        os.makedirs(override, mode=0o775, exist_ok=True)
        directory.found = override

    if directory.found is None:
        home = os.environ.get('DROIDCTL_HOME')

        if home is None:
            try:
                home = os.path.join(os.environ['HOME'], '.droidctl')
            except KeyError:
                raise RuntimeError('neither DROIDCTL_HOME nor HOME is set, cannot locate the droidctl configuration')

        directory.found = home

    return directory.found

directory.found = None



def get():
    """ Retrieve the locally cached :class:`Configuration` instance, loading
        it from disk on first use.
    """

    global _cache

    config = _cache

    if config is None:
        with _cache_lock:
            if _cache is None:
                _cache = Configuration()
            config = _cache

    return config



def _clear():
    """ Discard the cached :class:`Configuration` instance, if any.
    """

    global _cache

    with _cache_lock:
        _cache = None


# vim: set expandtab tabstop=8 softtabstop=4 shiftwidth=4 autoindent:
