""" A class representation of a Property Message, the ordered string to
    string mapping used for both command dispatches and command results,
    along with the helpers that operate on them: the delimited list codec,
    result consolidation, and a typed view over a consolidated result.
"""

import collections.abc

from . import fields


# Candidate separators for the delimited list encoding, in order of
# preference.

separators = (';', ':', '|', '_', '#', '!', '$', '^', '&', '*', '~')

_missing = object()


def to_string(value):
    """ Return the canonical string form of *value*. Booleans are encoded
        as 'true' or 'false'; None is not a legal value.
    """

    if value is None:
        raise ValueError('message values cannot be None')

    if value is True:
        return 'true'
    if value is False:
        return 'false'

    if isinstance(value, str):
        return value

    return str(value)



class Message(collections.abc.MutableMapping):
    """ The :class:`Message` is an ordered mapping of string keys to string
        values; it represents one command request or one command result.
        Keys are case-sensitive. Values are always stored as strings, any
        other value is converted via :func:`to_string` on assignment. The
        absence of a key means "not set"; there is no null value.

        The optional *command* and *target* arguments populate the reserved
        keys of the same name; any additional keyword arguments are stored
        as parameters, in the order given.
    """

    def __init__(self, items=None, command=None, target=None, **params):

        self._properties = dict()

        if items is not None:
            self.update(items)

        if command is not None:
            self[fields.COMMAND] = command

        if target is not None:
            self[fields.TARGET] = target

        for key,value in params.items():
            self[key] = value


    def __delitem__(self, key):
        del self._properties[key]


    def __eq__(self, other):
        if isinstance(other, Message):
            return self._properties == other._properties
        if isinstance(other, collections.abc.Mapping):
            return self._properties == dict(other)
        return NotImplemented


    def __getitem__(self, key):
        return self._properties[key]


    def __iter__(self):
        return iter(self._properties)


    def __len__(self):
        return len(self._properties)


    def __repr__(self):
        return 'Message(' + repr(self._properties) + ')'


    def __setitem__(self, key, value):

        if isinstance(key, str):
            pass
        else:
            raise TypeError('message keys must be strings, not ' + type(key).__name__)

        self._properties[key] = to_string(value)


    @property
    def command(self):
        return self._properties.get(fields.COMMAND)


    @property
    def target(self):
        return self._properties.get(fields.TARGET)


    def copy(self):
        return Message(self)


    def to_dict(self):
        """ Return a plain dictionary copy of the message contents, suitable
            for serialization.
        """

        return dict(self._properties)


# end of class Message



class RemoteResults:
    """ Read-only convenience view over a consolidated result :class:`Message`.
        The reserved result keys are parsed on construction; a result that
        is missing them, or carries values that do not parse, is reported
        with :data:`fields.STATUS_NOT_EXECUTED` and ``is_remote_result``
        set to False.
    """

    def __init__(self, message):

        self.message = message
        self.is_remote_result = False
        self.status_code = fields.STATUS_NOT_EXECUTED
        self.status_info = message.get(fields.RESULT_INFO)
        self.error_message = message.get(fields.ERROR_MESSAGE)

        try:
            self.is_remote_result = self.get_boolean(fields.IS_REMOTE_RESULT)
            self.status_code = self.get_int(fields.RESULT_CODE)
        except (KeyError, ValueError):
            pass


    def __contains__(self, key):
        return key in self.message


    def get_string(self, key, default=_missing):
        try:
            return self.message[key]
        except KeyError:
            if default is _missing:
                raise
            return default


    def get_int(self, key, default=_missing):
        try:
            return int(self.message[key])
        except (KeyError, ValueError):
            if default is _missing:
                raise
            return default


    def get_boolean(self, key, default=_missing):
        """ Interpret the value for *key* as a boolean; only the string
            'true', in any case, is True.
        """

        try:
            value = self.message[key]
        except KeyError:
            if default is _missing:
                raise
            return default

        return value.lower() == 'true'


# end of class RemoteResults



def consolidate(base, result, code, info):
    """ Build the single result :class:`Message` returned to a caller. The
        *base* message is the structured result, if any, delivered by the
        remote side; if *base* is None a new message is created from the
        scalar *code* and *info* values. *result* is the boolean recorded
        as the ``isRemoteResult`` key.

        Keys already present in *base* are never overwritten: the remote side
        is authoritative for anything it supplied. ``resultInfo`` is only
        added if it is absent and *info* is not None.
    """

    if base is None:
        base = Message()

    if fields.IS_REMOTE_RESULT not in base:
        base[fields.IS_REMOTE_RESULT] = bool(result)

    if fields.RESULT_CODE not in base:
        base[fields.RESULT_CODE] = int(code)

    if fields.RESULT_INFO not in base and info is not None:
        base[fields.RESULT_INFO] = info

    return base



def unique_separator(text):
    """ Return the first candidate separator that does not occur anywhere in
        *text*. Returns None if every candidate occurs.
    """

    for separator in separators:
        if separator not in text:
            return separator

    return None



def encode_list(items):
    """ Serialize a sequence of strings as a single string. The first
        character of the result is the separator, chosen so that it does not
        occur in any of the items; each item follows, prefixed with that
        separator. An empty sequence is encoded as an empty string. A
        ValueError is raised if no candidate separator is usable.

        Examples::

            ['a', 'b']      ->  ';a;b'
            ['x;y', '']     ->  ':x;y:'
    """

    items = [to_string(item) for item in items]

    if len(items) == 0:
        return ''

    separator = unique_separator(''.join(items))

    if separator is None:
        raise ValueError('no usable separator, every candidate occurs in the items: ' + ''.join(separators))

    return separator + separator.join(items)



def decode_list(text):
    """ Inverse of :func:`encode_list`. The first character of *text* is the
        separator; the remainder is split on it. Empty elements are preserved
        as empty strings. An empty (or None) *text* decodes to an empty list.
    """

    if not text:
        return list()

    separator = text[0]
    return text[1:].split(separator)


# vim: set expandtab tabstop=8 softtabstop=4 shiftwidth=4 autoindent:
