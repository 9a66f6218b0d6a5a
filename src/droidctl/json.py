''' Select the fastest available JSON codec for configuration files and
    frame bodies. Whichever library is chosen, :func:`dumps` returns bytes
    and :func:`loads` accepts bytes or str; decoding failures are raised as
    :data:`DecodeError`.
'''

# Only import the next library if the preferred one is not installed.

msgspec = None
orjson = None
json = None

try:
    import msgspec
except ImportError:
    pass

if msgspec is None:
    try:
        import orjson
    except ImportError:
        pass

if msgspec is None and orjson is None:
    import json


if msgspec is not None:
    backend = 'msgspec'
    _encoder = msgspec.json.Encoder()
    _decoder = msgspec.json.Decoder()
    dumps = _encoder.encode
    loads = _decoder.decode
    DecodeError = msgspec.DecodeError

elif orjson is not None:
    backend = 'orjson'
    dumps = orjson.dumps
    loads = orjson.loads
    DecodeError = orjson.JSONDecodeError

else:
    backend = 'json'

    def dumps(value):
        return json.dumps(value).encode()

    loads = json.loads
    DecodeError = json.JSONDecodeError



def loads_object(raw, what='JSON'):
    """ Decode *raw* and confirm the result is a JSON object. Anything else,
        including undecodable input, raises ValueError naming *what* was
        being decoded.
    """

    try:
        decoded = loads(raw)
    except DecodeError as e:
        raise ValueError('%s is not valid JSON: %s' % (what, e))

    if isinstance(decoded, dict):
        return decoded

    raise ValueError('%s must be a JSON object, not %s' % (what, type(decoded).__name__))


# vim: set expandtab tabstop=8 softtabstop=4 shiftwidth=4 autoindent:
