import json
import logging
from typing import Optional
from urllib.parse import urlsplit
from urllib.parse import urlunsplit

from cryptojwt.utils import as_bytes
from cryptojwt.utils import as_unicode
from cryptojwt.utils import b64d

logger = logging.getLogger(__name__)

MASK_VISIBLE = 2


class ImmutableValue(object):
    """
    Base for value objects that are frozen once __init__ has run.
    Subclasses list their constructor arguments in ``_fields``.
    """
    _fields = ()

    def _freeze(self):
        object.__setattr__(self, "_frozen", True)

    def __setattr__(self, key, value):
        if getattr(self, "_frozen", False):
            raise AttributeError(f"{self.__class__.__name__} is immutable")
        object.__setattr__(self, key, value)

    def __delattr__(self, item):
        raise AttributeError(f"{self.__class__.__name__} is immutable")

    def to_dict(self) -> dict:
        return {k: getattr(self, k) for k in self._fields}

    def replace(self, **changes):
        """Returns a new instance with some of the fields changed."""
        _args = {k: getattr(self, k) for k in self._fields}
        _args.update(changes)
        return self.__class__(**_args)

    def __eq__(self, other):
        if other.__class__ is not self.__class__:
            return NotImplemented
        return self.to_dict() == other.to_dict()

    def __hash__(self):
        return hash(tuple(repr(getattr(self, k)) for k in self._fields))

    def __repr__(self):
        _args = ", ".join(f"{k}={getattr(self, k)!r}" for k in self._fields)
        return f"{self.__class__.__name__}({_args})"


def mask(value: Optional[str]) -> str:
    """
    Masks a sensitive value so that it can be logged. Only the first and last
    characters are kept.
    """
    if value is None:
        return "None"
    value = str(value)
    if len(value) <= 2 * MASK_VISIBLE:
        return "*" * len(value)
    return value[:MASK_VISIBLE] + "*" * (len(value) - 2 * MASK_VISIBLE) + value[-MASK_VISIBLE:]


def mask_url(url: Optional[str]) -> str:
    """Masks the query and fragment of a URL, those may carry subscriber data."""
    if not url:
        return str(url)
    p = urlsplit(url)
    _query = "***" if p.query else ""
    _fragment = "***" if p.fragment else ""
    return urlunsplit((p.scheme, p.netloc, p.path, _query, _fragment))


def decode_token_payload(token: str) -> str:
    """
    Decodes the payload part of a JWT without verifying it.

    :param token: A JWT, three base64url encoded parts separated by '.'
    :return: The payload as a string
    """
    _parts = token.split(".")
    if len(_parts) != 3:
        raise ValueError("Not a JWT, expected three parts")
    return as_unicode(b64d(as_bytes(_parts[1])))


def unverified_token_claims(token: str) -> dict:
    return json.loads(decode_token_payload(token))
