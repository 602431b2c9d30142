"""Resolving which Mobile Connect version an operator supports for a given scope."""
import json
import logging
import re
from typing import List
from typing import Optional

logger = logging.getLogger(__name__)

DEFAULT_VERSION = "mc_v1.1"

# Used when the operator has not advertised anything that matches
DEFAULT_SUPPORTED_VERSIONS = {
    "openid": DEFAULT_VERSION,
    "openid mc_authn": "mc_v1.2",
    "openid mc_authz": "mc_v1.2",
    "openid mc_identity_phonenumber": "mc_v1.2",
    "openid mc_identity_signup": "mc_v1.2",
    "openid mc_identity_nationalid": "mc_v1.2",
}

VERSION_PATTERN = re.compile(r"(\d+(?:\.\d+)*)")


def version_key(version: str) -> tuple:
    """Turns 'mc_v1.2' into (1, 2) so that versions can be compared."""
    _match = VERSION_PATTERN.search(version or "")
    if not _match:
        return ()
    return tuple(int(x) for x in _match.group(1).split("."))


class SupportedVersions(object):
    """
    Ordered, read-only mapping from scope to version as advertised by an operator
    in the provider metadata claim 'mobile_connect_version_supported'.
    """

    def __init__(self, versions: Optional[dict] = None):
        self._versions = dict(versions or {})

    @classmethod
    def builder(cls):
        return SupportedVersionsBuilder()

    @classmethod
    def from_list(cls, items: Optional[List[dict]]):
        """
        :param items: List of single entry dictionaries, scope -> version
        """
        _versions = {}
        for item in items or []:
            if not isinstance(item, dict):
                logger.warning(f"Ignoring malformed supported version entry: {item}")
                continue
            for scope, version in item.items():
                _versions[scope] = version
        return cls(_versions)

    @classmethod
    def from_json(cls, txt: str):
        return cls.from_list(json.loads(txt))

    def to_list(self) -> List[dict]:
        return [{scope: version} for scope, version in self._versions.items()]

    def to_json(self) -> str:
        return json.dumps(self.to_list())

    def resolve(self, scope: str) -> str:
        """
        Find the version to use for the given scope. Tries the scope itself, then
        the 'openid' scope and last the built-in defaults. Never fails.

        :param scope: Space separated scope values
        :return: A version string
        """
        _version = self._versions.get(scope)
        if _version:
            return _version

        _version = self._versions.get("openid")
        if _version:
            return _version

        return DEFAULT_SUPPORTED_VERSIONS.get(scope, DEFAULT_SUPPORTED_VERSIONS["openid"])

    get_supported_version = resolve

    def max_supported_version(self) -> str:
        if not self._versions:
            return DEFAULT_VERSION
        return max(self._versions.values(), key=version_key)

    def is_version_supported(self, version: str) -> bool:
        if not version:
            return False
        return version_key(self.max_supported_version()) >= version_key(version)

    def keys(self):
        return self._versions.keys()

    def items(self):
        return self._versions.items()

    def __getitem__(self, item):
        return self._versions[item]

    def __contains__(self, item):
        return item in self._versions

    def __len__(self):
        return len(self._versions)

    def __eq__(self, other):
        if not isinstance(other, SupportedVersions):
            return NotImplemented
        return self._versions == other._versions

    def __repr__(self):
        return f"SupportedVersions({self._versions!r})"


class SupportedVersionsBuilder(object):
    def __init__(self):
        self._versions = {}

    def add_supported_version(self, scope: str, version: str):
        self._versions[scope] = version
        return self

    def build(self) -> SupportedVersions:
        return SupportedVersions(self._versions)
