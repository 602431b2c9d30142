import json

import pytest

from mobileconnect.versions import DEFAULT_SUPPORTED_VERSIONS
from mobileconnect.versions import DEFAULT_VERSION
from mobileconnect.versions import SupportedVersions
from mobileconnect.versions import version_key

SUPPORTED = [
    {"openid": "mc_v1.1"},
    {"openid mc_authn": "mc_v1.2"},
    {"openid mc_authz": "mc_v1.2"}
]


def test_version_key():
    assert version_key("mc_v1.2") == (1, 2)
    assert version_key("mc_v1.1") < version_key("mc_v1.2")
    assert version_key("mc_v2.0") > version_key("mc_v1.2")
    assert version_key("") == ()


def test_exact_match():
    sv = SupportedVersions.from_list(SUPPORTED)
    assert sv.resolve("openid mc_authn") == "mc_v1.2"
    assert sv.resolve("openid") == "mc_v1.1"


def test_fallback_to_openid():
    sv = SupportedVersions({"openid": "mc_v1.3"})
    assert sv.resolve("openid mc_authz") == "mc_v1.3"
    assert sv.resolve("openid mc_identity_signup") == "mc_v1.3"


def test_fallback_to_defaults():
    sv = SupportedVersions({"openid mc_authn": "mc_v1.2"})
    # no 'openid' entry, the built in defaults take over
    assert sv.resolve("openid mc_authz") == DEFAULT_SUPPORTED_VERSIONS["openid mc_authz"]
    assert sv.resolve("openid mc_foo") == DEFAULT_VERSION


def test_empty_never_fails():
    sv = SupportedVersions()
    assert sv.resolve("openid") == DEFAULT_VERSION
    assert sv.resolve("openid mc_identity_phonenumber") == "mc_v1.2"
    assert sv.resolve("") == DEFAULT_VERSION
    assert len(sv) == 0


def test_alias():
    sv = SupportedVersions.from_list(SUPPORTED)
    assert sv.get_supported_version("openid mc_authz") == sv.resolve("openid mc_authz")


def test_defaults_not_added_to_instance():
    sv = SupportedVersions({"openid": "mc_v1.1"})
    sv.resolve("openid mc_authn")
    assert list(sv.keys()) == ["openid"]


def test_list_round_trip():
    sv = SupportedVersions.from_list(SUPPORTED)
    assert sv.to_list() == SUPPORTED
    assert SupportedVersions.from_list(sv.to_list()) == sv


def test_json_round_trip():
    sv = SupportedVersions.from_json(json.dumps(SUPPORTED))
    assert json.loads(sv.to_json()) == SUPPORTED
    assert SupportedVersions.from_json(sv.to_json()) == sv


def test_malformed_entries_are_ignored():
    sv = SupportedVersions.from_list([{"openid": "mc_v1.1"}, "mc_v1.2", None])
    assert sv.to_list() == [{"openid": "mc_v1.1"}]


def test_builder():
    sv = SupportedVersions.builder() \
        .add_supported_version("openid", "mc_v1.1") \
        .add_supported_version("openid mc_authn", "mc_v1.2") \
        .build()
    assert sv == SupportedVersions.from_list(SUPPORTED[:2])
    assert "openid mc_authn" in sv
    assert sv["openid"] == "mc_v1.1"


@pytest.mark.parametrize("version,expected", [
    ("mc_v1.1", True),
    ("mc_v1.2", True),
    ("mc_v1.3", False),
    ("", False),
])
def test_is_version_supported(version, expected):
    sv = SupportedVersions.from_list(SUPPORTED)
    assert sv.max_supported_version() == "mc_v1.2"
    assert sv.is_version_supported(version) is expected


def test_max_version_without_entries():
    assert SupportedVersions().max_supported_version() == DEFAULT_VERSION
