import pytest

from mobileconnect.redirect import extract_query_value
from mobileconnect.redirect import parse_discovery_redirect
from mobileconnect.redirect import ParsedDiscoveryRedirect

REDIRECT = "http://rp.example.com/redirect"


def test_extract_query_value():
    _url = f"{REDIRECT}?code=1234&state=abcd&empty="
    assert extract_query_value(_url, "code") == "1234"
    assert extract_query_value(_url, "state") == "abcd"
    assert extract_query_value(_url, "empty") == ""
    assert extract_query_value(_url, "nonce") is None


@pytest.mark.parametrize("url", [None, "", REDIRECT, "not a url at all"])
def test_extract_query_value_missing(url):
    assert extract_query_value(url, "code") is None


def test_parse_selected_operator():
    _url = f"{REDIRECT}?mcc_mnc=901_01&subscriber_id=encrypted-msisdn"
    parsed = parse_discovery_redirect(_url)
    assert parsed.selected_mcc == "901"
    assert parsed.selected_mnc == "01"
    assert parsed.encrypted_msisdn == "encrypted-msisdn"
    assert parsed.error is None
    assert parsed.has_mcc_and_mnc()


def test_parse_is_idempotent():
    _url = f"{REDIRECT}?mcc_mnc=901_01&subscriber_id=abc"
    assert parse_discovery_redirect(_url) == parse_discovery_redirect(_url)


@pytest.mark.parametrize("value", ["90101", "901_", "_01", "901_01_02", ""])
def test_parse_malformed_mcc_mnc(value):
    parsed = parse_discovery_redirect(f"{REDIRECT}?mcc_mnc={value}")
    assert parsed.selected_mcc is None
    assert parsed.selected_mnc is None
    assert parsed.has_mcc_and_mnc() is False


def test_parse_error():
    _url = f"{REDIRECT}?error=access_denied&error_description=user+said+no"
    parsed = parse_discovery_redirect(_url)
    assert parsed.error == "access_denied"
    assert parsed.error_description == "user said no"
    assert parsed.has_mcc_and_mnc() is False


@pytest.mark.parametrize("url", [None, "", REDIRECT])
def test_parse_nothing(url):
    assert parse_discovery_redirect(url) == ParsedDiscoveryRedirect()


def test_parsed_is_immutable():
    parsed = parse_discovery_redirect(f"{REDIRECT}?mcc_mnc=901_01")
    with pytest.raises(AttributeError):
        parsed.selected_mcc = "902"
