import pytest

import mobileconnect
from mobileconnect.utils import decode_token_payload
from mobileconnect.utils import mask
from mobileconnect.utils import mask_url
from mobileconnect.utils import unverified_token_claims
from . import make_id_token


def test_mask():
    assert mask(None) == "None"
    assert mask("1234") == "****"
    assert mask("447700900907") == "44********07"


def test_mask_url():
    assert mask_url("https://op.example.com/authz?login_hint=ENCR_MSISDN:abc#frag") == \
        "https://op.example.com/authz?***#***"
    assert mask_url("https://op.example.com/authz") == "https://op.example.com/authz"
    assert mask_url(None) == "None"


def test_token_payload():
    _token = make_id_token(nonce="abc")
    assert '"nonce": "abc"' in decode_token_payload(_token)
    assert unverified_token_claims(_token)["nonce"] == "abc"


def test_not_a_token():
    with pytest.raises(ValueError):
        decode_token_payload("abc.def")


def test_package_metadata():
    assert mobileconnect.__author__
    assert mobileconnect.__version__ == "1.0.0"
