import base64
import json

CLIENT_ID = "zxcvbnm"
CLIENT_SECRET = "asdfghjkl"
DISCOVERY_URL = "http://discovery.example.com/v2/discovery"
REDIRECT_URL = "http://rp.example.com/redirect"

OPERATOR_BASE = "http://operator-a.example.com/oidc"
AUTHORIZATION_URL = f"{OPERATOR_BASE}/authorize"
TOKEN_URL = f"{OPERATOR_BASE}/accesstoken"
USERINFO_URL = f"{OPERATOR_BASE}/userinfo"
PREMIUMINFO_URL = f"{OPERATOR_BASE}/premiuminfo"
PROVIDER_METADATA_URL = "http://operator-a.example.com/.well-known/openid-configuration"
OPERATOR_SELECTION_URL = "http://discovery.example.com/v2/discovery/users/operator-selection" \
                         "?session_id=abcdef"

CONFIG = {
    "client_id": CLIENT_ID,
    "client_secret": CLIENT_SECRET,
    "discovery_url": DISCOVERY_URL,
    "redirect_url": REDIRECT_URL
}


def operator_links(userinfo=True, premiuminfo=True):
    _links = [
        {"href": AUTHORIZATION_URL, "rel": "authorization"},
        {"href": TOKEN_URL, "rel": "token"},
        {"href": PROVIDER_METADATA_URL, "rel": "openid-configuration"},
    ]
    if userinfo:
        _links.append({"href": USERINFO_URL, "rel": "userinfo"})
    if premiuminfo:
        _links.append({"href": PREMIUMINFO_URL, "rel": "premiuminfo"})
    return _links


def authentication_response(subscriber_id="e4ee7ba1a47e7b8c4e2b0b1a", **kwargs):
    """A completed discovery response, the operator has been identified."""
    _info = {
        "response": {
            "serving_operator": "Example Operator A",
            "country": "US",
            "currency": "USD",
            "client_id": "operator-client-id",
            "client_secret": "operator-client-secret",
            "client_name": "test1",
            "apis": {
                "operatorid": {
                    "link": operator_links(**kwargs)
                }
            }
        }
    }
    if subscriber_id:
        _info["subscriber_id"] = subscriber_id
    return _info


AUTHENTICATION_RESPONSE = authentication_response()

AUTHENTICATION_NO_URI_RESPONSE = authentication_response(userinfo=False, premiuminfo=False)

OPERATOR_SELECTION_RESPONSE = {
    "links": [
        {"href": OPERATOR_SELECTION_URL, "rel": "operatorSelection"}
    ]
}

DISCOVERY_ERROR_RESPONSE = {
    "error": "Not_Found_Entity",
    "error_description": "Operator Not Found"
}

PROVIDER_METADATA_RESPONSE = {
    "issuer": "http://operator-a.example.com",
    "authorization_endpoint": AUTHORIZATION_URL,
    "token_endpoint": TOKEN_URL,
    "userinfo_endpoint": USERINFO_URL,
    "premiuminfo_endpoint": PREMIUMINFO_URL,
    "mobile_connect_version_supported": [
        {"openid": "mc_v1.1"},
        {"openid mc_authn": "mc_v1.2"},
        {"openid mc_authz": "mc_v1.2"}
    ]
}

USERINFO_RESPONSE = {
    "sub": "411421B0-38D6-6568-A53A-DF99691B7EB6",
    "email": "test2@example.com",
    "email_verified": True
}


def _b64(info: dict) -> str:
    return base64.urlsafe_b64encode(json.dumps(info).encode("utf-8")).decode("ascii").rstrip("=")


def make_id_token(**claims) -> str:
    """An unsigned looking JWT, only the payload matters here."""
    _header = {"alg": "RS256", "typ": "JWT"}
    _payload = {
        "iss": "http://operator-a.example.com",
        "sub": "411421B0-38D6-6568-A53A-DF99691B7EB6",
        "aud": [CLIENT_ID],
        "exp": 2147483647,
        "iat": 1470000000,
    }
    _payload.update(claims)
    return f"{_b64(_header)}.{_b64(_payload)}.c2lnbmF0dXJl"


def token_response(nonce="nonce", **kwargs):
    _info = {
        "access_token": "966ad150-16c5-11e6-944f-43079d13e2f3",
        "token_type": "Bearer",
        "expires_in": 3600,
        "id_token": make_id_token(nonce=nonce)
    }
    _info.update(kwargs)
    return _info
