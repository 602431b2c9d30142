""" Classes used to describe the information exchanged with Mobile Connect services."""
import logging

from idpyoidc.message import Message
from idpyoidc.message import msg_ser
from idpyoidc.message import SINGLE_OPTIONAL_INT
from idpyoidc.message import SINGLE_OPTIONAL_STRING
from idpyoidc.message import SINGLE_REQUIRED_STRING
from idpyoidc.message.oauth2 import ResponseMessage
from idpyoidc.message.oidc import deserialize_from_one_of
from idpyoidc.message.oidc import SINGLE_OPTIONAL_DICT

from mobileconnect.versions import SupportedVersions

logger = logging.getLogger(__name__)

# Link relations used by the discovery service
LINK_REL_AUTHORIZATION = "authorization"
LINK_REL_TOKEN = "token"
LINK_REL_USERINFO = "userinfo"
LINK_REL_PREMIUMINFO = "premiuminfo"
LINK_REL_OPENID_CONFIGURATION = "openid-configuration"
LINK_REL_JWKS = "jwks"
LINK_REL_TOKEN_REVOKE = "tokenrevoke"
LINK_REL_TOKEN_REFRESH = "tokenrefresh"
LINK_REL_OPERATOR_SELECTION = "operatorSelection"


class Link(Message):
    c_param = {
        "href": SINGLE_REQUIRED_STRING,
        "rel": SINGLE_REQUIRED_STRING
    }


class OperatorResponse(Message):
    """The part of a completed discovery response that describes the serving operator."""
    c_param = {
        "client_id": SINGLE_OPTIONAL_STRING,
        "client_secret": SINGLE_OPTIONAL_STRING,
        "serving_operator": SINGLE_OPTIONAL_STRING,
        "country": SINGLE_OPTIONAL_STRING,
        "currency": SINGLE_OPTIONAL_STRING,
        "client_name": SINGLE_OPTIONAL_STRING,
        "apis": SINGLE_OPTIONAL_DICT
    }

    def links(self) -> list:
        """All the links listed under the operator APIs."""
        _links = []
        for _api in (self.get("apis") or {}).values():
            if isinstance(_api, dict):
                _links.extend(_api.get("link") or [])
        return _links


def operator_response_deser(val, sformat="json"):
    """Deserializes a JSON object (most likely) into an OperatorResponse."""
    return deserialize_from_one_of(val, OperatorResponse, sformat)


OPTIONAL_OPERATOR_RESPONSE = (Message, False, msg_ser, operator_response_deser, False)


class DiscoveryResponseData(ResponseMessage):
    """
    The body returned by the discovery service. Depending on the outcome it
    carries operator information, operator selection links or an error.
    The 'links' claim is a list of Link like dictionaries.
    """
    c_param = ResponseMessage.c_param.copy()
    c_param.update({
        "ttl": SINGLE_OPTIONAL_INT,
        "subscriber_id": SINGLE_OPTIONAL_STRING,
        "response": OPTIONAL_OPERATOR_RESPONSE,
    })

    def links(self) -> list:
        _links = list(self.get("links") or [])
        _resp = self.get("response")
        if _resp:
            _links.extend(_resp.links())
        return _links


class OperatorUrls(Message):
    """The operator endpoints, derived from the discovery links."""
    c_param = {
        "authorization_url": SINGLE_OPTIONAL_STRING,
        "request_token_url": SINGLE_OPTIONAL_STRING,
        "user_info_url": SINGLE_OPTIONAL_STRING,
        "premium_info_url": SINGLE_OPTIONAL_STRING,
        "provider_metadata_url": SINGLE_OPTIONAL_STRING,
        "jwks_url": SINGLE_OPTIONAL_STRING,
        "revoke_token_url": SINGLE_OPTIONAL_STRING,
        "refresh_token_url": SINGLE_OPTIONAL_STRING,
    }

    rel_map = {
        LINK_REL_AUTHORIZATION: "authorization_url",
        LINK_REL_TOKEN: "request_token_url",
        LINK_REL_USERINFO: "user_info_url",
        LINK_REL_PREMIUMINFO: "premium_info_url",
        LINK_REL_OPENID_CONFIGURATION: "provider_metadata_url",
        LINK_REL_JWKS: "jwks_url",
        LINK_REL_TOKEN_REVOKE: "revoke_token_url",
        LINK_REL_TOKEN_REFRESH: "refresh_token_url",
    }

    @classmethod
    def from_links(cls, links: list):
        _args = {}
        for link in links or []:
            _attr = cls.rel_map.get(link.get("rel"))
            if _attr and link.get("href") and _attr not in _args:
                _args[_attr] = link["href"]
        return cls(**_args)


class ProviderMetadata(Message):
    """
    The subset of an operator's openid-configuration this package uses.
    'mobile_connect_version_supported' is a list of single entry dictionaries.
    """
    c_param = {
        "issuer": SINGLE_OPTIONAL_STRING,
        "authorization_endpoint": SINGLE_OPTIONAL_STRING,
        "token_endpoint": SINGLE_OPTIONAL_STRING,
        "userinfo_endpoint": SINGLE_OPTIONAL_STRING,
        "premiuminfo_endpoint": SINGLE_OPTIONAL_STRING,
        "jwks_uri": SINGLE_OPTIONAL_STRING,
        "revocation_endpoint": SINGLE_OPTIONAL_STRING,
    }

    def supported_versions(self) -> SupportedVersions:
        return SupportedVersions.from_list(self.get("mobile_connect_version_supported"))


class TokenResponse(ResponseMessage):
    c_param = ResponseMessage.c_param.copy()
    c_param.update({
        "access_token": SINGLE_OPTIONAL_STRING,
        "token_type": SINGLE_OPTIONAL_STRING,
        "expires_in": SINGLE_OPTIONAL_INT,
        "id_token": SINGLE_OPTIONAL_STRING,
        "refresh_token": SINGLE_OPTIONAL_STRING,
        "scope": SINGLE_OPTIONAL_STRING,
        "correlation_id": SINGLE_OPTIONAL_STRING,
    })


def error_response(info: Message):
    """Picks out the error part of a response, None if there isn't one."""
    if info is None or not info.get("error"):
        return None
    _args = {k: info[k] for k in ["error", "error_description", "error_uri"] if info.get(k)}
    return ResponseMessage(**_args)
