import logging
from typing import Callable
from typing import List
from typing import Optional

import requests
from idpyoidc.exception import FormatError
from idpyoidc.message.oidc import AuthorizationRequest
from requests.exceptions import ConnectionError
from requests.exceptions import Timeout

from mobileconnect.exception import InvalidResponse
from mobileconnect.exception import RequestFailed
from mobileconnect.message import error_response
from mobileconnect.message import TokenResponse
from mobileconnect.utils import ImmutableValue
from mobileconnect.utils import mask
from mobileconnect.utils import mask_url
from mobileconnect.versions import SupportedVersions

logger = logging.getLogger(__name__)

SCOPE_OPENID = "openid"
SCOPE_AUTHN = "mc_authn"
SCOPE_AUTHZ = "mc_authz"
IDENTITY_SCOPE_PREFIX = "mc_identity_"

DEFAULT_ACR_VALUES = "2"
LOGIN_HINT_ENCRYPTED_MSISDN = "ENCR_MSISDN"


class AuthenticationOptions(ImmutableValue):
    _fields = ("scope", "acr_values", "context", "binding_message", "client_name",
               "login_hint", "prompt", "max_age", "ui_locales", "claims_locales", "display",
               "dtbs")

    def __init__(self,
                 scope: Optional[str] = SCOPE_OPENID,
                 acr_values: Optional[str] = DEFAULT_ACR_VALUES,
                 context: Optional[str] = None,
                 binding_message: Optional[str] = None,
                 client_name: Optional[str] = None,
                 login_hint: Optional[str] = None,
                 prompt: Optional[str] = None,
                 max_age: Optional[int] = None,
                 ui_locales: Optional[str] = None,
                 claims_locales: Optional[str] = None,
                 display: Optional[str] = None,
                 dtbs: Optional[str] = None):
        self.scope = scope or SCOPE_OPENID
        self.acr_values = acr_values or DEFAULT_ACR_VALUES
        self.context = context
        self.binding_message = binding_message
        self.client_name = client_name
        self.login_hint = login_hint
        self.prompt = prompt
        self.max_age = max_age
        self.ui_locales = ui_locales
        self.claims_locales = claims_locales
        self.display = display
        self.dtbs = dtbs
        self._freeze()


class StartAuthenticationResponse(ImmutableValue):
    _fields = ("url",)

    def __init__(self, url: str):
        self.url = url
        self._freeze()


class RequestTokenResponse(ImmutableValue):
    """What the token endpoint returned, either a token response or an error."""
    _fields = ("status_code", "response_data", "error_response")

    def __init__(self,
                 status_code: Optional[int] = 200,
                 response_data: Optional[TokenResponse] = None,
                 error_response=None):
        if response_data is not None and error_response is not None:
            raise ValueError("A token response can not be both a success and an error")
        self.status_code = status_code
        self.response_data = response_data
        self.error_response = error_response
        self._freeze()

    @property
    def id_token(self) -> Optional[str]:
        if self.response_data is None:
            return None
        return self.response_data.get("id_token")

    def to_dict(self) -> dict:
        _res = {"status_code": self.status_code}
        if self.response_data is not None:
            _res["response_data"] = self.response_data.to_dict()
        if self.error_response is not None:
            _res["error_response"] = self.error_response.to_dict()
        return _res


def is_authorization(options: AuthenticationOptions) -> bool:
    """
    An authorization request is one that needs the subscriber's consent,
    signalled by a context, the mc_authz scope or any identity scope.
    """
    _scopes = options.scope.split()
    if options.context:
        return True
    if SCOPE_AUTHZ in _scopes:
        return True
    return any(s.startswith(IDENTITY_SCOPE_PREFIX) for s in _scopes)


def coerce_scope(scope: str, authorization: bool) -> List[str]:
    """
    Makes sure openid is present and exactly one of mc_authn and mc_authz.
    Order is preserved, openid first.
    """
    _scopes = [SCOPE_OPENID]
    for s in scope.split():
        if s not in _scopes and s not in [SCOPE_AUTHN, SCOPE_AUTHZ]:
            _scopes.append(s)

    if authorization:
        _scopes.insert(1, SCOPE_AUTHZ)
    else:
        _scopes.insert(1, SCOPE_AUTHN)
    return _scopes


class AuthenticationService(object):
    """Constructs authorization requests and talks to the token endpoint."""

    def __init__(self, httpc: Optional[Callable] = None, httpc_params: Optional[dict] = None):
        self.httpc = httpc or requests.request
        self.httpc_params = httpc_params or {}

    def start_authentication(self,
                             client_id: str,
                             authorization_url: str,
                             redirect_url: str,
                             state: str,
                             nonce: str,
                             encrypted_msisdn: Optional[str] = None,
                             supported_versions: Optional[SupportedVersions] = None,
                             options: Optional[AuthenticationOptions] = None
                             ) -> StartAuthenticationResponse:
        """
        Builds the URL the subscriber should be redirected to in order to authenticate.

        :param client_id: Client ID issued to the application by the operator
        :param authorization_url: The operator's authorization endpoint
        :param redirect_url: Where the operator should send the subscriber afterwards
        :param state: Value that will be echoed back, used against CSRF
        :param nonce: Value that will be in the ID token, used against replay
        :param encrypted_msisdn: Encrypted subscriber identifier from discovery
        :param supported_versions: Versions supported by the operator
        :param options: Extra request options
        :return: A StartAuthenticationResponse instance
        """
        for name, value in [("client_id", client_id), ("authorization_url", authorization_url),
                            ("redirect_url", redirect_url), ("state", state), ("nonce", nonce)]:
            if not value:
                raise ValueError(f"Missing {name}")

        if options is None:
            options = AuthenticationOptions()
        if supported_versions is None:
            supported_versions = SupportedVersions()

        _authorization = is_authorization(options)
        _scopes = coerce_scope(options.scope, _authorization)
        _scope = " ".join(_scopes)

        _args = {
            "client_id": client_id,
            "response_type": "code",
            "scope": _scope,
            "redirect_uri": redirect_url,
            "state": state,
            "nonce": nonce,
            "acr_values": options.acr_values,
            "version": supported_versions.resolve(_scope),
        }

        if encrypted_msisdn:
            _args["login_hint"] = f"{LOGIN_HINT_ENCRYPTED_MSISDN}:{encrypted_msisdn}"
        elif options.login_hint:
            _args["login_hint"] = options.login_hint

        if _authorization:
            if not options.context:
                raise ValueError("Missing context, needed for authorization")
            if not options.client_name:
                raise ValueError("Missing client_name, needed for authorization")
            _args["context"] = options.context
            _args["client_name"] = options.client_name
            if options.binding_message:
                _args["binding_message"] = options.binding_message

        for attr in ["prompt", "max_age", "ui_locales", "claims_locales", "display", "dtbs"]:
            _val = getattr(options, attr)
            if _val:
                _args[attr] = _val

        _req = AuthorizationRequest(**_args)
        _url = _req.request(authorization_url)
        logger.debug(f"Authorization request for msisdn={mask(encrypted_msisdn)}, "
                     f"version={_args['version']}, url={mask_url(_url)}")
        return StartAuthenticationResponse(_url)

    def request_token(self,
                      client_id: str,
                      client_secret: str,
                      token_url: str,
                      redirect_url: str,
                      code: str) -> RequestTokenResponse:
        """
        Exchanges an authorization code for tokens.

        :return: A RequestTokenResponse instance
        """
        for name, value in [("client_id", client_id), ("client_secret", client_secret),
                            ("token_url", token_url), ("redirect_url", redirect_url),
                            ("code", code)]:
            if not value:
                raise ValueError(f"Missing {name}")

        _data = {
            "grant_type": "authorization_code",
            "code": code,
            "redirect_uri": redirect_url
        }
        _kwargs = dict(self.httpc_params)
        try:
            response = self.httpc("POST", token_url, data=_data, auth=(client_id, client_secret),
                                  **_kwargs)
        except (ConnectionError, Timeout) as err:
            logger.error(f"Could not connect to {token_url}: {err}")
            raise RequestFailed(str(err), method="POST", url=token_url)

        try:
            _info = response.json()
        except ValueError:
            logger.warning(f"Token endpoint returned non JSON, status={response.status_code}")
            raise InvalidResponse(f"Unexpected token response: {response.status_code}")

        if not isinstance(_info, dict):
            raise InvalidResponse("Token response is not a JSON object")

        try:
            _resp = TokenResponse(**_info)
        except (ValueError, FormatError) as err:
            raise InvalidResponse(f"Malformed token response: {err}")

        _error = error_response(_resp)
        if _error is not None:
            return RequestTokenResponse(status_code=response.status_code, error_response=_error)
        elif response.status_code >= 400:
            raise RequestFailed(method="POST", url=token_url, status_code=response.status_code)

        return RequestTokenResponse(status_code=response.status_code, response_data=_resp)
