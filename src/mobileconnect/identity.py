import json
import logging
from typing import Callable
from typing import Optional

import requests
from cryptojwt.exception import BadSyntax
from idpyoidc.message.oauth2 import ResponseMessage
from requests.exceptions import ConnectionError
from requests.exceptions import Timeout

from mobileconnect.exception import InvalidResponse
from mobileconnect.exception import RequestFailed
from mobileconnect.utils import decode_token_payload
from mobileconnect.utils import ImmutableValue
from mobileconnect.utils import mask
from mobileconnect.utils import mask_url

logger = logging.getLogger(__name__)


class IdentityResponse(ImmutableValue):
    """Result from the userinfo or premiuminfo endpoint, either claims or an error."""
    _fields = ("status_code", "response_data", "error_response")

    def __init__(self,
                 status_code: Optional[int] = 200,
                 response_data: Optional[dict] = None,
                 error_response: Optional[ResponseMessage] = None):
        if response_data is not None and error_response is not None:
            raise ValueError("An identity response can not be both a success and an error")
        self.status_code = status_code
        self.response_data = response_data
        self.error_response = error_response
        self._freeze()

    def to_dict(self) -> dict:
        _res = {"status_code": self.status_code}
        if self.response_data is not None:
            _res["response_data"] = self.response_data
        if self.error_response is not None:
            _res["error_response"] = self.error_response.to_dict()
        return _res


def parse_www_authenticate(header: str) -> Optional[ResponseMessage]:
    """
    Picks the error out of a 'WWW-Authenticate: Bearer error="..."' header.
    """
    if not header:
        return None
    _info = {}
    _params = header.split(" ", 1)[1] if " " in header else ""
    for part in _params.split(","):
        if "=" not in part:
            continue
        key, val = part.split("=", 1)
        _info[key.strip()] = val.strip().strip('"')
    if "error" not in _info:
        return None
    return ResponseMessage(**{k: v for k, v in _info.items()
                              if k in ["error", "error_description", "error_uri"]})


class IdentityService(object):
    """Fetches subscriber information from the userinfo and premiuminfo endpoints."""

    def __init__(self, httpc: Optional[Callable] = None, httpc_params: Optional[dict] = None):
        self.httpc = httpc or requests.request
        self.httpc_params = httpc_params or {}

    def request_info(self, url: str, access_token: str) -> IdentityResponse:
        """
        :param url: The userinfo or premiuminfo URL
        :param access_token: Bearer token from the token endpoint
        :return: An IdentityResponse instance
        """
        if not url:
            raise ValueError("Missing url")
        if not access_token:
            raise ValueError("Missing access_token")

        _kwargs = dict(self.httpc_params)
        _headers = dict(_kwargs.pop("headers", {}))
        _headers["Authorization"] = f"Bearer {access_token}"
        try:
            response = self.httpc("GET", url, headers=_headers, **_kwargs)
        except (ConnectionError, Timeout) as err:
            logger.error(f"Could not connect to {mask_url(url)}: {err}")
            raise RequestFailed(str(err), method="GET", url=url)

        logger.debug(f"Identity request to {mask_url(url)} with token={mask(access_token)} "
                     f"returned {response.status_code}")

        if response.status_code == 401:
            _error = parse_www_authenticate(response.headers.get("WWW-Authenticate", ""))
            if _error is not None:
                return IdentityResponse(status_code=401, error_response=_error)

        _content_type = response.headers.get("Content-Type", "")
        try:
            if "application/jwt" in _content_type:
                _info = json.loads(decode_token_payload(response.text.strip()))
            else:
                _info = response.json()
        except (ValueError, BadSyntax):
            if response.status_code >= 400:
                raise RequestFailed(method="GET", url=url, status_code=response.status_code)
            raise InvalidResponse(f"Unexpected identity response: {response.status_code}")

        if not isinstance(_info, dict):
            raise InvalidResponse("Identity response is not a JSON object")

        if _info.get("error"):
            _error = ResponseMessage(**{k: v for k, v in _info.items()
                                        if k in ["error", "error_description", "error_uri"]})
            return IdentityResponse(status_code=response.status_code, error_response=_error)
        elif response.status_code >= 400:
            raise RequestFailed(method="GET", url=url, status_code=response.status_code)

        return IdentityResponse(status_code=response.status_code, response_data=_info)
