import logging
from typing import Callable
from typing import Iterable
from typing import Optional
from typing import Tuple

import requests
from cryptojwt.jwt import utc_time_sans_frac
from idpyoidc.exception import FormatError
from requests.exceptions import ConnectionError
from requests.exceptions import Timeout

from mobileconnect.cache import SessionCache
from mobileconnect.exception import InvalidResponse
from mobileconnect.exception import RequestFailed
from mobileconnect.message import DiscoveryResponseData
from mobileconnect.message import error_response
from mobileconnect.message import LINK_REL_OPERATOR_SELECTION
from mobileconnect.message import OperatorUrls
from mobileconnect.message import ProviderMetadata
from mobileconnect.redirect import parse_discovery_redirect
from mobileconnect.redirect import ParsedDiscoveryRedirect
from mobileconnect.utils import ImmutableValue
from mobileconnect.utils import mask
from mobileconnect.utils import mask_url
from mobileconnect.versions import SupportedVersions

logger = logging.getLogger(__name__)

# Seconds a discovery response is valid if the service does not say otherwise
DEFAULT_TTL = 3600
MIN_TTL = 300
MAX_TTL = 180 * 24 * 3600


def expiry_time(ttl: Optional[int]) -> int:
    """
    The discovery service gives ttl as milliseconds since epoch. Converted to
    seconds and kept within MIN_TTL and MAX_TTL from now.
    """
    _now = utc_time_sans_frac()
    if not ttl:
        return _now + DEFAULT_TTL
    return min(max(int(ttl // 1000), _now + MIN_TTL), _now + MAX_TTL)


class DiscoveryOptions(ImmutableValue):
    _fields = ("msisdn", "identified_mcc", "identified_mnc", "selected_mcc", "selected_mnc",
               "redirect_url", "client_ip", "is_using_mobile_data", "local_client_ip")

    def __init__(self,
                 msisdn: Optional[str] = None,
                 identified_mcc: Optional[str] = None,
                 identified_mnc: Optional[str] = None,
                 selected_mcc: Optional[str] = None,
                 selected_mnc: Optional[str] = None,
                 redirect_url: Optional[str] = None,
                 client_ip: Optional[str] = None,
                 is_using_mobile_data: Optional[bool] = False,
                 local_client_ip: Optional[str] = None):
        self.msisdn = msisdn
        self.identified_mcc = identified_mcc
        self.identified_mnc = identified_mnc
        self.selected_mcc = selected_mcc
        self.selected_mnc = selected_mnc
        self.redirect_url = redirect_url
        self.client_ip = client_ip
        self.is_using_mobile_data = is_using_mobile_data
        self.local_client_ip = local_client_ip
        self._freeze()

    def request_args(self) -> dict:
        _args = {
            "Redirect_URL": self.redirect_url,
            "MSISDN": self.msisdn,
            "Identified-MCC": self.identified_mcc,
            "Identified-MNC": self.identified_mnc,
            "Selected-MCC": self.selected_mcc,
            "Selected-MNC": self.selected_mnc,
            "Local-Client-IP": self.local_client_ip,
        }
        _args = {k: v for k, v in _args.items() if v}
        if self.is_using_mobile_data:
            _args["Using-Mobile-Data"] = "1"
        return _args


class DiscoveryResponse(ImmutableValue):
    """
    The result of an operator discovery. Either an error, a list of links
    pointing to the operator selection page or a description of the operator.
    """
    _fields = ("response_data", "status_code", "cached", "ttl", "provider_metadata")

    def __init__(self,
                 response_data: Optional[DiscoveryResponseData] = None,
                 status_code: Optional[int] = 200,
                 cached: Optional[bool] = False,
                 ttl: Optional[int] = 0,
                 provider_metadata: Optional[ProviderMetadata] = None):
        """
        :param response_data: The parsed body of the discovery response
        :param status_code: HTTP status code
        :param cached: Whether the response was taken from a cache
        :param ttl: When the response expires, seconds since epoch
        :param provider_metadata: The operator's provider metadata
        """
        if response_data is None:
            response_data = DiscoveryResponseData()
        self.response_data = response_data
        self.status_code = status_code
        self.cached = cached
        if not ttl:
            ttl = expiry_time(response_data.get("ttl"))
        self.ttl = ttl
        self.provider_metadata = provider_metadata
        self.operator_urls = OperatorUrls.from_links(response_data.links())
        self._freeze()

    @classmethod
    def from_json(cls, txt: str, status_code: Optional[int] = 200):
        return cls(DiscoveryResponseData().from_json(txt), status_code=status_code)

    @property
    def error_response(self):
        return error_response(self.response_data)

    @property
    def subscriber_id(self) -> Optional[str]:
        return self.response_data.get("subscriber_id")

    def _operator_response(self):
        return self.response_data.get("response") or {}

    @property
    def client_id(self) -> Optional[str]:
        return self._operator_response().get("client_id")

    @property
    def client_secret(self) -> Optional[str]:
        return self._operator_response().get("client_secret")

    @property
    def application_short_name(self) -> Optional[str]:
        return self._operator_response().get("client_name")

    @property
    def supported_versions(self) -> SupportedVersions:
        if self.provider_metadata is None:
            return SupportedVersions()
        return self.provider_metadata.supported_versions()

    def has_expired(self) -> bool:
        return utc_time_sans_frac() > self.ttl

    def _copy_data(self) -> DiscoveryResponseData:
        return DiscoveryResponseData(**self.response_data.to_dict())

    def with_subscriber_id(self, subscriber_id: Optional[str]):
        """Returns a copy with the subscriber id set."""
        _data = self._copy_data()
        if subscriber_id:
            _data["subscriber_id"] = subscriber_id
        return self.replace(response_data=_data)

    def with_provider_metadata(self, provider_metadata: Optional[ProviderMetadata]):
        return self.replace(provider_metadata=provider_metadata)

    def as_cached(self):
        return self.replace(cached=True)

    def to_dict(self) -> dict:
        _res = {
            "status_code": self.status_code,
            "cached": self.cached,
            "ttl": self.ttl,
            "response_data": self.response_data.to_dict()
        }
        if self.provider_metadata is not None:
            _res["provider_metadata"] = self.provider_metadata.to_dict()
        return _res


class DiscoveryService(object):
    """Talks to the Mobile Connect discovery service."""

    def __init__(self,
                 cache: Optional[SessionCache] = None,
                 httpc: Optional[Callable] = None,
                 httpc_params: Optional[dict] = None):
        self.cache = cache if cache is not None else SessionCache(max_age=DEFAULT_TTL)
        self.httpc = httpc or requests.request
        self.httpc_params = httpc_params or {}

    def _do_request(self, method: str, url: str, **kwargs):
        _kwargs = dict(self.httpc_params)
        _kwargs.update(kwargs)
        try:
            return self.httpc(method, url, **_kwargs)
        except (ConnectionError, Timeout) as err:
            logger.error(f"Could not connect to {mask_url(url)}: {err}")
            raise RequestFailed(str(err), method=method, url=url)

    def _parse_response(self, response) -> DiscoveryResponse:
        try:
            _info = response.json()
        except ValueError:
            logger.warning(
                f"Discovery service returned a non JSON response, status={response.status_code}")
            raise InvalidResponse(f"Unexpected discovery response: {response.status_code}")

        if not isinstance(_info, dict):
            raise InvalidResponse("Discovery response is not a JSON object")

        try:
            _data = DiscoveryResponseData(**_info)
        except (ValueError, FormatError) as err:
            raise InvalidResponse(f"Malformed discovery response: {err}")

        if response.status_code >= 400 and not _data.get("error"):
            raise RequestFailed(method="discovery", url=mask_url(response.url),
                                status_code=response.status_code)

        return DiscoveryResponse(_data, status_code=response.status_code)

    def retrieve_provider_metadata(self, url: str) -> Optional[ProviderMetadata]:
        """
        Fetches the operator's openid-configuration. Failures are logged, not raised.
        """
        try:
            response = self._do_request("GET", url)
        except RequestFailed:
            return None

        if response.status_code != 200:
            logger.warning(f"Failed to retrieve provider metadata from {url}: "
                           f"{response.status_code}")
            return None

        try:
            return ProviderMetadata(**response.json())
        except (ValueError, TypeError) as err:
            logger.warning(f"Could not parse provider metadata from {url}: {err}")
            return None

    def _add_provider_metadata(self, response: DiscoveryResponse) -> DiscoveryResponse:
        _url = response.operator_urls.get("provider_metadata_url")
        if response.error_response is None and _url:
            return response.with_provider_metadata(self.retrieve_provider_metadata(_url))
        return response

    def start_automated_operator_discovery(self,
                                           config,
                                           redirect_url: str,
                                           options: Optional[DiscoveryOptions] = None,
                                           cookies: Optional[Iterable[Tuple[str, str]]] = None
                                           ) -> DiscoveryResponse:
        """
        Starts discovery. If the MSISDN is known it is POSTed to keep it out of the
        URL otherwise a GET request is made.

        :param config: A MobileConnectConfig instance
        :param redirect_url: Where the discovery service should send the subscriber
        :param options: A DiscoveryOptions instance
        :param cookies: Cookies to pass on to the discovery service
        :return: A DiscoveryResponse instance
        """
        if not redirect_url:
            raise ValueError("Missing redirect_url")

        if options is None:
            options = DiscoveryOptions()
        options = options.replace(redirect_url=redirect_url)

        _args = options.request_args()
        _kwargs = {"auth": (config.client_id, config.client_secret)}
        if cookies:
            _kwargs["cookies"] = dict(cookies)
        if options.client_ip:
            _kwargs["headers"] = {"X-Source-IP": options.client_ip}

        logger.debug(f"Starting discovery msisdn={mask(options.msisdn)}, "
                     f"mcc={options.identified_mcc}, mnc={options.identified_mnc}")

        if options.msisdn:
            response = self._do_request("POST", config.discovery_url, data=_args, **_kwargs)
        else:
            response = self._do_request("GET", config.discovery_url, params=_args, **_kwargs)

        return self._add_provider_metadata(self._parse_response(response))

    def complete_selected_operator_discovery(self,
                                             config,
                                             redirect_url: str,
                                             selected_mcc: str,
                                             selected_mnc: str) -> DiscoveryResponse:
        """
        Completes discovery after the subscriber has picked an operator.
        Results are cached per MCC/MNC.
        """
        if not redirect_url:
            raise ValueError("Missing redirect_url")
        if not selected_mcc or not selected_mnc:
            raise ValueError("Both selected_mcc and selected_mnc are needed")

        _key = f"{selected_mcc}_{selected_mnc}"
        _cached = self._get_cached(_key)
        if _cached is not None:
            logger.debug(f"Using cached discovery response for mcc={selected_mcc}, "
                         f"mnc={selected_mnc}")
            return _cached

        _args = DiscoveryOptions(redirect_url=redirect_url, selected_mcc=selected_mcc,
                                 selected_mnc=selected_mnc).request_args()
        response = self._do_request("GET", config.discovery_url, params=_args,
                                    auth=(config.client_id, config.client_secret))

        discovery_response = self._add_provider_metadata(self._parse_response(response))
        if discovery_response.error_response is None and self.cache.enabled:
            self.cache.add(_key, discovery_response)
        return discovery_response

    def _get_cached(self, key: str) -> Optional[DiscoveryResponse]:
        if not self.cache.enabled:
            return None
        _response = self.cache.get(key)
        if _response is None:
            return None
        if _response.has_expired():
            self.cache.remove(key)
            return None
        return _response.as_cached()

    @staticmethod
    def extract_operator_selection_url(response: DiscoveryResponse) -> Optional[str]:
        if response is None or response.response_data is None:
            return None
        for link in response.response_data.get("links") or []:
            if link.get("rel") == LINK_REL_OPERATOR_SELECTION:
                return link.get("href") or None
        return None

    @staticmethod
    def parse_discovery_redirect(redirected_url: str) -> ParsedDiscoveryRedirect:
        return parse_discovery_redirect(redirected_url)
