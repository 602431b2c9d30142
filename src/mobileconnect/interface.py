import logging
from typing import Iterable
from typing import Optional
from typing import Tuple

from idpyoidc.util import rndstr

from mobileconnect import flow
from mobileconnect.authentication import AuthenticationOptions
from mobileconnect.authentication import AuthenticationService
from mobileconnect.cache import SessionCache
from mobileconnect.configure import MobileConnectConfig
from mobileconnect.discovery import DiscoveryOptions
from mobileconnect.discovery import DiscoveryService
from mobileconnect.exception import CacheDisabled
from mobileconnect.exception import SessionNotFound
from mobileconnect.identity import IdentityService
from mobileconnect.status import MobileConnectStatus
from mobileconnect.status import ResponseType

logger = logging.getLogger(__name__)

SDK_SESSION_LENGTH = 32


class MobileConnectInterface(object):
    """
    Convenience wrapper around the flow functions. Holds the configuration and
    the services, and if so configured keeps discovery responses in a session
    cache so that the relying party only has to remember a session id.
    """

    def __init__(self,
                 config: MobileConnectConfig,
                 discovery_service: Optional[DiscoveryService] = None,
                 authentication_service: Optional[AuthenticationService] = None,
                 identity_service: Optional[IdentityService] = None,
                 session_cache: Optional[SessionCache] = None):
        self.config = config
        _httpc_params = config.httpc_params

        if discovery_service is None:
            discovery_service = DiscoveryService(
                cache=SessionCache(max_age=config.discovery_cache_max_age),
                httpc_params=_httpc_params)
        self.discovery_service = discovery_service
        self.authentication_service = authentication_service or AuthenticationService(
            httpc_params=_httpc_params)
        self.identity_service = identity_service or IdentityService(httpc_params=_httpc_params)

        if session_cache is None:
            session_cache = SessionCache(max_age=config.discovery_cache_max_age,
                                         enabled=config.cache_responses_with_session_id)
        self.session_cache = session_cache

    def _cache_if_required(self, status: MobileConnectStatus) -> MobileConnectStatus:
        if not self.config.cache_responses_with_session_id or not self.session_cache.enabled:
            return status
        if status.response_type != ResponseType.START_AUTHENTICATION:
            return status

        _session = rndstr(SDK_SESSION_LENGTH)
        try:
            self.session_cache.add(_session, status.discovery_response)
        except Exception as err:
            logger.warning(f"Failed to cache discovery response: {err}")
            return MobileConnectStatus.error_from_exception("cache discovery response", err)
        return status.replace(sdk_session=_session)

    def get_cached_discovery_response(self, sdk_session: str):
        """
        :param sdk_session: Session id returned with a START_AUTHENTICATION status
        :return: The cached DiscoveryResponse
        """
        if not self.config.cache_responses_with_session_id:
            raise CacheDisabled("Caching of discovery responses is turned off")
        _response = self.session_cache.get(sdk_session)
        if _response is None:
            raise SessionNotFound("Unknown SDK session")
        return _response

    def _with_session(self, sdk_session: str, task: str, func, *args, **kwargs):
        try:
            _discovery_response = self.get_cached_discovery_response(sdk_session)
        except Exception as err:
            logger.warning(f"Could not find discovery response for {task}: {err}")
            return MobileConnectStatus.error_from_exception(task, err)
        return func(_discovery_response, *args, **kwargs)

    def attempt_discovery(self,
                          msisdn: Optional[str] = None,
                          mcc: Optional[str] = None,
                          mnc: Optional[str] = None,
                          cookies: Optional[Iterable[Tuple[str, str]]] = None,
                          options: Optional[DiscoveryOptions] = None) -> MobileConnectStatus:
        status = flow.attempt_discovery(self.discovery_service, msisdn, mcc, mnc, cookies,
                                        self.config, options)
        return self._cache_if_required(status)

    def attempt_discovery_after_operator_selection(self,
                                                   redirected_url: str) -> MobileConnectStatus:
        status = flow.attempt_discovery_after_operator_selection(
            self.discovery_service, redirected_url, self.config)
        return self._cache_if_required(status)

    def start_authentication(self,
                             discovery_response,
                             encrypted_msisdn: Optional[str],
                             state: str,
                             nonce: str,
                             options: Optional[AuthenticationOptions] = None
                             ) -> MobileConnectStatus:
        return flow.start_authentication(self.authentication_service, discovery_response,
                                         encrypted_msisdn, state, nonce, self.config, options)

    def start_authentication_by_session(self,
                                        sdk_session: str,
                                        encrypted_msisdn: Optional[str],
                                        state: str,
                                        nonce: str,
                                        options: Optional[AuthenticationOptions] = None
                                        ) -> MobileConnectStatus:
        return self._with_session(sdk_session, "start authentication",
                                  self.start_authentication, encrypted_msisdn, state, nonce,
                                  options)

    def request_token(self,
                      discovery_response,
                      redirected_url: str,
                      expected_state: str,
                      expected_nonce: str) -> MobileConnectStatus:
        return flow.request_token(self.authentication_service, discovery_response,
                                  redirected_url, expected_state, expected_nonce, self.config)

    def request_token_by_session(self,
                                 sdk_session: str,
                                 redirected_url: str,
                                 expected_state: str,
                                 expected_nonce: str) -> MobileConnectStatus:
        return self._with_session(sdk_session, "request token", self.request_token,
                                  redirected_url, expected_state, expected_nonce)

    def handle_url_redirect(self,
                            redirected_url: str,
                            discovery_response=None,
                            expected_state: Optional[str] = None,
                            expected_nonce: Optional[str] = None) -> MobileConnectStatus:
        status = flow.handle_url_redirect(self.discovery_service, self.authentication_service,
                                          redirected_url, discovery_response, expected_state,
                                          expected_nonce, self.config)
        return self._cache_if_required(status)

    def handle_url_redirect_by_session(self,
                                       sdk_session: str,
                                       redirected_url: str,
                                       expected_state: Optional[str] = None,
                                       expected_nonce: Optional[str] = None
                                       ) -> MobileConnectStatus:
        return self._with_session(
            sdk_session, "handle url redirect",
            lambda discovery_response: self.handle_url_redirect(
                redirected_url, discovery_response, expected_state, expected_nonce))

    def request_user_info(self, discovery_response, access_token: str) -> MobileConnectStatus:
        return flow.request_user_info(self.identity_service, discovery_response, access_token)

    def request_user_info_by_session(self, sdk_session: str,
                                     access_token: str) -> MobileConnectStatus:
        return self._with_session(sdk_session, "request user info", self.request_user_info,
                                  access_token)

    def request_identity(self, discovery_response, access_token: str) -> MobileConnectStatus:
        return flow.request_identity(self.identity_service, discovery_response, access_token)

    def request_identity_by_session(self, sdk_session: str,
                                    access_token: str) -> MobileConnectStatus:
        return self._with_session(sdk_session, "request identity", self.request_identity,
                                  access_token)
