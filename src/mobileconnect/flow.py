"""
The steps of the Mobile Connect flow.

Every function here takes everything it needs as arguments, calls at most one
service and returns exactly one MobileConnectStatus. No exception is allowed
to escape. State between steps is carried by the relying party (state, nonce,
discovery response) or by a session cache outside of these functions.
"""
import logging
import re
from typing import Iterable
from typing import Optional
from typing import Tuple

from mobileconnect.authentication import AuthenticationOptions
from mobileconnect.discovery import DiscoveryOptions
from mobileconnect.redirect import CODE
from mobileconnect.redirect import ERROR
from mobileconnect.redirect import ERROR_DESCRIPTION
from mobileconnect.redirect import extract_query_value
from mobileconnect.redirect import MCC_MNC
from mobileconnect.redirect import STATE
from mobileconnect.status import MobileConnectStatus
from mobileconnect.status import ResponseType
from mobileconnect.utils import decode_token_payload
from mobileconnect.utils import mask
from mobileconnect.utils import mask_url

logger = logging.getLogger(__name__)

NONCE_PATTERN = re.compile(r'"?nonce"?\s*:\s*"([^"]*)"')

DISCOVERY_FAILURE_DESCRIPTION = \
    "failure reported by discovery service, see response for more information"


def extract_status(response, discovery_service, task: str) -> MobileConnectStatus:
    """
    Decides what comes after a discovery: an error, operator selection or authentication.

    :param response: A DiscoveryResponse instance
    :param discovery_service: A DiscoveryService instance
    :param task: Name of the calling step, used in logging
    """
    _error = response.error_response
    if not response.cached and _error is not None:
        logger.info(f"Responding with responseType={ResponseType.ERROR} for {task}; "
                    f"error={_error.get('error')}")
        return MobileConnectStatus.error(
            _error.get("error"),
            _error.get("error_description") or DISCOVERY_FAILURE_DESCRIPTION,
            discovery_response=response)

    _url = discovery_service.extract_operator_selection_url(response)
    if _url:
        logger.debug(f"Responding with responseType={ResponseType.OPERATOR_SELECTION} for "
                     f"{task}; operatorSelectionUrl={mask_url(_url)}")
        return MobileConnectStatus.operator_selection(_url)

    logger.debug(f"Responding with responseType={ResponseType.START_AUTHENTICATION} for {task}")
    return MobileConnectStatus.start_authentication(response)


def attempt_discovery(discovery_service,
                      msisdn: Optional[str],
                      mcc: Optional[str],
                      mnc: Optional[str],
                      cookies: Optional[Iterable[Tuple[str, str]]],
                      config,
                      options: Optional[DiscoveryOptions] = None) -> MobileConnectStatus:
    """
    Starts discovery. With no MSISDN or MCC/MNC the subscriber will be sent to
    operator selection.
    """
    try:
        if options is None:
            options = DiscoveryOptions()
        options = options.replace(msisdn=msisdn, identified_mcc=mcc, identified_mnc=mnc,
                                  redirect_url=config.redirect_url)

        response = discovery_service.start_automated_operator_discovery(
            config, config.redirect_url, options, cookies)

        return extract_status(response, discovery_service, "attempt_discovery")
    except Exception as err:
        logger.warning(f"attempt_discovery failed for msisdn={mask(msisdn)}, mcc={mcc}, "
                       f"mnc={mnc}: {err}")
        return MobileConnectStatus.error_from_exception("start automated discovery", err)


def attempt_discovery_after_operator_selection(discovery_service,
                                               redirected_url: str,
                                               config) -> MobileConnectStatus:
    """
    Continues discovery once the subscriber has picked an operator. If the
    redirect does not identify an operator discovery has to start over.
    """
    try:
        parsed = discovery_service.parse_discovery_redirect(redirected_url)

        if not parsed.has_mcc_and_mnc():
            logger.debug(f"Responding with responseType={ResponseType.START_DISCOVERY} for "
                         f"attempt_discovery_after_operator_selection for "
                         f"redirectedUrl={mask_url(redirected_url)}")
            return MobileConnectStatus.start_discovery()

        response = discovery_service.complete_selected_operator_discovery(
            config, config.redirect_url, parsed.selected_mcc, parsed.selected_mnc)

        if not response.subscriber_id:
            logger.debug(f"Setting encryptedMsisdn={mask(parsed.encrypted_msisdn)} on "
                         f"discovery response")
            response = response.with_subscriber_id(parsed.encrypted_msisdn)

        return extract_status(response, discovery_service,
                              "attempt_discovery_after_operator_selection")
    except Exception as err:
        logger.warning(f"attempt_discovery_after_operator_selection failed for "
                       f"redirectedUrl={mask_url(redirected_url)}: {err}")
        return MobileConnectStatus.error_from_exception(
            "attempt discovery after operator selection", err)


def start_authentication(authentication_service,
                         discovery_response,
                         encrypted_msisdn: Optional[str],
                         state: str,
                         nonce: str,
                         config,
                         options: Optional[AuthenticationOptions] = None
                         ) -> MobileConnectStatus:
    """
    Produces the URL the subscriber should be redirected to for authentication.
    The state and nonce must be kept by the caller and given to request_token.
    """
    try:
        if discovery_response is None:
            raise ValueError("Missing discovery_response")

        _client_id = discovery_response.client_id or config.client_id
        _authorization_url = discovery_response.operator_urls.get("authorization_url")
        _supported_versions = discovery_response.supported_versions

        if options is None:
            options = AuthenticationOptions()
        options = options.replace(
            client_name=discovery_response.application_short_name or options.client_name)

        response = authentication_service.start_authentication(
            _client_id, _authorization_url, config.redirect_url, state, nonce,
            encrypted_msisdn, _supported_versions, options)

        logger.debug(f"Responding with responseType={ResponseType.AUTHENTICATION} for "
                     f"start_authentication for encryptedMsisdn={mask(encrypted_msisdn)}, "
                     f"url={mask_url(response.url)}")
        return MobileConnectStatus.authentication(response.url, state, nonce)
    except Exception as err:
        logger.warning(f"start_authentication failed for encryptedMsisdn="
                       f"{mask(encrypted_msisdn)}: {err}")
        return MobileConnectStatus.error_from_exception("start authentication", err)


def is_expected_nonce(id_token: Optional[str], expected_nonce: Optional[str]) -> bool:
    """
    Looks for the nonce in the ID token payload. The signature is not verified
    and the payload is searched rather than parsed.
    """
    if not id_token or not expected_nonce:
        return False
    try:
        _payload = decode_token_payload(id_token)
    except Exception as err:
        logger.warning(f"Could not decode ID token payload: {err}")
        return False

    _match = NONCE_PATTERN.search(_payload)
    return _match is not None and _match.group(1) == expected_nonce


def request_token(authentication_service,
                  discovery_response,
                  redirected_url: str,
                  expected_state: str,
                  expected_nonce: str,
                  config) -> MobileConnectStatus:
    """
    Exchanges the authorization code in the redirect for tokens. The state
    in the redirect and the nonce in the ID token must match what was sent.
    """
    _actual_state = extract_query_value(redirected_url, STATE)
    if not expected_state or _actual_state != expected_state:
        logger.warning(f"Responding with responseType={ResponseType.ERROR} for request_token "
                       f"for redirectedUrl={mask_url(redirected_url)}, state mismatch; "
                       f"possible cross-site request forgery")
        return MobileConnectStatus.error(
            "invalid_state", "state values do not match, possible cross-site request forgery")

    try:
        if discovery_response is None:
            raise ValueError("Missing discovery_response")

        _code = extract_query_value(redirected_url, CODE)
        _client_id = discovery_response.client_id or config.client_id
        _client_secret = discovery_response.client_secret or config.client_secret
        _token_url = discovery_response.operator_urls.get("request_token_url")

        response = authentication_service.request_token(
            _client_id, _client_secret, _token_url, config.redirect_url, _code)

        if response.error_response is not None:
            _error = response.error_response
            logger.warning(f"Responding with responseType={ResponseType.ERROR} for "
                           f"request_token, authentication service responded with "
                           f"error={_error.get('error')}")
            return MobileConnectStatus.error(_error.get("error"),
                                             _error.get("error_description"),
                                             request_token_response=response)

        if not is_expected_nonce(response.id_token, expected_nonce):
            logger.warning(f"Responding with responseType={ResponseType.ERROR} for "
                           f"request_token for redirectedUrl={mask_url(redirected_url)}, "
                           f"nonce={mask(expected_nonce)} not in ID token; "
                           f"possible replay attack")
            return MobileConnectStatus.error("invalid_nonce",
                                             "nonce values do not match, possible replay attack")

        logger.debug(f"Responding with responseType={ResponseType.COMPLETE} for request_token")
        return MobileConnectStatus.complete(response)
    except Exception as err:
        logger.warning(f"request_token failed for redirectedUrl={mask_url(redirected_url)}: "
                       f"{err}")
        return MobileConnectStatus.error_from_exception("request token", err)


def handle_url_redirect(discovery_service,
                        authentication_service,
                        redirected_url: str,
                        discovery_response,
                        expected_state: str,
                        expected_nonce: str,
                        config) -> MobileConnectStatus:
    """
    Figures out which step a redirect belongs to and performs it.
    """
    if extract_query_value(redirected_url, CODE) is not None:
        logger.debug(f"handle_url_redirect routing {mask_url(redirected_url)} to request_token")
        return request_token(authentication_service, discovery_response, redirected_url,
                             expected_state, expected_nonce, config)

    if extract_query_value(redirected_url, MCC_MNC) is not None:
        logger.debug(f"handle_url_redirect routing {mask_url(redirected_url)} to "
                     f"attempt_discovery_after_operator_selection")
        return attempt_discovery_after_operator_selection(discovery_service, redirected_url,
                                                          config)

    _error = extract_query_value(redirected_url, ERROR) or "invalid_request"
    _description = extract_query_value(redirected_url, ERROR_DESCRIPTION) or \
        f"unable to parse next step using {redirected_url}"

    logger.warning(f"Responding with responseType={ResponseType.ERROR} for handle_url_redirect "
                   f"for redirectedUrl={mask_url(redirected_url)}; error={_error}")
    return MobileConnectStatus.error(_error, _description)


def _request_info(identity_service,
                  access_token: str,
                  info_url: Optional[str],
                  response_type: str) -> MobileConnectStatus:
    _task = f"request {response_type}"
    if not info_url:
        logger.warning(f"Responding with responseType={ResponseType.ERROR} for {_task}, "
                       f"provider does not support {response_type}")
        return MobileConnectStatus.error("not_supported",
                                         f"{response_type} not supported by current operator")

    try:
        response = identity_service.request_info(info_url, access_token)

        if response.error_response is not None:
            _error = response.error_response
            logger.warning(f"Responding with responseType={ResponseType.ERROR} for {_task}, "
                           f"identity service responded with error={_error.get('error')}")
            return MobileConnectStatus.error(_error.get("error"),
                                             _error.get("error_description"))

        logger.debug(f"Responding with responseType={response_type} for {_task} "
                     f"accessToken={mask(access_token)}")
        if response_type == ResponseType.IDENTITY:
            return MobileConnectStatus.identity(response)
        return MobileConnectStatus.user_info(response)
    except Exception as err:
        logger.warning(f"{_task} failed for accessToken={mask(access_token)}: {err}")
        return MobileConnectStatus.error_from_exception(_task, err)


def request_user_info(identity_service, discovery_response,
                      access_token: str) -> MobileConnectStatus:
    return _request_info(identity_service, access_token,
                         _operator_url(discovery_response, "user_info_url"),
                         ResponseType.USER_INFO)


def request_identity(identity_service, discovery_response,
                     access_token: str) -> MobileConnectStatus:
    return _request_info(identity_service, access_token,
                         _operator_url(discovery_response, "premium_info_url"),
                         ResponseType.IDENTITY)


def _operator_url(discovery_response, name: str) -> Optional[str]:
    if discovery_response is None:
        return None
    return discovery_response.operator_urls.get(name)
