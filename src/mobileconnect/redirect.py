import logging
from typing import Optional
from urllib.parse import parse_qs
from urllib.parse import urlparse

from mobileconnect.utils import ImmutableValue

logger = logging.getLogger(__name__)

# Query parameters found on redirects from an operator or the discovery service
CODE = "code"
STATE = "state"
ERROR = "error"
ERROR_DESCRIPTION = "error_description"
MCC_MNC = "mcc_mnc"
SUBSCRIBER_ID = "subscriber_id"


def extract_query_value(url: Optional[str], name: str) -> Optional[str]:
    """
    Returns the first value of a query parameter.

    :param url: The URL, may be None
    :param name: Name of the query parameter
    :return: The value or None if the parameter is missing
    """
    if not url:
        return None
    try:
        _query = parse_qs(urlparse(url).query, keep_blank_values=True)
    except ValueError:
        return None
    _values = _query.get(name)
    if _values:
        return _values[0]
    return None


class ParsedDiscoveryRedirect(ImmutableValue):
    """What could be found in the redirect after the subscriber selected an operator."""
    _fields = ("selected_mcc", "selected_mnc", "encrypted_msisdn", "error",
               "error_description")

    def __init__(self,
                 selected_mcc: Optional[str] = None,
                 selected_mnc: Optional[str] = None,
                 encrypted_msisdn: Optional[str] = None,
                 error: Optional[str] = None,
                 error_description: Optional[str] = None):
        self.selected_mcc = selected_mcc or None
        self.selected_mnc = selected_mnc or None
        self.encrypted_msisdn = encrypted_msisdn or None
        self.error = error or None
        self.error_description = error_description or None
        self._freeze()

    def has_mcc_and_mnc(self) -> bool:
        return bool(self.selected_mcc) and bool(self.selected_mnc)


def parse_discovery_redirect(redirected_url: Optional[str]) -> ParsedDiscoveryRedirect:
    """
    Parses the redirect received when the subscriber has selected an operator.
    Never raises, missing or malformed values are returned as None.

    :param redirected_url: The URL the discovery service redirected to
    :return: A ParsedDiscoveryRedirect instance
    """
    _mcc = _mnc = None
    _mcc_mnc = extract_query_value(redirected_url, MCC_MNC)
    if _mcc_mnc:
        _parts = _mcc_mnc.split("_")
        if len(_parts) == 2 and all(_parts):
            _mcc, _mnc = _parts
        else:
            logger.debug(f"Malformed {MCC_MNC} value in redirect")

    return ParsedDiscoveryRedirect(
        selected_mcc=_mcc,
        selected_mnc=_mnc,
        encrypted_msisdn=extract_query_value(redirected_url, SUBSCRIBER_ID),
        error=extract_query_value(redirected_url, ERROR),
        error_description=extract_query_value(redirected_url, ERROR_DESCRIPTION))
