import json
import logging
from typing import Dict
from typing import Optional

from mobileconnect.exception import ConfigurationError

logger = logging.getLogger(__name__)

REQUIRED_ATTRIBUTES = ["client_id", "client_secret", "discovery_url", "redirect_url"]

DEFAULT_CONFIG = {
    "cache_responses_with_session_id": True,
    "discovery_cache_max_age": 3600,
    "httpc_params": {}
}


class MobileConnectConfig(object):
    """ Relying party configuration """

    def __init__(self, conf: Optional[Dict] = None, **kwargs):
        _conf = dict(DEFAULT_CONFIG)
        if conf:
            _conf.update(conf)
        _conf.update(kwargs)

        _missing = [attr for attr in REQUIRED_ATTRIBUTES if not _conf.get(attr)]
        if _missing:
            raise ConfigurationError(f"Missing configuration: {', '.join(_missing)}")

        self.conf = _conf
        self.client_id = _conf.get("client_id")
        self.client_secret = _conf.get("client_secret")
        self.discovery_url = _conf.get("discovery_url")
        self.redirect_url = _conf.get("redirect_url")
        self.cache_responses_with_session_id = bool(
            _conf.get("cache_responses_with_session_id"))
        self.discovery_cache_max_age = _conf.get("discovery_cache_max_age")
        self.httpc_params = _conf.get("httpc_params") or {}

    def get(self, item, default=None):
        return self.conf.get(item, default)

    def __repr__(self):
        return f"MobileConnectConfig(client_id={self.client_id!r}, " \
               f"discovery_url={self.discovery_url!r}, redirect_url={self.redirect_url!r})"


def create_from_config_file(filename: str, **kwargs) -> MobileConnectConfig:
    """
    Reads a JSON configuration file.

    :param filename: Path to the file
    :param kwargs: Values that override what is in the file
    """
    with open(filename) as fp:
        _conf = json.load(fp)
    return MobileConnectConfig(_conf, **kwargs)
