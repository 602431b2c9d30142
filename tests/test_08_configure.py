import json

import pytest

from mobileconnect.configure import create_from_config_file
from mobileconnect.configure import MobileConnectConfig
from mobileconnect.exception import ConfigurationError
from . import CONFIG


def test_defaults():
    config = MobileConnectConfig(CONFIG)
    assert config.client_id == CONFIG["client_id"]
    assert config.cache_responses_with_session_id is True
    assert config.discovery_cache_max_age == 3600
    assert config.httpc_params == {}
    assert config.get("unknown", "default") == "default"


def test_keyword_overrides():
    config = MobileConnectConfig(CONFIG, cache_responses_with_session_id=False,
                                 httpc_params={"timeout": 5})
    assert config.cache_responses_with_session_id is False
    assert config.httpc_params == {"timeout": 5}


@pytest.mark.parametrize("missing", ["client_id", "client_secret", "discovery_url",
                                     "redirect_url"])
def test_missing(missing):
    _conf = dict(CONFIG)
    del _conf[missing]
    with pytest.raises(ConfigurationError) as err:
        MobileConnectConfig(_conf)
    assert missing in str(err.value)


def test_from_file(tmp_path):
    _file = tmp_path / "conf.json"
    _file.write_text(json.dumps(CONFIG))
    config = create_from_config_file(str(_file), discovery_cache_max_age=60)
    assert config.discovery_url == CONFIG["discovery_url"]
    assert config.discovery_cache_max_age == 60
