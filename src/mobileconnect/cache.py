import logging
import threading
from typing import Any
from typing import Optional

from cryptojwt.jwt import utc_time_sans_frac

from mobileconnect.exception import CacheDisabled

logger = logging.getLogger(__name__)


class SessionCache(object):
    """
    Thread safe in-memory store. Used both for discovery responses keyed on an
    SDK session id and for operator discovery results keyed on MCC/MNC.
    """

    def __init__(self, max_age: Optional[int] = 0, enabled: Optional[bool] = True):
        """
        :param max_age: Seconds an entry is kept, 0 means for ever
        :param enabled: A disabled cache refuses all access
        """
        self._db = {}
        self.max_age = max_age or 0
        self.enabled = enabled
        self._lock = threading.Lock()

    def _check_enabled(self):
        if not self.enabled:
            raise CacheDisabled("Session cache is disabled")

    def _is_expired(self, stored_at: int) -> bool:
        if not self.max_age:
            return False
        return utc_time_sans_frac() > stored_at + self.max_age

    def add(self, key: str, value: Any):
        self._check_enabled()
        with self._lock:
            self._db[key] = (utc_time_sans_frac(), value)

    def get(self, key: str) -> Optional[Any]:
        self._check_enabled()
        with self._lock:
            try:
                stored_at, value = self._db[key]
            except KeyError:
                return None

            if self._is_expired(stored_at):
                logger.debug("Cache entry has expired")
                del self._db[key]
                return None
            return value

    def remove(self, key: str):
        with self._lock:
            self._db.pop(key, None)

    def clear(self):
        with self._lock:
            self._db = {}

    def keys(self):
        with self._lock:
            return list(self._db.keys())

    def __len__(self):
        return len(self._db)

    def __contains__(self, item):
        return self.enabled and self.get(item) is not None
