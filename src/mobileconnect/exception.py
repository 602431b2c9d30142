class HasStatus(object):
    """
    Capability of errors that know which outcome they correspond to.
    """

    def to_status(self, task: str):
        raise NotImplementedError()


class MobileConnectError(Exception):
    pass


class ConfigurationError(MobileConnectError):
    pass


class RequestFailed(MobileConnectError, HasStatus):
    def __init__(self, message: str = "", method: str = "", url: str = "", status_code: int = 0):
        MobileConnectError.__init__(self, message or f"{method} {url} failed")
        self.method = method
        self.url = url
        self.status_code = status_code

    def to_status(self, task: str):
        from mobileconnect.status import MobileConnectStatus

        return MobileConnectStatus.error(
            "http_failure", f"HTTP request failed when attempting to {task}", exception=self)


class InvalidResponse(MobileConnectError, HasStatus):
    def to_status(self, task: str):
        from mobileconnect.status import MobileConnectStatus

        return MobileConnectStatus.error(
            "invalid_response", f"Invalid response received when attempting to {task}",
            exception=self)


class CacheAccessError(MobileConnectError):
    pass


class CacheDisabled(CacheAccessError, HasStatus):
    def to_status(self, task: str):
        from mobileconnect.status import MobileConnectStatus

        return MobileConnectStatus.error(
            "cache_disabled", "cache is not enabled for session id caching of discovery response",
            exception=self)


class SessionNotFound(CacheAccessError, HasStatus):
    def to_status(self, task: str):
        from mobileconnect.status import MobileConnectStatus

        return MobileConnectStatus.error(
            "sdksession_not_found", f"session not found or expired, cannot {task}",
            exception=self)
