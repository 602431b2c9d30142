"""
The outcome of every step in the Mobile Connect flow. A MobileConnectStatus
tells the relying party what to do next.
"""
from typing import Optional

from mobileconnect.exception import HasStatus
from mobileconnect.utils import ImmutableValue


class ResponseType(object):
    ERROR = "error"
    START_DISCOVERY = "start_discovery"
    OPERATOR_SELECTION = "operator_selection"
    START_AUTHENTICATION = "start_authentication"
    AUTHENTICATION = "authentication"
    COMPLETE = "complete"
    USER_INFO = "user_info"
    IDENTITY = "identity"

    ALL = (ERROR, START_DISCOVERY, OPERATOR_SELECTION, START_AUTHENTICATION, AUTHENTICATION,
           COMPLETE, USER_INFO, IDENTITY)


class MobileConnectStatus(ImmutableValue):
    _fields = ("response_type", "error_code", "error_message", "url", "state", "nonce",
               "sdk_session", "discovery_response", "request_token_response",
               "identity_response", "exception")

    def __init__(self,
                 response_type: str,
                 error_code: Optional[str] = None,
                 error_message: Optional[str] = None,
                 url: Optional[str] = None,
                 state: Optional[str] = None,
                 nonce: Optional[str] = None,
                 sdk_session: Optional[str] = None,
                 discovery_response=None,
                 request_token_response=None,
                 identity_response=None,
                 exception: Optional[Exception] = None):
        if response_type not in ResponseType.ALL:
            raise ValueError(f"Unknown response type: {response_type}")

        self.response_type = response_type
        self.error_code = error_code
        self.error_message = error_message
        self.url = url
        self.state = state
        self.nonce = nonce
        self.sdk_session = sdk_session
        self.discovery_response = discovery_response
        self.request_token_response = request_token_response
        self.identity_response = identity_response
        self.exception = exception
        self._freeze()

    @classmethod
    def error(cls, error_code: str, error_message: str, exception: Optional[Exception] = None,
              discovery_response=None, request_token_response=None):
        return cls(ResponseType.ERROR, error_code=error_code, error_message=error_message,
                   exception=exception, discovery_response=discovery_response,
                   request_token_response=request_token_response)

    @classmethod
    def error_from_exception(cls, task: str, err: Exception):
        """
        Converts an exception raised while performing a task into an error status.
        Exceptions that know their own status are allowed to produce it.

        :param task: What was being done, e.g. 'start authentication'
        :param err: The exception
        """
        if isinstance(err, HasStatus):
            return err.to_status(task)

        _code = "_".join(task.split()) + "_failed"
        return cls.error(_code, f"An error occurred while attempting to {task}: {err}",
                         exception=err)

    @classmethod
    def start_discovery(cls):
        return cls(ResponseType.START_DISCOVERY)

    @classmethod
    def operator_selection(cls, url: str):
        return cls(ResponseType.OPERATOR_SELECTION, url=url)

    @classmethod
    def start_authentication(cls, discovery_response):
        return cls(ResponseType.START_AUTHENTICATION, discovery_response=discovery_response)

    @classmethod
    def authentication(cls, url: str, state: str, nonce: str):
        return cls(ResponseType.AUTHENTICATION, url=url, state=state, nonce=nonce)

    @classmethod
    def complete(cls, request_token_response):
        return cls(ResponseType.COMPLETE, request_token_response=request_token_response)

    @classmethod
    def user_info(cls, identity_response):
        return cls(ResponseType.USER_INFO, identity_response=identity_response)

    @classmethod
    def identity(cls, identity_response):
        return cls(ResponseType.IDENTITY, identity_response=identity_response)

    def is_error(self) -> bool:
        return self.response_type == ResponseType.ERROR

    def to_dict(self) -> dict:
        _res = {"response_type": self.response_type}
        for attr in ["error_code", "error_message", "url", "state", "nonce", "sdk_session"]:
            _val = getattr(self, attr)
            if _val is not None:
                _res[attr] = _val

        for attr in ["discovery_response", "request_token_response", "identity_response"]:
            _val = getattr(self, attr)
            if _val is not None:
                _res[attr] = _val.to_dict()
        return _res
