from datetime import datetime
from enum import Enum
from typing import Dict, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field


class FailureCode(str, Enum):
    INVALID_REQUEST = "INVALID_REQUEST"
    INVALID_TICKET_SPEC = "INVALID_TICKET_SPEC"
    UNAUTHORIZED_SERVICE = "UNAUTHORIZED_SERVICE"
    UNAUTHORIZED_SERVICE_PROXY = "UNAUTHORIZED_SERVICE_PROXY"
    INVALID_PROXY_CALLBACK = "INVALID_PROXY_CALLBACK"
    INVALID_TICKET = "INVALID_TICKET"
    INVALID_SERVICE = "INVALID_SERVICE"
    INTERNAL_ERROR = "INTERNAL_ERROR"


class AuthenticationResponse(BaseModel):
    """
    A ticket the CAS server accepted.
    CAS 1 responses only ever fill in `user`.
    """

    model_config = ConfigDict(frozen=True)

    user: str = Field(min_length=1)
    # name -> values in the order the server sent them
    attributes: Dict[str, Tuple[str, ...]] = Field(default_factory=dict)
    proxy_granting_ticket: Optional[str] = None
    proxies: Tuple[str, ...] = ()

    # Lifted from the well-known CAS 3 attributes; the raw values stay in `attributes`.
    authentication_date: Optional[datetime] = None
    is_new_login: bool = False
    is_remembered_login: bool = False
    member_of: Tuple[str, ...] = ()

    def get_attribute(self, name: str, default: Optional[str] = None) -> Optional[str]:
        """
        First value of the attribute, or `default` when the server did not send it.
        """
        values = self.attributes.get(name)
        if not values:
            return default
        return values[0]


class ValidationFailure(BaseModel):
    """
    A well-formed rejection (<cas:authenticationFailure>) from the CAS server.
    """

    model_config = ConfigDict(frozen=True)

    code: str
    description: str = ""

    @property
    def failure_code(self) -> Optional[FailureCode]:
        try:
            return FailureCode(self.code)
        except ValueError:
            return None
