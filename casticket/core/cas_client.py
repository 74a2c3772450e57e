import logging
from enum import Enum
from typing import Any, Callable, Dict, Optional, Union

import httpx

from ..models import AuthenticationResponse, ValidationFailure
from .config import DEFAULT_USER_AGENT, CASSettings
from .exceptions import CASRequestError
from .http_client import build_async_client
from .parsers import parse_service_response, parse_validate_response, strip_timezone_artifact
from .urls import SERVICE_VALIDATE_PATH, VALIDATE_PATH, build_validation_url, parse_cas_url

log = logging.getLogger("casticket.validator")

Observer = Callable[[str, Dict[str, Any]], None]
ValidationResult = Optional[Union[AuthenticationResponse, ValidationFailure]]


class ValidationProtocol(Enum):
    SERVICE_VALIDATE = SERVICE_VALIDATE_PATH  # CAS 2 and 3
    VALIDATE = VALIDATE_PATH  # CAS 1

    @property
    def fallback(self) -> Optional["ValidationProtocol"]:
        """
        Protocol to try when this endpoint answers 404.
        """
        if self is ValidationProtocol.SERVICE_VALIDATE:
            return ValidationProtocol.VALIDATE
        return None


def _endpoint(url: str) -> str:
    # validation URLs carry the ticket in the query string
    return url.split("?", 1)[0]


def _mask(ticket: str) -> str:
    if len(ticket) <= 8:
        return "***"
    return ticket[:6] + "..."


class ServiceTicketValidator:
    """
    Validates service tickets against a CAS server.

    /serviceValidate is tried first; if the server does not have it (HTTP 404),
    the CAS 1 /validate endpoint is used instead.
    """

    def __init__(
        self,
        client: httpx.AsyncClient,
        cas_url: str,
        *,
        user_agent: str = DEFAULT_USER_AGENT,
        observer: Optional[Observer] = None,
    ):
        self._parts = parse_cas_url(cas_url)
        self._cas_url = cas_url
        self._client = client
        self._user_agent = user_agent
        self._observer = observer
        # only a client built by from_settings is closed by aclose()
        self._owns_client = False

    @classmethod
    def from_settings(
        cls,
        settings: Optional[CASSettings] = None,
        client: Optional[httpx.AsyncClient] = None,
        observer: Optional[Observer] = None,
    ) -> "ServiceTicketValidator":
        settings = settings or CASSettings()
        owns_client = client is None
        if owns_client:
            client = build_async_client(settings)
        validator = cls(client, settings.server_url, user_agent=settings.user_agent, observer=observer)
        validator._owns_client = owns_client
        return validator

    async def aclose(self) -> None:
        """
        Close the HTTP client if this validator created it. Injected clients are left open.
        """
        if self._owns_client:
            await self._client.aclose()

    async def __aenter__(self) -> "ServiceTicketValidator":
        return self

    async def __aexit__(self, exc_type, exc_value, traceback) -> None:
        await self.aclose()

    @property
    def cas_url(self) -> str:
        return self._cas_url

    @property
    def client(self) -> httpx.AsyncClient:
        return self._client

    def service_validate_url(self, service_url: str, ticket: str) -> str:
        """
        Validation URL for the CAS >= 2 protocol.
        """
        return build_validation_url(self._parts, SERVICE_VALIDATE_PATH, service_url, ticket)

    def validate_url(self, service_url: str, ticket: str) -> str:
        """
        Validation URL for the CAS 1 protocol.
        """
        return build_validation_url(self._parts, VALIDATE_PATH, service_url, ticket)

    async def validate_ticket(self, service_url: str, ticket: str) -> ValidationResult:
        """
        Validate `ticket` for `service_url`.

        Returns an AuthenticationResponse when the ticket is accepted, a ValidationFailure
        when /serviceValidate rejects it and None when /validate answers "no".
        Raises CASRequestError for unexpected HTTP statuses, CASParseError for bodies
        that are not CAS responses; httpx errors are not caught.
        """
        log.debug("Validating ticket %s for service %s", _mask(ticket), service_url)

        protocol = ValidationProtocol.SERVICE_VALIDATE
        while True:
            url = build_validation_url(self._parts, protocol.value, service_url, ticket)
            response = await self._get(url)

            if response.status_code == httpx.codes.NOT_FOUND and protocol.fallback is not None:
                log.info("%s returned 404, falling back to %s", _endpoint(url), protocol.fallback.value)
                self._emit("fallback", {"url": url, "protocol": protocol.fallback.value})
                protocol = protocol.fallback
                continue

            if response.status_code != httpx.codes.OK:
                raise CASRequestError(response.status_code, url, response.text)

            result = self._parse(protocol, response)
            self._emit("parsed", {"protocol": protocol.value, "result": result})
            return result

    async def _get(self, url: str) -> httpx.Response:
        self._emit("request", {"url": url})
        log.debug("Attempting ticket validation with %s", _endpoint(url))

        # get() reads the whole body and hands the connection back to the pool
        response = await self._client.get(url, headers={"User-Agent": self._user_agent})

        log.debug("GET %s returned %s", _endpoint(url), response.status_code)
        self._emit("response", {"url": url, "status_code": response.status_code})
        return response

    def _parse(self, protocol: ValidationProtocol, response: httpx.Response) -> ValidationResult:
        if protocol is ValidationProtocol.SERVICE_VALIDATE:
            # raw bytes, so expat honours the encoding in the XML declaration
            result = parse_service_response(strip_timezone_artifact(response.content))
        else:
            result = parse_validate_response(response.text)

        if isinstance(result, ValidationFailure):
            log.info("CAS rejected ticket: %s %s", result.code, result.description)
        elif result is None:
            log.info("CAS 1 validation answered 'no'")
        else:
            log.debug("Ticket validated for user %s", result.user)
        return result

    def _emit(self, event: str, details: Dict[str, Any]) -> None:
        if self._observer is not None:
            self._observer(event, details)
