from typing import Optional


class CASError(Exception):
    """
    Base class for every error raised by casticket.
    """


class CASConfigurationError(CASError, ValueError):
    """
    The CAS server URL given to the validator is not usable.
    """


class CASRequestError(CASError):
    """
    The CAS server answered with an HTTP status the protocol does not allow.
    """

    def __init__(self, status_code: int, url: str, body: str):
        self.status_code = status_code
        self.url = url
        self.body = body
        super().__init__(
            f"CAS validation request to {url} failed with HTTP {status_code}: {_snippet(body)}"
        )


class CASParseError(CASError):
    """
    The response body matches neither the XML nor the plain-text grammar.
    """

    def __init__(self, reason: str, body: Optional[str] = None):
        self.reason = reason
        self.body = body
        message = f"Cannot parse CAS response: {reason}"
        if body is not None:
            message += f" ({_snippet(body)})"
        super().__init__(message)


def _snippet(body: str, limit: int = 200) -> str:
    body = body.strip()
    if len(body) > limit:
        return body[:limit] + "..."
    return body
