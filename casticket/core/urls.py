from urllib.parse import SplitResult, parse_qsl, urldefrag, urlencode, urlsplit, urlunsplit

from .exceptions import CASConfigurationError

SERVICE_VALIDATE_PATH = "serviceValidate"
VALIDATE_PATH = "validate"


def parse_cas_url(cas_url: str) -> SplitResult:
    """
    Split and check the CAS server base URL.
    Raises CASConfigurationError if it is not an absolute http(s) URL.
    """
    try:
        parts = urlsplit(cas_url)
        parts.port  # urlsplit only validates the port lazily
    except (TypeError, ValueError, AttributeError) as e:
        raise CASConfigurationError(f"Invalid CAS server URL {cas_url!r}: {e}") from e

    if parts.scheme not in ("http", "https") or not parts.hostname:
        raise CASConfigurationError(
            f"Invalid CAS server URL {cas_url!r}: expected an absolute http(s) URL"
        )
    return parts


def sanitised_service_url(service_url: str) -> str:
    """
    The service URL as sent to the CAS server: no fragment and no leftover `ticket` parameter.
    """
    url, _ = urldefrag(service_url)
    parts = urlsplit(url)
    if not parts.query:
        return url

    params = parse_qsl(parts.query, keep_blank_values=True)
    kept = [(k, v) for k, v in params if k != "ticket"]
    if len(kept) == len(params):
        return url
    return urlunsplit(parts._replace(query=urlencode(kept)))


def build_validation_url(cas_url, segment: str, service_url: str, ticket: str) -> str:
    parts = cas_url if isinstance(cas_url, SplitResult) else parse_cas_url(cas_url)
    path = parts.path.rstrip("/") + "/" + segment
    query = urlencode({"service": sanitised_service_url(service_url), "ticket": ticket})
    return urlunsplit((parts.scheme, parts.netloc, path, query, ""))


def service_validate_url(cas_url, service_url: str, ticket: str) -> str:
    """
    CAS 2/3 endpoint: <cas_url>/serviceValidate?service=...&ticket=...
    """
    return build_validation_url(cas_url, SERVICE_VALIDATE_PATH, service_url, ticket)


def validate_url(cas_url, service_url: str, ticket: str) -> str:
    """
    CAS 1 endpoint: <cas_url>/validate?service=...&ticket=...
    """
    return build_validation_url(cas_url, VALIDATE_PATH, service_url, ticket)
