"""
Response grammars for the two validation endpoints.

/serviceValidate (CAS 2 and 3) answers with XML:

    <cas:serviceResponse xmlns:cas="http://www.yale.edu/tp/cas">
        <cas:authenticationSuccess>
            <cas:user>jdoe</cas:user>
            <cas:attributes>
                <cas:memberOf>staff</cas:memberOf>
                <cas:memberOf>faculty</cas:memberOf>
            </cas:attributes>
            <cas:proxyGrantingTicket>PGTIOU-84678-8a9d</cas:proxyGrantingTicket>
        </cas:authenticationSuccess>
    </cas:serviceResponse>

or an <cas:authenticationFailure code="..."> element holding a description.

/validate (CAS 1) answers with "yes\n<user>\n" or "no\n\n".
"""
import logging
from datetime import datetime
from typing import Any, Dict, List, Optional, Union
from xml.parsers.expat import ExpatError

import xmltodict

from ..models import AuthenticationResponse, ValidationFailure
from .exceptions import CASParseError

log = logging.getLogger("casticket.parsers")

# Some CAS server versions append the zone name to authenticationDate,
# e.g. 2015-06-17T13:21:07.585Z[Etc/UTC]
TIMEZONE_ARTIFACT = "[Etc/UTC]"


def strip_timezone_artifact(body: Union[str, bytes]) -> Union[str, bytes]:
    if isinstance(body, bytes):
        return body.replace(TIMEZONE_ARTIFACT.encode("ascii"), b"")
    return body.replace(TIMEZONE_ARTIFACT, "")


def _local(key: str) -> str:
    return key.rsplit(":", 1)[-1]


def _children(node: Any, name: str) -> List[Any]:
    """
    Child elements of an xmltodict node with the given local name, in document order.
    """
    if not isinstance(node, dict):
        return []
    found = []
    for key, value in node.items():
        if key.startswith(("@", "#")) or _local(key) != name:
            continue
        found.extend(value if isinstance(value, list) else [value])
    return found


def _text(node: Any) -> Optional[str]:
    if isinstance(node, str):
        return node.strip()
    if isinstance(node, dict) and isinstance(node.get("#text"), str):
        return node["#text"].strip()
    return None


def _is_true(values) -> bool:
    return bool(values) and values[0].lower() == "true"


def _parse_datetime(value: str) -> Optional[datetime]:
    try:
        return datetime.fromisoformat(value)
    except ValueError:
        log.warning("Ignoring unparseable authenticationDate %r", value)
        return None


def _collect_attributes(success: dict) -> Dict[str, List[str]]:
    attributes: Dict[str, List[str]] = {}

    def add(name, value):
        attributes.setdefault(name, []).append(value if value is not None else "")

    def add_named(element):
        # <cas:attribute name="mail" value="jdoe@example.org"/>
        value = element.get("@value")
        add(element["@name"], value if value is not None else _text(element))

    for container in _children(success, "attributes"):
        if not isinstance(container, dict):
            continue
        for key, value in container.items():
            if key.startswith(("@", "#")):
                continue
            name = _local(key)
            for element in value if isinstance(value, list) else [value]:
                if name == "attribute" and isinstance(element, dict) and "@name" in element:
                    add_named(element)
                else:
                    add(name, _text(element))

    for element in _children(success, "attribute"):
        if isinstance(element, dict) and "@name" in element:
            add_named(element)

    return attributes


def _parse_success(success: Any, body) -> AuthenticationResponse:
    users = [_text(u) for u in _children(success, "user")]
    if not users or not users[0]:
        raise CASParseError("authenticationSuccess without a user", _decoded(body))

    attributes = _collect_attributes(success)

    pgt = None
    pgts = [_text(p) for p in _children(success, "proxyGrantingTicket")]
    if pgts and pgts[0]:
        pgt = pgts[0]

    proxies = []
    for container in _children(success, "proxies"):
        for proxy in _children(container, "proxy"):
            url = _text(proxy)
            if url:
                proxies.append(url)

    authentication_date = None
    if attributes.get("authenticationDate"):
        authentication_date = _parse_datetime(attributes["authenticationDate"][0])

    return AuthenticationResponse(
        user=users[0],
        attributes={name: tuple(values) for name, values in attributes.items()},
        proxy_granting_ticket=pgt,
        proxies=tuple(proxies),
        authentication_date=authentication_date,
        is_new_login=_is_true(attributes.get("isFromNewLogin")),
        is_remembered_login=_is_true(attributes.get("longTermAuthenticationRequestTokenUsed")),
        member_of=tuple(attributes.get("memberOf", ())),
    )


def _parse_failure(failure: Any) -> ValidationFailure:
    code = ""
    if isinstance(failure, dict):
        code = (failure.get("@code") or "").strip()
    return ValidationFailure(code=code, description=_text(failure) or "")


def _decoded(body) -> str:
    if isinstance(body, bytes):
        return body.decode("utf-8", errors="replace")
    return body


def parse_service_response(body: Union[str, bytes]) -> Union[AuthenticationResponse, ValidationFailure]:
    """
    Parse a /serviceValidate body.

    Returns an AuthenticationResponse or a ValidationFailure.
    Raises CASParseError when the body is not a CAS service response.
    """
    try:
        doc = xmltodict.parse(body)
    except (ExpatError, ValueError) as e:
        raise CASParseError(f"malformed XML ({e})", _decoded(body)) from e

    if not doc:
        raise CASParseError("empty document", _decoded(body))
    root_key, root = next(iter(doc.items()))
    if _local(root_key) != "serviceResponse":
        raise CASParseError(f"unexpected root element <{root_key}>", _decoded(body))

    successes = _children(root, "authenticationSuccess")
    failures = _children(root, "authenticationFailure")
    if successes and failures:
        raise CASParseError("both authenticationSuccess and authenticationFailure present", _decoded(body))
    if successes:
        return _parse_success(successes[0], body)
    if failures:
        return _parse_failure(failures[0])
    raise CASParseError("neither authenticationSuccess nor authenticationFailure present", _decoded(body))


def parse_validate_response(body: str) -> Optional[AuthenticationResponse]:
    """
    Parse a CAS 1 /validate body.

    Returns None for "no" (ticket rejected), an AuthenticationResponse for "yes".
    """
    lines = [line.rstrip() for line in body.splitlines()]
    while lines and not lines[-1]:
        lines.pop()

    if lines == ["no"]:
        return None
    if len(lines) == 2 and lines[0] == "yes" and lines[1].strip():
        return AuthenticationResponse(user=lines[1].strip())
    raise CASParseError("expected 'yes' and a username, or 'no'", body)
