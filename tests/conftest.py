import httpx
import pytest
import pytest_asyncio

from casticket.core.cas_client import ServiceTicketValidator

CAS_URL = "https://cas.example.org/cas"


class FakeCASServer:
    """
    Answers validation requests by path and remembers every request it saw.
    Unknown paths get a 404, like a CAS 1 server asked for /serviceValidate.
    """

    def __init__(self):
        self.routes = {}
        self.requests = []
        self.error = None

    def respond(self, path, text="", status_code=200, content=None, headers=None):
        if content is None:
            content = text.encode("utf-8")
        self.routes[path] = (status_code, content, headers)

    def fail_with(self, error):
        self.error = error

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if self.error is not None:
            raise self.error
        status_code, content, headers = self.routes.get(request.url.path, (404, b"Not Found", None))
        return httpx.Response(status_code, content=content, headers=headers)

    @property
    def paths(self):
        return [r.url.path for r in self.requests]


@pytest.fixture(name="cas_server")
def cas_server_fixture():
    return FakeCASServer()


@pytest_asyncio.fixture(name="client")
async def client_fixture(cas_server):
    async with httpx.AsyncClient(transport=httpx.MockTransport(cas_server.handler)) as client:
        yield client


@pytest.fixture(name="events")
def events_fixture():
    return []


@pytest.fixture(name="validator")
def validator_fixture(client, events):
    return ServiceTicketValidator(
        client,
        CAS_URL,
        observer=lambda event, details: events.append((event, details)),
    )
