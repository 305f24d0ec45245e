import httpx
import pytest

from at_first.feed import FeedClient, Repo
from tests.fakes import API, DID, HANDLE, PDS, FakeIdResolver, FakeNetwork


@pytest.fixture
def network():
    return FakeNetwork()


@pytest.fixture
def client(network):
    http_client = httpx.AsyncClient(transport=httpx.MockTransport(network))
    return FeedClient(http_client=http_client, resolver=FakeIdResolver(network), api=API)


@pytest.fixture
def repo():
    return Repo(actor=HANDLE, did=DID, pds=PDS)
