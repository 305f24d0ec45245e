import httpx
import pytest

from at_first.feed import (
    FeedClient,
    Repo,
    ResolutionError,
    UpstreamError,
    parse_at_uri,
    rkey,
)
from tests.fakes import DID, HANDLE, PDS, FakeIdResolver, post_record, post_uri, post_view


def test_rkey():
    assert rkey("at://did:plc:a/app.bsky.feed.post/3kabc") == "3kabc"


@pytest.mark.parametrize("uri,expected", [
    ("at://did:plc:a/app.bsky.feed.post/3k", ("did:plc:a", "app.bsky.feed.post", "3k")),
    ("at://did:plc:a/app.bsky.feed.post", ("did:plc:a", "app.bsky.feed.post", "")),
    ("at://alice.test", ("alice.test", "", "")),
])
def test_parse_at_uri(uri, expected):
    assert parse_at_uri(uri) == expected


class TestResolveIdentity:
    async def test_handle(self, client):
        assert await client.resolve_identity(HANDLE) == Repo(actor=HANDLE, did=DID, pds=PDS)

    async def test_did_skips_handle_lookup(self, client, network):
        repo = await client.resolve_identity(DID)
        assert repo.did == DID
        assert network.count('com.atproto.identity.resolveHandle') == 0

    async def test_trailing_slash_is_stripped(self, client, network):
        network.documents[DID] = PDS + "/"
        assert (await client.resolve_identity(HANDLE)).pds == PDS

    async def test_unknown_handle(self, client):
        with pytest.raises(ResolutionError, match="Could not resolve handle"):
            await client.resolve_identity("nobody.test")

    async def test_unknown_did(self, client):
        with pytest.raises(ResolutionError, match="Could not resolve DID"):
            await client.resolve_identity("did:plc:nobody")

    async def test_document_without_pds(self, client, network):
        network.documents[DID] = None
        with pytest.raises(ResolutionError, match="No PDS found"):
            await client.resolve_identity(DID)

    async def test_transport_failure_is_upstream_error(self, network):
        def broken(request):
            raise httpx.ConnectError("boom", request=request)

        client = FeedClient(
            http_client=httpx.AsyncClient(transport=httpx.MockTransport(broken)),
            resolver=FakeIdResolver(network),
        )
        with pytest.raises(UpstreamError):
            await client.resolve_identity(HANDLE)


class TestDescribeRepo:
    async def test_lists_collections(self, client, network, repo):
        network.collections = ['app.bsky.feed.post', 'com.whtwnd.blog.entry', 7]
        assert await client.describe_repo(repo) == ['app.bsky.feed.post', 'com.whtwnd.blog.entry']

    async def test_failure_is_empty(self, client, network, repo):
        network.fail.add('com.atproto.repo.describeRepo')
        assert await client.describe_repo(repo) == []


class TestListRecords:
    @pytest.fixture(autouse=True)
    def records(self, network):
        network.records['app.bsky.feed.post'] = [post_record(k) for k in ('a1', 'a2', 'a3')]

    async def test_oldest_first(self, client, repo):
        records = await client.list_records(repo, 'app.bsky.feed.post', 2, reverse=True)
        assert [rkey(r['uri']) for r in records] == ['a1', 'a2']

    async def test_newest_first(self, client, repo, network):
        records = await client.list_records(repo, 'app.bsky.feed.post', 2)
        assert [rkey(r['uri']) for r in records] == ['a3', 'a2']
        assert 'reverse' not in network.calls[-1][1]

    async def test_records_are_normalized(self, client, repo, network):
        network.records['x.y.z'] = [{'uri': 'at://x/x.y.z/1', 'value': 'oops'}, {'value': {}}, 'junk']
        assert await client.list_records(repo, 'x.y.z', 10) == [{'uri': 'at://x/x.y.z/1', 'value': {}}]

    async def test_empty_collection(self, client, repo):
        assert await client.list_records(repo, 'nothing.here', 10, reverse=True) == []

    async def test_pds_error(self, client, repo, network):
        network.fail.add('com.atproto.repo.listRecords')
        with pytest.raises(UpstreamError, match="PDS error 500"):
            await client.list_records(repo, 'app.bsky.feed.post', 10)


class TestGetRecord:
    async def test_found(self, client, network):
        network.stored[(DID, 'pub.leaflet.publication', 'p1')] = {'base_path': 'alice.leaflet.pub'}
        value = await client.get_record(PDS, DID, 'pub.leaflet.publication', 'p1')
        assert value == {'base_path': 'alice.leaflet.pub'}

    async def test_missing_is_none(self, client):
        assert await client.get_record(PDS, DID, 'pub.leaflet.publication', 'nope') is None


class TestGetPosts:
    async def test_empty_makes_no_call(self, client, network):
        assert await client.get_posts([]) == []
        assert network.calls == []

    async def test_batches_of_25(self, client, network):
        records = [post_record(f"k{i:02d}") for i in range(30)]
        network.posts = {r['uri']: post_view(r) for r in records}

        posts = await client.get_posts([r['uri'] for r in records])

        assert sorted(p['uri'] for p in posts) == sorted(network.posts)
        batches = [params.get_list('uris') for name, params in network.calls
                   if name == 'app.bsky.feed.getPosts']
        assert sorted(len(b) for b in batches) == [5, 25]

    async def test_missing_posts_are_dropped(self, client, network):
        record = post_record('a1')
        network.posts = {record['uri']: post_view(record)}
        posts = await client.get_posts([record['uri'], post_uri('gone')])
        assert [p['uri'] for p in posts] == [record['uri']]

    async def test_api_error(self, client, network):
        network.fail.add('app.bsky.feed.getPosts')
        with pytest.raises(UpstreamError, match="API error 500"):
            await client.get_posts([post_uri('a1')])


async def test_client_closes_its_http_client(network):
    http_client = httpx.AsyncClient(transport=httpx.MockTransport(network))
    async with FeedClient(http_client=http_client, resolver=FakeIdResolver(network)):
        pass
    assert http_client.is_closed
