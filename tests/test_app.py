import pytest
from fastapi.testclient import TestClient

from at_first.app import canonical_path, create_app
from at_first.cache import MemoryCache, cache_key
from at_first.generator import FeedGenerator
from tests.fakes import DID, HANDLE, post_record, post_view


@pytest.fixture
def cache():
    return MemoryCache()


@pytest.fixture
def app_client(client, cache, network):
    found = [post_record('a1', text='first ever post')]
    network.records['app.bsky.feed.post'] = found
    network.posts = {r['uri']: post_view(r) for r in found}
    return TestClient(create_app(FeedGenerator(client, cache)))


@pytest.mark.parametrize("actor,collection,expected", [
    ("alice.test", None, "/alice.test"),
    ("alice.test", "app.bsky.feed.post", "/alice.test"),
    ("alice.test", "com.whtwnd.blog.entry", "/alice.test/com.whtwnd.blog.entry"),
    ("did:plc:alice", None, "/did:plc:alice"),
])
def test_canonical_path(actor, collection, expected):
    assert canonical_path(actor, collection) == expected


def test_search_page(app_client):
    response = app_client.get("/")
    assert response.status_code == 200
    assert response.headers['content-type'] == "text/html; charset=UTF-8"
    assert '<form action="/" method="get">' in response.text


@pytest.mark.parametrize("url,location", [
    ("/?actor=alice.test", "/alice.test"),
    ("/?actor=%40alice.test", "/alice.test"),
    ("/?actor=alice.test&collection=com.whtwnd.blog.entry", "/alice.test/com.whtwnd.blog.entry"),
    ("/?actor=alice.test&collection=app.bsky.feed.post", "/alice.test"),
    ("/@alice.test", "/alice.test"),
    ("/@alice.test/com.whtwnd.blog.entry", "/alice.test/com.whtwnd.blog.entry"),
    ("/alice.test/app.bsky.feed.post", "/alice.test"),
    ("/@alice.test/app.bsky.feed.post", "/alice.test"),
])
def test_redirects(app_client, url, location):
    response = app_client.get(url, follow_redirects=False)
    assert response.status_code == 302
    assert response.headers['location'] == location


def test_feed_page(app_client):
    response = app_client.get("/alice.test")
    assert response.status_code == 200
    assert response.headers['content-type'] == "text/html; charset=UTF-8"
    assert '<title>@alice.test - at first</title>' in response.text
    assert 'first ever post' in response.text


def test_feed_page_by_did(app_client):
    response = app_client.get(f"/{DID}")
    assert response.status_code == 200
    assert 'first ever post' in response.text


def test_fetched_views_are_cached_after_the_response(app_client, cache):
    app_client.get(f"/{HANDLE}")
    assert cache._entries[cache_key(DID, 'app.bsky.feed.post')][0]['body'] == 'first ever post'


def test_cached_page_skips_the_network(app_client, network):
    app_client.get(f"/{HANDLE}")
    network.calls.clear()

    response = app_client.get(f"/{HANDLE}")

    assert 'first ever post' in response.text
    assert network.count('com.atproto.repo.listRecords') == 0


def test_other_collection(app_client, network):
    network.records['com.whtwnd.blog.entry'] = [{
        'uri': f'at://{DID}/com.whtwnd.blog.entry/w1',
        'value': {'title': 'Blog entry', 'content': 'words'},
    }]
    response = app_client.get("/alice.test/com.whtwnd.blog.entry")
    assert 'Blog entry' in response.text
    assert 'first ever post' not in response.text


def test_errors_are_shown_inline(app_client):
    response = app_client.get("/nobody.test")
    assert response.status_code == 200
    assert '<p class="error">Could not resolve handle</p>' in response.text


def test_favicon(app_client):
    assert app_client.get("/favicon.ico").status_code == 204
