"""
Record source: identity resolution and XRPC calls against PDSes and the
public AppView
"""
import asyncio
import logging
from typing import NamedTuple

import httpx
from atproto import AsyncIdResolver

from .config import BSKY_API, HTTP_TIMEOUT, PLC_DIRECTORY

logger = logging.getLogger(__name__)

GET_POSTS_BATCH = 25  # app.bsky.feed.getPosts accepts at most 25 URIs


class FeedError(Exception):
    """A failure worth showing to the reader instead of a feed"""


class ResolutionError(FeedError):
    """The actor could not be mapped to a repository and PDS"""


class UpstreamError(FeedError):
    """A PDS or AppView call failed"""


class Repo(NamedTuple):
    actor: str
    did: str
    pds: str


def rkey(uri: str) -> str:
    return uri.rsplit('/', 1)[-1]


def parse_at_uri(uri: str) -> tuple:
    """Split at://<repo>/<collection>/<rkey> into its three parts (missing parts are '')"""
    parts = uri.removeprefix('at://').split('/')
    parts += [''] * (3 - len(parts))
    return parts[0], parts[1], parts[2]


class FeedClient:
    """Async client for everything the feed needs from the network"""

    def __init__(self, http_client: httpx.AsyncClient = None, resolver=None, api: str = BSKY_API):
        self.http_client = http_client or httpx.AsyncClient(timeout=HTTP_TIMEOUT)
        self.resolver = resolver or AsyncIdResolver(plc_url=PLC_DIRECTORY, timeout=HTTP_TIMEOUT)
        self.api = api.rstrip('/')

    async def aclose(self):
        await self.http_client.aclose()

    async def __aenter__(self):
        return self

    async def __aexit__(self, *exc_info):
        await self.aclose()

    async def _get(self, url: str, params=None) -> httpx.Response:
        try:
            return await self.http_client.get(url, params=params)
        except httpx.HTTPError as e:
            raise UpstreamError(f"Request failed: {url}") from e

    @staticmethod
    def _json(response: httpx.Response) -> dict:
        try:
            data = response.json()
        except ValueError as e:
            raise UpstreamError(f"Invalid JSON from {response.url}") from e
        return data if isinstance(data, dict) else {}

    # --- Identity ---

    async def resolve_pds(self, did: str) -> str:
        """Find the PDS endpoint in a DID document"""
        try:
            data = await self.resolver.did.resolve_atproto_data(did)
        except Exception as e:
            logger.warning("DID resolution failed for %s: %s", did, e)
            raise ResolutionError("Could not resolve DID") from e
        if not getattr(data, 'pds', None):
            raise ResolutionError("No PDS found")
        return data.pds

    async def resolve_handle(self, handle: str) -> str:
        response = await self._get(
            f"{self.api}/com.atproto.identity.resolveHandle", params={'handle': handle}
        )
        if not response.is_success:
            raise ResolutionError("Could not resolve handle")
        did = self._json(response).get('did')
        if not isinstance(did, str) or not did.startswith('did:'):
            raise ResolutionError("Could not resolve handle")
        return did

    async def resolve_identity(self, actor: str) -> Repo:
        """Map a handle or DID to its repository DID and PDS endpoint"""
        did = actor if actor.startswith('did:') else await self.resolve_handle(actor)
        pds = await self.resolve_pds(did)
        return Repo(actor=actor, did=did, pds=pds.rstrip('/'))

    # --- Repository ---

    async def describe_repo(self, repo: Repo) -> list:
        """Collections present in a repository; [] if the PDS won't say"""
        try:
            response = await self._get(
                f"{repo.pds}/xrpc/com.atproto.repo.describeRepo", params={'repo': repo.did}
            )
            if not response.is_success:
                return []
            collections = self._json(response).get('collections')
        except UpstreamError as e:
            logger.info("describeRepo failed for %s: %s", repo.did, e)
            return []
        if not isinstance(collections, list):
            return []
        return [c for c in collections if isinstance(c, str)]

    async def list_records(self, repo: Repo, collection: str, limit: int, reverse: bool = False) -> list:
        """List up to `limit` records; reverse=True asks for oldest first"""
        params = {'repo': repo.did, 'collection': collection, 'limit': limit}
        if reverse:
            params['reverse'] = 'true'
        response = await self._get(f"{repo.pds}/xrpc/com.atproto.repo.listRecords", params=params)
        if not response.is_success:
            raise UpstreamError(f"PDS error {response.status_code}")

        records = self._json(response).get('records')
        if not isinstance(records, list):
            return []
        return [
            {'uri': r['uri'], 'value': r['value'] if isinstance(r.get('value'), dict) else {}}
            for r in records
            if isinstance(r, dict) and isinstance(r.get('uri'), str)
        ]

    async def get_record(self, pds: str, repo: str, collection: str, key: str):
        """Fetch one record's value, or None if it can't be had"""
        try:
            response = await self._get(
                f"{pds}/xrpc/com.atproto.repo.getRecord",
                params={'repo': repo, 'collection': collection, 'rkey': key},
            )
            if not response.is_success:
                return None
            value = self._json(response).get('value')
        except UpstreamError as e:
            logger.info("getRecord failed for %s/%s/%s: %s", repo, collection, key, e)
            return None
        return value if isinstance(value, dict) else None

    # --- AppView ---

    async def _get_posts_batch(self, uris: list) -> list:
        response = await self._get(
            f"{self.api}/app.bsky.feed.getPosts", params=[('uris', uri) for uri in uris]
        )
        if not response.is_success:
            raise UpstreamError(f"API error {response.status_code}")
        posts = self._json(response).get('posts')
        if not isinstance(posts, list):
            return []
        return [p for p in posts if isinstance(p, dict) and isinstance(p.get('uri'), str)]

    async def get_posts(self, uris: list) -> list:
        """Hydrate post URIs into full post views"""
        if not uris:
            return []
        batches = [uris[i:i + GET_POSTS_BATCH] for i in range(0, len(uris), GET_POSTS_BATCH)]
        results = await asyncio.gather(*(self._get_posts_batch(batch) for batch in batches))
        return [post for batch in results for post in batch]
