"""
Bluesky posts (app.bsky.feed.post)
"""
import asyncio
import logging
from urllib.parse import urlsplit

from ..embeds import render_embed
from ..feed import FeedError, rkey
from ..render import Author, ItemView, ReplyContext, Stats
from ..richtext import render_rich_text

logger = logging.getLogger(__name__)

ID = "app.bsky.feed.post"
LABEL = "Bluesky Posts"


def _dict(value) -> dict:
    return value if isinstance(value, dict) else {}


def _str(data: dict, key: str) -> str:
    value = data.get(key)
    return value if isinstance(value, str) else ''


def _count(data: dict, key: str) -> int:
    value = data.get(key)
    return value if isinstance(value, int) and not isinstance(value, bool) else 0


def reply_parent_uri(record: dict):
    """URI of the post a record replies to, if any"""
    parent = _dict(_dict(record.get('reply')).get('parent'))
    return _str(parent, 'uri') or None


async def fetch_records(client, repo, limit: int) -> list:
    """Fetch the oldest `limit` posts.

    Bluesky-hosted PDSes honour reverse=true, so one oldest-first call is
    enough. Other PDSes may order either way: ask for both orders, merge
    by URI and keep the lowest record keys.
    """
    if (urlsplit(repo.pds).hostname or "").endswith(".host.bsky.network"):
        return await client.list_records(repo, ID, limit, reverse=True)

    forward, backward = await asyncio.gather(
        client.list_records(repo, ID, limit),
        client.list_records(repo, ID, limit, reverse=True),
        return_exceptions=True,
    )
    failures = [r for r in (forward, backward) if isinstance(r, BaseException)]
    for failure in failures:
        if not isinstance(failure, FeedError):
            raise failure
    if len(failures) == 2:
        raise failures[0]
    if failures:
        logger.warning("One listing of %s failed, using the other: %s", repo.did, failures[0])

    seen = set()
    merged = []
    for batch in (forward, backward):
        if isinstance(batch, BaseException):
            continue
        for record in batch:
            if record['uri'] not in seen:
                seen.add(record['uri'])
                merged.append(record)
    merged.sort(key=lambda r: rkey(r['uri']))
    return merged[:limit]


def post_url(post: dict) -> str:
    handle = _str(_dict(post.get('author')), 'handle')
    return f"https://bsky.app/profile/{handle}/post/{rkey(post['uri'])}"


def post_to_view(post: dict, parent: dict = None) -> ItemView:
    """Turn a hydrated post view (and its reply parent) into an ItemView"""
    record = _dict(post.get('record'))
    author = _dict(post.get('author'))
    handle = _str(author, 'handle')

    reply_context = None
    if parent:
        parent_author = _dict(parent.get('author'))
        parent_handle = _str(parent_author, 'handle')
        reply_context = ReplyContext(
            name=_str(parent_author, 'displayName') or parent_handle,
            href=f"/{parent_handle}",
            text=_str(_dict(parent.get('record')), 'text'),
        )

    return ItemView(
        date=_str(record, 'createdAt') or None,
        date_href=post_url(post),
        author=Author(
            name=_str(author, 'displayName') or handle,
            handle=handle,
            avatar=_str(author, 'avatar') or None,
        ),
        body=render_rich_text(_str(record, 'text'), record.get('facets')),
        embed=render_embed(post.get('embed')) or None,
        stats=Stats(
            replies=_count(post, 'replyCount'),
            reposts=_count(post, 'repostCount'),
            likes=_count(post, 'likeCount'),
        ),
        reply_context=reply_context,
    )


async def _parent_posts(client, uris: list) -> dict:
    """Reply parents by URI; a failed lookup just means no reply context"""
    try:
        posts = await client.get_posts(uris)
    except FeedError as e:
        logger.warning("Could not fetch reply parents: %s", e)
        return {}
    return {p['uri']: p for p in posts}


async def view_all(client, repo, records: list) -> list:
    """Hydrate post records through the AppView and build their views"""
    uris = [r['uri'] for r in records]
    uri_set = set(uris)
    parent_uris = []
    for record in records:
        parent = reply_parent_uri(record['value'])
        if parent and parent not in uri_set and parent not in parent_uris:
            parent_uris.append(parent)

    posts, parents = await asyncio.gather(
        client.get_posts(uris),
        _parent_posts(client, parent_uris),
    )
    post_map = {p['uri']: p for p in posts}

    items = []
    for uri in uris:
        post = post_map.get(uri)
        if post is None:
            continue
        parent_uri = reply_parent_uri(_dict(post.get('record')))
        parent = (post_map.get(parent_uri) or parents.get(parent_uri)) if parent_uri else None
        items.append(post_to_view(post, parent))
    return items
