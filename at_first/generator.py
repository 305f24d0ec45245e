"""
at first generator - resolves an actor, loads the oldest records of a
collection and renders them as a page
"""
import asyncio
import logging
from typing import NamedTuple, Optional

from jinja2 import Template

from . import collections
from .cache import RecordCache, cache_get, cache_key
from .config import DEFAULT_COLLECTION, RECORD_LIMIT, SITE_TITLE
from .feed import FeedClient, FeedError, Repo
from .render import ItemView, render_item, render_page

logger = logging.getLogger(__name__)


class FeedPage(NamedTuple):
    actor: str
    collection: str
    items: tuple = ()  # rendered post cards
    collections: tuple = ()  # NSIDs offered in the collection picker
    error: Optional[str] = None
    cache_entry: Optional[tuple] = None  # (key, item dicts) still to be written


CONTENT_TEMPLATE = Template('''
<h1><a href="/">{{ site_title }}</a></h1>
<form action="/" method="get">
    <div class="form-row">
        <input name="actor" placeholder="handle.bsky.social" value="{{ page.actor }}" aria-label="Bluesky handle" required>
        {% if options %}
        <select name="collection" aria-label="Collection" onchange="this.form.submit()">
            {% for nsid, label in options %}
            <option value="{{ nsid }}"{% if nsid == page.collection %} selected{% endif %}>{{ label }}</option>
            {% endfor %}
        </select>
        {% endif %}
    </div>
</form>
{% if page.error %}
<p class="error">{{ page.error }}</p>
{% elif page.items %}
{% for item in page.items %}
{{ item|safe }}
{% endfor %}
{% elif page.actor %}
<p>No records found.</p>
{% endif %}
''', autoescape=True, trim_blocks=True, lstrip_blocks=True)


class FeedGenerator:
    def __init__(self, client: FeedClient, cache: RecordCache = None, limit: int = RECORD_LIMIT):
        self.client = client
        self.cache = cache
        self.limit = limit

    async def fetch_views(self, repo: Repo, collection: str) -> list:
        """Fetch records from the network and build their views"""
        records = await collections.fetch_records(self.client, repo, collection, self.limit)
        logger.info("Fetched %d %s records for %s", len(records), collection, repo.did)
        return await collections.view_records(self.client, repo, collection, records)

    async def load_views(self, repo: Repo, collection: str) -> tuple:
        """Return (views, cache_entry); cache_entry is None on a cache hit"""
        key = cache_key(repo.did, collection)
        cached = await cache_get(self.cache, key)
        if cached is not None:
            try:
                return [ItemView.from_dict(item) for item in cached], None
            except (TypeError, ValueError, AttributeError) as e:
                logger.warning("Ignoring unreadable cache entry for %s: %s", key, e)

        views = await self.fetch_views(repo, collection)
        entry = (key, [view.to_dict() for view in views]) if self.cache is not None else None
        return views, entry

    async def generate(self, actor: str, collection: str = None) -> FeedPage:
        """Build the page data for an actor's collection"""
        collection = collection or DEFAULT_COLLECTION
        if not actor:
            return FeedPage(actor='', collection=collection)

        try:
            repo = await self.client.resolve_identity(actor)
            available, (views, entry) = await asyncio.gather(
                self.client.describe_repo(repo),
                self.load_views(repo, collection),
            )
        except FeedError as e:
            logger.info("Feed for %s/%s failed: %s", actor, collection, e)
            return FeedPage(actor=actor, collection=collection, error=str(e))

        return FeedPage(
            actor=actor,
            collection=collection,
            items=tuple(render_item(view) for view in views),
            collections=tuple(available),
            cache_entry=entry,
        )

    def generate_html(self, page: FeedPage) -> str:
        """Render a FeedPage as a complete HTML document"""
        nsids = list(page.collections)
        if page.actor and page.collection not in nsids:
            nsids.insert(0, page.collection)
        options = [(nsid, collections.label_for(nsid)) for nsid in nsids]

        content = CONTENT_TEMPLATE.render(page=page, options=options, site_title=SITE_TITLE)
        title = f"@{page.actor} - {SITE_TITLE}" if page.actor else SITE_TITLE
        return render_page(title, content.strip())
