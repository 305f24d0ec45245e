"""
Static registry of collections that have their own views

Every module here exposes ID, LABEL and an async view_all(client, repo,
records). A module may also provide fetch_records(client, repo, limit)
when the plain oldest-first listing isn't good enough. Collections not
listed fall back to the generic view.
"""
from ..render import generic_view
from . import bsky_post, frontpage_post, leaflet_document, psky_post, whitewind_blog

COLLECTIONS = {
    module.ID: module
    for module in (bsky_post, psky_post, whitewind_blog, frontpage_post, leaflet_document)
}


def get_collection(nsid: str):
    return COLLECTIONS.get(nsid)


def label_for(nsid: str) -> str:
    module = get_collection(nsid)
    return module.LABEL if module else nsid


async def fetch_records(client, repo, nsid: str, limit: int) -> list:
    """Oldest `limit` records of a collection"""
    module = get_collection(nsid)
    if module is not None and hasattr(module, 'fetch_records'):
        return await module.fetch_records(client, repo, limit)
    return await client.list_records(repo, nsid, limit, reverse=True)


async def view_records(client, repo, nsid: str, records: list) -> list:
    """Build ItemViews for records of any collection"""
    module = get_collection(nsid)
    if module is None:
        return [generic_view(record['value']) for record in records]
    return await module.view_all(client, repo, records)
