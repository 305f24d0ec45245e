"""
Leaflet documents (pub.leaflet.document)

Documents link to their publication's site, whose host lives in the
publication record's base_path.
"""
import asyncio

from ..feed import parse_at_uri, rkey
from ..render import ItemView, esc, truncate_text

ID = "pub.leaflet.document"
LABEL = "Leaflet Documents"


def extract_text(pages) -> str:
    """Plaintext of every block on every page, one paragraph per block"""
    if not isinstance(pages, list):
        return ''
    lines = []
    for page in pages:
        blocks = page.get('blocks') if isinstance(page, dict) else None
        for block in blocks if isinstance(blocks, list) else []:
            inner = block.get('block') if isinstance(block, dict) else None
            text = inner.get('plaintext') if isinstance(inner, dict) else None
            if isinstance(text, str) and text:
                lines.append(text)
    return '\n\n'.join(lines)


async def fetch_base_paths(client, repo, records: list) -> dict:
    """Map publication URI -> base_path; lookups that fail are left out"""
    publications = []
    for record in records:
        uri = record['value'].get('publication')
        if isinstance(uri, str) and uri not in publications:
            publications.append(uri)

    values = await asyncio.gather(
        *(client.get_record(repo.pds, *parse_at_uri(uri)) for uri in publications)
    )
    base_paths = {}
    for uri, value in zip(publications, values):
        base_path = value.get('base_path') if value else None
        if isinstance(base_path, str) and base_path:
            base_paths[uri] = base_path
    return base_paths


async def view_all(client, repo, records: list) -> list:
    base_paths = await fetch_base_paths(client, repo, records)

    views = []
    for record in records:
        value = record['value']
        title = value.get('title')
        published_at = value.get('publishedAt')
        text = extract_text(value.get('pages'))
        publication = value.get('publication')
        base_path = base_paths.get(publication) if isinstance(publication, str) else None
        views.append(ItemView(
            date=published_at if isinstance(published_at, str) else None,
            date_href=f"https://{base_path}/{rkey(record['uri'])}" if base_path else None,
            title=title if isinstance(title, str) else None,
            body=esc(truncate_text(text, 200)) if text else None,
        ))
    return views
