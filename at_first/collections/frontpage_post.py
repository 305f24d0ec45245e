"""
Frontpage links (fyi.unravel.frontpage.post)
"""
from ..embeds import hostname
from ..feed import rkey
from ..render import ItemView, is_http_url

ID = "fyi.unravel.frontpage.post"
LABEL = "Frontpage Links"


def _str(value) -> str:
    return value if isinstance(value, str) else None


async def view_all(client, repo, records: list) -> list:
    views = []
    for record in records:
        value = record['value']
        url = _str(value.get('url'))
        views.append(ItemView(
            date=_str(value.get('createdAt')),
            date_href=f"https://frontpage.fyi/post/{repo.actor}/{rkey(record['uri'])}",
            title=_str(value.get('title')),
            title_href=url if url and is_http_url(url) else None,
            meta=hostname(url) if url else None,
        ))
    return views
