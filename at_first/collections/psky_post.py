"""
Picosky posts (social.psky.feed.post)
"""
from ..render import ItemView, esc

ID = "social.psky.feed.post"
LABEL = "Picosky Posts"


async def view_all(client, repo, records: list) -> list:
    views = []
    for record in records:
        text = record['value'].get('text')
        views.append(ItemView(body=esc(text if isinstance(text, str) else '')))
    return views
