"""
WhiteWind blog entries (com.whtwnd.blog.entry)
"""
from ..feed import rkey
from ..render import ItemView, truncate_markdown

ID = "com.whtwnd.blog.entry"
LABEL = "Whitewind Blogs"


def _str(value) -> str:
    return value if isinstance(value, str) else None


async def view_all(client, repo, records: list) -> list:
    views = []
    for record in records:
        value = record['value']
        content = _str(value.get('content'))
        views.append(ItemView(
            date=_str(value.get('createdAt')),
            date_href=f"https://whtwnd.com/{repo.actor}/{rkey(record['uri'])}",
            title=_str(value.get('title')),
            body=truncate_markdown(content, 200) if content else None,
        ))
    return views
