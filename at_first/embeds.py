"""
Embed rendering for hydrated Bluesky post views

Every renderer takes the embed dict and returns HTML, or '' when the
embed is missing the fields it needs.
"""
from urllib.parse import urlsplit

from .render import esc, is_http_url
from .richtext import render_rich_text

IMAGES = "app.bsky.embed.images#view"
EXTERNAL = "app.bsky.embed.external#view"
RECORD = "app.bsky.embed.record#view"
VIDEO = "app.bsky.embed.video#view"
RECORD_WITH_MEDIA = "app.bsky.embed.recordWithMedia#view"

VIEW_RECORD = "app.bsky.embed.record#viewRecord"


def _str(data: dict, key: str) -> str:
    value = data.get(key)
    return value if isinstance(value, str) else ''


def hostname(uri: str) -> str:
    """Hostname of a URI, or the URI itself when it has none"""
    try:
        host = urlsplit(uri).hostname
    except ValueError:
        host = None
    return host or uri


def render_images(embed: dict) -> str:
    images = embed.get('images')
    if not isinstance(images, list):
        return ''
    tags = [
        f'<img src="{esc(_str(img, "fullsize"))}" alt="{esc(_str(img, "alt"))}" loading="lazy">'
        for img in images if isinstance(img, dict)
    ]
    return f'<div class="images">{"".join(tags)}</div>'


def render_external(embed: dict) -> str:
    ext = embed.get('external')
    if not isinstance(ext, dict):
        return ''
    uri = _str(ext, 'uri')
    if not is_http_url(uri):
        return ''

    thumb = _str(ext, 'thumb')
    return (
        f'<a class="card" href="{esc(uri)}" target="_blank" rel="noopener">'
        + (f'<img src="{esc(thumb)}" alt="" loading="lazy">' if thumb else '')
        + f'<span class="card-title">{esc(_str(ext, "title"))}</span>'
        + f'<span class="card-desc">{esc(_str(ext, "description"))}</span>'
        + f'<span class="card-url">{esc(hostname(uri))}</span></a>'
    )


def render_record(embed: dict) -> str:
    record = embed.get('record')
    if not isinstance(record, dict) or record.get('$type') != VIEW_RECORD:
        return ''
    author, value = record.get('author'), record.get('value')
    if not isinstance(author, dict) or not isinstance(value, dict):
        return ''

    handle = _str(author, 'handle')
    name = _str(author, 'displayName') or handle
    return (
        '<blockquote class="quote">'
        f'<a href="/{esc(handle)}" class="quote-author">{esc(name)}</a>'
        f'<p>{render_rich_text(_str(value, "text"), value.get("facets"))}</p></blockquote>'
    )


def render_video(embed: dict) -> str:
    thumbnail = _str(embed, 'thumbnail')
    if not thumbnail:
        return ''
    alt = _str(embed, 'alt') or 'Video'
    return (
        f'<div class="video"><img src="{esc(thumbnail)}" alt="{esc(alt)}" loading="lazy">'
        '<span class="video-badge">Video</span></div>'
    )


def render_record_with_media(embed: dict) -> str:
    html = ''
    if embed.get('media'):
        html += render_embed(embed['media'])
    record = embed.get('record')
    if isinstance(record, dict) and record:
        # The API nests a full record#view here; older shapes carry the viewRecord directly
        if record.get('$type') != RECORD:
            record = {'$type': RECORD, 'record': record}
        html += render_embed(record)
    return html


RENDERERS = {
    IMAGES: render_images,
    EXTERNAL: render_external,
    RECORD: render_record,
    VIDEO: render_video,
    RECORD_WITH_MEDIA: render_record_with_media,
}


def render_embed(embed: dict = None) -> str:
    """Render a post's embed view, or '' if there is nothing to show"""
    if not isinstance(embed, dict):
        return ''
    kind = embed.get('$type')
    renderer = RENDERERS.get(kind) if isinstance(kind, str) else None
    if renderer is None:
        return ''
    return renderer(embed)
