"""
Rich text rendering for Bluesky post text

Facets address the text by UTF-8 byte offsets, not characters, so every
slice is taken from the encoded buffer and decoded on its own.
"""
from .render import esc, is_http_url

LINK = "app.bsky.richtext.facet#link"
MENTION = "app.bsky.richtext.facet#mention"
TAG = "app.bsky.richtext.facet#tag"


def _byte_range(facet) -> tuple:
    """Return (byteStart, byteEnd) of a facet, or None if it has no usable index"""
    index = facet.get('index') if isinstance(facet, dict) else None
    if not isinstance(index, dict):
        return None
    start, end = index.get('byteStart'), index.get('byteEnd')
    for value in (start, end):
        if not isinstance(value, int) or isinstance(value, bool):
            return None
    return start, end


def _first_feature(facet) -> dict:
    features = facet.get('features')
    if isinstance(features, list) and features and isinstance(features[0], dict):
        return features[0]
    return {}


def segment(text: str, facets: list) -> list:
    """Split text into ordered spans using facet byte ranges.

    Each span is a dict with 'start', 'end' (byte offsets), 'text' and
    'feature' (the facet's first feature, or None for plain text).
    Facets that overlap an earlier one, run past the end of the text or
    have an inverted range are skipped; their bytes stay in the
    surrounding plain span.
    """
    data = text.encode('utf-8')
    size = len(data)
    ranged = []
    for facet in facets or []:
        byte_range = _byte_range(facet)
        if byte_range is not None:
            ranged.append((byte_range, facet))
    # sorted() is stable, so facets sharing a start keep their input order
    ranged = sorted(ranged, key=lambda item: item[0][0])

    def span(start, end, feature=None):
        return {
            'start': start,
            'end': end,
            'text': data[start:end].decode('utf-8', errors='replace'),
            'feature': feature,
        }

    spans = []
    cursor = 0
    for (start, end), facet in ranged:
        if start < cursor or end > size or end < start:
            continue
        if start > cursor:
            spans.append(span(cursor, start))
        spans.append(span(start, end, _first_feature(facet)))
        cursor = end

    if cursor < size:
        spans.append(span(cursor, size))
    return spans


def _wrap(text: str, feature: dict) -> str:
    kind = feature.get('$type')
    escaped = esc(text)

    if kind == LINK:
        uri = feature.get('uri')
        if isinstance(uri, str) and is_http_url(uri):
            return f'<a href="{esc(uri)}" target="_blank" rel="noopener">{escaped}</a>'
    elif kind == MENTION:
        if feature.get('did'):
            handle = text[1:] if text.startswith('@') else text
            return f'<a href="/{esc(handle)}">{escaped}</a>'
    elif kind == TAG:
        return f'<span class="tag">{escaped}</span>'

    return escaped


def render_rich_text(text: str, facets: list = None) -> str:
    """Render post text with its facets as HTML"""
    if not isinstance(text, str):
        return ''
    if not facets or not isinstance(facets, list):
        return esc(text)

    parts = []
    for span in segment(text, facets):
        if span['feature'] is None:
            parts.append(esc(span['text']))
        else:
            parts.append(_wrap(span['text'], span['feature']))
    return ''.join(parts)
