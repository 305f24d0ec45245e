"""
HTML rendering shared by every collection: escaping, truncation, the
ItemView card and the page shell
"""
import re
from dataclasses import asdict, dataclass
from typing import Optional

import markdown
from bs4 import BeautifulSoup, Comment, NavigableString
from dateutil import parser as date_parser
from jinja2 import Environment
from markupsafe import escape

ELLIPSIS = "…"

_SENTENCE_END = re.compile(r"[.!?。]\s[^.!?。]*\Z")
_FULL_DATE = re.compile(r"\d{4}-\d{2}-\d{2}")
_URL_CONTROL_CHARS = re.compile(r"[\x00-\x1f\x7f]")
_URL_SCHEME = re.compile(r"^[A-Za-z][A-Za-z0-9+.-]*:")


def esc(s) -> str:
    """Escape a value for HTML text and attribute positions"""
    return str(escape(s))


def is_http_url(uri: str) -> bool:
    return uri.startswith("https://") or uri.startswith("http://")


def _is_safe_url(value) -> bool:
    """Allow http(s), mailto: and scheme-less (relative or #fragment) URLs"""
    # Browsers drop tabs and newlines inside a URL before reading its scheme
    url = _URL_CONTROL_CHARS.sub('', str(value)).strip()
    lowered = url.lower()
    if is_http_url(lowered) or lowered.startswith('mailto:'):
        return True
    return not _URL_SCHEME.match(url)


def format_date(iso: str) -> str:
    """Format an ISO timestamp as YYYY-MM-DD"""
    if not _FULL_DATE.match(iso):
        return iso[:10]
    try:
        return date_parser.isoparse(iso).strftime('%Y-%m-%d')
    except (ValueError, OverflowError):
        return iso[:10]


def truncate_text(text: str, limit: int) -> str:
    """Shorten plain text to about `limit` characters at the nicest break.

    Tries a paragraph break, then a sentence end, then a word break,
    and only hard-cuts when none of those is far enough in.
    """
    if len(text) <= limit:
        return text

    cut = text[:limit]
    par_break = cut.rfind("\n\n")
    if par_break > limit * 0.3:
        return cut[:par_break] + "\n\n" + ELLIPSIS

    sentence = _SENTENCE_END.search(cut)
    if sentence and sentence.start() > limit * 0.3:
        return cut[:sentence.start() + 1] + " " + ELLIPSIS

    word_break = cut.rfind(" ")
    if word_break > limit * 0.5:
        return cut[:word_break] + " " + ELLIPSIS

    return cut + ELLIPSIS


def _markdown_to_html(text: str) -> str:
    md = markdown.Markdown(extensions=['fenced_code', 'tables'])
    # Raw HTML in the source is rendered as text
    md.preprocessors.deregister('html_block')
    md.inlinePatterns.deregister('html')
    return md.convert(text)


def _close(state: dict):
    if state['last'] is not None:
        state['last'].replace_with(str(state['last']) + ELLIPSIS)
    state['done'] = True


def _truncate_tree(node, state: dict):
    for child in list(node.children):
        if state['done']:
            child.extract()
        elif isinstance(child, Comment):
            child.extract()
        elif isinstance(child, NavigableString):
            text = str(child)
            if not text.strip():
                continue
            if state['remaining'] == 0:
                _close(state)
                child.extract()
            elif len(text) > state['remaining']:
                child.replace_with(text[:state['remaining']] + ELLIPSIS)
                state['done'] = True
            else:
                state['remaining'] -= len(text)
                state['last'] = child
        elif state['remaining'] == 0:
            _close(state)
            child.decompose()
        else:
            _truncate_tree(child, state)


def truncate_markdown(text: str, limit: int) -> str:
    """Render markdown to HTML holding at most `limit` characters of text.

    Truncation works on the parsed tree, so tags are always closed and
    entities are never cut in half.
    """
    if not isinstance(text, str) or not text:
        return ''
    soup = BeautifulSoup(_markdown_to_html(text), 'html.parser')
    for tag in soup(['script', 'style', 'iframe', 'noscript']):
        tag.decompose()
    for tag in soup.find_all(True):
        for attr in ('href', 'src'):
            if tag.has_attr(attr) and not _is_safe_url(tag[attr]):
                del tag[attr]
    _truncate_tree(soup, {'remaining': limit, 'last': None, 'done': False})
    return str(soup).strip()


# --- Item view ---

@dataclass(frozen=True)
class Author:
    name: str
    handle: str
    avatar: Optional[str] = None


@dataclass(frozen=True)
class Stats:
    replies: int = 0
    reposts: int = 0
    likes: int = 0


@dataclass(frozen=True)
class ReplyContext:
    name: str
    href: str
    text: str


@dataclass(frozen=True)
class ItemView:
    """One displayable record. `body` and `embed` hold ready-made HTML."""
    date: Optional[str] = None
    date_href: Optional[str] = None
    title: Optional[str] = None
    title_href: Optional[str] = None
    body: Optional[str] = None
    author: Optional[Author] = None
    stats: Optional[Stats] = None
    embed: Optional[str] = None
    reply_context: Optional[ReplyContext] = None
    meta: Optional[str] = None

    def to_dict(self) -> dict:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: dict) -> 'ItemView':
        data = dict(data)
        if data.get('author'):
            data['author'] = Author(**data['author'])
        if data.get('stats'):
            data['stats'] = Stats(**data['stats'])
        if data.get('reply_context'):
            data['reply_context'] = ReplyContext(**data['reply_context'])
        return cls(**data)


_SKIP_FIELDS = {"$type", "createdAt"}


def generic_view(value) -> ItemView:
    """Best guess at the interesting text of a record nobody knows how to show"""
    if not isinstance(value, dict):
        return ItemView()

    created_at = value.get('createdAt')
    date = created_at if isinstance(created_at, str) else None

    fields = [
        (key, val) for key, val in value.items()
        if key not in _SKIP_FIELDS and isinstance(val, str) and val
    ]
    if not fields:
        return ItemView(date=date)

    longest_key, longest = max(fields, key=lambda field: len(field[1]))
    parts = [esc(truncate_text(longest, 200))]
    for key, val in fields:
        if key != longest_key and len(val) > 100:
            parts.append(esc(truncate_text(val, 200)))

    return ItemView(date=date, body=''.join(parts))


_env = Environment(autoescape=True, trim_blocks=True, lstrip_blocks=True)
_env.filters['format_date'] = format_date

ITEM_TEMPLATE = _env.from_string('''
{% macro post_date(view) %}
<time class="post-date" datetime="{{ view.date }}">
{%- if view.date_href %}<a href="{{ view.date_href }}" target="_blank" rel="noopener">{{ view.date|format_date }}</a>
{%- else %}{{ view.date|format_date }}{% endif -%}
</time>
{% endmacro %}
<article class="post">
{% if view.author %}
{% if view.author.avatar %}
<img class="avatar" src="{{ view.author.avatar }}" alt="" width="40" height="40">
{% endif %}
<div class="author">{{ view.author.name }} <span class="handle">@{{ view.author.handle }}</span></div>
{% if view.date %}{{ post_date(view) }}{% endif %}
{% endif %}
{% if view.reply_context %}
<div class="reply-ctx">Replying to <a href="{{ view.reply_context.href }}">{{ view.reply_context.name }}</a></div>
<div class="reply-parent">{{ view.reply_context.text }}</div>
{% endif %}
{% if view.title %}
<h2 class="post-title">
{%- if view.title_href %}<a href="{{ view.title_href }}" target="_blank" rel="noopener">{{ view.title }}</a>
{%- else %}{{ view.title }}{% endif -%}
</h2>
{% endif %}
{% if not view.author and view.date %}{{ post_date(view) }}{% endif %}
{% if view.body %}
<div class="body">{{ view.body|safe }}</div>
{% endif %}
{% if view.embed %}
{{ view.embed|safe }}
{% endif %}
{% if view.meta %}
<div class="meta">{{ view.meta }}</div>
{% endif %}
{% if view.stats %}
<div class="stats">{{ view.stats.replies }} replies · {{ view.stats.reposts }} reposts · {{ view.stats.likes }} likes</div>
{% endif %}
</article>
''')


def render_item(view: ItemView) -> str:
    """Render an ItemView as a post card"""
    return ITEM_TEMPLATE.render(view=view).strip()


CSS = '''*{box-sizing:border-box;margin:0}
:root{color-scheme:light dark;--bg:#fff;--fg:#000;--muted:#42576C;--card:#fff;--border:#dce2ea;--reply-bg:#f3f5f8;--link:#1185fe}
@media(prefers-color-scheme:dark){:root{--bg:#151d28;--fg:#fff;--muted:#8fa3b3;--card:#1b2535;--border:#2c3a4e;--reply-bg:#232e3e;--link:#1185fe}}
body{font-family:system-ui,sans-serif;max-width:600px;margin:0 auto;padding:1rem;background:var(--bg);color:var(--fg);display:flex;flex-direction:column;gap:1rem}
a{color:var(--link);text-decoration:none}a:hover{text-decoration:underline}
.post{display:grid;grid-template-columns:auto 1fr auto;gap:.5rem;align-items:center;background:var(--card);padding:1rem;border-radius:8px;border:1px solid var(--border)}
.post>*{grid-column:1/-1}
.avatar{grid-column:1;border-radius:50%}
.author{grid-column:2;font-weight:600}
.post-title{grid-column:1/-2;min-width:0;font-size:1rem;font-weight:600}
.post-date{grid-column:-2/-1;color:var(--muted);white-space:nowrap}
.post-date a{color:inherit}
.handle{color:var(--muted);font-weight:normal}
.body{word-break:break-word;line-height:1.5;display:flex;flex-direction:column;gap:1rem;min-width:0}
.body img{max-width:100%;height:auto;border-radius:6px}
.body h1,.body h2,.body h3,.body h4,.body h5,.body h6{font-size:inherit;font-weight:600}
.images{display:grid;grid-template-columns:repeat(auto-fit,minmax(140px,1fr));gap:.5rem}
.images img{width:100%;border-radius:6px}
.card{display:block;border:1px solid var(--border);border-radius:8px;overflow:hidden}
.card img{width:100%;border-radius:8px 8px 0 0}
.card-title,.card-desc,.card-url{display:block;padding:.25rem .75rem}
.card-title{font-weight:600;padding-top:.5rem}
.card-url{color:var(--muted);padding-bottom:.5rem}
.quote{border-left:3px solid var(--border);padding:.5rem .75rem}
.quote-author{font-weight:600}
.video{position:relative}
.video img{width:100%;border-radius:6px}
.video-badge{position:absolute;top:.5rem;right:.5rem;background:rgba(0,0,0,.7);color:#fff;padding:2px 8px;border-radius:4px}
.reply-ctx{color:var(--muted)}
.reply-parent{background:var(--reply-bg);border-left:3px solid var(--border);padding:.75rem 1rem;color:var(--muted);border-radius:4px}
.stats{color:var(--muted)}
.form-row{display:flex;gap:.5rem}
input,select{padding:.5rem;border:1px solid var(--border);border-radius:6px;font-size:inherit;background:var(--card);color:var(--fg)}
input{flex:1}
.tag{color:var(--link)}
.meta{color:var(--muted)}
.error{color:#d33}'''

PAGE_TEMPLATE = _env.from_string('''<!DOCTYPE html>
<html lang="en">
<head>
    <meta charset="utf-8">
    <meta name="viewport" content="width=device-width,initial-scale=1">
    <title>{{ title }}</title>
    <style>{{ css|safe }}</style>
</head>
<body>
{{ content|safe }}
</body>
</html>
''')


def render_page(title: str, content: str) -> str:
    """Wrap pre-rendered content in the page shell"""
    return PAGE_TEMPLATE.render(title=title, content=content, css=CSS)
