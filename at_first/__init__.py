"""
at first - read the first posts of anyone on the AT Protocol network
"""
from .generator import FeedGenerator
from .render import ItemView, render_item
from .richtext import render_rich_text
from .embeds import render_embed

__version__ = "1.0.0"
__all__ = ["FeedGenerator", "ItemView", "render_item", "render_rich_text", "render_embed"]
