#!/usr/bin/env python3
"""
Command-line interface for at first
"""
import argparse
import asyncio
import logging
import sys
from datetime import datetime

from .cache import cache_put, create_cache
from .config import CACHE_DIR, DEFAULT_COLLECTION, HOST, PORT
from .feed import FeedClient
from .generator import FeedGenerator


async def render_feed(actor: str, collection: str, save_cache: bool = True) -> str:
    """Fetch and render one feed page"""
    cache = create_cache(CACHE_DIR)
    async with FeedClient() as client:
        generator = FeedGenerator(client, cache)
        page = await generator.generate(actor, collection)
    if page.error:
        print(f"⚠ {page.error}")
    else:
        print(f"📝 Rendered {len(page.items)} records")
    if save_cache and page.cache_entry is not None:
        await cache_put(cache, *page.cache_entry)
    return generator.generate_html(page)


def render(args) -> int:
    actor = args.actor.strip().removeprefix('@')
    output_path = args.output
    if output_path is None:
        output_path = f"at_first_{actor}_{datetime.now().strftime('%Y-%m-%d')}.html"

    print(f"📰 Fetching the first records of @{actor}...")
    html_content = asyncio.run(render_feed(actor, args.collection, save_cache=not args.no_save))

    with open(output_path, 'w', encoding='utf-8') as f:
        f.write(html_content)
    print(f"✅ HTML saved: {output_path}")

    if args.pdf:
        from weasyprint import HTML

        pdf_path = output_path.rsplit('.', 1)[0] + '.pdf'
        print("🖨️  Creating PDF...")
        HTML(string=html_content).write_pdf(pdf_path)
        print(f"✅ PDF saved: {pdf_path}")
    return 0


def serve(args) -> int:
    import uvicorn

    print(f"🌐 Serving on http://{args.host}:{args.port}")
    uvicorn.run("at_first.app:app", host=args.host, port=args.port, log_level=args.log_level)
    return 0


def main(argv=None):
    parser = argparse.ArgumentParser(
        description='at first - read the first posts of anyone on the AT Protocol network',
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  at-first serve                                  # Run the web front end
  at-first render user.bsky.social                # Save the oldest posts as HTML
  at-first render user.bsky.social -c com.whtwnd.blog.entry --pdf
        """
    )
    parser.add_argument(
        '--log-level',
        default='info',
        choices=['debug', 'info', 'warning', 'error'],
        help='Logging level (default: info)'
    )
    subparsers = parser.add_subparsers(dest='command', required=True)

    serve_parser = subparsers.add_parser('serve', help='Run the web front end')
    serve_parser.add_argument('--host', default=HOST, help=f'Bind address (default: {HOST})')
    serve_parser.add_argument('--port', type=int, default=PORT, help=f'Port (default: {PORT})')
    serve_parser.set_defaults(func=serve)

    render_parser = subparsers.add_parser('render', help='Render a feed page to a file')
    render_parser.add_argument('actor', help='Handle or DID (e.g., user.bsky.social)')
    render_parser.add_argument(
        '--collection', '-c',
        default=DEFAULT_COLLECTION,
        help=f'Collection NSID (default: {DEFAULT_COLLECTION})'
    )
    render_parser.add_argument(
        '--output', '-o',
        help='Output HTML path (default: at_first_<actor>_YYYY-MM-DD.html)'
    )
    render_parser.add_argument('--pdf', action='store_true', help='Also print the page to PDF')
    render_parser.add_argument(
        '--no-save',
        action='store_true',
        help='Do not save fetched views to the cache'
    )
    render_parser.set_defaults(func=render)

    args = parser.parse_args(argv)
    logging.basicConfig(
        level=args.log_level.upper(),
        format='%(asctime)s %(levelname)s %(name)s: %(message)s',
    )
    return args.func(args)


if __name__ == '__main__':
    sys.exit(main())
