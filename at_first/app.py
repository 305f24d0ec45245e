"""
Web front end: one feed page per actor and collection

    /                       search form (?actor=&collection= redirects)
    /<actor>                the actor's oldest Bluesky posts
    /<actor>/<collection>   the actor's oldest records of any collection
"""
import logging
from contextlib import asynccontextmanager
from urllib.parse import quote

from fastapi import APIRouter, BackgroundTasks, Depends, FastAPI, Request
from fastapi.responses import HTMLResponse, RedirectResponse, Response

from .cache import cache_put, create_cache
from .config import CACHE_DIR, DEFAULT_COLLECTION, SITE_TITLE
from .feed import FeedClient
from .generator import FeedGenerator

logger = logging.getLogger(__name__)

HTML_CONTENT_TYPE = "text/html; charset=UTF-8"

router = APIRouter()


def canonical_path(actor: str, collection: str = None) -> str:
    """Clean URL for an actor's page; the default collection has no suffix"""
    path = f"/{quote(actor, safe=':')}"
    if collection and collection != DEFAULT_COLLECTION:
        path += f"/{quote(collection, safe='')}"
    return path


def get_generator(request: Request) -> FeedGenerator:
    return request.app.state.generator


async def feed_response(actor: str, collection: str, background_tasks: BackgroundTasks,
                        generator: FeedGenerator) -> Response:
    page = await generator.generate(actor, collection)
    if page.cache_entry is not None:
        key, items = page.cache_entry
        background_tasks.add_task(cache_put, generator.cache, key, items)
    return HTMLResponse(generator.generate_html(page), media_type=HTML_CONTENT_TYPE)


@router.get("/favicon.ico", include_in_schema=False)
async def favicon() -> Response:
    return Response(status_code=204)


@router.get("/", response_class=HTMLResponse)
async def index(request: Request, background_tasks: BackgroundTasks,
                generator: FeedGenerator = Depends(get_generator)) -> Response:
    """Search form; query-style requests redirect to the clean URL"""
    actor = request.query_params.get('actor', '').strip().removeprefix('@')
    collection = request.query_params.get('collection', '').strip() or None
    if actor:
        return RedirectResponse(canonical_path(actor, collection), status_code=302)
    return await feed_response('', collection, background_tasks, generator)


async def serve_feed(actor: str, collection: str, background_tasks: BackgroundTasks,
                     generator: FeedGenerator) -> Response:
    clean_actor = actor.strip().removeprefix('@')
    if not clean_actor:
        return RedirectResponse("/", status_code=302)
    if clean_actor != actor:
        return RedirectResponse(canonical_path(clean_actor, collection), status_code=302)
    return await feed_response(clean_actor, collection, background_tasks, generator)


@router.get("/{actor}", response_class=HTMLResponse)
async def actor_feed(actor: str, background_tasks: BackgroundTasks,
                     generator: FeedGenerator = Depends(get_generator)) -> Response:
    return await serve_feed(actor, DEFAULT_COLLECTION, background_tasks, generator)


@router.get("/{actor}/{collection}", response_class=HTMLResponse)
async def collection_feed(actor: str, collection: str, background_tasks: BackgroundTasks,
                          generator: FeedGenerator = Depends(get_generator)) -> Response:
    if collection == DEFAULT_COLLECTION:
        return RedirectResponse(canonical_path(actor.strip().removeprefix('@')), status_code=302)
    return await serve_feed(actor, collection, background_tasks, generator)


def create_app(generator: FeedGenerator = None) -> FastAPI:
    """Build the application; without a generator one is created on startup"""

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        owned = getattr(app.state, 'generator', None) is None
        if owned:
            app.state.generator = FeedGenerator(FeedClient(), create_cache(CACHE_DIR))
            logger.info("Feed generator ready (cache: %s)", CACHE_DIR or "memory")
        yield
        if owned:
            await app.state.generator.client.aclose()

    app = FastAPI(title=SITE_TITLE, lifespan=lifespan, docs_url=None, redoc_url=None, openapi_url=None)
    if generator is not None:
        app.state.generator = generator
    app.include_router(router)
    return app


app = create_app()
