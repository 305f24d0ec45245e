"""
Read-through cache of rendered item views, keyed by (repo DID, collection)
"""
import asyncio
import json
import logging
import os
import re

logger = logging.getLogger(__name__)


def cache_key(did: str, collection: str) -> tuple:
    return (did, collection)


class RecordCache:
    """Interface: a cache holds lists of ItemView dicts"""

    async def get(self, key: tuple):
        raise NotImplementedError

    async def put(self, key: tuple, items: list):
        raise NotImplementedError


class MemoryCache(RecordCache):
    """Process-wide in-memory cache"""

    def __init__(self):
        self._entries = {}

    async def get(self, key: tuple):
        return self._entries.get(key)

    async def put(self, key: tuple, items: list):
        self._entries[key] = items


class JsonFileCache(RecordCache):
    """One JSON file per key inside a directory"""

    def __init__(self, directory: str):
        self.directory = directory

    def path_for(self, key: tuple) -> str:
        name = re.sub(r'[^A-Za-z0-9.-]', '_', '__'.join(key))
        return os.path.join(self.directory, f"{name}.json")

    def _load(self, path: str):
        if not os.path.exists(path):
            return None
        with open(path, 'r', encoding='utf-8') as f:
            return json.load(f)

    def _save(self, path: str, items: list):
        os.makedirs(self.directory, exist_ok=True)
        with open(path, 'w', encoding='utf-8') as f:
            json.dump(items, f, indent=2, ensure_ascii=False)

    async def get(self, key: tuple):
        return await asyncio.to_thread(self._load, self.path_for(key))

    async def put(self, key: tuple, items: list):
        path = self.path_for(key)
        await asyncio.to_thread(self._save, path, items)
        logger.debug("Saved cache to %s", path)


def create_cache(directory: str = None) -> RecordCache:
    return JsonFileCache(directory) if directory else MemoryCache()


async def cache_get(cache: RecordCache, key: tuple):
    """Look up a key, treating any cache failure as a miss"""
    if cache is None:
        return None
    try:
        return await cache.get(key)
    except Exception as e:
        logger.warning("Cache read failed for %s: %s", key, e)
        return None


async def cache_put(cache: RecordCache, key: tuple, items: list):
    """Store a value; failures are logged and dropped"""
    if cache is None:
        return
    try:
        await cache.put(key, items)
    except Exception as e:
        logger.warning("Cache write failed for %s: %s", key, e)
