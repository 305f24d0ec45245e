"""
Configuration for at first

Set these environment variables or create a .env file:
- AT_FIRST_BSKY_API: Public AppView XRPC base (default: https://public.api.bsky.app/xrpc)
- AT_FIRST_PLC_DIRECTORY: PLC directory used to resolve did:plc documents
- AT_FIRST_CACHE_DIR: Directory for the JSON record cache (unset = in-memory)
- AT_FIRST_HOST / AT_FIRST_PORT: Where `at-first serve` listens
"""
import os

from dotenv import load_dotenv

load_dotenv()

# Upstream services
BSKY_API = os.environ.get("AT_FIRST_BSKY_API", "https://public.api.bsky.app/xrpc")
PLC_DIRECTORY = os.environ.get("AT_FIRST_PLC_DIRECTORY", "https://plc.directory")
HTTP_TIMEOUT = float(os.environ.get("AT_FIRST_HTTP_TIMEOUT", "10.0"))

# Feed settings
RECORD_LIMIT = int(os.environ.get("AT_FIRST_RECORD_LIMIT", "10"))  # Oldest N records per page
DEFAULT_COLLECTION = "app.bsky.feed.post"
SITE_TITLE = "at first"

# Cache settings
CACHE_DIR = os.environ.get("AT_FIRST_CACHE_DIR") or None

# Server settings
HOST = os.environ.get("AT_FIRST_HOST", "127.0.0.1")
PORT = int(os.environ.get("AT_FIRST_PORT", "8000"))
