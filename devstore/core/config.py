"""
Configuration for the local storage engine.
All values come from the environment (optionally a .env file).
"""

import os
from pathlib import Path
from dotenv import load_dotenv

load_dotenv()

# Version string
VERSION = "1.0.0"

# Minimum KV time-to-live in seconds
MIN_TTL_SECONDS = 60

# Stream name length bounds
STREAM_NAME_MAX_LENGTH = 254

# Stream listing page size bounds
STREAM_LIST_MAX_LIMIT = 1000

# Default number of vector search results
VECTOR_SEARCH_DEFAULT_LIMIT = 10

# Rows sampled per collection when estimating vector storage size
VECTOR_STATS_SAMPLE_SIZE = 20

# Dimension of pseudo-embeddings when a collection has no rows yet
DEFAULT_EMBEDDING_DIMENSION = 128

DEFAULT_CONTENT_TYPE = "application/octet-stream"


def get_home_dir() -> Path:
    """Configuration directory holding the database and stream scratch files."""
    home = os.getenv("DEVSTORE_HOME")
    if home:
        return Path(home).expanduser()
    return Path.home() / ".config" / "devstore"


def get_db_path() -> Path:
    """Location of the shared database file."""
    db_path = os.getenv("DEVSTORE_DB_PATH")
    if db_path:
        return Path(db_path).expanduser()
    return get_home_dir() / "local.db"


def get_stream_temp_dir() -> Path:
    """Directory for per-stream temporary buffer files."""
    stream_dir = os.getenv("DEVSTORE_STREAM_DIR")
    if stream_dir:
        return Path(stream_dir).expanduser()
    return get_home_dir() / "streams"


def ensure_db_directory(db_path: Path) -> None:
    """Ensure the database directory exists."""
    Path(db_path).parent.mkdir(parents=True, exist_ok=True)


def debug_enabled() -> bool:
    """Check if debug mode is enabled."""
    return os.getenv("DEBUG", "false").lower() == "true"
