"""
Wiring for one project's local services.
"""

from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Union

from fastapi import APIRouter

from .api.router import create_local_storage_router
from .core.config import debug_enabled
from .core.db import LocalDB
from .core.errors import StorageValidationError
from .core.utils import normalize_project_path
from .storage.keyvalue import LocalKeyValueStorage
from .storage.objectstore import LocalObjectStorage
from .storage.stream import LocalStreamStorage
from .util.logging import logger
from .vector.store import LocalVectorStorage


@dataclass
class LocalServices:
    db: LocalDB
    project_path: str
    keyvalue: LocalKeyValueStorage
    objectstore: LocalObjectStorage
    stream: LocalStreamStorage
    vector: LocalVectorStorage
    router: APIRouter


def create_local_services(project_root: Optional[Union[str, Path]] = None,
                          server_url: Optional[str] = None,
                          db: Optional[LocalDB] = None,
                          stream_temp_dir: Optional[Union[str, Path]] = None) -> LocalServices:
    """Build all four stores and the HTTP router for one project.

    Args:
        project_root: Project directory, the current directory by default.
        server_url: Externally reachable base URL of the router. Required,
            public object and stream URLs are built from it.
        db: Shared database handle. A new one on the configured path is
            created if omitted, treating this project as the running one.
    """
    if not server_url:
        raise StorageValidationError("server_url is required when using local services")

    logger.set_debug(debug_enabled())
    project_path = normalize_project_path(project_root)
    if db is None:
        db = LocalDB(current_project=project_path)
    db.open()

    logger.info(f"Using local services for {project_path} (development only)")

    return LocalServices(
        db=db,
        project_path=project_path,
        keyvalue=LocalKeyValueStorage(db, project_path),
        objectstore=LocalObjectStorage(db, project_path, server_url),
        stream=LocalStreamStorage(db, project_path, server_url, temp_dir=stream_temp_dir),
        vector=LocalVectorStorage(db, project_path),
        router=create_local_storage_router(db, project_path),
    )
