"""
Shared fixtures: a throwaway database file and project directories under tmp_path.
"""

import pytest

from devstore.core.db import LocalDB
from devstore.core.utils import normalize_project_path
from devstore.services import create_local_services

SERVER_URL = "http://testserver"


@pytest.fixture
def project_dir(tmp_path):
    path = tmp_path / "project"
    path.mkdir()
    return path

@pytest.fixture
def db(tmp_path, project_dir):
    """Database handle for the running project, closed after the test."""
    handle = LocalDB(tmp_path / "local.db", current_project=project_dir)
    handle.open()
    yield handle
    handle.close()

@pytest.fixture
def services(db, project_dir, tmp_path):
    return create_local_services(
        project_dir,
        server_url=SERVER_URL,
        db=db,
        stream_temp_dir=tmp_path / "streams",
    )

@pytest.fixture
def other_services(db, tmp_path):
    """Services for a second project sharing the same database."""
    other_dir = tmp_path / "other-project"
    other_dir.mkdir()
    return create_local_services(
        other_dir,
        server_url=SERVER_URL,
        db=db,
        stream_temp_dir=tmp_path / "streams",
    )

@pytest.fixture
def project_path(project_dir):
    return normalize_project_path(project_dir)
