"""
Small helpers shared by every store.
"""

import os
import time
from pathlib import Path
from typing import Optional, Union


def now_ms() -> int:
    """Current wall-clock time in epoch milliseconds."""
    return int(time.time() * 1000)


def normalize_project_path(project_root: Optional[Union[str, Path]] = None) -> str:
    """Absolute, symlink-resolved path of the project directory (cwd by default)."""
    root = project_root if project_root is not None else os.getcwd()
    return str(Path(root).expanduser().resolve())


def is_blank(value: Optional[str]) -> bool:
    return value is None or not str(value).strip()
