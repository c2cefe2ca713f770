from __future__ import annotations

from pathlib import Path
from typing import Union

from dotenv import find_dotenv, load_dotenv


PathLike = Union[str, Path]


def load_environment(dotenv_path: PathLike | None = None, *, override: bool = False) -> bool:
    """Load crawler settings such as DATABASE_URL or MAX_PAGES from a .env file.

    Args:
        dotenv_path: Explicit path to the .env file. When omitted, the nearest
            .env found from the current working directory upwards is used.
        override: Whether values from the file replace variables that are
            already present in the process environment.

    Returns:
        True if a file was found and at least one variable was loaded.
    """

    path = dotenv_path
    if path is None:
        path = find_dotenv(usecwd=True)

    if not path or not Path(path).is_file():
        return False

    return load_dotenv(dotenv_path=path, override=override)
