"""
Layered .env support for EXTID_* settings.

Files are read in order, later files winning:

    ~/.config/extid/.env  <  ./.env

Only ``EXTID_*`` keys are exported; a project .env usually belongs to the
host application and its other keys are none of extid's business.
Variables already present in the process environment are never replaced,
so the effective precedence is OS env > project .env > user .env. The
exported values are then picked up by ``apply_env_overrides``.
"""

from __future__ import annotations

import logging
import os
from collections.abc import Iterable
from pathlib import Path

from dotenv import dotenv_values

from .loader import get_xdg_config_home

logger = logging.getLogger(__name__)

ENV_PREFIX = "EXTID_"


def default_env_paths(project_dir: Path | None = None) -> list[Path]:
    """Return the user and project .env paths, lowest precedence first."""
    if project_dir is None:
        project_dir = Path.cwd()
    return [get_xdg_config_home() / "extid" / ".env", project_dir / ".env"]


def read_env_file(path: Path) -> dict[str, str]:
    """Read the EXTID_* assignments from one .env file."""
    if not path.exists():
        return {}
    values: dict[str, str] = {}
    for key, value in dotenv_values(path).items():
        if value is None:
            continue
        if not key.startswith(ENV_PREFIX):
            logger.debug("Ignoring %s from %s", key, path)
            continue
        values[key] = value
    return values


def load_layered_env(
    project_dir: Path | None = None,
    *,
    paths: Iterable[Path] | None = None,
) -> dict[str, str]:
    """
    Export EXTID_* variables from layered .env files.

    Args:
        project_dir: Directory holding the project .env (defaults to cwd)
        paths: Explicit .env files, lowest precedence first

    Returns:
        The variables that were exported into ``os.environ``
    """
    if paths is None:
        paths = default_env_paths(project_dir)

    merged: dict[str, str] = {}
    for path in paths:
        merged.update(read_env_file(Path(path)))

    exported = {k: v for k, v in merged.items() if k not in os.environ}
    os.environ.update(exported)
    if exported:
        logger.debug("Loaded %s from .env files", ", ".join(sorted(exported)))
    return exported
