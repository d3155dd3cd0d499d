"""Filesystem helpers for the voice assistant."""

from __future__ import annotations

from pathlib import Path

from .environment import get_environment


def package_root() -> Path:
    """Return the root folder of the package."""
    return Path(__file__).resolve().parents[1]


def project_root() -> Path:
    """Return the repository root."""
    return package_root().parent


def models_dir() -> Path:
    """Directory storing audio models."""
    root = project_root() / "resources" / "models"
    root.mkdir(parents=True, exist_ok=True)
    return root


def logs_dir() -> Path:
    """Directory receiving the JSON log files."""
    configured = get_environment().log_dir
    root = Path(configured) if configured else project_root() / "logs"
    root.mkdir(parents=True, exist_ok=True)
    return root
