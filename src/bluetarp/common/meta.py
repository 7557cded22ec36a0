from __future__ import annotations

import hashlib
import importlib
import platform
import subprocess
from pathlib import Path

_VERSIONED_LIBRARIES = ("numpy", "pandas", "scipy", "sklearn")


def _git(project_root: Path, *args: str) -> str:
    out = subprocess.check_output(
        ["git", *args], cwd=project_root, text=True, stderr=subprocess.DEVNULL
    )
    return out.strip()


def git_commit_and_dirty(project_root: Path) -> tuple[str, bool]:
    try:
        commit = _git(project_root, "rev-parse", "HEAD")
        dirty = bool(_git(project_root, "status", "--porcelain", "--untracked-files=no"))
    except (OSError, subprocess.CalledProcessError):
        return "UNKNOWN", True
    return commit, dirty


def file_sha256(path: Path, chunk_size: int = 1 << 20) -> str:
    digest = hashlib.sha256()
    with open(path, "rb") as f:
        for block in iter(lambda: f.read(chunk_size), b""):
            digest.update(block)
    return digest.hexdigest()


def library_versions() -> dict[str, str]:
    versions = {"python": platform.python_version()}
    for name in _VERSIONED_LIBRARIES:
        versions[name] = importlib.import_module(name).__version__
    return versions
