"""Bridge executable path resolution constants and utilities."""

from __future__ import annotations

import os
import shutil
import sys
from pathlib import Path

ADB_PATH_ENV = "DROIDLINK_ADB_PATH"

# Checked in order; both are set by the Android SDK installers.
SDK_ROOT_ENVS = ("ANDROID_SDK_ROOT", "ANDROID_HOME")


def adb_binary_name() -> str:
    return "adb.exe" if sys.platform == "win32" else "adb"


def resolve_executable(path: str | os.PathLike[str] | None) -> Path | None:
    """Return the existing file *path* points at, or None.

    A bare command name without a directory part (``adb``) is looked up
    on PATH.
    """
    if not path:
        return None
    candidate = Path(path).expanduser()
    if candidate.is_file():
        return candidate
    if candidate.name == str(path):
        found = shutil.which(str(path))
        if found is not None:
            return Path(found)
    return None


def find_bridge_executable() -> Path | None:
    """Find the adb executable.

    Search order:
        1. DROIDLINK_ADB_PATH environment variable (explicit override)
        2. platform-tools/ under ANDROID_SDK_ROOT, then ANDROID_HOME
        3. adb on PATH

    Returns:
        Path to the executable, or None if not found.
    """
    # 1. Explicit env var override
    override = resolve_executable(os.environ.get(ADB_PATH_ENV))
    if override is not None:
        return override

    # 2. Android SDK installation
    for env_name in SDK_ROOT_ENVS:
        sdk_root = os.environ.get(env_name)
        if not sdk_root:
            continue
        path = Path(sdk_root) / "platform-tools" / adb_binary_name()
        if path.is_file():
            return path

    # 3. PATH
    found = shutil.which("adb")
    return Path(found) if found else None
