"""Thin layer over the external adb executable: locate it, run it, parse its text."""

from droidlink.bridge.paths import find_bridge_executable, resolve_executable
from droidlink.bridge.runner import CommandRunner

__all__ = ["CommandRunner", "find_bridge_executable", "resolve_executable"]
