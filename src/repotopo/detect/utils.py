"""Shared utility functions for project detection.

This module provides the filesystem primitives every detector builds on:
root confinement for candidate paths (symlinks included), non-throwing
existence probes and size-bounded manifest reads. Probes and reads run in a
worker thread so the event loop never blocks on disk I/O; run_sync drives
them from synchronous callers.
"""

import asyncio
import logging
import os
import re
from collections.abc import Coroutine
from concurrent.futures import ThreadPoolExecutor
from pathlib import Path
from typing import Any, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")


class FileTooLargeError(OSError):
    """Raised when a file exceeds the size bound of a read."""

    def __init__(self, path: Path, size: int, limit: int):
        super().__init__(f"{path} is {size} bytes, exceeds read limit of {limit}")
        self.path = path
        self.size = size
        self.limit = limit


def is_safe_path(candidate: str | Path, project_root: Path) -> bool:
    """Check that a candidate path stays inside the project root.

    Validates that:
    1. The candidate is a non-empty relative path without NUL bytes
    2. After resolving symlinks on both sides, the candidate is the root
       itself or nested under it

    Args:
        candidate: Path relative to project_root (e.g. a workspace pattern match)
        project_root: Project root directory

    Returns:
        True if the path is confined to the root, False otherwise. Never raises.
    """
    text = str(candidate)
    if not text or "\x00" in text:
        logger.debug(f"Rejecting empty or malformed path: {text!r}")
        return False

    if Path(text).is_absolute() or os.path.isabs(text):
        logger.debug(f"Rejecting absolute path: {text}")
        return False

    try:
        root_resolved = project_root.resolve()
        resolved = (project_root / text).resolve()
        resolved.relative_to(root_resolved)
        return True
    except ValueError:
        logger.debug(f"Path outside project boundary: {text}")
        return False
    except (OSError, RuntimeError) as e:
        # Symlink loops and permission problems during resolution
        logger.debug(f"Could not resolve {text}: {e}")
        return False


async def file_exists(path: Path) -> bool:
    """Return True if path exists. Never raises."""
    try:
        return await asyncio.to_thread(path.exists)
    except (OSError, ValueError):
        return False


def _read_bounded_sync(path: Path, max_bytes: int) -> str:
    size = path.stat().st_size
    if size > max_bytes:
        raise FileTooLargeError(path, size, max_bytes)

    with open(path, "rb") as f:
        # The file may have grown since stat(); read one extra byte to tell
        data = f.read(max_bytes + 1)
    if len(data) > max_bytes:
        raise FileTooLargeError(path, len(data), max_bytes)

    return data.decode("utf-8", errors="replace")


async def read_bounded(path: Path, max_bytes: int) -> str:
    """Read a text file, refusing files larger than max_bytes.

    Args:
        path: File to read
        max_bytes: Maximum accepted file size in bytes

    Returns:
        Decoded file content (UTF-8, undecodable bytes replaced)

    Raises:
        FileTooLargeError: If the file is larger than max_bytes
        OSError: If the file is missing or unreadable
    """
    return await asyncio.to_thread(_read_bounded_sync, path, max_bytes)


def run_sync(coro: Coroutine[Any, Any, T]) -> T:
    """Run a coroutine to completion on a private event loop.

    Unlike asyncio.run(), returning does not wait for worker threads that a
    timed-out detection left behind: the loop's executor is shut down
    without waiting and its queued work is cancelled. Abandoned threads
    finish in the background and their results are discarded.

    Must not be called from a running event loop.
    """
    executor = ThreadPoolExecutor(thread_name_prefix="repotopo")
    loop = asyncio.new_event_loop()
    loop.set_default_executor(executor)
    try:
        return loop.run_until_complete(coro)
    finally:
        try:
            pending = asyncio.all_tasks(loop)
            for task in pending:
                task.cancel()
            if pending:
                loop.run_until_complete(
                    asyncio.gather(*pending, return_exceptions=True)
                )
            loop.run_until_complete(loop.shutdown_asyncgens())
        finally:
            executor.shutdown(wait=False, cancel_futures=True)
            loop.close()


def normalize_relative(path: str) -> str:
    """Normalize a relative path to POSIX form without ./ prefix or trailing /.

    Examples:
      - "./packages/web/" -> "packages/web"
      - Windows separators are converted to "/"
      - "./" -> "."
    """
    text = path.strip().replace("\\", "/")
    while text.startswith("./"):
        text = text[2:]
    stripped = text.rstrip("/")
    if not stripped:
        return "/" if text.startswith("/") else "."
    return stripped


_REQUIREMENT_NAME_RE = re.compile(r"^\s*([A-Za-z0-9][A-Za-z0-9._-]*)")


def extract_package_name(dep_spec: str, normalize_case: bool = False) -> str:
    """Extract package name from a Python dependency specification string.

    Handles common dependency specification formats:
    - "django>=4.0" -> "django"
    - "flask==2.0.0" -> "flask"
    - "redis[hiredis]>=4.0" -> "redis"
    - "fastapi ; python_version >= '3.8'" -> "fastapi"

    Args:
        dep_spec: Dependency specification string
        normalize_case: If True, convert to lowercase

    Returns:
        Package name without extras, markers or version specifiers
        (empty string if none could be found)
    """
    match = _REQUIREMENT_NAME_RE.match(dep_spec)
    name = match.group(1) if match else ""
    return name.lower() if normalize_case else name
