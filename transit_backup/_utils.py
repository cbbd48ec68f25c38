"""Shared helpers: package logger, document paths, timestamps and async plumbing."""

import asyncio
import importlib.util
import inspect
import logging
from datetime import datetime, timedelta, timezone
from typing import Any, Awaitable, Callable, Iterable, List, Optional, Tuple, TypeVar

logger = logging.getLogger("transit-backup")

T = TypeVar("T")

PATH_SEP = "/"
EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)


def ensure_dependency(module_name: str, package_name: str, purpose: str) -> None:
    """Raise a helpful ImportError when an optional backend library is missing."""
    if importlib.util.find_spec(module_name) is None:
        raise ImportError(
            f"{purpose} requires '{package_name}'. Install with: pip install {package_name}"
        )


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


# ---------------------------------------------------------------------------
# Document paths
# ---------------------------------------------------------------------------

def join_path(*segments: str) -> str:
    """Join path segments into a slash-separated document store path.

    Empty segments and stray separators are dropped, so
    ``join_path("conductors/", "c1", "dailyTrips")`` gives ``conductors/c1/dailyTrips``.
    """
    parts: List[str] = []
    for segment in segments:
        parts.extend(p for p in str(segment).split(PATH_SEP) if p)
    return PATH_SEP.join(parts)


def split_path(path: str) -> List[str]:
    return [p for p in path.split(PATH_SEP) if p]


def is_collection_path(path: str) -> bool:
    """Collections sit at odd depths, documents at even depths."""
    return len(split_path(path)) % 2 == 1


def is_document_path(path: str) -> bool:
    segments = split_path(path)
    return bool(segments) and len(segments) % 2 == 0


def split_document_path(path: str) -> Tuple[str, str]:
    """Split a document path into (collection path, document id)."""
    if not is_document_path(path):
        raise ValueError(f"Not a document path: {path!r}")
    segments = split_path(path)
    return PATH_SEP.join(segments[:-1]), segments[-1]


# ---------------------------------------------------------------------------
# Timestamps
# ---------------------------------------------------------------------------

def timestamp_to_dict(value: datetime) -> dict:
    """Encode a datetime as the ``{seconds, nanoseconds}`` wire shape."""
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    delta = value - EPOCH
    return {
        "seconds": delta.days * 86400 + delta.seconds,
        "nanoseconds": delta.microseconds * 1000,
    }


def _as_timestamp(value: dict) -> Optional[datetime]:
    keys = set(value)
    for seconds_key, nanos_key in (("seconds", "nanoseconds"), ("_seconds", "_nanoseconds")):
        if keys != {seconds_key, nanos_key}:
            continue
        seconds, nanos = value[seconds_key], value[nanos_key]
        if not all(isinstance(v, int) and not isinstance(v, bool) for v in (seconds, nanos)):
            return None
        return EPOCH + timedelta(seconds=seconds, microseconds=nanos // 1000)
    return None


def convert_timestamps(value: Any) -> Any:
    """Recursively turn serialized ``{seconds, nanoseconds}`` maps into datetimes.

    Walks nested dicts and lists; anything that is not timestamp-shaped is
    copied through unchanged.
    """
    if isinstance(value, dict):
        timestamp = _as_timestamp(value)
        if timestamp is not None:
            return timestamp
        return {k: convert_timestamps(v) for k, v in value.items()}
    if isinstance(value, list):
        return [convert_timestamps(v) for v in value]
    return value


def json_default(value: Any) -> Any:
    """``json.dumps`` fallback for values found inside document data."""
    if isinstance(value, datetime):
        return timestamp_to_dict(value)
    if isinstance(value, (bytes, bytearray)):
        return value.decode("utf-8", errors="replace")
    if isinstance(value, (set, frozenset, tuple)):
        return list(value)
    return str(value)


# ---------------------------------------------------------------------------
# Async helpers
# ---------------------------------------------------------------------------

async def emit_progress(callback: Optional[Callable[[Any], Any]], payload: Any) -> None:
    """Invoke a progress callback, awaiting it when it is a coroutine function.

    Progress is advisory: a failing callback is logged and never interrupts
    the operation that reported it.
    """
    if callback is None:
        return
    try:
        result = callback(payload)
        if inspect.isawaitable(result):
            await result
    except Exception as e:
        logger.warning(f"Progress callback failed: {e}")


async def gather_or_cancel(aws: Iterable[Awaitable[T]]) -> List[T]:
    """Run awaitables concurrently; on the first failure cancel the rest and re-raise."""
    tasks = [asyncio.ensure_future(aw) for aw in aws]
    if not tasks:
        return []
    try:
        return list(await asyncio.gather(*tasks))
    except BaseException:
        for task in tasks:
            if not task.done():
                task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)
        raise
