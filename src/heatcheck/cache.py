"""Opt-in memoization for callers of the analytics functions.

Nothing in the core applies this; wrap a function at the call site, e.g.
``cached = memoize(ttl_seconds=300)(compute_distribution)``.
"""

from __future__ import annotations

import dataclasses
import hashlib
import json
import logging
import threading
import time
import types
from typing import Any, Callable, Mapping, TypeVar

import numpy as np
from cachetools import TTLCache, cached

logger = logging.getLogger(__name__)

F = TypeVar("F", bound=Callable[..., Any])


def _code_digest(code: types.CodeType) -> str:
    consts = [_code_digest(item) if isinstance(item, types.CodeType) else repr(item) for item in code.co_consts]
    payload = json.dumps([code.co_code.hex(), consts, list(code.co_names)])
    return hashlib.sha256(payload.encode("utf-8")).hexdigest()


def _canonical_callable(func: Callable[..., Any]) -> Any:
    name = f"{getattr(func, '__module__', '')}.{getattr(func, '__qualname__', repr(func))}"
    code = getattr(func, "__code__", None)
    if code is None or ("<locals>" not in name and "<lambda>" not in name):
        return name
    # lambdas and nested functions share a qualname; their body and captured values tell them apart
    closure = []
    for cell in func.__closure__ or ():
        try:
            contents = cell.cell_contents
        except ValueError:
            closure.append("<empty cell>")
            continue
        closure.append("<self>" if contents is func else _canonical(contents))
    return {
        "__callable__": name,
        "code": _code_digest(code),
        "defaults": _canonical(list(func.__defaults__ or ())),
        "closure": closure,
    }


def _canonical(value: Any) -> Any:
    if dataclasses.is_dataclass(value) and not isinstance(value, type):
        return {
            "__type__": type(value).__name__,
            **{item.name: _canonical(getattr(value, item.name)) for item in dataclasses.fields(value)},
        }
    if isinstance(value, np.ndarray):
        return {"__ndarray__": value.tolist(), "shape": list(value.shape)}
    if isinstance(value, np.generic):
        return value.item()
    if isinstance(value, Mapping):
        return {str(key): _canonical(item) for key, item in sorted(value.items(), key=lambda kv: str(kv[0]))}
    if isinstance(value, (list, tuple)):
        return [_canonical(item) for item in value]
    if isinstance(value, (set, frozenset)):
        return sorted((_canonical(item) for item in value), key=repr)
    if callable(value):
        return _canonical_callable(value)
    return value


def fingerprint(*args: Any, **kwargs: Any) -> str:
    """SHA-256 of a canonical JSON rendering of the arguments."""
    payload = json.dumps(
        {"args": _canonical(list(args)), "kwargs": _canonical(kwargs)},
        sort_keys=True,
        default=repr,
    )
    return hashlib.sha256(payload.encode("utf-8")).hexdigest()


def memoize(ttl_seconds: float, maxsize: int = 256, clock: Callable[[], float] = time.monotonic) -> Callable[[F], F]:
    """Cache results by argument fingerprint for ``ttl_seconds``.

    Backed by a ``cachetools.TTLCache``; the least recently used entry is
    evicted once ``maxsize`` entries are held. Safe to share across threads.
    """
    if ttl_seconds <= 0:
        raise ValueError("ttl_seconds must be positive")
    if maxsize <= 0:
        raise ValueError("maxsize must be positive")

    def decorator(func: F) -> F:
        cache: TTLCache = TTLCache(maxsize=maxsize, ttl=ttl_seconds, timer=clock)
        lock = threading.Lock()
        wrapper = cached(cache, key=fingerprint, lock=lock)(func)

        def cache_clear() -> None:
            with lock:
                cache.clear()
            logger.debug("Cleared memoized results for %s", func.__name__)

        wrapper.cache_clear = cache_clear  # type: ignore[attr-defined]
        return wrapper  # type: ignore[return-value]

    return decorator
