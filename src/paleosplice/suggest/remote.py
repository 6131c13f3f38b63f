# src/paleosplice/suggest/remote.py
from __future__ import annotations

import asyncio
import inspect
import math
from concurrent.futures import ThreadPoolExecutor
from concurrent.futures import TimeoutError as FutureTimeoutError
from typing import Any, Awaitable, Callable, Iterable, List, Mapping, Optional

from ..errors import SuggestionUnavailable
from ..section import Section
from ..utils.logging import get_logger
from .base import Suggester, TiePointSuggestion

log = get_logger(__name__)

# Key spellings accepted from collaborators (camelCase is what hosted models return).
_REF_KEYS = ("refDepth", "ref_depth", "ref_position")
_TGT_KEYS = ("targetDepth", "target_depth", "target_position")

SuggestionClient = Callable[[Section, Section, str], Any]


def _first(item: Mapping[str, Any], keys: Iterable[str]) -> Optional[float]:
    """First finite number found under any of `keys`; unusable values fall through to the next key."""
    for k in keys:
        if k not in item or item[k] is None:
            continue
        try:
            v = float(item[k])
        except (TypeError, ValueError):
            continue
        if math.isfinite(v):
            return v
    return None


async def _awaited(aw: Awaitable[Any]) -> Any:
    return await aw


class RemoteSuggester:
    """
    Adapter around an external suggestion service (e.g. a hosted language model).

    `client(reference, target, proxy_key)` returns an iterable of
    {refDepth, targetDepth, confidence} mappings, directly or as an awaitable.
    Sync clients run in a worker thread so `timeout` applies to both kinds.

    The service is untrusted: entries with missing / non-finite depths are
    dropped, confidence is divided by `confidence_scale` and clipped to [0, 1].
    Failure, timeout, or an empty usable result raises SuggestionUnavailable.
    """

    def __init__(
        self,
        client: SuggestionClient,
        *,
        timeout: float = 30.0,
        confidence_scale: float = 100.0,
        name: str = "remote",
    ) -> None:
        if not callable(client):
            raise TypeError("client must be callable")
        if confidence_scale <= 0:
            raise ValueError("confidence_scale must be > 0")
        self.client = client
        self.timeout = float(timeout)
        self.confidence_scale = float(confidence_scale)
        self.name = name

    def _is_async(self) -> bool:
        return inspect.iscoroutinefunction(self.client) or inspect.iscoroutinefunction(
            getattr(self.client, "__call__", None)
        )

    def _timed_out(self) -> SuggestionUnavailable:
        return SuggestionUnavailable(f"{self.name} suggester timed out after {self.timeout:g}s")

    def _failed(self, e: BaseException) -> SuggestionUnavailable:
        return SuggestionUnavailable(f"{self.name} suggester failed: {type(e).__name__}: {e}")

    async def asuggest(self, reference: Section, target: Section, proxy_key: str) -> List[TiePointSuggestion]:
        # Private pool, abandoned on timeout; the default executor would be joined at loop close.
        pool: Optional[ThreadPoolExecutor] = None
        try:
            if self._is_async():
                raw = await asyncio.wait_for(self.client(reference, target, proxy_key), timeout=self.timeout)
            else:
                pool = ThreadPoolExecutor(max_workers=1, thread_name_prefix=f"{self.name}-suggest")
                loop = asyncio.get_running_loop()
                raw = await asyncio.wait_for(
                    loop.run_in_executor(pool, self.client, reference, target, proxy_key),
                    timeout=self.timeout,
                )
                if inspect.isawaitable(raw):
                    raw = await asyncio.wait_for(raw, timeout=self.timeout)
        except SuggestionUnavailable:
            raise
        except asyncio.TimeoutError as e:
            raise self._timed_out() from e
        except Exception as e:
            raise self._failed(e) from e
        finally:
            if pool is not None:
                pool.shutdown(wait=False, cancel_futures=True)

        return self.parse(raw)

    def suggest(self, reference: Section, target: Section, proxy_key: str) -> List[TiePointSuggestion]:
        try:
            asyncio.get_running_loop()
        except RuntimeError:
            pass
        else:
            raise RuntimeError("suggest() called inside a running event loop; await asuggest() instead.")

        if self._is_async():
            return asyncio.run(self.asuggest(reference, target, proxy_key))

        pool = ThreadPoolExecutor(max_workers=1, thread_name_prefix=f"{self.name}-suggest")
        try:
            raw = pool.submit(self.client, reference, target, proxy_key).result(timeout=self.timeout)
            if inspect.isawaitable(raw):
                raw = asyncio.run(asyncio.wait_for(_awaited(raw), timeout=self.timeout))
        except SuggestionUnavailable:
            raise
        except (FutureTimeoutError, asyncio.TimeoutError) as e:
            raise self._timed_out() from e
        except Exception as e:
            raise self._failed(e) from e
        finally:
            pool.shutdown(wait=False, cancel_futures=True)

        return self.parse(raw)

    def parse(self, raw: Any) -> List[TiePointSuggestion]:
        if raw is None or isinstance(raw, (str, bytes, Mapping)):
            raise SuggestionUnavailable(f"{self.name} suggester returned no list of suggestions.")
        try:
            items = list(raw)
        except TypeError as e:
            raise SuggestionUnavailable(f"{self.name} suggester returned a non-iterable result.") from e

        out: List[TiePointSuggestion] = []
        dropped = 0
        for item in items:
            if not isinstance(item, Mapping):
                dropped += 1
                continue
            ref = _first(item, _REF_KEYS)
            tgt = _first(item, _TGT_KEYS)
            conf = _first(item, ("confidence",))
            if ref is None or tgt is None:
                dropped += 1
                continue
            c = 0.0 if conf is None else min(1.0, max(0.0, conf / self.confidence_scale))
            out.append(TiePointSuggestion(ref_position=ref, target_position=tgt, confidence=c, source=self.name))

        if dropped:
            log.debug("%s suggester: dropped %d unusable item(s)", self.name, dropped)
        if not out:
            raise SuggestionUnavailable(f"{self.name} suggester returned nothing usable.")

        out.sort(key=lambda s: (-s.confidence, s.ref_position))
        return out


class FallbackSuggester:
    """Try `primary`; when it reports SuggestionUnavailable, use `fallback`."""

    def __init__(self, primary: Suggester, fallback: Suggester) -> None:
        self.primary = primary
        self.fallback = fallback

    def suggest(self, reference: Section, target: Section, proxy_key: str) -> List[TiePointSuggestion]:
        try:
            return self.primary.suggest(reference, target, proxy_key)
        except SuggestionUnavailable as e:
            log.warning("Primary suggester unavailable (%s); using %s", e, type(self.fallback).__name__)
            return self.fallback.suggest(reference, target, proxy_key)
