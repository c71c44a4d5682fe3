"""Process-wide table of page render handles and their readiness signals.

Pages announce themselves (container and/or live instance) as they render;
preview code awaits those announcements through get_context/get_state.
Readiness is only fulfilled from a post-frame callback, so a caller that
wakes up can safely read or mutate the page through the handle it receives.
"""

from __future__ import annotations

import asyncio
import weakref
from typing import Any, Callable, Dict, Hashable, Iterator, List, Optional

from textual.dom import NoScreen

from core.readiness import ReadinessSignal


FrameScheduler = Callable[[Callable[[], None]], Any]


def _make_ref(obj: Any) -> Callable[[], Any]:
    """Weak reference when the object supports it, a plain closure otherwise."""
    try:
        return weakref.ref(obj)
    except TypeError:
        return lambda: obj


def default_is_live(handle: Any) -> bool:
    if handle is None:
        return False
    for attr in ('is_attached', 'is_mounted'):
        try:
            flag = getattr(handle, attr)
        except AttributeError:
            continue
        except Exception:
            # Textual raises when the owning app is gone
            return False
        if isinstance(flag, bool):
            return flag
    return True


def default_container_of(instance: Any) -> Any:
    try:
        return getattr(instance, 'screen', instance)
    except NoScreen:
        # widget was removed from its DOM
        return None


def call_post_frame(callback: Callable[[], None]) -> None:
    """Fallback scheduler: next loop iteration, or immediately without a loop."""
    try:
        loop = asyncio.get_running_loop()
    except RuntimeError:
        callback()
        return
    loop.call_soon(callback)


class RegistryEntry:
    """Latest render handles of one page type plus its readiness signal."""

    def __init__(
        self,
        key: Hashable,
        signal: Optional[ReadinessSignal] = None,
        *,
        instance_signal: Optional[ReadinessSignal] = None,
        is_live: Callable[[Any], bool] = default_is_live,
        container_of: Callable[[Any], Any] = default_container_of,
    ) -> None:
        self.key = key
        self.signal: ReadinessSignal[RegistryEntry] = signal or ReadinessSignal()
        self.generation = 0
        self._is_live = is_live
        self._container_of = container_of
        self._container_ref: Optional[Callable[[], Any]] = None
        self._instance_ref: Optional[Callable[[], Any]] = None
        self._instance_signal: Optional[ReadinessSignal[RegistryEntry]] = instance_signal

    # --- handles ---------------------------------------------------------
    @property
    def registered_container(self) -> Any:
        return self._container_ref() if self._container_ref else None

    @property
    def instance(self) -> Any:
        return self._instance_ref() if self._instance_ref else None

    @property
    def container(self) -> Any:
        container = self.registered_container
        if container is not None:
            return container
        instance = self.instance
        if instance is None:
            return None
        return self._container_of(instance)

    def set_container(self, container: Any) -> None:
        self._container_ref = _make_ref(container)

    def set_instance(self, instance: Any) -> None:
        self._instance_ref = _make_ref(instance)

    # --- state -----------------------------------------------------------
    @property
    def is_active(self) -> bool:
        return self._is_live(self.registered_container) or self._is_live(self.instance)

    @property
    def is_pending(self) -> bool:
        return not self.signal.is_fulfilled and not self.signal.is_scheduled

    def instance_signal(self) -> ReadinessSignal:
        """Signal for callers that need an instance the entry does not have yet."""
        if self._instance_signal is None or self._instance_signal.is_fulfilled:
            self._instance_signal = ReadinessSignal()
        return self._instance_signal

    @property
    def awaiting_instance(self) -> bool:
        sig = self._instance_signal
        return sig is not None and not sig.is_fulfilled and not sig.is_scheduled

    @property
    def waiting_instance_signal(self) -> Optional[ReadinessSignal]:
        """The unfulfilled instance signal, if any caller is still awaiting it."""
        sig = self._instance_signal
        if sig is None or sig.is_fulfilled or not sig.waiters:
            return None
        return sig

    def reset(self) -> None:
        """Start a new generation; handles stay until the next registration."""
        self.generation += 1
        if self.signal.is_fulfilled or self.signal.is_scheduled:
            self.signal = ReadinessSignal()
        # An idle pending signal is kept so existing waiters see the next render.

    def __repr__(self) -> str:
        name = getattr(self.key, '__name__', self.key)
        return f'<RegistryEntry {name} gen={self.generation} {self.signal!r}>'


class PageStateRegistry:
    """
    Map from page key to RegistryEntry.

    Only accessed from the single UI event loop; no locking is performed.
    """

    def __init__(
        self,
        *,
        schedule_post_frame: Optional[FrameScheduler] = None,
        is_live: Callable[[Any], bool] = default_is_live,
        container_of: Callable[[Any], Any] = default_container_of,
        prune_on_reset: bool = True,
        logger=None,
    ) -> None:
        self._entries: Dict[Hashable, RegistryEntry] = {}
        # Pending signals of pruned entries that still had waiters
        self._parked: Dict[Hashable, ReadinessSignal] = {}
        self._parked_instances: Dict[Hashable, ReadinessSignal] = {}
        self._schedule_post_frame = schedule_post_frame or call_post_frame
        self._is_live = is_live
        self._container_of = container_of
        self._prune_on_reset = prune_on_reset
        self._logger = logger

    # --- table access ----------------------------------------------------
    def get_or_create_entry(self, key: Hashable) -> RegistryEntry:
        entry = self._entries.get(key)
        if entry is None:
            entry = RegistryEntry(
                key,
                self._parked.pop(key, None),
                instance_signal=self._parked_instances.pop(key, None),
                is_live=self._is_live,
                container_of=self._container_of,
            )
            self._entries[key] = entry
            self._log('entry_created', key)
        return entry

    def peek(self, key: Hashable) -> Optional[RegistryEntry]:
        return self._entries.get(key)

    def keys(self) -> List[Hashable]:
        return list(self._entries)

    def __contains__(self, key: Hashable) -> bool:
        return key in self._entries

    def __len__(self) -> int:
        return len(self._entries)

    def __iter__(self) -> Iterator[Hashable]:
        return iter(list(self._entries))

    def clear(self) -> None:
        self._entries.clear()
        self._parked.clear()
        self._parked_instances.clear()

    # --- registration ----------------------------------------------------
    def register_container(self, key: Hashable, container: Any, schedule: Optional[FrameScheduler] = None) -> None:
        entry = self.get_or_create_entry(key)
        entry.set_container(container)
        self._log('register_container', key, detail=True)
        self._schedule_ready(entry, entry.signal, schedule)

    def register_instance(self, key: Hashable, instance: Any, schedule: Optional[FrameScheduler] = None) -> None:
        entry = self.get_or_create_entry(key)
        entry.set_instance(instance)
        self._log('register_instance', key, detail=True)
        self._schedule_ready(entry, entry.signal, schedule)
        if entry.awaiting_instance:
            self._schedule_ready(entry, entry.instance_signal(), schedule)

    def _schedule_ready(self, entry: RegistryEntry, signal: ReadinessSignal, schedule: Optional[FrameScheduler]) -> None:
        if signal.is_fulfilled or signal.is_scheduled:
            return
        signal.mark_scheduled()

        # Bound to the signal current at registration time: a reset before the
        # frame completes must not fulfill the replacement signal.
        def _fire(*_: Any) -> None:
            if signal.fulfill(entry):
                self._log('fulfilled', entry.key, generation=entry.generation)

        (schedule or self._schedule_post_frame)(_fire)

    # --- queries ---------------------------------------------------------
    async def get_context(self, key: Hashable) -> Any:
        entry = self.get_or_create_entry(key)
        ready = await entry.signal.wait()
        return ready.container

    async def get_state(self, key: Hashable) -> Any:
        entry = self.get_or_create_entry(key)
        ready = await entry.signal.wait()
        while ready.instance is None:
            # the entry may have been pruned and replaced while waiting
            current = self.get_or_create_entry(key)
            if current is not ready and current.instance is not None:
                ready = current
                continue
            ready = await current.instance_signal().wait()
        return ready.instance

    def is_pending(self, key: Hashable) -> bool:
        entry = self._entries.get(key)
        return entry is None or entry.is_pending

    # --- lifecycle -------------------------------------------------------
    def reset_entry(self, key: Hashable, prune: Optional[bool] = None) -> None:
        entry = self._entries.get(key)
        if entry is not None:
            entry.reset()
            self._log('reset', key, generation=entry.generation)
        if prune is None:
            prune = self._prune_on_reset
        if prune:
            self.prune_inactive()

    def prune_inactive(self) -> List[Hashable]:
        removed: List[Hashable] = []
        for key, entry in list(self._entries.items()):
            if entry.is_active:
                continue
            del self._entries[key]
            sig = entry.signal
            if sig.waiters and not sig.is_fulfilled:
                self._parked[key] = sig
            instance_sig = entry.waiting_instance_signal
            if instance_sig is not None:
                self._parked_instances[key] = instance_sig
            removed.append(key)
        for parked in (self._parked, self._parked_instances):
            for key, sig in list(parked.items()):
                if not sig.waiters or sig.is_fulfilled:
                    del parked[key]
        if removed:
            self._log('pruned', None, keys=[self._key_name(k) for k in removed])
        return removed

    # --- logging ---------------------------------------------------------
    @staticmethod
    def _key_name(key: Hashable) -> str:
        return getattr(key, '__name__', None) or str(key)

    def _log(self, kind: str, key: Optional[Hashable], detail: bool = False, **data: Any) -> None:
        if self._logger is None:
            return
        if key is not None:
            data['page'] = self._key_name(key)
        try:
            if detail:
                self._logger.registry_detail(kind, data)
            else:
                self._logger.registry_event(kind, data)
        except Exception:
            pass


__all__ = [
    'FrameScheduler',
    'PageStateRegistry',
    'RegistryEntry',
    'call_post_frame',
    'default_container_of',
    'default_is_live',
]
