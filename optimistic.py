import logging
import time
from dataclasses import dataclass
from typing import Awaitable, Callable, Generic, Optional, Sequence, TypeVar, Union

from cache import TimedCache
from http_service import ApiError
from models import Entity
from notifications import Notifier

logger = logging.getLogger(__name__)

R = TypeVar("R")
E = TypeVar("E", bound=Entity)


@dataclass(frozen=True)
class Pending:
    temp_id: int


@dataclass(frozen=True)
class Confirmed:
    server_id: int


EntityRef = Union[Pending, Confirmed]


def entity_ref(entity_id: int) -> EntityRef:
    if entity_id < 0:
        return Pending(entity_id)
    return Confirmed(entity_id)


class PlaceholderIds:
    """Strictly decreasing negative ids, seeded from the wall clock in ms."""

    def __init__(self) -> None:
        self._last = 0

    def next(self) -> int:
        candidate = -(time.time_ns() // 1_000_000)
        if candidate >= self._last:
            candidate = self._last - 1
        self._last = candidate
        return candidate


_placeholders = PlaceholderIds()


def next_placeholder_id() -> int:
    return _placeholders.next()


def prepend(items: Optional[Sequence[E]], entity: E) -> list[E]:
    return [entity, *(items or [])]


def replace_by_id(items: Optional[Sequence[E]], entity_id: int, replacement: E) -> list[E]:
    return [replacement if item.id == entity_id else item for item in items or []]


def replace_many(items: Optional[Sequence[E]], replacements: dict[int, E]) -> list[E]:
    return [replacements.get(item.id, item) for item in items or []]


def remove_by_id(items: Optional[Sequence[E]], entity_id: int) -> list[E]:
    return [item for item in items or [] if item.id != entity_id]


def confirm(items: Optional[Sequence[E]], confirmed: dict[int, E]) -> list[E]:
    """Swap placeholders for server entities; prepend any whose placeholder is gone."""
    current = list(items or [])
    ids = {item.id for item in current}
    missing = [
        entity
        for placeholder_id, entity in confirmed.items()
        if placeholder_id not in ids and entity.id not in ids
    ]
    return [*missing, *replace_many(current, confirmed)]


def revert(
    snapshot: Optional[Sequence[E]],
    published: Optional[Sequence[E]],
    current: Optional[Sequence[E]],
) -> list[E]:
    """Undo only the writes that turned ``snapshot`` into ``published``.

    Rows this mutation added are dropped, rows it replaced get their
    pre-image back unless something else has replaced them since, and rows
    it removed go back after their old neighbour. Everything else in
    ``current`` is left as other writers put it.
    """
    before = {item.id: item for item in snapshot or []}
    after = {item.id: item for item in published or []}
    restored = []
    for item in current or []:
        if item.id in after and item.id not in before:
            continue
        if after.get(item.id) is item and item.id in before:
            restored.append(before[item.id])
            continue
        restored.append(item)

    snapshot = list(snapshot or [])
    present = {item.id for item in restored}
    for index, item in enumerate(snapshot):
        if item.id in after or item.id in present:
            continue
        # reinsert right after the nearest earlier row that is still there
        ids = [row.id for row in restored]
        anchors = [ids.index(prev.id) + 1 for prev in snapshot[:index] if prev.id in present]
        restored.insert(max(anchors, default=0), item)
        present.add(item.id)
    return restored


@dataclass
class MutationResult(Generic[R]):
    ok: bool
    value: Optional[R] = None
    error: Optional[str] = None
    # True when rejected before any cache write or network call
    rejected: bool = False

    @classmethod
    def succeeded(cls, value: R) -> "MutationResult[R]":
        return cls(ok=True, value=value)

    @classmethod
    def failed(cls, error: str, *, rejected: bool = False) -> "MutationResult[R]":
        return cls(ok=False, error=error, rejected=rejected)


class OptimisticMutation(Generic[R]):
    """Snapshot, apply a tentative state, call the backend, then reconcile or roll back.

    ``caches`` lists every cache the mutation touches; their current values
    are captured before ``apply`` runs. If ``remote`` fails, a cache still
    holding exactly what ``apply`` published gets its snapshot back verbatim;
    a cache another mutation wrote to in the meantime only loses this
    mutation's own rows (see ``revert``). ``reconcile`` receives the
    backend's answer and must splice it into the caches through their setters.
    """

    def __init__(
        self,
        *,
        label: str,
        caches: Sequence[TimedCache],
        apply: Callable[[], None],
        remote: Callable[[], Awaitable[R]],
        reconcile: Callable[[R], None],
        notifier: Notifier,
        success_message: Optional[str] = None,
        error_message: Optional[str] = None,
        on_applied: Optional[Callable[[], None]] = None,
    ) -> None:
        self.label = label
        self.caches = caches
        self.apply = apply
        self.remote = remote
        self.reconcile = reconcile
        self.notifier = notifier
        self.success_message = success_message
        self.error_message = error_message or f"Failed to {label}. Please try again."
        self.on_applied = on_applied

    async def run(self) -> MutationResult[R]:
        snapshots = [cache.data for cache in self.caches]

        self.apply()
        published = [cache.data for cache in self.caches]
        if self.on_applied is not None:
            self.on_applied()

        try:
            value = await self.remote()
        except Exception as exc:
            for cache, snapshot, mine in zip(self.caches, snapshots, published):
                if cache.data is mine:
                    cache.set_data(snapshot)
                else:
                    cache.set_data(revert(snapshot, mine, cache.data))
            logger.error(f"optimistic_rollback: label={self.label} error={exc}")
            message = self.error_message
            if isinstance(exc, ApiError) and exc.server_message:
                message = exc.server_message
            self.notifier.error(message, exc)
            return MutationResult.failed(message)

        self.reconcile(value)
        if self.success_message:
            self.notifier.success(self.success_message)
        return MutationResult.succeeded(value)
