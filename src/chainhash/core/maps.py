from __future__ import annotations

import logging
import math
from collections import defaultdict
from collections.abc import Iterator, Mapping
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Generic, List, Optional, Tuple, TypeVar

from chainhash.contracts.error import (
    IndexOutOfRangeError,
    InvalidArgumentError,
    TypeMismatchError,
)

logger = logging.getLogger("chainhash.core")

K = TypeVar("K")
V = TypeVar("V")

DEFAULT_INITIAL_CAPACITY: int = 16
DEFAULT_LOAD_FACTOR: float = 0.75


@dataclass(eq=False)
class _Entry:
    key: Any
    value: Any
    next: Optional["_Entry"] = field(default=None, repr=False)


def _same(stored: Any, candidate: Any) -> bool:
    # None is the sentinel key: it only ever matches itself.
    if stored is None or candidate is None:
        return stored is candidate
    return stored is candidate or stored == candidate


def _iter_pairs(source: Any) -> Iterator[Tuple[Any, Any]]:
    if isinstance(source, HashTable):
        return iter(source.entry_set())
    if isinstance(source, Mapping):
        return iter(list(source.items()))
    return iter(source)


class HashTable(Generic[K, V]):
    """Hash table with separate chaining over singly-linked buckets.

    ``None`` is an ordinary key that always lives in bucket 0. Capacity never
    drops below ``DEFAULT_INITIAL_CAPACITY`` and doubles whenever an insert
    would bring ``size + 1`` up to ``capacity * DEFAULT_LOAD_FACTOR``.
    Views returned by :meth:`key_set`, :meth:`values` and :meth:`entry_set`
    are independent copies.
    """

    __slots__ = ("_buckets", "_size", "_rehashes", "on_rehash")

    def __init__(
        self,
        initial_capacity: Optional[int] = None,
        *,
        on_rehash: Optional[Callable[[int, int], None]] = None,
    ) -> None:
        if initial_capacity is None:
            initial_capacity = DEFAULT_INITIAL_CAPACITY
        if isinstance(initial_capacity, bool) or not isinstance(initial_capacity, int):
            raise InvalidArgumentError(f"Illegal initial capacity: {initial_capacity!r}")
        if initial_capacity < 0:
            raise InvalidArgumentError(
                f"Illegal initial capacity: {initial_capacity}",
                hint="initial capacity must be >= 0",
            )
        self._buckets: List[Optional[_Entry]] = self._new_buckets(
            max(initial_capacity, DEFAULT_INITIAL_CAPACITY)
        )
        self._size = 0
        self._rehashes = 0
        self.on_rehash = on_rehash

    @staticmethod
    def _new_buckets(length: int) -> List[Optional[_Entry]]:
        return [None] * length

    # ------------------------------------------------------------------
    # Type hooks (no-ops here, enforced by TypedHashTable)
    # ------------------------------------------------------------------
    def _check_key(self, key: Any) -> None:
        return None

    def _check_value(self, value: Any) -> None:
        return None

    # ------------------------------------------------------------------
    # Size / capacity
    # ------------------------------------------------------------------
    def __len__(self) -> int:
        return self._size

    def size(self) -> int:
        return self._size

    def is_empty(self) -> bool:
        return self._size == 0

    @property
    def capacity(self) -> int:
        return len(self._buckets)

    @property
    def rehash_count(self) -> int:
        return self._rehashes

    def load_factor(self) -> float:
        return self._size / len(self._buckets)

    def chain_lengths(self) -> List[int]:
        lengths: List[int] = []
        for head in self._buckets:
            count = 0
            node = head
            while node is not None:
                count += 1
                node = node.next
            lengths.append(count)
        return lengths

    def max_chain_len(self) -> int:
        return max(self.chain_lengths(), default=0)

    # ------------------------------------------------------------------
    # Hashing and traversal
    # ------------------------------------------------------------------
    def _hash_index(self, key: Any) -> int:
        if key is None:
            return 0
        return abs(hash(key)) % len(self._buckets)

    def _chain(self, index: int) -> Iterator[_Entry]:
        node = self._buckets[index]
        while node is not None:
            yield node
            node = node.next

    def _entries(self) -> Iterator[_Entry]:
        for index in range(len(self._buckets)):
            yield from self._chain(index)

    def _find(self, key: Any) -> Optional[_Entry]:
        for entry in self._chain(self._hash_index(key)):
            if _same(entry.key, key):
                return entry
        return None

    # ------------------------------------------------------------------
    # Lookup
    # ------------------------------------------------------------------
    def get(self, key: Any, default: Optional[V] = None) -> Optional[V]:
        """Return the value stored under ``key``, or ``default`` when absent."""

        self._check_key(key)
        entry = self._find(key)
        return default if entry is None else entry.value

    def contains_key(self, key: Any) -> bool:
        self._check_key(key)
        return self._find(key) is not None

    def contains_value(self, value: Any) -> bool:
        self._check_value(value)
        for entry in self._entries():
            if _same(entry.value, value):
                return True
        return False

    def __contains__(self, key: Any) -> bool:
        return self.contains_key(key)

    def __getitem__(self, key: K) -> V:
        self._check_key(key)
        entry = self._find(key)
        if entry is None:
            raise KeyError(key)
        return entry.value

    # ------------------------------------------------------------------
    # Mutation
    # ------------------------------------------------------------------
    def put(self, key: K, value: V) -> Optional[V]:
        """Store ``value`` under ``key`` and return the value it replaced.

        The growth check runs first, against the size before this insert,
        so re-putting an existing key can still trigger a rehash.
        """

        self._check_key(key)
        self._check_value(value)
        if self._size + 1 >= len(self._buckets) * DEFAULT_LOAD_FACTOR:
            self._rehash()
        return self._place(key, value)

    def _place(self, key: Any, value: Any) -> Optional[Any]:
        index = self._hash_index(key)
        if index < 0 or index >= len(self._buckets):
            raise IndexOutOfRangeError(f"Bucket index out of bounds: {index}")
        node = self._buckets[index]
        if node is None:
            self._buckets[index] = _Entry(key, value)
            self._size += 1
            return None
        while True:
            if _same(node.key, key):
                previous = node.value
                node.value = value
                return previous
            if node.next is None:
                break
            node = node.next
        node.next = _Entry(key, value)
        self._size += 1
        return None

    def _rehash(self) -> None:
        old_buckets = self._buckets
        old_capacity = len(old_buckets)
        self._buckets = self._new_buckets(old_capacity * 2)
        self._size = 0
        for head in old_buckets:
            node = head
            while node is not None:
                self._place(node.key, node.value)
                node = node.next
        self._rehashes += 1
        logger.debug(
            "Rehashed %d entries (capacity %d -> %d)",
            self._size,
            old_capacity,
            len(self._buckets),
        )
        if self.on_rehash:
            try:
                self.on_rehash(old_capacity, len(self._buckets))
            except Exception:
                logger.exception("on_rehash callback failed")

    def __setitem__(self, key: K, value: V) -> None:
        self.put(key, value)

    def remove(self, key: Any, default: Optional[V] = None) -> Optional[V]:
        """Unlink ``key`` and return its value, or ``default`` when absent."""

        self._check_key(key)
        index = self._hash_index(key)
        previous: Optional[_Entry] = None
        node = self._buckets[index]
        while node is not None:
            if _same(node.key, key):
                if previous is None:
                    self._buckets[index] = node.next
                else:
                    previous.next = node.next
                node.next = None
                self._size -= 1
                return node.value
            previous = node
            node = node.next
        return default

    def __delitem__(self, key: K) -> None:
        self._check_key(key)
        if self._find(key) is None:
            raise KeyError(key)
        self.remove(key)

    def put_all(self, source: Any) -> None:
        """Copy every pair from a mapping, a table, or an iterable of pairs.

        Later pairs for an already-present key overwrite earlier ones.
        """

        pairs = list(_iter_pairs(source))
        for key, value in pairs:
            self._check_key(key)
            self._check_value(value)
        for key, value in pairs:
            self.put(key, value)

    def clear(self) -> None:
        self._size = 0
        self._buckets = self._new_buckets(DEFAULT_INITIAL_CAPACITY)

    # ------------------------------------------------------------------
    # Snapshot views
    # ------------------------------------------------------------------
    def key_set(self) -> set:
        return {entry.key for entry in self._entries()}

    def values(self) -> List[V]:
        return [entry.value for entry in self._entries()]

    def entry_set(self) -> List[Tuple[K, V]]:
        return [(entry.key, entry.value) for entry in self._entries()]

    def items(self) -> Iterator[Tuple[K, V]]:
        return iter(self.entry_set())

    def __iter__(self) -> Iterator[K]:
        return iter([entry.key for entry in self._entries()])

    def __repr__(self) -> str:
        body = ", ".join(f"{k!r}: {v!r}" for k, v in self.entry_set())
        return f"{type(self).__name__}({{{body}}})"


class TypedHashTable(HashTable[K, V]):
    """HashTable that rejects keys and values of the wrong runtime type.

    ``None`` stays a valid key and value. A rejected call raises
    ``TypeMismatchError`` and leaves the table untouched.
    """

    __slots__ = ("key_type", "value_type")

    def __init__(
        self,
        key_type: type,
        value_type: type,
        initial_capacity: Optional[int] = None,
        *,
        on_rehash: Optional[Callable[[int, int], None]] = None,
    ) -> None:
        self.key_type = key_type
        self.value_type = value_type
        super().__init__(initial_capacity, on_rehash=on_rehash)

    @staticmethod
    def _accepts(obj: Any, expected: type) -> bool:
        if obj is None:
            return True
        if isinstance(obj, bool) and expected is int:
            return False
        return isinstance(obj, expected)

    def _check_key(self, key: Any) -> None:
        if not self._accepts(key, self.key_type):
            raise TypeMismatchError(
                f"Key is not instance of {self.key_type.__name__}: {key!r}"
            )

    def _check_value(self, value: Any) -> None:
        if not self._accepts(value, self.value_type):
            raise TypeMismatchError(
                f"Value is not instance of {self.value_type.__name__}: {value!r}"
            )


class RehashSink:
    """Bridge table growth events into counters, an event log, and warnings."""

    def __init__(
        self,
        events: Optional[List[Dict[str, Any]]] = None,
        *,
        large_table_warn_threshold: int = 0,
        clock: Optional[Callable[[], float]] = None,
    ) -> None:
        self.rehashes_total = 0
        self.events = events
        self.large_table_warn_threshold = large_table_warn_threshold
        self.clock = clock or (lambda: 0.0)

    def record_event(self, kind: str, payload: Optional[Dict[str, Any]] = None) -> None:
        if self.events is None:
            return
        event = {"type": kind, "t": self.clock()}
        if payload:
            event.update(payload)
        self.events.append(event)

    def on_rehash(self, old_capacity: int, new_capacity: int) -> None:
        self.rehashes_total += 1
        self.record_event("rehash", {"from": old_capacity, "to": new_capacity})
        if self.large_table_warn_threshold and new_capacity >= self.large_table_warn_threshold:
            logger.warning(
                "Large table growth (capacity %d -> %d, threshold=%d)",
                old_capacity,
                new_capacity,
                self.large_table_warn_threshold,
            )

    def attach(self, table: HashTable[Any, Any]) -> None:
        table.on_rehash = self.on_rehash


def verify_table(table: HashTable[Any, Any], verbose: bool = False) -> Tuple[bool, List[str]]:
    """Check size accounting, bucket placement, and key uniqueness."""

    msgs: List[str] = []
    ok = True
    total = 0
    for index in range(table.capacity):
        chain = list(table._chain(index))  # type: ignore[attr-defined]
        total += len(chain)
        for pos, entry in enumerate(chain):
            expected = table._hash_index(entry.key)  # type: ignore[attr-defined]
            if expected != index:
                ok = False
                msgs.append(f"Misplaced key {entry.key!r}: bucket={index}, expected={expected}")
            for other in chain[pos + 1 :]:
                if _same(entry.key, other.key):
                    ok = False
                    msgs.append(f"Duplicate key {entry.key!r} in bucket {index}")
    if total != len(table):
        ok = False
        msgs.append(f"Size mismatch: size={len(table)}, summed={total}")
    if verbose:
        msgs.append(
            f"Capacity={table.capacity}, Size={len(table)}, "
            f"LF={table.load_factor():.3f}, MaxChainLen={table.max_chain_len()}"
        )
    return ok, msgs


def collect_chain_histogram(table: HashTable[Any, Any]) -> List[List[int]]:
    histogram: Dict[int, int] = defaultdict(int)
    for length in table.chain_lengths():
        histogram[length] += 1
    return [[length, count] for length, count in sorted(histogram.items())]


def collect_bucket_heatmap(
    table: HashTable[Any, Any], target_cols: int = 32, max_cells: int = 512
) -> Dict[str, Any]:
    base_counts = table.chain_lengths()
    original_slots = len(base_counts)
    total = sum(base_counts)
    target_cells = max(1, max_cells)
    group_width = max(1, math.ceil(original_slots / target_cells))
    aggregated: List[int] = []
    for idx in range(0, original_slots, group_width):
        aggregated.append(sum(base_counts[idx : idx + group_width]))

    cols = max(1, min(target_cols, len(aggregated)))
    rows = math.ceil(len(aggregated) / cols)
    padded_length = rows * cols
    if len(aggregated) < padded_length:
        aggregated.extend([0] * (padded_length - len(aggregated)))
    matrix = [aggregated[r * cols : (r + 1) * cols] for r in range(rows)]

    return {
        "rows": rows,
        "cols": cols,
        "matrix": matrix,
        "max": max(aggregated) if aggregated else 0,
        "total": total,
        "slot_span": group_width,
        "original_slots": original_slots,
    }


__all__ = [
    "DEFAULT_INITIAL_CAPACITY",
    "DEFAULT_LOAD_FACTOR",
    "HashTable",
    "RehashSink",
    "TypedHashTable",
    "collect_bucket_heatmap",
    "collect_chain_histogram",
    "verify_table",
]
