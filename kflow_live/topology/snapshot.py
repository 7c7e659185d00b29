from __future__ import annotations
import logging
import threading
import time
from dataclasses import dataclass, field
from typing import Callable, Dict, Iterable, List, Optional, Tuple

from ..models import Flow

log = logging.getLogger("kflow_live.snapshot")
event_log = logging.getLogger("kflow_live.events")

FlowListener = Callable[[str, str, Flow], None]


class OwnershipError(RuntimeError):
    """A second writer tried to ingest for a node owned by another poller."""


@dataclass
class FlowDiff:
    added: List[Flow] = field(default_factory=list)
    removed: List[Flow] = field(default_factory=list)


def diff_flows(previous: Iterable[Flow], current: Iterable[Flow]) -> FlowDiff:
    """Set difference on full-structural Flow equality, keeping input order."""
    prev = list(dict.fromkeys(previous))
    cur = list(dict.fromkeys(current))
    prev_set, cur_set = set(prev), set(cur)
    return FlowDiff(added=[f for f in cur if f not in prev_set],
                    removed=[f for f in prev if f not in cur_set])


class SnapshotStore:
    """Latest committed generation of flows per node.

    Each node has exactly one writer (the poller that first ingested for it);
    any thread may read. Generations are stored as tuples and swapped under
    the lock, so a reader sees either the old or the new generation whole.
    """

    def __init__(self):
        self.lock = threading.Lock()
        self._flows: Dict[str, Tuple[Flow, ...]] = {}
        self._owners: Dict[str, object] = {}
        self._generation: Dict[str, int] = {}
        self._updated: Dict[str, float] = {}
        self._errors: Dict[str, str] = {}
        self.listeners: List[FlowListener] = []

    def ingest(self, node: str, flows: Iterable[Flow], owner: Optional[object] = None) -> FlowDiff:
        owner = threading.get_ident() if owner is None else owner
        new_gen = tuple(flows)
        with self.lock:
            current_owner = self._owners.get(node)
            if current_owner is not None and current_owner != owner:
                raise OwnershipError(f"node {node!r} already has a writer")
            self._owners[node] = owner
            previous = self._flows.get(node, ())

        diff = diff_flows(previous, new_gen)
        self._emit(node, diff)

        with self.lock:
            self._flows[node] = new_gen
            self._generation[node] = self._generation.get(node, 0) + 1
            self._updated[node] = time.time()
            self._errors.pop(node, None)
        return diff

    def owner_of(self, node: str) -> Optional[object]:
        with self.lock:
            return self._owners.get(node)

    def forget(self, node: str, owner: Optional[object] = None) -> None:
        owner = threading.get_ident() if owner is None else owner
        with self.lock:
            if self._owners.get(node, owner) != owner:
                raise OwnershipError(f"node {node!r} belongs to another writer")
            for d in (self._flows, self._owners, self._generation, self._updated, self._errors):
                d.pop(node, None)

    def _emit(self, node: str, diff: FlowDiff) -> None:
        for kind, flows in (("added", diff.added), ("removed", diff.removed)):
            for f in flows:
                event_log.info("%s %s connection: %s", node, kind.capitalize(), f)
                for cb in list(self.listeners):
                    try:
                        cb(node, kind, f)
                    except Exception:
                        log.exception("flow listener failed for %s", node)

    def read(self, node: str) -> Tuple[Flow, ...]:
        with self.lock:
            return self._flows.get(node, ())

    def node_map(self) -> Dict[str, Tuple[Flow, ...]]:
        with self.lock:
            return dict(self._flows)

    def nodes(self) -> List[str]:
        with self.lock:
            return sorted(self._flows)

    def generation(self, node: str) -> int:
        with self.lock:
            return self._generation.get(node, 0)

    def last_updated(self, node: str) -> Optional[float]:
        with self.lock:
            return self._updated.get(node)

    def set_error(self, node: str, message: str) -> None:
        with self.lock:
            self._errors[node] = message

    def errors(self) -> Dict[str, str]:
        with self.lock:
            return dict(self._errors)
