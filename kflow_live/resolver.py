from __future__ import annotations
import logging
import socket
import threading
import time
from typing import Callable, Dict, Iterable, Optional

log = logging.getLogger("kflow_live.resolver")

Resolve = Callable[[str], Optional[str]]

def reverse_lookup(addr: str) -> Optional[str]:
    try:
        name = socket.gethostbyaddr(addr)[0]
    except OSError:
        return None
    return name or None


class HostnameCache:
    """Address -> hostname cache shared between the resolver task and readers.

    Resolved names are never evicted. Failed lookups are remembered for
    ``negative_ttl`` seconds and retried afterwards; ``negative_ttl=0``
    retries a failed address on every pass.
    """

    def __init__(self, negative_ttl: float = 60.0, clock: Callable[[], float] = time.monotonic):
        self.lock = threading.Lock()
        self.negative_ttl = negative_ttl
        self._clock = clock
        self._names: Dict[str, str] = {}
        self._failed: Dict[str, float] = {}

    def get(self, addr: str) -> Optional[str]:
        with self.lock:
            return self._names.get(addr)

    def display(self, addr: str) -> str:
        return self.get(addr) or addr

    def names(self) -> Dict[str, str]:
        with self.lock:
            return dict(self._names)

    def needs_lookup(self, addr: str) -> bool:
        with self.lock:
            if addr in self._names:
                return False
            failed_at = self._failed.get(addr)
        if failed_at is None:
            return True
        return self._clock() - failed_at >= self.negative_ttl

    def record(self, addr: str, name: Optional[str]) -> None:
        with self.lock:
            if name:
                self._names.setdefault(addr, name)
                self._failed.pop(addr, None)
            else:
                self._failed[addr] = self._clock()

    def resolve_all(self, addrs: Iterable[str], resolve: Resolve = reverse_lookup) -> int:
        done = 0
        for addr in sorted(set(addrs)):
            if not self.needs_lookup(addr):
                continue
            self.record(addr, resolve(addr))
            done += 1
        return done


def resolver_loop(store, cache: HostnameCache, interval: float, resolve: Resolve = reverse_lookup):
    while True:
        addrs = set()
        for flows in store.node_map().values():
            for f in flows:
                addrs.add(f.src_addr)
                addrs.add(f.dst_addr)
        n = cache.resolve_all(addrs, resolve)
        if n:
            log.debug("resolver pass: %d lookups, %d names cached", n, len(cache.names()))
        time.sleep(interval)
