from __future__ import annotations
import logging
import threading
import time
from dataclasses import dataclass, field
from typing import Callable, Dict, Iterable, List, Optional

from ..config import CFG
from ..models import Flow, SnapshotExport
from ..sources import Source, pod_sources
from ..topology.snapshot import OwnershipError, SnapshotStore
from .conntrack import read_conntrack
from .local import collect as psutil_collect
from .remote import DiscoveryError, FetchError, discover_pods, fetch_source

log = logging.getLogger("kflow_live.loop")

def derive_throughput(flows: Iterable[Flow], previous: Iterable[Flow], elapsed: float) -> List[Flow]:
    """Bytes/s per 5-tuple against the previous generation; None when either counter is missing."""
    prev_bytes: Dict[tuple, int] = {}
    for p in previous:
        if p.byte_count is not None:
            prev_bytes.setdefault(p.tuple_key, p.byte_count)
    out: List[Flow] = []
    for f in flows:
        before = prev_bytes.get(f.tuple_key)
        if f.byte_count is None or before is None or elapsed <= 0:
            out.append(f)
            continue
        out.append(f.with_throughput(max(f.byte_count - before, 0) / elapsed))
    return out

def collect_local(cfg: CFG) -> List[Flow]:
    if cfg.source == 'psutil':
        return psutil_collect()
    return read_conntrack(cfg.conntrack_path, cfg.debug)

def collector_loop(cfg: CFG, store: SnapshotStore, node: str, interval: float):
    last: Optional[float] = None
    while True:
        now = time.monotonic()
        flows = collect_local(cfg)
        if last is not None:
            flows = derive_throughput(flows, store.read(node), now - last)
        try:
            store.ingest(node, flows)
        except OwnershipError as e:
            log.error("local collector: %s", e)
        last = now
        time.sleep(interval)


def poll_source_once(source: Source, store: SnapshotStore, node_key: str,
                     fetch: Callable[[Source], SnapshotExport] = fetch_source) -> str:
    """One poll cycle for a remote source; returns the node name it is now stored under."""
    try:
        export = fetch(source)
    except FetchError as e:
        log.warning("%s", e)
        store.ingest(node_key, [])
        store.set_error(node_key, str(e))
        return node_key
    name = export.node_name or source.name
    if name != node_key:
        holder = store.owner_of(name)
        if holder is not None and holder != threading.get_ident():
            msg = f"{source.name} reports node {name!r}, which another source already provides"
            log.warning("%s", msg)
            store.ingest(node_key, [])
            store.set_error(node_key, msg)
            return node_key
        store.forget(node_key)
        node_key = name
    store.ingest(node_key, export.connections)
    return node_key

def remote_poll_loop(source: Source, store: SnapshotStore, interval: float,
                     fetch: Callable[[Source], SnapshotExport] = fetch_source):
    node_key = source.name
    while True:
        try:
            node_key = poll_source_once(source, store, node_key, fetch)
        except OwnershipError as e:
            log.error("source %s: %s", source.name, e)
        time.sleep(interval)

def start_pollers(sources: Iterable[Source], store: SnapshotStore, interval: float) -> List[threading.Thread]:
    threads = []
    for s in sources:
        t = threading.Thread(target=remote_poll_loop, args=(s, store, interval),
                             name=f"poll-{s.name}", daemon=True)
        t.start()
        threads.append(t)
    return threads


@dataclass
class KubeStatus:
    discovered: bool = False
    pods: List[str] = field(default_factory=list)
    error: Optional[str] = None

def discover_once(status: KubeStatus, store: SnapshotStore, interval: float, namespace: Optional[str] = None,
                  discover: Callable[..., List[str]] = discover_pods,
                  start: Callable[..., list] = start_pollers) -> List[Source]:
    try:
        pods = discover(namespace)
    except DiscoveryError as e:
        log.warning("pod discovery failed: %s", e)
        status.error = str(e)
        status.discovered = True
        return []
    new = [p for p in pods if p not in status.pods]
    sources = pod_sources(new, namespace, taken=len(status.pods))
    status.pods = status.pods + new
    status.error = None
    status.discovered = True
    if sources:
        log.info("discovered %d new daemon pod(s): %s", len(sources), ", ".join(new))
        start(sources, store, interval)
    return sources

def kube_discovery_loop(status: KubeStatus, store: SnapshotStore, interval: float,
                        namespace: Optional[str] = None, rediscover: float = 30.0):
    while True:
        discover_once(status, store, interval, namespace)
        time.sleep(rediscover)
