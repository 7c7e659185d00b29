from __future__ import annotations
import logging
import subprocess
import time
from typing import Callable, List, Optional

import requests

from ..config import DAEMON_LABEL, DAEMON_PORT, FETCH_ATTEMPTS, FETCH_BACKOFF, FETCH_TIMEOUT
from ..models import SnapshotExport
from ..sources import Source

log = logging.getLogger("kflow_live.remote")


class FetchError(Exception):
    """All attempts to fetch a source's snapshot failed."""

    def __init__(self, source: str, cause: Optional[BaseException] = None):
        self.source = source
        self.cause = cause
        super().__init__(f"failed to fetch {source}: {cause!r}")


class DiscoveryError(RuntimeError):
    pass


def fetch_url(url: str, timeout: float = FETCH_TIMEOUT, session: Optional[requests.Session] = None) -> SnapshotExport:
    http = session or requests
    resp = http.get(url, timeout=timeout)
    resp.raise_for_status()
    return SnapshotExport.from_dict(resp.json())

def fetch_with_retry(source: str, fetch: Callable[[], SnapshotExport],
                     attempts: int = FETCH_ATTEMPTS, backoff: float = FETCH_BACKOFF,
                     sleep: Callable[[float], None] = time.sleep) -> SnapshotExport:
    """Bounded attempts with a fixed backoff; one FetchError once they are used up."""
    last: Optional[BaseException] = None
    for i in range(max(attempts, 1)):
        try:
            return fetch()
        except (requests.RequestException, ValueError) as e:
            last = e
            log.debug("fetch %s attempt %d/%d failed: %s", source, i + 1, attempts, e)
            if i + 1 < attempts:
                sleep(backoff)
    raise FetchError(source, last)

def fetch_via_portforward(pod: str, local_port: int, namespace: Optional[str] = None,
                          attempts: int = FETCH_ATTEMPTS, backoff: float = FETCH_BACKOFF,
                          sleep: Callable[[float], None] = time.sleep) -> SnapshotExport:
    cmd = ["kubectl", "port-forward", f"pod/{pod}", f"{local_port}:{DAEMON_PORT}"]
    if namespace:
        cmd += ["-n", namespace]
    try:
        child = subprocess.Popen(cmd, stdout=subprocess.DEVNULL, stderr=subprocess.DEVNULL)
    except OSError as e:
        raise FetchError(pod, e) from e
    url = f"http://127.0.0.1:{local_port}/connections"
    try:
        # the tunnel needs a moment before it accepts connections
        sleep(backoff)
        return fetch_with_retry(pod, lambda: fetch_url(url), attempts, backoff, sleep)
    finally:
        child.terminate()
        try:
            child.wait(timeout=2)
        except subprocess.TimeoutExpired:
            child.kill()

def fetch_source(source: Source, **kw) -> SnapshotExport:
    if source.pod:
        return fetch_via_portforward(source.pod, source.local_port, source.namespace, **kw)
    return fetch_with_retry(source.name, lambda: fetch_url(source.url), **kw)

def discover_pods(namespace: Optional[str] = None, label: str = DAEMON_LABEL) -> List[str]:
    cmd = ["kubectl", "get", "pods", "-l", label, "-o", "jsonpath={.items[*].metadata.name}"]
    if namespace:
        cmd += ["-n", namespace]
    try:
        out = subprocess.run(cmd, capture_output=True, text=True, check=False)
    except OSError as e:
        raise DiscoveryError(f"kubectl not runnable: {e}") from e
    if out.returncode != 0:
        raise DiscoveryError(f"kubectl failed: {out.stderr.strip()}")
    return out.stdout.split()
