from __future__ import annotations
from dataclasses import dataclass
from pathlib import Path
import json
from typing import Dict, List, Optional

import yaml

from .config import FORWARD_BASE_PORT
from .utils.path import to_abs_path


@dataclass
class Source:
    """One remote daemon to poll: either a direct URL or a pod behind port-forward."""
    name: str
    url: Optional[str] = None
    pod: Optional[str] = None
    local_port: int = 0
    namespace: Optional[str] = None

    def __post_init__(self):
        if not self.url and not self.pod:
            raise ValueError(f"source {self.name!r} needs a url or a pod")
        if self.url and not self.url.rstrip('/').endswith('/connections'):
            self.url = self.url.rstrip('/') + '/connections'


def load_sources(path: Optional[str | Path]) -> list[Source]:
    if not path:
        return []
    p = to_abs_path(path)
    if not p or not p.exists():
        print(f"[warn] sources not found: {p}")
        return []
    txt = p.read_text(encoding="utf-8")
    data = yaml.safe_load(txt) if p.suffix in (".yaml", ".yml") else json.loads(txt)
    if isinstance(data, dict):
        data = data.get("sources") or []
    return [Source(**s) for s in (data or [])]

def url_sources(urls: Dict[str, str]) -> List[Source]:
    return [Source(name=name, url=url) for name, url in urls.items()]

def pod_sources(pods: List[str], namespace: Optional[str] = None,
                base_port: int = FORWARD_BASE_PORT, taken: int = 0) -> List[Source]:
    return [Source(name=pod, pod=pod, local_port=base_port + taken + i, namespace=namespace)
            for i, pod in enumerate(pods)]
