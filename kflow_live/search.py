"""Free-text flow search and the filters it composes with.

A query is classified once into a single mode and the resulting predicate is
applied uniformly to every flow:

  1. ``"22"``       exact port on either endpoint (0..65535 only)
  2. ``"10.0.0."``  address substring (query contains ``.`` or ``:``)
  3. ``"ssh"``      service name from the well-known port table
  4. anything else  substring of either port's description

An empty query matches everything.
"""
from __future__ import annotations
import re
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Callable, FrozenSet, Iterable, List, Mapping, Optional

from .config import IP_VERSIONS, PORT_DESCRIPTIONS, PORT_MAPPINGS, STATE_FILTERS
from .models import Flow
from .utils.net import ip_version, parse_port

MODE_ALL = "all"
MODE_PORT = "port"
MODE_ADDRESS = "address"
MODE_SERVICE = "service"
MODE_DESCRIPTION = "description"

_WORD_SPLIT = re.compile(r"[^0-9A-Za-z]+")

def build_name_index(mappings=PORT_MAPPINGS) -> Mapping[str, FrozenSet[int]]:
    index: dict[str, set[int]] = {}
    for port, name in mappings:
        index.setdefault(name.lower(), set()).add(port)
        # also the individual words, so "kubelet" finds KUBELET-READ
        for word in _WORD_SPLIT.split(name):
            if word:
                index.setdefault(word.lower(), set()).add(port)
    return MappingProxyType({k: frozenset(v) for k, v in index.items()})

NAME_INDEX = build_name_index()
_SHORT_NAMES = dict(PORT_MAPPINGS)

def port_description(port: int) -> str:
    desc = PORT_DESCRIPTIONS.get(port)
    if desc:
        return desc
    if port <= 1023:
        return f"Well-known ({port})"
    if port <= 49151:
        return f"Registered ({port})"
    return f"Dynamic/Private ({port})"

def port_snippet(port: int) -> str:
    name = _SHORT_NAMES.get(port)
    return f"{port} ({name})" if name else port_description(port)


@dataclass(frozen=True)
class SearchPredicate:
    mode: str
    term: str = ""
    ports: FrozenSet[int] = field(default_factory=frozenset)

    def __call__(self, f: Flow) -> bool:
        if self.mode == MODE_ALL:
            return True
        if self.mode in (MODE_PORT, MODE_SERVICE):
            return f.src_port in self.ports or f.dst_port in self.ports
        if self.mode == MODE_ADDRESS:
            return self.term in f.src_addr.lower() or self.term in f.dst_addr.lower()
        return (self.term in port_description(f.src_port).lower()
                or self.term in port_description(f.dst_port).lower())


def classify(query: Optional[str], index: Mapping[str, FrozenSet[int]] = NAME_INDEX) -> SearchPredicate:
    s = (query or "").strip().lower()
    if not s:
        return SearchPredicate(MODE_ALL)
    port = parse_port(s)
    if port is not None:
        return SearchPredicate(MODE_PORT, s, frozenset((port,)))
    if "." in s or ":" in s:
        return SearchPredicate(MODE_ADDRESS, s)
    ports = index.get(s)
    if ports is not None:
        return SearchPredicate(MODE_SERVICE, s, frozenset(ports))
    return SearchPredicate(MODE_DESCRIPTION, s)


def state_filter(mode: str) -> Callable[[Flow], bool]:
    if mode not in STATE_FILTERS:
        raise ValueError(f"unknown state filter {mode!r}")
    if mode == "none":
        return lambda f: True
    if mode == "TIME_WAIT":
        return lambda f: f.state.upper().replace("-", "_") == "TIME_WAIT"
    return lambda f: f.state.upper() == mode

def ip_version_filter(mode: str) -> Callable[[Flow], bool]:
    if mode not in IP_VERSIONS:
        raise ValueError(f"unknown IP version filter {mode!r}")
    if mode == "both":
        return lambda f: True
    want = 4 if mode == "v4" else 6
    return lambda f: ip_version(f.src_addr) == want and ip_version(f.dst_addr) == want

def filter_flows(flows: Iterable[Flow], query: Optional[str] = None, state: str = "none",
                 ip_ver: str = "both", sort_by_state: bool = False) -> List[Flow]:
    preds = (classify(query), state_filter(state), ip_version_filter(ip_ver))
    out = [f for f in flows if all(p(f) for p in preds)]
    if sort_by_state:
        out.sort(key=lambda f: f.state)
    return out


class SearchInput:
    """Typing mode for interactive search entry.

    idle --start()--> typing --confirm()--> idle (buffer becomes the query,
    or clears it when blank); typing --cancel()--> idle (query untouched).
    """

    def __init__(self):
        self.typing = False
        self.buffer = ""
        self.term: Optional[str] = None

    def start(self) -> None:
        self.typing = True
        self.buffer = ""

    def push(self, ch: str) -> None:
        if self.typing:
            self.buffer += ch

    def backspace(self) -> None:
        if self.typing:
            self.buffer = self.buffer[:-1]

    def confirm(self) -> None:
        if not self.typing:
            return
        self.term = self.buffer.strip() or None
        self.typing = False

    def cancel(self) -> None:
        self.typing = False
        self.buffer = ""
