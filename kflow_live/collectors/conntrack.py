from __future__ import annotations
import logging
from typing import Iterable, List, Optional

from ..config import PROTOCOLS, STATES, UNKNOWN_STATE
from ..models import Flow
from ..utils.net import normalize_ip, parse_port

log = logging.getLogger("kflow_live.conntrack")

_ADDR_KEYS = {"src=": "src_addr", "dst=": "dst_addr"}
_PORT_KEYS = {"sport=": "src_port", "dport=": "dst_port"}
_REQUIRED = ("protocol", "src_addr", "dst_addr", "src_port", "dst_port")
_MISSING = object()

def parse_conntrack_line(line: str) -> Optional[Flow]:
    """Parse one conntrack line into a Flow, or return None.

    Tokens are order independent and each slot is filled by its first
    occurrence only, so the original-direction tuple wins over the reply
    tuple that follows it. A first occurrence that fails to parse poisons
    the slot and the line is rejected.
    """
    slots: dict = {}
    for tok in line.split():
        if tok in PROTOCOLS:
            slots.setdefault("protocol", tok)
        elif tok in STATES:
            slots.setdefault("state", tok)
        elif tok.startswith(("src=", "dst=")):
            name = _ADDR_KEYS[tok[:4]]
            if name not in slots:
                slots[name] = normalize_ip(tok[4:]) or _MISSING
        elif tok.startswith(("sport=", "dport=")):
            name = _PORT_KEYS[tok[:6]]
            if name not in slots:
                port = parse_port(tok[6:])
                slots[name] = _MISSING if port is None else port
        elif tok.startswith("bytes=") and "byte_count" not in slots:
            v = tok[6:]
            slots["byte_count"] = int(v) if v.isascii() and v.isdigit() else None

    if any(slots.get(k, _MISSING) is _MISSING for k in _REQUIRED):
        return None
    return Flow(
        protocol=slots["protocol"],
        src_addr=slots["src_addr"],
        src_port=slots["src_port"],
        dst_addr=slots["dst_addr"],
        dst_port=slots["dst_port"],
        state=slots.get("state", UNKNOWN_STATE),
        byte_count=slots.get("byte_count"),
    )

def parse_lines(lines: Iterable[str]) -> List[Flow]:
    flows: List[Flow] = []
    for ln in lines:
        f = parse_conntrack_line(ln)
        if f is not None:
            flows.append(f)
    return flows

def read_conntrack(path: str, debug: bool = False) -> List[Flow]:
    """Read the whole table; an unreadable file yields no flows for this cycle."""
    try:
        with open(path, "r", encoding="utf-8", errors="replace") as fh:
            lines = fh.read().splitlines()
    except OSError as e:
        log.warning("failed to open conntrack file %s: %s", path, e)
        return []
    if debug:
        log.debug("read %d lines from %s", len(lines), path)
        for i, ln in enumerate(lines[:5]):
            log.debug("  [%d] %s", i, ln)
    return parse_lines(lines)
