from __future__ import annotations
import logging
import socket
from typing import List

import psutil

from ..config import STATES, UNKNOWN_STATE
from ..models import Flow
from ..utils.net import normalize_ip

log = logging.getLogger("kflow_live.local")

_STATE_MAP = {"SYN_RECV": "SYN_RECV", "FIN_WAIT1": "FIN_WAIT", "FIN_WAIT2": "FIN_WAIT"}

def _state(status: str) -> str:
    s = str(status or "").upper()
    s = _STATE_MAP.get(s, s)
    return s if s in STATES else UNKNOWN_STATE

def collect() -> List[Flow]:
    """Socket table of this host via psutil, for hosts without a conntrack table."""
    flows: List[Flow] = []
    try:
        conns = psutil.net_connections(kind='inet')
    except (psutil.AccessDenied, OSError) as e:
        log.warning("psutil.net_connections failed: %s", e)
        return flows
    for c in conns:
        if not c.laddr or not c.raddr:
            continue
        proto = 'tcp' if c.type == socket.SOCK_STREAM else 'udp' if c.type == socket.SOCK_DGRAM else None
        if proto is None:
            continue
        src = normalize_ip(c.laddr.ip if hasattr(c.laddr, 'ip') else c.laddr[0])
        dst = normalize_ip(c.raddr.ip if hasattr(c.raddr, 'ip') else c.raddr[0])
        if not src or not dst:
            continue
        sport = c.laddr.port if hasattr(c.laddr, 'port') else c.laddr[1]
        dport = c.raddr.port if hasattr(c.raddr, 'port') else c.raddr[1]
        flows.append(Flow(protocol=proto, src_addr=src, src_port=int(sport),
                          dst_addr=dst, dst_port=int(dport), state=_state(c.status)))
    return flows
