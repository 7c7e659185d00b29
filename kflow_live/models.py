from __future__ import annotations
from dataclasses import dataclass, field
from typing import Any, List, Optional, Tuple

from .utils.net import normalize_ip, parse_port

# legacy wire keys -> current field names
_ALIASES = {
    "proto": "protocol",
    "src_ip": "src_addr",
    "dst_ip": "dst_addr",
    "bytes": "byte_count",
    "throughput_bytes_per_sec": "throughput",
}

def _wire_port(value: Any) -> int:
    if isinstance(value, bool):
        port = None
    elif isinstance(value, int):
        port = value if 0 <= value <= 0xFFFF else None
    elif isinstance(value, str):
        port = parse_port(value.strip())
    else:
        port = None
    if port is None:
        raise ValueError(f"invalid port {value!r}")
    return port

def _wire_addr(value: Any) -> str:
    addr = normalize_ip(value) if isinstance(value, str) else None
    if addr is None:
        raise ValueError(f"invalid address {value!r}")
    return addr

@dataclass(frozen=True)
class Flow:
    """One observed connection. Every field takes part in equality and hashing."""
    protocol: str
    src_addr: str
    src_port: int
    dst_addr: str
    dst_port: int
    state: str = "UNKNOWN"
    byte_count: Optional[int] = None
    throughput: Optional[float] = None

    @property
    def tuple_key(self) -> Tuple[str, str, int, str, int]:
        return (self.protocol, self.src_addr, self.src_port, self.dst_addr, self.dst_port)

    @property
    def endpoints(self) -> Tuple[str, str]:
        return (self.src_addr, self.dst_addr)

    def to_dict(self) -> dict:
        return {
            "protocol": self.protocol,
            "src_addr": self.src_addr,
            "src_port": self.src_port,
            "dst_addr": self.dst_addr,
            "dst_port": self.dst_port,
            "state": self.state,
            "byte_count": self.byte_count,
            "throughput": self.throughput,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "Flow":
        if not isinstance(data, dict):
            raise ValueError("flow record must be a JSON object")
        d = {_ALIASES.get(k, k): v for k, v in data.items()}
        try:
            byte_count = d.get("byte_count")
            throughput = d.get("throughput")
            return cls(
                protocol=str(d["protocol"]),
                src_addr=_wire_addr(d["src_addr"]),
                src_port=_wire_port(d["src_port"]),
                dst_addr=_wire_addr(d["dst_addr"]),
                dst_port=_wire_port(d["dst_port"]),
                state=str(d.get("state") or "UNKNOWN"),
                byte_count=int(byte_count) if byte_count is not None else None,
                throughput=float(throughput) if throughput is not None else None,
            )
        except KeyError as e:
            raise ValueError(f"flow record missing field {e.args[0]!r}") from e
        except (TypeError, ValueError, OverflowError) as e:
            raise ValueError(f"malformed flow record: {e}") from e

    def with_throughput(self, throughput: Optional[float]) -> "Flow":
        return Flow(self.protocol, self.src_addr, self.src_port, self.dst_addr,
                    self.dst_port, self.state, self.byte_count, throughput)


@dataclass(frozen=True)
class Edge:
    a: str
    b: str
    count: int
    sample_addr: str

    @property
    def key(self) -> Tuple[str, str]:
        return (self.a, self.b)

    def to_dict(self) -> dict:
        return {"a": self.a, "b": self.b, "count": self.count, "sample_addr": self.sample_addr}


@dataclass
class SnapshotExport:
    node_name: Optional[str] = None
    connections: List[Flow] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {"node_name": self.node_name, "connections": [f.to_dict() for f in self.connections]}

    @classmethod
    def from_dict(cls, data: Any) -> "SnapshotExport":
        if not isinstance(data, dict):
            raise ValueError("snapshot export must be a JSON object")
        conns = data.get("connections")
        if not isinstance(conns, list):
            raise ValueError("snapshot export has no 'connections' list")
        name = data.get("node_name")
        return cls(node_name=str(name) if name else None,
                   connections=[Flow.from_dict(c) for c in conns])
