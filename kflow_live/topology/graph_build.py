from __future__ import annotations
from typing import Dict, Iterable, List, Mapping, Optional, Set

from ..config import EDGE_COLOR, NODE_COLOR, NODE_ERROR_COLOR
from ..models import Edge, Flow

NodeMap = Mapping[str, Iterable[Flow]]

def endpoint_sets(node_map: NodeMap) -> Dict[str, Set[str]]:
    sets: Dict[str, Set[str]] = {}
    for node, flows in node_map.items():
        s: Set[str] = set()
        for f in flows:
            s.add(f.src_addr)
            s.add(f.dst_addr)
        sets[node] = s
    return sets

def _count_into(flows: Iterable[Flow], other: Set[str]) -> tuple[int, Optional[str]]:
    count = 0
    sample: Optional[str] = None
    for f in flows:
        if f.src_addr in other or f.dst_addr in other:
            count += 1
            if sample is None:
                sample = f.src_addr if f.src_addr in other else f.dst_addr
    return count, sample

def build_edges(node_map: NodeMap) -> List[Edge]:
    """Undirected shared-endpoint edges between nodes, recomputed from scratch.

    The key is the name-sorted pair, so (a, b) and (b, a) collapse into one
    edge. count = flows of a touching b's endpoint set + flows of b touching
    a's. Ranking is count descending, then node names ascending.
    """
    node_map = {n: tuple(fl) for n, fl in node_map.items()}
    sets = endpoint_sets(node_map)
    names = sorted(node_map)
    edges: List[Edge] = []
    for i, a in enumerate(names):
        for b in names[i + 1:]:
            if sets[a].isdisjoint(sets[b]):
                continue
            count_a, sample = _count_into(node_map[a], sets[b])
            count_b, sample_b = _count_into(node_map[b], sets[a])
            edges.append(Edge(a=a, b=b, count=count_a + count_b, sample_addr=sample or sample_b or ""))
    edges.sort(key=lambda e: (-e.count, e.a, e.b))
    return edges

def pair_flows(node_map: NodeMap, a: str, b: str) -> List[Flow]:
    """Flows of either node of a pair whose endpoints fall in the other's endpoint set."""
    node_map = {n: tuple(fl) for n, fl in node_map.items()}
    sets = endpoint_sets(node_map)
    out: List[Flow] = []
    for mine, other in ((a, b), (b, a)):
        other_ips = sets.get(other)
        if not other_ips:
            continue
        out.extend(f for f in node_map.get(mine, ()) if f.src_addr in other_ips or f.dst_addr in other_ips)
    return out

def snapshot_to_graph(node_map: NodeMap, edges: List[Edge],
                      errors: Optional[Mapping[str, str]] = None) -> dict:
    errors = errors or {}
    nodes = []
    for name in sorted(node_map):
        n = len(tuple(node_map[name]))
        err = errors.get(name)
        nodes.append({
            'id': name,
            'label': f"{name}\n{n} flows",
            'title': err or f"{n} current flows",
            'color': NODE_ERROR_COLOR if err else NODE_COLOR,
            'shape': 'dot',
            'value': max(n, 1),
        })
    vis_edges = []
    for e in edges:
        vis_edges.append({
            'id': f"{e.a}<->{e.b}",
            'from': e.a, 'to': e.b,
            'label': str(e.count),
            'title': f"{e.a} ↔ {e.b} | shared endpoints: {e.count} | e.g. {e.sample_addr}",
            'color': EDGE_COLOR,
            'value': e.count,
        })
    return {'nodes': nodes, 'edges': vis_edges}
