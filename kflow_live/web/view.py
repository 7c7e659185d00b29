from __future__ import annotations
import threading
from typing import Dict, List, Mapping, Optional, Sequence, Tuple

from ..config import IP_VERSIONS, STATE_FILTERS
from ..models import Edge, Flow
from ..search import SearchInput, filter_flows, port_description, port_snippet
from ..topology.graph_build import pair_flows

FOCUS_ORDER = ("Nodes", "Shared", "Connections")

HELP_TEXT = (
    "Key bindings:\n\n"
    "Up/Down: move selection\n"
    "Left/Right or Tab: change focus pane\n"
    "Enter: open connections / toggle details\n"
    "p: start search (type term, Enter to apply, Esc to cancel)\n"
    "Esc: cancel typing / close help\n"
    "t: toggle sort by state\n"
    "f: cycle state filter (none -> ESTABLISHED -> TIME_WAIT)\n"
    "v: cycle IP version (both -> v4 -> v6)\n"
    "c: clear pair filter\n"
    "h: show this help"
)


class DashboardView:
    """Selection, focus, filter and search state of one dashboard session.

    Keys arrive from the browser one at a time; every call works on the
    node map and edge list of the refresh it was issued against.
    """

    def __init__(self):
        self.lock = threading.Lock()
        self.focus = "Nodes"
        self.selected = 0
        self.shared_selected = 0
        self.conn_selected = 0
        self.show_details = False
        self.pair_filter: Optional[Tuple[str, str]] = None
        self.state_filter = "none"
        self.ip_version = "both"
        self.sort_by_state = False
        self.search = SearchInput()
        self.help = False

    # -- flows shown in the connections pane --------------------------------
    def current_flows(self, node_map: Mapping[str, Sequence[Flow]]) -> List[Flow]:
        nodes = sorted(node_map)
        if self.pair_filter:
            flows = pair_flows(node_map, *self.pair_filter)
        elif nodes:
            flows = list(node_map[nodes[min(self.selected, len(nodes) - 1)]])
        else:
            flows = []
        return filter_flows(flows, self.search.term, self.state_filter, self.ip_version, self.sort_by_state)

    def status_text(self) -> str:
        with self.lock:
            return self._status_text()

    def _status_text(self) -> str:
        status = (f"Focus: {self.focus} | Filter: {self.state_filter} | IP: {self.ip_version}"
                  f" | Sort: {'state' if self.sort_by_state else 'none'}"
                  f" | Search: {self.search.term or '<none>'}")
        if self.search.typing:
            status += f" | typing: {self.search.buffer}"
        return status

    # -- input ---------------------------------------------------------------
    def handle_key(self, key: str, node_map: Mapping[str, Sequence[Flow]], edges: Sequence[Edge]) -> None:
        with self.lock:
            self._handle_key(key, node_map, edges)

    def _handle_key(self, key, node_map, edges):
        if self.help:
            if key in ("Enter", "Escape", "h"):
                self.help = False
            return
        if self.search.typing:
            if key == "Escape":
                self.search.cancel()
            elif key == "Enter":
                self.search.confirm()
                self.conn_selected = 0
            elif key == "Backspace":
                self.search.backspace()
            elif len(key) == 1:
                self.search.push(key)
            return

        n_nodes = len(node_map)
        if key == "ArrowDown":
            if self.focus == "Nodes":
                if n_nodes:
                    self.selected = min(self.selected + 1, n_nodes - 1)
                    self.show_details = False
                    self.conn_selected = 0
            elif self.focus == "Shared":
                if edges:
                    self.shared_selected = min(self.shared_selected + 1, len(edges) - 1)
            else:
                n = len(self.current_flows(node_map))
                if n:
                    self.conn_selected = min(self.conn_selected + 1, n - 1)
        elif key == "ArrowUp":
            if self.focus == "Nodes":
                self.selected = max(self.selected - 1, 0)
                self.show_details = False
                self.conn_selected = 0
            elif self.focus == "Shared":
                self.shared_selected = max(self.shared_selected - 1, 0)
            else:
                self.conn_selected = max(self.conn_selected - 1, 0)
        elif key == "Enter":
            if self.focus == "Shared":
                if edges and self.shared_selected < len(edges):
                    e = edges[self.shared_selected]
                    self.pair_filter = (e.a, e.b)
                    self.show_details = True
                    self.focus = "Connections"
                    self.conn_selected = 0
            elif self.focus == "Nodes":
                self.pair_filter = None
                self.show_details = True
                self.focus = "Connections"
                self.conn_selected = 0
            else:
                self.show_details = not self.show_details
                self.focus = "Connections" if self.show_details else "Nodes"
        elif key in ("ArrowRight", "Tab", "ArrowLeft"):
            prev = self.focus
            step = -1 if key == "ArrowLeft" else 1
            self.focus = FOCUS_ORDER[(FOCUS_ORDER.index(prev) + step) % len(FOCUS_ORDER)]
            if self.focus == "Connections":
                if step == 1:
                    self.show_details = True
                if prev == "Nodes":
                    self.pair_filter = None
        elif key == "t":
            self.sort_by_state = not self.sort_by_state
            self.conn_selected = 0
        elif key == "f":
            self.state_filter = STATE_FILTERS[(STATE_FILTERS.index(self.state_filter) + 1) % len(STATE_FILTERS)]
            self.conn_selected = 0
        elif key == "v":
            self.ip_version = IP_VERSIONS[(IP_VERSIONS.index(self.ip_version) + 1) % len(IP_VERSIONS)]
            self.conn_selected = 0
        elif key == "p":
            self.search.start()
        elif key == "h":
            self.help = True
        elif key == "c":
            self.pair_filter = None

    # -- output --------------------------------------------------------------
    def render(self, node_map: Mapping[str, Sequence[Flow]], edges: Sequence[Edge],
               errors: Optional[Mapping[str, str]] = None,
               names: Optional[Dict[str, str]] = None) -> dict:
        errors = errors or {}
        names = names or {}
        with self.lock:
            nodes = sorted(node_map)
            rows: List[dict] = []
            port_info = ""
            if self.show_details:
                flows = self.current_flows(node_map)
                if flows:
                    self.conn_selected = min(self.conn_selected, len(flows) - 1)
                    port_info = port_snippet(flows[self.conn_selected].dst_port)
                for f in flows:
                    rows.append({
                        'proto': f.protocol,
                        'src': f"{names.get(f.src_addr, f.src_addr)}:{f.src_port}",
                        'dst': f"{names.get(f.dst_addr, f.dst_addr)}:{f.dst_port}",
                        'state': f.state,
                        'port_info': port_description(f.dst_port),
                        'throughput': f.throughput,
                    })
            return {
                'nodes': [{'name': n, 'count': len(node_map[n]), 'error': errors.get(n)} for n in nodes],
                'selected': min(self.selected, len(nodes) - 1) if nodes else None,
                'shared': [dict(e.to_dict(), label=f"{e.a} <-> {e.b} ({e.count}) [{e.sample_addr}]") for e in edges],
                'shared_selected': min(self.shared_selected, len(edges) - 1) if edges else None,
                'focus': self.focus,
                'show_details': self.show_details,
                'pair_filter': list(self.pair_filter) if self.pair_filter else None,
                'title': "Connections (sorted by state)" if self.sort_by_state else "Connections",
                'connections': rows,
                'conn_selected': self.conn_selected if rows else None,
                'port_info': port_info,
                'status': self._status_text(),
                'help': HELP_TEXT if self.help else None,
            }
