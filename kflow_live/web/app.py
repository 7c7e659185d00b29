from __future__ import annotations
from typing import Optional

import orjson
from flask import Flask, Response, current_app, jsonify, request

from ..collectors.loop import KubeStatus
from ..config import CFG, IP_VERSIONS, STATE_FILTERS
from ..models import SnapshotExport
from ..resolver import HostnameCache
from ..search import classify, filter_flows
from ..topology.graph_build import build_edges, pair_flows, snapshot_to_graph
from ..topology.snapshot import SnapshotStore
from .ui import render_html
from .view import DashboardView

def dumps(obj) -> str:
    return orjson.dumps(obj).decode()

def _json(obj, status: int = 200) -> Response:
    return Response(dumps(obj), status=status, mimetype="application/json")

def create_daemon_app(store: SnapshotStore, node: str, node_name: Optional[str]) -> Flask:
    """Per-node collector endpoint polled by the dashboard."""
    app = Flask(__name__)

    @app.get("/connections")
    def connections():
        export = SnapshotExport(node_name=node_name, connections=list(store.read(node)))
        return _json(export.to_dict())

    return app

def create_app(cfg: CFG, store: SnapshotStore, view: Optional[DashboardView] = None,
               names: Optional[HostnameCache] = None, kube: Optional[KubeStatus] = None) -> Flask:
    app = Flask(__name__)
    view = view or DashboardView()

    def _names():
        return names.names() if names else {}

    @app.get("/")
    def index():
        return Response(render_html(cfg.refresh), mimetype="text/html")

    @app.get("/api/graph")
    def api_graph():
        node_map = store.node_map()
        return _json(snapshot_to_graph(node_map, build_edges(node_map), store.errors()))

    @app.get("/api/view")
    def api_view():
        node_map = store.node_map()
        return _json(view.render(node_map, build_edges(node_map), store.errors(), _names()))

    @app.post("/api/key")
    def api_key():
        payload = request.get_json(silent=True) or {}
        key = str(payload.get("key") or "")
        node_map = store.node_map()
        edges = build_edges(node_map)
        if key:
            current_app.logger.debug("dashboard key: %s", key)
            view.handle_key(key, node_map, edges)
        return _json(view.render(node_map, edges, store.errors(), _names()))

    @app.get("/api/nodes")
    def api_nodes():
        node_map = store.node_map()
        errors = store.errors()
        return _json([{'name': n, 'count': len(node_map[n]), 'error': errors.get(n)} for n in sorted(node_map)])

    @app.get("/api/edges")
    def api_edges():
        return _json([e.to_dict() for e in build_edges(store.node_map())])

    @app.get("/api/flows")
    def api_flows():
        node_map = store.node_map()
        state = request.args.get("state", "none")
        ip_ver = request.args.get("ip", "both")
        if state not in STATE_FILTERS or ip_ver not in IP_VERSIONS:
            return _json({"error": f"state must be one of {STATE_FILTERS}, ip one of {IP_VERSIONS}"}, 400)
        pair = request.args.get("pair")
        node = request.args.get("node")
        if pair:
            a, sep, b = pair.partition(",")
            if not sep or not a or not b:
                return _json({"error": "pair must be 'a,b'"}, 400)
            flows = pair_flows(node_map, a, b)
        elif node:
            if node not in node_map:
                return _json({"error": f"unknown node {node!r}"}, 404)
            flows = list(node_map[node])
        else:
            flows = [f for n in sorted(node_map) for f in node_map[n]]
        q = request.args.get("q")
        out = filter_flows(flows, q, state, ip_ver, request.args.get("sort") == "state")
        return _json({"mode": classify(q).mode, "count": len(out), "flows": [f.to_dict() for f in out]})

    @app.get("/api/status")
    def api_status():
        nodes = store.nodes()
        no_pods = bool(kube and kube.discovered and not nodes)
        return jsonify({
            "nodes": len(nodes),
            "kube_mode": cfg.kube_mode,
            "no_pods": no_pods,
            "discovery_error": kube.error if kube else None,
            "errors": store.errors(),
            "status": view.status_text(),
        })

    return app
