from __future__ import annotations
import argparse, socket, threading
from .config import CFG, DAEMON_PORT, init_cfg_from_args
from .collectors import collector_loop, kube_discovery_loop, start_pollers, KubeStatus
from .logging_config import setup_logging
from .resolver import HostnameCache, resolver_loop
from .sources import load_sources, url_sources
from .topology import SnapshotStore
from .web import create_app, create_daemon_app

def parse_args(argv=None):
    ap = argparse.ArgumentParser(prog='kflow', description='Live cross-node view of conntrack flows')
    ap.add_argument('--debug', action='store_true', help='debug logging (also enabled by KFLOW_DEBUG)')
    sub = ap.add_subparsers(dest='cmd', required=True)

    d = sub.add_parser('daemon', help='collect this node\'s flows and serve them on /connections')
    d.add_argument('--conntrack-path', type=str, default=None, help='defaults to $CONNTRACK_PATH or /proc/net/nf_conntrack')
    d.add_argument('--node-name', type=str, default=None, help='defaults to $KUBE_NODE_NAME')
    d.add_argument('--source', choices=('conntrack', 'psutil'), default='conntrack')
    d.add_argument('--interval', type=float, default=2.0)
    d.add_argument('--host', type=str, default='0.0.0.0')
    d.add_argument('--port', type=int, default=DAEMON_PORT)
    d.add_argument('--debug', action='store_true', default=argparse.SUPPRESS)

    v = sub.add_parser('dashboard', help='poll daemons and serve the live dashboard')
    v.add_argument('--sources', type=str, default=None, help='YAML/JSON list of {name, url}')
    v.add_argument('--url', action='append', default=[], help='NAME=URL of a daemon, repeatable')
    v.add_argument('--kube', action='store_true', help='discover daemon pods with kubectl and port-forward to them')
    v.add_argument('--namespace', '-n', type=str, default=None)
    v.add_argument('--local', action='store_true', help='also collect this host\'s conntrack table in-process')
    v.add_argument('--conntrack-path', type=str, default=None)
    v.add_argument('--interval', type=float, default=2.0, help='poll interval per source (s)')
    v.add_argument('--refresh', type=float, default=1.0, help='dashboard refresh (s)')
    v.add_argument('--resolve', action='store_true', help='reverse-resolve addresses to hostnames')
    v.add_argument('--dns-negative-ttl', type=float, default=60.0, help='seconds before a failed lookup is retried')
    v.add_argument('--host', type=str, default='0.0.0.0')
    v.add_argument('--port', type=int, default=8765)
    v.add_argument('--debug', action='store_true', default=argparse.SUPPRESS)
    return ap.parse_args(argv)

def _local_node(cfg: CFG) -> str:
    return cfg.node_name or socket.gethostname()

def run_daemon(cfg: CFG, args):
    store = SnapshotStore()
    node = _local_node(cfg)
    print(f"[*] kflow daemon starting; source={cfg.source} CONNTRACK_PATH={cfg.conntrack_path}")
    t = threading.Thread(target=collector_loop, args=(cfg, store, node, cfg.interval), daemon=True)
    t.start()
    app = create_daemon_app(store, node, cfg.node_name)
    print(f"[*] Listening on {args.host}:{args.port}")
    app.run(host=args.host, port=args.port, debug=False, use_reloader=False)

def run_dashboard(cfg: CFG, args):
    store = SnapshotStore()
    sources = load_sources(cfg.sources_file) + url_sources(cfg.urls)
    start_pollers(sources, store, cfg.interval)

    kube = None
    if cfg.kube_mode:
        kube = KubeStatus()
        threading.Thread(target=kube_discovery_loop, args=(kube, store, cfg.interval, cfg.namespace),
                         name='kube-discovery', daemon=True).start()
    if cfg.local:
        threading.Thread(target=collector_loop, args=(cfg, store, _local_node(cfg), cfg.interval),
                         name='local-collector', daemon=True).start()

    names = None
    if cfg.resolve:
        names = HostnameCache(negative_ttl=cfg.dns_negative_ttl)
        threading.Thread(target=resolver_loop, args=(store, names, cfg.interval),
                         name='resolver', daemon=True).start()

    if not sources and not cfg.kube_mode and not cfg.local:
        print("[warn] no sources configured (use --sources, --url, --kube or --local)")

    app = create_app(cfg, store, names=names, kube=kube)
    print(f"[*] Serving on http://localhost:{args.port}")
    app.run(host=args.host, port=args.port, debug=False, use_reloader=False)

def main(argv=None):
    args = parse_args(argv)
    cfg = init_cfg_from_args(args)
    setup_logging("DEBUG" if cfg.debug else "INFO")
    if args.cmd == 'daemon':
        run_daemon(cfg, args)
    else:
        run_dashboard(cfg, args)

if __name__ == '__main__':
    main()
