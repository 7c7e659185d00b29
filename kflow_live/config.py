from __future__ import annotations
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List, Optional
from .utils.path import to_abs_path

@dataclass
class CFG:
    conntrack_path: str = "/proc/net/nf_conntrack"
    node_name: Optional[str] = None
    source: str = "conntrack"
    interval: float = 2.0
    refresh: float = 1.0
    debug: bool = False
    kube_mode: bool = False
    namespace: Optional[str] = None
    local: bool = False
    sources_file: Optional[Path] = None
    urls: Dict[str, str] = field(default_factory=dict)
    resolve: bool = False
    dns_negative_ttl: float = 60.0

DEFAULT_CONNTRACK_PATH = "/proc/net/nf_conntrack"
DAEMON_PORT = 8080
DAEMON_LABEL = "app=kflow-daemon"
FORWARD_BASE_PORT = 18080

FETCH_ATTEMPTS = 6
FETCH_BACKOFF = 0.3
FETCH_TIMEOUT = 3.0

PROTOCOLS = ("tcp", "udp")
STATES = ("ESTABLISHED", "SYN_SENT", "SYN_RECV", "FIN_WAIT", "TIME_WAIT")
UNKNOWN_STATE = "UNKNOWN"

# short names shown/searched in the dashboard
PORT_MAPPINGS = [
    (1, "TCPMUX"), (5, "RJE"), (7, "ECHO"), (18, "MSP"),
    (20, "FTP-data"), (21, "FTP"), (22, "SSH"), (23, "TELNET"),
    (25, "SMTP"), (37, "TIME"), (42, "NAMESERV"), (43, "WHOIS"),
    (49, "TACACS"), (53, "DNS"), (69, "TFTP"), (70, "GOPHER"),
    (79, "FINGER"), (80, "HTTP"), (103, "X400"), (108, "SNA_GATEWAY"),
    (109, "POP2"), (110, "POP3"), (115, "SFTP"), (118, "SQLSERV"),
    (119, "NNTP"), (137, "NETBIOS-NS"), (139, "NETBIOS-SS"), (143, "IMAP"),
    (150, "NETBIOS-SERVICE"), (156, "SQLSRV"), (161, "SNMP"), (162, "SNMPTRAP"),
    (179, "BGP"), (190, "GACP"), (194, "IRC"), (197, "DLS"),
    (389, "LDAP"), (396, "NOVELL-IP"), (443, "HTTPS"), (444, "SNPP"),
    (445, "MICROSOFT-DS"), (458, "QUICKTIME"), (546, "DHCP-CLIENT"), (547, "DHCP-SERVER"),
    (563, "SNEWS"), (569, "MSN"), (1080, "SOCKS"), (2379, "ETCD"),
    (3306, "MYSQL"), (5432, "POSTGRES"), (6379, "REDIS"),
    (10250, "KUBELET"), (10255, "KUBELET-READ"),
]

PORT_DESCRIPTIONS = {
    1: "TCP Port Service Multiplexer (TCPMUX)",
    5: "Remote Job Entry (RJE)",
    7: "ECHO",
    18: "Message Send Protocol (MSP)",
    20: "FTP - Data",
    21: "FTP - Control",
    22: "SSH Remote Login Protocol",
    23: "Telnet",
    25: "Simple Mail Transfer Protocol (SMTP)",
    29: "MSG ICP",
    37: "Time",
    42: "Host Name Server (Nameserv)",
    43: "WhoIs",
    49: "Login Host Protocol (Login)",
    53: "Domain Name System (DNS)",
    69: "Trivial File Transfer Protocol (TFTP)",
    70: "Gopher Services",
    79: "Finger",
    80: "HTTP",
    103: "X.400 Standard",
    108: "SNA Gateway Access Server",
    109: "POP2",
    110: "POP3",
    115: "Simple File Transfer Protocol (SFTP)",
    118: "SQL Services",
    119: "Newsgroup (NNTP)",
    137: "NetBIOS Name Service",
    139: "NetBIOS Datagram Service",
    143: "Interim Mail Access Protocol (IMAP)",
    150: "NetBIOS Session Service",
    156: "SQL Server",
    161: "SNMP",
    162: "SNMP",
    179: "Border Gateway Protocol (BGP)",
    190: "Gateway Access Control Protocol (GACP)",
    194: "Internet Relay Chat (IRC)",
    197: "Directory Location Service (DLS)",
    389: "Lightweight Directory Access Protocol (LDAP)",
    396: "Novell Netware over IP",
    443: "HTTPS",
    444: "Simple Network Paging Protocol (SNPP)",
    445: "Microsoft-DS",
    458: "Apple QuickTime",
    546: "DHCP Client",
    547: "DHCP Server",
    563: "SNEWS",
    569: "MSN",
    1080: "Socks",
    2379: "etcd",
    3306: "MySQL",
    5432: "Postgres",
    6379: "Redis",
    10250: "kubelet",
    10255: "kubelet(read)",
}

STATE_FILTERS = ("none", "ESTABLISHED", "TIME_WAIT")
IP_VERSIONS = ("both", "v4", "v6")

NODE_COLOR = "#6aa84f"
NODE_ERROR_COLOR = "#e06666"
EDGE_COLOR = "#3489eb"

def _env_flag(name: str) -> bool:
    return os.environ.get(name) is not None

def _parse_urls(items: Optional[List[str]]) -> Dict[str, str]:
    urls: Dict[str, str] = {}
    for item in items or []:
        name, sep, url = item.partition("=")
        if not sep or not name.strip() or not url.strip():
            print(f"[warn] --url '{item}' is not NAME=URL, ignored")
            continue
        urls[name.strip()] = url.strip()
    return urls

def init_cfg_from_args(args) -> CFG:
    cfg = CFG()
    cfg.conntrack_path = (getattr(args, "conntrack_path", None)
                          or os.environ.get("CONNTRACK_PATH")
                          or DEFAULT_CONNTRACK_PATH)
    cfg.node_name = getattr(args, "node_name", None) or os.environ.get("KUBE_NODE_NAME")
    cfg.source = getattr(args, "source", None) or "conntrack"
    cfg.interval = float(getattr(args, "interval", 2.0))
    cfg.refresh = float(getattr(args, "refresh", 1.0))
    cfg.debug = bool(getattr(args, "debug", False)) or _env_flag("KFLOW_DEBUG")
    cfg.kube_mode = bool(getattr(args, "kube", False))
    cfg.namespace = getattr(args, "namespace", None)
    cfg.local = bool(getattr(args, "local", False))
    cfg.urls = _parse_urls(getattr(args, "url", None))
    cfg.resolve = bool(getattr(args, "resolve", False))
    cfg.dns_negative_ttl = float(getattr(args, "dns_negative_ttl", 60.0))
    if getattr(args, "sources", None):
        p = to_abs_path(args.sources)
        if p and p.exists():
            cfg.sources_file = p
            print(f"[*] sources: {p}")
        else:
            print(f"[warn] --sources '{args.sources}' not found")
    return cfg
