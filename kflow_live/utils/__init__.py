from .net import normalize_ip, parse_port, ip_version
from .path import to_abs_path
