from __future__ import annotations
import ipaddress
from typing import Optional

def normalize_ip(text: str) -> Optional[str]:
    """Canonical textual form of an IPv4/IPv6 address, or None if it does not parse."""
    try:
        return str(ipaddress.ip_address(text.strip()))
    except ValueError:
        return None

def parse_port(text: str) -> Optional[int]:
    digits = text[1:] if text.startswith("+") else text
    if not digits.isascii() or not digits.isdigit():
        return None
    v = int(digits)
    return v if 0 <= v <= 0xFFFF else None

def ip_version(addr: str) -> int:
    try:
        return ipaddress.ip_address(addr).version
    except ValueError:
        return 6 if ':' in addr else 4
