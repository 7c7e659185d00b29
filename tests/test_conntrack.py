from kflow_live.collectors.conntrack import parse_conntrack_line, parse_lines, read_conntrack
from kflow_live.models import Flow

REAL_LINE = (
    "ipv4     2 tcp      6 431999 ESTABLISHED src=10.244.1.5 dst=10.96.0.1 sport=51234 dport=443 "
    "packets=12 bytes=3456 src=10.96.0.1 dst=10.244.1.5 sport=443 dport=51234 packets=10 bytes=7890 "
    "[ASSURED] mark=0 zone=0 use=2"
)


def test_first_occurrence_takes_original_direction():
    line = ("tcp src=10.0.0.1 dst=10.0.0.2 sport=4000 dport=80 "
            "src=10.0.0.2 dst=10.0.0.1 sport=80 dport=4000 ESTABLISHED")
    f = parse_conntrack_line(line)
    assert f == Flow("tcp", "10.0.0.1", 4000, "10.0.0.2", 80, "ESTABLISHED")


def test_real_conntrack_line():
    f = parse_conntrack_line(REAL_LINE)
    assert f.protocol == "tcp"
    assert (f.src_addr, f.src_port, f.dst_addr, f.dst_port) == ("10.244.1.5", 51234, "10.96.0.1", 443)
    assert f.state == "ESTABLISHED"
    assert f.byte_count == 3456
    assert f.throughput is None


def test_token_order_does_not_matter():
    a = parse_conntrack_line("tcp src=1.1.1.1 dst=2.2.2.2 sport=1 dport=2 SYN_SENT")
    b = parse_conntrack_line("SYN_SENT dport=2 sport=1 dst=2.2.2.2 src=1.1.1.1 tcp")
    assert a == b


def test_state_defaults_to_unknown():
    f = parse_conntrack_line("ipv4 2 udp 17 29 src=10.0.0.1 dst=10.0.0.53 sport=5353 dport=53")
    assert f.protocol == "udp"
    assert f.state == "UNKNOWN"


def test_only_first_state_token_counts():
    f = parse_conntrack_line("tcp TIME_WAIT src=1.1.1.1 dst=2.2.2.2 sport=1 dport=2 ESTABLISHED")
    assert f.state == "TIME_WAIT"


def test_ipv6_addresses_are_normalized():
    f = parse_conntrack_line("ipv6 10 tcp 6 300 ESTABLISHED src=FD00:0:0::1 dst=fd00::0002 sport=1 dport=2")
    assert f.src_addr == "fd00::1"
    assert f.dst_addr == "fd00::2"


def test_missing_required_field_is_rejected():
    assert parse_conntrack_line("tcp src=1.1.1.1 dst=2.2.2.2 sport=1") is None
    assert parse_conntrack_line("src=1.1.1.1 dst=2.2.2.2 sport=1 dport=2") is None


def test_bad_address_or_port_is_rejected():
    assert parse_conntrack_line("tcp src=1.1.1 dst=2.2.2.2 sport=1 dport=2") is None
    assert parse_conntrack_line("tcp src=1.1.1.1 dst=2.2.2.2 sport=70000 dport=2") is None
    assert parse_conntrack_line("tcp src=1.1.1.1 dst=2.2.2.2 sport=-1 dport=2") is None


def test_bad_first_occurrence_is_not_rescued_by_reply_tuple():
    line = "tcp src=bogus dst=2.2.2.2 sport=1 dport=2 src=2.2.2.2 dst=1.1.1.1 sport=2 dport=1"
    assert parse_conntrack_line(line) is None


def test_header_and_blank_lines_are_skipped():
    lines = ["", "entries 42", "# header", REAL_LINE, "icmp src=1.1.1.1 dst=2.2.2.2 type=8 code=0 id=1"]
    flows = parse_lines(lines)
    assert len(flows) == 1


def test_parse_is_deterministic():
    assert parse_conntrack_line(REAL_LINE) == parse_conntrack_line(REAL_LINE)


def test_read_conntrack_from_file(tmp_path):
    p = tmp_path / "nf_conntrack"
    p.write_text("garbage line\n" + REAL_LINE + "\n", encoding="utf-8")
    flows = read_conntrack(str(p))
    assert [f.src_addr for f in flows] == ["10.244.1.5"]


def test_unreadable_source_yields_empty(tmp_path, caplog):
    flows = read_conntrack(str(tmp_path / "missing"))
    assert flows == []
    assert any("failed to open conntrack file" in r.message for r in caplog.records)
