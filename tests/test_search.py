import pytest

from kflow_live.search import (
    MODE_ADDRESS, MODE_ALL, MODE_DESCRIPTION, MODE_PORT, MODE_SERVICE,
    NAME_INDEX, SearchInput, classify, filter_flows, port_description, port_snippet,
)


def test_name_index_contains_names_and_words():
    assert NAME_INDEX["ssh"] == frozenset({22})
    assert NAME_INDEX["kubelet-read"] == frozenset({10255})
    assert NAME_INDEX["kubelet"] == frozenset({10250, 10255})
    assert NAME_INDEX["ftp"] == frozenset({20, 21})
    with pytest.raises(TypeError):
        NAME_INDEX["new"] = frozenset()


@pytest.mark.parametrize("query,mode", [
    ("", MODE_ALL),
    ("   ", MODE_ALL),
    ("22", MODE_PORT),
    (" 65535 ", MODE_PORT),
    ("+22", MODE_PORT),
    ("99999", MODE_DESCRIPTION),
    ("10.0.0.", MODE_ADDRESS),
    ("fd00:", MODE_ADDRESS),
    ("SSH", MODE_SERVICE),
    ("mail", MODE_DESCRIPTION),
])
def test_classification(query, mode):
    assert classify(query).mode == mode


def test_port_query_matches_either_endpoint(flow):
    p = classify("22")
    assert p(flow(sport=50000, dport=22))
    assert p(flow(sport=22, dport=50000))
    assert not p(flow(sport=2222, dport=80))


def test_service_query_matches_same_flow(flow):
    f = flow(sport=50000, dport=22)
    assert classify("ssh")(f)
    assert classify("22")(f)


def test_address_substring(flow):
    p = classify("10.0.0.")
    assert p(flow(src="10.0.0.5", dst="192.168.1.1"))
    assert not p(flow(src="10.1.0.5", dst="192.168.1.1"))


def test_signed_port_query(flow):
    p = classify("+22")
    assert p.ports == frozenset({22})
    assert p(flow(dport=22))
    assert not p(flow(sport=2222, dport=80))


def test_out_of_range_number_is_not_a_port(flow):
    p = classify("99999")
    assert p.mode == MODE_DESCRIPTION
    assert not p(flow(sport=9999, dport=99))


def test_description_fallback(flow):
    assert classify("mail")(flow(dport=25))
    assert classify("registered")(flow(sport=40000, dport=8080))
    assert classify("dynamic")(flow(sport=60000, dport=80))
    assert not classify("mail")(flow(sport=40000, dport=80))


def test_service_mode_does_not_fall_back_to_descriptions(flow):
    # "http" is an index key, so a flow on 8080 ("Registered (8080)") stays unmatched
    assert not classify("http")(flow(sport=40000, dport=8080))
    assert classify("http")(flow(sport=40000, dport=80))


def test_port_descriptions():
    assert port_description(22) == "SSH Remote Login Protocol"
    assert port_description(1000) == "Well-known (1000)"
    assert port_description(30000) == "Registered (30000)"
    assert port_description(50000) == "Dynamic/Private (50000)"
    assert port_snippet(22) == "22 (SSH)"
    assert port_snippet(29) == "MSG ICP"


def test_filter_composition(flow):
    flows = [
        flow(dport=22, state="ESTABLISHED"),
        flow(dport=22, state="TIME_WAIT"),
        flow(dport=80, state="ESTABLISHED"),
    ]
    out = filter_flows(flows, "22", state="ESTABLISHED")
    assert out == [flows[0]]


def test_time_wait_filter_accepts_dash_spelling(flow):
    flows = [flow(state="TIME-WAIT"), flow(state="time_wait"), flow(state="ESTABLISHED")]
    assert len(filter_flows(flows, state="TIME_WAIT")) == 2


def test_ip_version_filter(flow):
    v4 = flow("10.0.0.1", 1, "10.0.0.2", 2)
    v6 = flow("fd00::1", 1, "fd00::2", 2)
    assert filter_flows([v4, v6], ip_ver="v4") == [v4]
    assert filter_flows([v4, v6], ip_ver="v6") == [v6]
    assert filter_flows([v4, v6], ip_ver="both") == [v4, v6]


def test_sort_by_state(flow):
    flows = [flow(state="TIME_WAIT"), flow(state="ESTABLISHED"), flow(state="SYN_SENT")]
    assert [f.state for f in filter_flows(flows, sort_by_state=True)] == ["ESTABLISHED", "SYN_SENT", "TIME_WAIT"]


def test_empty_snapshot_filters_to_empty():
    assert filter_flows([], "ssh", state="ESTABLISHED", ip_ver="v6") == []


def test_unknown_filter_mode_raises():
    with pytest.raises(ValueError):
        filter_flows([], state="CLOSED")


def test_search_input_confirm_and_cancel():
    s = SearchInput()
    s.start()
    for ch in "ssh":
        s.push(ch)
    assert s.typing and s.buffer == "ssh"
    s.confirm()
    assert not s.typing and s.term == "ssh"

    s.start()
    s.push("x")
    s.cancel()
    assert s.term == "ssh"

    s.start()
    s.push(" ")
    s.confirm()
    assert s.term is None


def test_search_input_ignores_keys_when_idle():
    s = SearchInput()
    s.push("a")
    s.backspace()
    s.confirm()
    assert s.buffer == "" and s.term is None
