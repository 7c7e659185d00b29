import threading

import pytest

from kflow_live.topology.snapshot import OwnershipError, diff_flows


def test_diff_added_and_removed(flow):
    f1, f2, f3 = flow(sport=1), flow(sport=2), flow(sport=3)
    d = diff_flows([f1, f2], [f2, f3])
    assert d.added == [f3]
    assert d.removed == [f1]


def test_counter_change_is_remove_plus_add(flow):
    old = flow(byte_count=100)
    new = flow(byte_count=200)
    d = diff_flows([old], [new])
    assert d.added == [new]
    assert d.removed == [old]


def test_ingest_replaces_generation(store, flow):
    store.ingest("n1", [flow(sport=1), flow(sport=2)])
    d = store.ingest("n1", [flow(sport=2), flow(sport=3)])
    assert d.added == [flow(sport=3)]
    assert d.removed == [flow(sport=1)]
    assert store.read("n1") == (flow(sport=2), flow(sport=3))
    assert store.generation("n1") == 2


def test_unknown_node_reads_empty(store):
    assert store.read("nope") == ()
    assert store.node_map() == {}


def test_empty_ingest_keeps_node_visible(store, flow):
    store.ingest("n1", [flow()])
    store.ingest("n1", [])
    assert store.nodes() == ["n1"]
    assert store.read("n1") == ()


def test_listeners_receive_events(store, flow):
    seen = []
    store.listeners.append(lambda node, kind, f: seen.append((node, kind, f.src_port)))
    store.ingest("n1", [flow(sport=1)])
    store.ingest("n1", [flow(sport=2)])
    assert seen == [("n1", "added", 1), ("n1", "added", 2), ("n1", "removed", 1)]


def test_failing_listener_does_not_abort_ingest(store, flow):
    def boom(*_):
        raise RuntimeError("sink down")
    store.listeners.append(boom)
    store.ingest("n1", [flow()])
    assert store.read("n1") == (flow(),)


def test_second_writer_is_rejected(store, flow):
    store.ingest("n1", [flow()], owner="poller-1")
    with pytest.raises(OwnershipError):
        store.ingest("n1", [], owner="poller-2")
    assert store.read("n1") == (flow(),)


def test_error_is_cleared_by_next_ingest(store, flow):
    store.ingest("n1", [])
    store.set_error("n1", "failed to fetch n1")
    assert store.errors() == {"n1": "failed to fetch n1"}
    store.ingest("n1", [flow()])
    assert store.errors() == {}


def test_forget_removes_node(store, flow):
    store.ingest("n1", [flow()], owner="p")
    store.forget("n1", owner="p")
    assert store.nodes() == []
    store.ingest("n1", [flow()], owner="other")


def test_readers_never_see_mixed_generations(store, flow):
    gen_a = [flow(sport=i, state="ESTABLISHED") for i in range(200)]
    gen_b = [flow(sport=i, state="TIME_WAIT") for i in range(200)]
    stop = threading.Event()
    bad = []

    def writer():
        i = 0
        while not stop.is_set():
            store.ingest("n1", gen_a if i % 2 else gen_b, owner="w")
            i += 1

    def reader():
        for _ in range(300):
            states = {f.state for f in store.read("n1")}
            if len(states) > 1:
                bad.append(states)

    w = threading.Thread(target=writer)
    w.start()
    readers = [threading.Thread(target=reader) for _ in range(3)]
    for r in readers:
        r.start()
    for r in readers:
        r.join()
    stop.set()
    w.join()
    assert bad == []
