import pytest

from kflow_live.config import CFG
from kflow_live.models import Flow
from kflow_live.topology.snapshot import SnapshotStore
from kflow_live.web.app import create_app
from kflow_live.web.view import DashboardView


def make_flow(src="10.0.0.1", sport=40000, dst="10.0.0.2", dport=80,
              state="ESTABLISHED", proto="tcp", byte_count=None, throughput=None):
    return Flow(protocol=proto, src_addr=src, src_port=sport, dst_addr=dst,
                dst_port=dport, state=state, byte_count=byte_count, throughput=throughput)


@pytest.fixture()
def flow():
    """Factory for Flow records with sensible defaults."""
    return make_flow


@pytest.fixture()
def store():
    return SnapshotStore()


@pytest.fixture()
def cluster(store):
    """Three nodes: a and b share 10.0.0.9, c is isolated."""
    store.ingest("node-a", [
        make_flow("10.0.0.1", 40000, "10.0.0.9", 22),
        make_flow("10.0.0.1", 40001, "10.0.0.9", 443),
        make_flow("10.0.0.1", 40002, "8.8.8.8", 53, proto="udp", state="UNKNOWN"),
    ], owner="a")
    store.ingest("node-b", [
        make_flow("10.0.0.9", 5432, "10.0.0.7", 51000),
        make_flow("10.0.0.7", 51001, "10.0.0.8", 6379, state="TIME_WAIT"),
    ], owner="b")
    store.ingest("node-c", [
        make_flow("fd00::1", 33000, "fd00::2", 80),
    ], owner="c")
    return store


@pytest.fixture()
def client_ctx(cluster):
    view = DashboardView()
    app = create_app(CFG(), cluster, view=view)
    return {"client": app.test_client(), "store": cluster, "view": view}
