from .snapshot import SnapshotStore, OwnershipError, diff_flows
from .graph_build import build_edges, pair_flows, snapshot_to_graph
