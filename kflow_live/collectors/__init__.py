from .conntrack import parse_conntrack_line, read_conntrack
from .loop import collector_loop, remote_poll_loop, start_pollers, kube_discovery_loop, KubeStatus
from .remote import FetchError, fetch_source
