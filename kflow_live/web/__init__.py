from .app import create_app, create_daemon_app
from .view import DashboardView
