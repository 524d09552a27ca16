"""Dashboard sessions: stored credentials context and display settings."""

from .manager import DashboardContext, DashboardSessionManager, SessionExpiredError
from .models import DashboardSession, DisplaySettings
from .store import (
    DashboardSessionStore,
    InMemoryDashboardSessionStore,
    RedisDashboardSessionStore,
    get_session_store,
)

__all__ = [
    "DashboardContext",
    "DashboardSession",
    "DashboardSessionManager",
    "DashboardSessionStore",
    "DisplaySettings",
    "InMemoryDashboardSessionStore",
    "RedisDashboardSessionStore",
    "SessionExpiredError",
    "get_session_store",
]
