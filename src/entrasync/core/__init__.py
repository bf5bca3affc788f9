"""Core utilities for Entra ID sync."""

from entrasync.core.auth import AuthContext, acquire_token
from entrasync.core.config import GraphCredentials, get_graph_credentials
from entrasync.core.errors import ExitCode

__all__ = [
    "AuthContext",
    "ExitCode",
    "GraphCredentials",
    "acquire_token",
    "get_graph_credentials",
]
