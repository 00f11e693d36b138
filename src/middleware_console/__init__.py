"""
Middleware Console
Client-side entity store for the proxy middleware manager
"""

from .chain import ChainOrderingEngine, apply_selection_delta
from .client import ConsoleClient, dashboard_summary
from .config import ConsoleConfig
from .editor import MiddlewareDraft, ServiceDraft
from .errors import ConsoleError, HTTPFailure, NetworkFailure, ValidationFailure
from .models import (
    DataSourceConfig,
    Middleware,
    MiddlewareAssignment,
    Resource,
    Service
)
from .stores import DataSourceStore, MiddlewareStore, PluginStore, ResourceStore, ServiceStore
from .templates import ConfigTemplateRegistry
from .transport import Transport

__all__ = [
    "ConsoleClient",
    "ConsoleConfig",
    "Transport",
    "ConfigTemplateRegistry",
    "ChainOrderingEngine",
    "apply_selection_delta",
    "dashboard_summary",
    "ResourceStore",
    "MiddlewareStore",
    "ServiceStore",
    "DataSourceStore",
    "PluginStore",
    "MiddlewareDraft",
    "ServiceDraft",
    "Resource",
    "Middleware",
    "Service",
    "MiddlewareAssignment",
    "DataSourceConfig",
    "ConsoleError",
    "NetworkFailure",
    "HTTPFailure",
    "ValidationFailure"
]
