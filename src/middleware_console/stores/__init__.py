"""
Console Stores
One store per entity type, each owning its collection and error state
"""

from .base import CrudEntityStore, EntityStore
from .datasources import DataSourceStore
from .middlewares import MiddlewareStore
from .plugins import PluginStore
from .resources import ResourceStore
from .services import ServiceStore

__all__ = [
    "EntityStore",
    "CrudEntityStore",
    "ResourceStore",
    "MiddlewareStore",
    "ServiceStore",
    "DataSourceStore",
    "PluginStore",
]
