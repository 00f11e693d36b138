"""
Middleware Console Client - Main Entry Point
Composed client owning one transport and one store per entity type
"""

import asyncio
import logging
from typing import Any, Dict, Iterable, List, Optional, Union

import httpx

from .config import ConsoleConfig
from .errors import ConsoleError
from .models import Middleware, Resource, Service
from .stores import DataSourceStore, MiddlewareStore, PluginStore, ResourceStore, ServiceStore
from .templates import ConfigTemplateRegistry, VariantInfo
from .transport import Transport

logger = logging.getLogger(__name__)

RECENT_RESOURCES_LIMIT = 5


def dashboard_summary(
    resources: Iterable[Resource],
    middlewares: Iterable[Middleware],
    services: Iterable[Service]
) -> Dict[str, Any]:
    """Counts and overall protection status shown on the dashboard"""
    resources = list(resources)
    active = [item for item in resources if not item.is_disabled]
    protected = [item for item in active if item.assignments]

    if not active:
        status = "neutral"
    elif not protected:
        status = "danger"
    elif len(protected) < len(active):
        status = "warning"
    else:
        status = "success"

    return {
        "active_resources": len(active),
        "disabled_resources": len(resources) - len(active),
        "protected_resources": len(protected),
        "unprotected_resources": len(active) - len(protected),
        "middlewares": len(list(middlewares)),
        "services": len(list(services)),
        "overall_status": status,
        "recent_resources": [
            {"id": item.id, "name": item.display_name, "protected": bool(item.assignments)}
            for item in active[:RECENT_RESOURCES_LIMIT]
        ],
    }


class ConsoleClient:
    """
    Main console client using composition pattern

    This client delegates operations to specialized stores:
    - ResourceStore: Resource reads, middleware assignment, section config
    - MiddlewareStore: Middleware CRUD and chain lookups
    - ServiceStore: Service CRUD and name references
    - DataSourceStore: Data source selection and connection tests
    - PluginStore: Plugin catalog, installation and Traefik config path
    """

    def __init__(
        self,
        config: Optional[Union[ConsoleConfig, str]] = None,
        client: Optional[httpx.AsyncClient] = None
    ):
        if config is None:
            config = ConsoleConfig()
        elif isinstance(config, str):
            config = ConsoleConfig(api_url=config)
        self.config = config
        self.transport = Transport(config.api_url, timeout=config.request_timeout, client=client)

        # Initialize stores
        self.resources = ResourceStore(self.transport)
        self.middlewares = MiddlewareStore(self.transport)
        self.services = ServiceStore(self.transport)
        self.datasources = DataSourceStore(self.transport)
        self.plugins = PluginStore(self.transport)

        # Template registry for convenience
        self.templates = ConfigTemplateRegistry()

    async def close(self):
        """Close the HTTP client"""
        await self.transport.close()

    def store(self, kind: str):
        """Entity store by plural name (resources, middlewares, services)"""
        stores = {
            "resources": self.resources,
            "middlewares": self.middlewares,
            "services": self.services,
        }
        return stores.get(kind)

    async def refresh_all(self) -> Dict[str, bool]:
        """Reload resources, middlewares and services concurrently"""
        results = await asyncio.gather(
            self.resources.fetch_all(),
            self.middlewares.fetch_all(),
            self.services.fetch_all(),
        )
        return {
            name: result is not None
            for name, result in zip(("resources", "middlewares", "services"), results)
        }

    def errors(self) -> Dict[str, Dict[str, Any]]:
        """Current error of every store that has one"""
        errors = {}
        for name, store in (
            ("resources", self.resources),
            ("middlewares", self.middlewares),
            ("services", self.services),
            ("datasources", self.datasources),
            ("plugins", self.plugins),
        ):
            error: Optional[ConsoleError] = store.last_error
            if error is not None:
                errors[name] = error.to_dict()
        return errors

    def dashboard_summary(self) -> Dict[str, Any]:
        summary = dashboard_summary(
            self.resources.collection,
            self.middlewares.collection,
            self.services.collection
        )
        summary["errors"] = self.errors()
        return summary

    async def health_check(self) -> Dict[str, Any]:
        """Check that the management API answers"""
        try:
            await self.transport.get("/health")
            return {"status": "healthy", "api_url": self.config.api_url}
        except ConsoleError as e:
            logger.warning(f"Management API health check failed: {e}")
            return {"status": "unhealthy", "api_url": self.config.api_url, "error": e.to_dict()}

    # Template operations (delegated)
    def template_for(self, kind: str, variant: str) -> str:
        """Default configuration text for a middleware or service variant"""
        return self.templates.template_for(kind, variant)

    def describe_variant(self, kind: str, variant: str) -> VariantInfo:
        return self.templates.describe_variant(kind, variant)

    # Resource operations (delegated)
    async def list_resources(self) -> Optional[List[Resource]]:
        """List all resources"""
        return await self.resources.fetch_all()

    async def get_resource(self, resource_id: str) -> Optional[Resource]:
        """Get a specific resource"""
        return await self.resources.fetch_one(resource_id)

    async def assign_middleware(self, resource_id: str, middleware_id: str, priority: int = 100) -> bool:
        """Attach a middleware to a resource"""
        return await self.resources.assign_middleware(resource_id, middleware_id, priority)

    async def remove_middleware(self, resource_id: str, middleware_id: str) -> bool:
        """Detach a middleware from a resource"""
        return await self.resources.remove_middleware(resource_id, middleware_id)

    # Middleware operations (delegated)
    async def list_middlewares(self) -> Optional[List[Middleware]]:
        """List all middlewares"""
        return await self.middlewares.fetch_all()

    async def create_middleware(self, middleware) -> Optional[Middleware]:
        """Create a new middleware"""
        return await self.middlewares.create(middleware)

    async def update_middleware(self, middleware_id: str, middleware) -> Optional[Middleware]:
        """Update an existing middleware"""
        return await self.middlewares.update(middleware_id, middleware)

    async def delete_middleware(self, middleware_id: str) -> bool:
        """Delete a middleware"""
        return await self.middlewares.delete(middleware_id)

    # Service operations (delegated)
    async def list_services(self) -> Optional[List[Service]]:
        """List all services"""
        return await self.services.fetch_all()

    async def create_service(self, service) -> Optional[Service]:
        """Create a new service"""
        return await self.services.create(service)

    async def update_service(self, service_id: str, service) -> Optional[Service]:
        """Update an existing service"""
        return await self.services.update(service_id, service)

    async def delete_service(self, service_id: str) -> bool:
        """Delete a service"""
        return await self.services.delete(service_id)
