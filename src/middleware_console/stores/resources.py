"""
Resource Store
Handles resource reads, middleware assignment, section config and service binding
"""

import logging
from typing import Any, Dict, Iterable, List, Optional, Union

from ..errors import ConsoleError, ValidationFailure
from ..models import DEFAULT_MIDDLEWARE_PRIORITY, MiddlewareAssignment, Resource
from .base import EntityStore

logger = logging.getLogger(__name__)

CONFIG_SECTIONS = ("http", "tls", "tcp", "headers", "priority")

AssignmentLike = Union[MiddlewareAssignment, Dict[str, Any]]


def _assignment_payload(item: AssignmentLike) -> Dict[str, Any]:
    if isinstance(item, MiddlewareAssignment):
        return item.to_payload()
    middleware_id = item.get("middleware_id") or item.get("id")
    if not middleware_id:
        raise ValidationFailure("Middleware assignment is missing a middleware id", details=item)
    priority = item.get("priority", DEFAULT_MIDDLEWARE_PRIORITY)
    try:
        priority = int(priority)
    except (TypeError, ValueError):
        raise ValidationFailure(f"Invalid priority for middleware {middleware_id}", details=item)
    return {"middleware_id": middleware_id, "priority": priority}


class ResourceStore(EntityStore[Resource]):
    """
    Store for proxy resources.

    Resources are discovered by the backend, so there is no create/update.
    Every mutation is followed by ``fetch_one(resource_id)`` because the
    backend derives fields (such as the attached middleware list) itself.
    """

    endpoint = "/api/resources"
    model = Resource
    label = "resource"
    plural = "resources"

    async def _mutate(self, resource_id: str, method: str, path: str, body: Any, context: str) -> bool:
        self._begin()
        try:
            await self.transport.execute(f"{self.url(resource_id)}{path}", method, body)
        except ConsoleError as e:
            self._fail(e, f"Failed to {context}")
            return False
        finally:
            self._end()

        logger.info(f"Resource {resource_id}: {context} succeeded")
        await self.fetch_one(resource_id)
        return True

    def _reject(self, error: ValidationFailure) -> bool:
        self.last_error = error
        logger.error(f"Rejected before sending: {error}")
        return False

    # Middleware assignment

    async def assign_middleware(
        self,
        resource_id: str,
        middleware_id: str,
        priority: int = DEFAULT_MIDDLEWARE_PRIORITY
    ) -> bool:
        """Attach one middleware to a resource"""
        body = {"middleware_id": middleware_id, "priority": priority}
        return await self._mutate(resource_id, "POST", "/middlewares", body, "assign middleware")

    async def assign_multiple_middlewares(self, resource_id: str, middlewares: Iterable[AssignmentLike]) -> bool:
        """Attach several middlewares in one call, in the given order"""
        try:
            items = [_assignment_payload(item) for item in middlewares]
        except ValidationFailure as e:
            return self._reject(e)
        if not items:
            return self._reject(ValidationFailure("Select at least one middleware to assign"))

        return await self._mutate(
            resource_id, "POST", "/middlewares/bulk", {"middlewares": items}, "assign middlewares"
        )

    async def remove_middleware(self, resource_id: str, middleware_id: str) -> bool:
        """Detach a middleware from a resource"""
        return await self._mutate(
            resource_id, "DELETE", f"/middlewares/{middleware_id}", None, "remove middleware"
        )

    # Section configuration

    async def update_resource_config(self, resource_id: str, section: str, data: Dict[str, Any]) -> bool:
        """Update one configuration section (http, tls, tcp, headers, priority)"""
        if section not in CONFIG_SECTIONS:
            return self._reject(ValidationFailure(f"Unknown config type: {section}"))
        if not isinstance(data, dict):
            return self._reject(ValidationFailure(f"{section} configuration must be an object"))

        return await self._mutate(
            resource_id, "PUT", f"/config/{section}", data, f"update {section} configuration"
        )

    async def update_http_config(self, resource_id: str, entrypoints: str) -> bool:
        return await self.update_resource_config(resource_id, "http", {"entrypoints": entrypoints})

    async def update_tls_config(self, resource_id: str, tls_domains: str) -> bool:
        return await self.update_resource_config(resource_id, "tls", {"tls_domains": tls_domains})

    async def update_tcp_config(
        self,
        resource_id: str,
        tcp_enabled: bool,
        tcp_entrypoints: str = "tcp",
        tcp_sni_rule: str = ""
    ) -> bool:
        return await self.update_resource_config(resource_id, "tcp", {
            "tcp_enabled": tcp_enabled,
            "tcp_entrypoints": tcp_entrypoints,
            "tcp_sni_rule": tcp_sni_rule
        })

    async def update_headers_config(self, resource_id: str, custom_headers: Dict[str, str]) -> bool:
        if not isinstance(custom_headers, dict):
            return self._reject(ValidationFailure("Custom headers must be a mapping of header name to value"))
        return await self.update_resource_config(resource_id, "headers", {"custom_headers": custom_headers})

    async def update_router_priority(self, resource_id: str, router_priority: int) -> bool:
        try:
            router_priority = int(router_priority)
        except (TypeError, ValueError):
            return self._reject(ValidationFailure(f"Invalid router priority: {router_priority}"))
        return await self.update_resource_config(resource_id, "priority", {"router_priority": router_priority})

    # Service binding

    async def fetch_resource_service(self, resource_id: str) -> Optional[Dict[str, Any]]:
        """Service currently bound to a resource, as reported by the backend"""
        self._begin()
        try:
            return await self.transport.get(f"{self.url(resource_id)}/service")
        except ConsoleError as e:
            self._fail(e, f"Failed to load service for resource {resource_id}")
            return None
        finally:
            self._end()

    async def assign_service_to_resource(self, resource_id: str, service_id: str) -> bool:
        return await self._mutate(
            resource_id, "POST", "/service", {"service_id": service_id}, "assign service"
        )

    async def remove_service_from_resource(self, resource_id: str) -> bool:
        return await self._mutate(resource_id, "DELETE", "/service", None, "remove service")

    # Derived views

    def active_resources(self) -> List[Resource]:
        return [item for item in self.collection if not item.is_disabled]

    def resources_using_middleware(self, middleware_id: str) -> List[Resource]:
        return [
            item for item in self.collection
            if any(a.middleware_id == middleware_id for a in item.assignments)
        ]
