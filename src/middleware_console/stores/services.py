"""
Service Store
Handles service CRUD and name-reference lookups
"""

import logging
from typing import List, Optional

from ..chain import resolve_service_references
from ..models import Reference, Service, ServiceType
from ..templates import ConfigTemplateRegistry, EntityKind
from .base import CrudEntityStore

logger = logging.getLogger(__name__)


class ServiceStore(CrudEntityStore[Service]):
    """Store for service configurations"""

    endpoint = "/api/services"
    model = Service
    label = "service"
    plural = "services"

    def find_by_name(self, name: str) -> Optional[Service]:
        for item in self.collection:
            if item.name == name:
                return item
        return None

    def references(self, service: Service) -> List[Reference]:
        """Services a weighted/mirroring/failover service points at"""
        return resolve_service_references(service, self.collection)

    def dangling_references(self) -> List[Reference]:
        dangling = []
        for service in self.collection:
            dangling.extend(ref for ref in self.references(service) if not ref.resolved)
        if dangling:
            logger.debug(f"{len(dangling)} service references do not resolve")
        return dangling

    @staticmethod
    def template_for(variant: str, protocol: str = "http") -> str:
        if variant == ServiceType.LOAD_BALANCER.value and protocol != "http":
            return ConfigTemplateRegistry.protocol_template(protocol)
        return ConfigTemplateRegistry.template_for(EntityKind.SERVICE.value, variant)
