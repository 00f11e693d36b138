"""
Entity Drafts
Working state of the middleware and service forms, from template to submitted payload
"""

import json
import logging
from typing import Any, ClassVar, Dict, Iterable, List, Optional

from pydantic import BaseModel, Field

from .chain import apply_selection_delta
from .errors import ValidationFailure
from .models import Middleware, MiddlewareType, Service, ServiceType
from .stores.base import CrudEntityStore
from .stores.middlewares import MiddlewareStore
from .stores.services import ServiceStore
from .templates import Protocol, detect_protocol

logger = logging.getLogger(__name__)


def _pretty(config: Dict[str, Any]) -> str:
    return json.dumps(config, indent=2)


class EntityDraft(BaseModel):
    """
    Shared form state.

    A draft created from an existing entity is an editing draft: its type was
    fixed when the entity was created and cannot change. Validation problems
    are kept in ``form_error`` and never reach the store.
    """

    label: ClassVar[str] = "entity"

    name: str = ""
    type: str
    config_text: str = "{}"
    editing_id: Optional[str] = None
    form_error: Optional[str] = None

    @property
    def is_editing(self) -> bool:
        return self.editing_id is not None

    def _check_type_change(self, variant: str):
        if self.is_editing and variant != self.type:
            raise ValidationFailure(
                f"The type of {self.label} {self.editing_id} cannot be changed after creation",
                details={"current": self.type, "requested": variant}
            )

    def parse_config(self) -> Dict[str, Any]:
        try:
            config = json.loads(self.config_text)
        except ValueError as e:
            raise ValidationFailure("Invalid JSON configuration", details=str(e)) from e
        if not isinstance(config, dict):
            raise ValidationFailure("Configuration must be a JSON object")
        return config

    def to_payload(self) -> Dict[str, Any]:
        """Request body for create/update; raises ValidationFailure"""
        if not self.name.strip():
            raise ValidationFailure(f"A {self.label} name is required")
        return {"name": self.name, "type": self.type, "config": self.parse_config()}

    async def submit(self, store: CrudEntityStore, entity_id: Optional[str] = None):
        """Validate, then create or update through the store"""
        self.form_error = None
        try:
            payload = self.to_payload()
        except ValidationFailure as e:
            self.form_error = e.message
            logger.warning(f"Invalid {self.label} form: {e.message}")
            return None

        target = entity_id or self.editing_id
        if target:
            entity = await store.update(target, payload)
        else:
            entity = await store.create(payload)

        if entity is None:
            action = "update" if target else "create"
            reason = store.last_error.message if store.last_error else "unknown error"
            self.form_error = f"Failed to {action} {self.label}: {reason}"
        return entity


class MiddlewareDraft(EntityDraft):
    """Middleware form; chain drafts also track the operator's member order"""

    label: ClassVar[str] = "middleware"

    type: str = MiddlewareType.BASIC_AUTH.value
    config_text: str = Field(default_factory=lambda: MiddlewareStore.template_for(MiddlewareType.BASIC_AUTH.value))
    ordered_middlewares: List[str] = Field(default_factory=list)

    @classmethod
    def from_entity(cls, middleware: Middleware) -> "MiddlewareDraft":
        return cls(
            name=middleware.name,
            type=middleware.type,
            config_text=_pretty(middleware.config),
            ordered_middlewares=middleware.chain_members,
            editing_id=middleware.id,
        )

    def change_type(self, variant: str):
        """Switch variant and reset the configuration to its template"""
        if variant == self.type:
            return
        self._check_type_change(variant)
        self.type = variant
        self.config_text = MiddlewareStore.template_for(variant)
        if variant == MiddlewareType.CHAIN.value:
            self.ordered_middlewares = []

    def select_chain_members(self, selection: Iterable[str]) -> List[str]:
        """Apply a multi-select change, keeping the order already arranged"""
        self.ordered_middlewares = apply_selection_delta(self.ordered_middlewares, selection)
        self.config_text = _pretty({"middlewares": self.ordered_middlewares})
        return self.ordered_middlewares


class ServiceDraft(EntityDraft):
    """Service form; load balancers also carry a backend protocol"""

    label: ClassVar[str] = "service"

    type: str = ServiceType.LOAD_BALANCER.value
    protocol: Protocol = Protocol.HTTP
    config_text: str = Field(default_factory=lambda: ServiceStore.template_for(ServiceType.LOAD_BALANCER.value))

    @classmethod
    def from_entity(cls, service: Service) -> "ServiceDraft":
        config_text = _pretty(service.config)
        protocol = Protocol.HTTP
        if service.type == ServiceType.LOAD_BALANCER.value:
            protocol = Protocol(detect_protocol(config_text))
        return cls(
            name=service.name,
            type=service.type,
            protocol=protocol,
            config_text=config_text,
            editing_id=service.id,
        )

    def change_type(self, variant: str):
        """Switch variant; only load balancers keep a non-HTTP protocol"""
        if variant == self.type:
            return
        self._check_type_change(variant)
        if variant != ServiceType.LOAD_BALANCER.value:
            self.protocol = Protocol.HTTP
        self.type = variant
        self.config_text = ServiceStore.template_for(variant, self.protocol.value)

    def change_protocol(self, protocol: str):
        try:
            value = Protocol(protocol)
        except ValueError:
            raise ValidationFailure(f"Unknown protocol: {protocol}")
        if self.is_editing and value != self.protocol:
            raise ValidationFailure("Protocol cannot be changed after creation for LoadBalancer services")
        if self.type != ServiceType.LOAD_BALANCER.value and value != Protocol.HTTP:
            raise ValidationFailure(f"Only loadBalancer services support the {value.value} protocol")

        self.protocol = value
        if not self.is_editing:
            self.config_text = ServiceStore.template_for(self.type, value.value)
