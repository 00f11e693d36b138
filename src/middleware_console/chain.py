"""
Chain Ordering
Keeps operator-arranged middleware order stable across selection changes,
and resolves middleware/service cross-references
"""

from typing import Any, Dict, Iterable, List, Optional, Sequence

from .models import (
    DEFAULT_MIDDLEWARE_PRIORITY,
    Middleware,
    MiddlewareAssignment,
    Reference,
    Service,
    ServiceType,
)


class ChainOrderingEngine:
    """Minimal-edit reordering for chain members and resource assignments"""

    @staticmethod
    def apply_selection_delta(current_order: Sequence[str], newly_selected: Iterable[str]) -> List[str]:
        """
        Merge a new selection into an existing order.

        IDs from ``current_order`` that are still selected keep their
        relative order; IDs selected for the first time are appended in the
        order the selection widget reports them. Duplicates already present
        in ``current_order`` are carried over as they are.
        """
        selected = list(newly_selected)
        selected_set = set(selected)

        order = [item for item in current_order if item in selected_set]
        kept = set(order)
        for item in selected:
            if item not in kept:
                order.append(item)
                kept.add(item)
        return order

    @staticmethod
    def assignments_from_order(
        order: Sequence[str],
        priority: int = DEFAULT_MIDDLEWARE_PRIORITY,
        step: int = 0,
        resource_id: Optional[str] = None,
    ) -> List[MiddlewareAssignment]:
        """
        Build resource assignments in the given order.

        With the default ``step`` of 0 every middleware gets the same
        priority; a positive step gives earlier entries higher priority.
        """
        return [
            MiddlewareAssignment(
                middleware_id=middleware_id,
                priority=max(priority - index * step, 1),
                resource_id=resource_id,
            )
            for index, middleware_id in enumerate(order)
        ]


def apply_selection_delta(current_order: Sequence[str], newly_selected: Iterable[str]) -> List[str]:
    return ChainOrderingEngine.apply_selection_delta(current_order, newly_selected)


def resolve_chain(middleware: Middleware, collection: Iterable[Middleware]) -> List[Reference]:
    """Chain members in order, each resolved against the known middlewares"""
    by_id = {item.id: item for item in collection}
    return [
        Reference(key=member, kind="middleware", entity=by_id.get(member))
        for member in middleware.chain_members
    ]


def service_references(service: Service) -> List[str]:
    """Service names a weighted/mirroring/failover service points at"""
    config: Dict[str, Any] = service.config or {}
    names: List[str] = []

    def add(value: Any):
        if isinstance(value, str) and value:
            names.append(value)

    def add_entries(entries: Any):
        if not isinstance(entries, list):
            return
        for entry in entries:
            if isinstance(entry, dict):
                add(entry.get("name"))

    if service.type == ServiceType.WEIGHTED.value:
        add_entries(config.get("services"))
    elif service.type == ServiceType.MIRRORING.value:
        add(config.get("service"))
        add_entries(config.get("mirrors"))
    elif service.type == ServiceType.FAILOVER.value:
        add(config.get("service"))
        add(config.get("fallback"))
    return names


def resolve_service_references(service: Service, collection: Iterable[Service]) -> List[Reference]:
    """
    Resolve name references against known services.

    References may carry a provider suffix (``name@file``); a service named
    either way counts as a match.
    """
    by_name: Dict[str, Service] = {}
    for item in collection:
        if item.name:
            by_name.setdefault(item.name, item)
            by_name.setdefault(item.name.split("@", 1)[0], item)

    references = []
    for name in service_references(service):
        entity = by_name.get(name) or by_name.get(name.split("@", 1)[0])
        references.append(Reference(key=name, kind="service", entity=entity))
    return references
