"""
Entity Store Base
Shared collection/selection state and CRUD against the management API
"""

import logging
from typing import Any, Dict, Generic, List, Optional, Type, TypeVar, Union

from pydantic import BaseModel, ValidationError

from ..errors import ConsoleError, ValidationFailure
from ..models import Reference
from ..transport import Transport, is_success_marker

logger = logging.getLogger(__name__)

T = TypeVar("T", bound=BaseModel)

Payload = Union[Dict[str, Any], BaseModel]


def payload_dict(payload: Payload) -> Dict[str, Any]:
    if isinstance(payload, BaseModel):
        return payload.model_dump(mode="json", exclude_none=True)
    return dict(payload)


class EntityStore(Generic[T]):
    """
    Holds one entity type fetched from the backend.

    Operations never raise transport failures: they record the failure in
    ``last_error`` and return ``None`` / ``False``. ``last_error`` is reset
    when the next operation starts; failed deletes also stay in
    ``delete_errors`` until ``clear_error()`` or a successful retry.
    """

    endpoint: str = ""
    model: Type[T]
    label: str = "entity"
    plural: str = "entities"

    def __init__(self, transport: Transport):
        self.transport = transport
        self.collection: List[T] = []
        self.selected: Optional[T] = None
        self.last_error: Optional[ConsoleError] = None
        self.delete_errors: Dict[str, ConsoleError] = {}
        self._pending = 0

    @property
    def busy(self) -> bool:
        return self._pending > 0

    def _begin(self):
        self._pending += 1
        self.last_error = None

    def _end(self):
        self._pending = max(self._pending - 1, 0)

    def _fail(self, error: ConsoleError, context: str):
        self.last_error = error
        logger.error(f"{context}: {error}")

    def url(self, entity_id: Optional[str] = None) -> str:
        if entity_id is None:
            return self.endpoint
        return f"{self.endpoint}/{entity_id}"

    def _parse(self, data: Any) -> T:
        try:
            return self.model.model_validate(data)
        except ValidationError as e:
            raise ValidationFailure(
                f"Unexpected {self.label} payload",
                details=e.errors(include_url=False, include_context=False)
            ) from e

    def _parse_list(self, data: Any) -> List[T]:
        if data is None:
            return []
        if not isinstance(data, list):
            raise ValidationFailure(f"Expected a list of {self.plural}")
        items: List[T] = []
        positions: Dict[str, int] = {}
        for raw in data:
            item = self._parse(raw)
            if item.id in positions:
                items[positions[item.id]] = item
            else:
                positions[item.id] = len(items)
                items.append(item)
        return items

    # Lookups

    def get(self, entity_id: str) -> Optional[T]:
        for item in self.collection:
            if item.id == entity_id:
                return item
        return None

    def lookup(self, entity_id: str) -> Reference:
        return Reference(key=entity_id, kind=self.label, entity=self.get(entity_id))

    def select(self, entity: Optional[T]):
        self.selected = entity

    def clear_selection(self):
        """Called when the detail/edit view is left"""
        self.selected = None

    def clear_error(self):
        """Dismiss the current error, including pending delete failures"""
        self.last_error = None
        self.delete_errors.clear()

    def _replace(self, entity: T) -> bool:
        for index, item in enumerate(self.collection):
            if item.id == entity.id:
                self.collection[index] = entity
                return True
        return False

    # Operations

    async def fetch_all(self) -> Optional[List[T]]:
        """Replace the collection with the backend's list"""
        self._begin()
        try:
            data = await self.transport.get(self.url())
            items = self._parse_list(data)
        except ConsoleError as e:
            self._fail(e, f"Failed to load {self.plural}")
            return None
        finally:
            self._end()

        self.collection = items
        logger.debug(f"Loaded {len(items)} {self.plural}")
        return items

    async def fetch_one(self, entity_id: str) -> Optional[T]:
        """Load one entity into ``selected``"""
        if not entity_id:
            return None

        self._begin()
        try:
            data = await self.transport.get(self.url(entity_id))
            entity = self._parse(data)
        except ConsoleError as e:
            self._fail(e, f"Failed to load {self.label} {entity_id}")
            return None
        finally:
            self._end()

        self.selected = entity
        return entity

    async def delete(self, entity_id: str) -> bool:
        """Remove an entity once the backend confirms"""
        self._begin()
        try:
            await self.transport.delete(self.url(entity_id))
        except ConsoleError as e:
            self.delete_errors[entity_id] = e
            self._fail(e, f"Failed to delete {self.label} {entity_id}")
            return False
        finally:
            self._end()

        self.collection = [item for item in self.collection if item.id != entity_id]
        if self.selected is not None and self.selected.id == entity_id:
            self.selected = None
        self.delete_errors.pop(entity_id, None)
        logger.info(f"Deleted {self.label}: {entity_id}")
        return True

    def snapshot(self) -> Dict[str, Any]:
        """Current state in a serializable form"""
        return {
            "items": [item.model_dump(mode="json") for item in self.collection],
            "selected": self.selected.model_dump(mode="json") if self.selected is not None else None,
            "busy": self.busy,
            "error": self.last_error.to_dict() if self.last_error else None,
            "delete_errors": {key: error.to_dict() for key, error in self.delete_errors.items()},
        }


class CrudEntityStore(EntityStore[T]):
    """Entity store whose backend also accepts create and update"""

    async def create(self, payload: Payload) -> Optional[T]:
        """
        Create an entity; returns ``None`` on failure.

        A 2xx answer without a body carries no id to read back, so the
        collection is re-fetched and ``None`` is returned.
        """
        self._begin()
        try:
            data = await self.transport.post(self.url(), payload_dict(payload))
            entity = None if is_success_marker(data) else self._parse(data)
        except ConsoleError as e:
            self._fail(e, f"Failed to create {self.label}")
            return None
        finally:
            self._end()

        if entity is None:
            logger.info(f"Created {self.label} without a response body, refreshing {self.plural}")
            await self.fetch_all()
            return None
        if not self._replace(entity):
            self.collection.append(entity)
        logger.info(f"Created {self.label}: {entity.id}")
        return entity

    async def update(self, entity_id: str, payload: Payload) -> Optional[T]:
        """Update an entity in place with whatever the backend returns"""
        self._begin()
        try:
            data = await self.transport.put(self.url(entity_id), payload_dict(payload))
            if is_success_marker(data):
                data = await self.transport.get(self.url(entity_id))
            entity = self._parse(data)
        except ConsoleError as e:
            self._fail(e, f"Failed to update {self.label} {entity_id}")
            return None
        finally:
            self._end()

        self._replace(entity)
        if self.selected is not None and self.selected.id == entity_id:
            self.selected = entity
        logger.info(f"Updated {self.label}: {entity_id}")
        return entity
