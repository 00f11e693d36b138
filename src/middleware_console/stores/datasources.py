"""
Data Source Store
Handles configured backend sources, the active-source selector and connection probes
"""

import asyncio
import logging
from typing import Any, Dict, Optional, Union

from pydantic import ValidationError

from ..errors import ConsoleError, ValidationFailure
from ..models import (
    ConnectionState,
    ConnectionStatus,
    DataSourceConfig,
    DataSourceUpdate,
)
from ..transport import Transport

logger = logging.getLogger(__name__)

ConfigLike = Union[DataSourceConfig, Dict[str, Any]]


class DataSourceStore:
    """
    Store for data source configuration.

    ``active_source_name`` is either empty or one of the keys of
    ``configured_sources``. Connection tests only touch their own slot in
    ``connection_status`` and never mark the store busy.
    """

    endpoint = "/api/datasource"

    def __init__(self, transport: Transport):
        self.transport = transport
        self.configured_sources: Dict[str, DataSourceConfig] = {}
        self._active_source_name = ""
        self._reported_active = ""
        self.connection_status: Dict[str, ConnectionStatus] = {}
        self.last_error: Optional[ConsoleError] = None
        self._pending = 0

    @property
    def busy(self) -> bool:
        return self._pending > 0

    @property
    def active_source_name(self) -> str:
        return self._active_source_name

    @property
    def active_source(self) -> Optional[DataSourceConfig]:
        return self.configured_sources.get(self._active_source_name)

    def _begin(self):
        self._pending += 1
        self.last_error = None

    def _end(self):
        self._pending = max(self._pending - 1, 0)

    def _fail(self, error: ConsoleError, context: str):
        self.last_error = error
        logger.error(f"{context}: {error}")

    def _reconcile_active(self):
        # Only names that exist in the configured set may be active
        name = self._reported_active
        self._active_source_name = name if name in self.configured_sources else ""

    def clear_error(self):
        self.last_error = None

    def status_for(self, name: str) -> ConnectionStatus:
        return self.connection_status.get(name) or ConnectionStatus()

    @staticmethod
    def _parse_sources(data: Any) -> Dict[str, DataSourceConfig]:
        if not isinstance(data, dict):
            raise ValidationFailure("Unexpected data source payload")
        sources = data.get("sources") or {}
        if not isinstance(sources, dict):
            raise ValidationFailure("Data sources must be keyed by name")
        try:
            return {name: DataSourceConfig.model_validate(config) for name, config in sources.items()}
        except ValidationError as e:
            raise ValidationFailure(
                "Unexpected data source configuration",
                details=e.errors(include_url=False, include_context=False)
            ) from e

    # Operations

    async def fetch_all(self) -> Optional[Dict[str, DataSourceConfig]]:
        """Load every configured source and the active name"""
        self._begin()
        try:
            data = await self.transport.get(self.endpoint)
            sources = self._parse_sources(data)
        except ConsoleError as e:
            self._fail(e, "Failed to load data sources")
            return None
        finally:
            self._end()

        self.configured_sources = sources
        self._reported_active = str(data.get("active_source") or "")
        self._reconcile_active()
        return sources

    async def fetch_active(self) -> Optional[str]:
        """Load the active source name"""
        self._begin()
        try:
            data = await self.transport.get(f"{self.endpoint}/active")
        except ConsoleError as e:
            self._fail(e, "Failed to load active data source")
            return None
        finally:
            self._end()

        name = data.get("name") if isinstance(data, dict) else None
        self._reported_active = str(name or "")
        self._reconcile_active()
        return self._active_source_name

    async def set_active(self, name: str) -> bool:
        """
        Switch the active source.

        The backend does not update the source list and the active pointer
        atomically, so both are re-read afterwards and each keeps whatever
        the backend last reported.
        """
        self._begin()
        try:
            await self.transport.put(f"{self.endpoint}/active", {"name": name})
        except ConsoleError as e:
            self._fail(e, f"Failed to set active data source {name}")
            return False
        finally:
            self._end()

        logger.info(f"Active data source set to {name}")
        await asyncio.gather(self.fetch_active(), self.fetch_all())
        if self._active_source_name != name:
            logger.warning(
                f"Backend reports {self._active_source_name or 'no source'} active after switching to {name}"
            )
        return True

    async def update_source(self, name: str, config: Union[DataSourceUpdate, Dict[str, Any]]) -> bool:
        """Send a partial edit; a masked password is left out of the request"""
        try:
            update = config if isinstance(config, DataSourceUpdate) else DataSourceUpdate.model_validate(config)
        except ValidationError as e:
            self.last_error = ValidationFailure(
                "Invalid data source configuration",
                details=e.errors(include_url=False, include_context=False)
            )
            logger.error(f"Rejected before sending: {self.last_error}")
            return False

        self._begin()
        try:
            await self.transport.put(f"{self.endpoint}/{name}", update.to_payload())
        except ConsoleError as e:
            self._fail(e, f"Failed to update data source {name}")
            return False
        finally:
            self._end()

        logger.info(f"Updated data source: {name}")
        await self.fetch_all()
        return True

    async def test_connection(self, name: str, config: Optional[ConfigLike] = None) -> ConnectionStatus:
        """Probe a source and record the outcome in its status slot"""
        if config is None:
            config = self.configured_sources.get(name)
        if config is None:
            logger.warning(f"No configuration for data source {name}, skipping connection test")
            status = ConnectionStatus(state=ConnectionState.ERROR, message=f"Connection failed: unknown data source {name}")
            self.connection_status[name] = status
            return status
        if isinstance(config, DataSourceConfig):
            payload = config.model_dump(mode="json", exclude_none=True)
        else:
            payload = dict(config)
        if isinstance(payload.get("url"), str):
            payload["url"] = payload["url"].rstrip("/")
        if "basicAuth" in payload and "basic_auth" not in payload:
            payload["basic_auth"] = payload.pop("basicAuth")

        self.connection_status[name] = ConnectionStatus(state=ConnectionState.TESTING)
        try:
            await self.transport.post(f"{self.endpoint}/{name}/test", payload)
        except ConsoleError as e:
            prefix = "Connection failed" if e.status_code is not None else "Test request failed"
            status = ConnectionStatus(state=ConnectionState.ERROR, message=f"{prefix}: {e.message}")
        else:
            status = ConnectionStatus(state=ConnectionState.SUCCESS, message="Connection successful!")

        self.connection_status[name] = status
        return status

    async def test_all_connections(self) -> Dict[str, ConnectionStatus]:
        """Probe every configured source concurrently"""
        names = list(self.configured_sources)
        results = await asyncio.gather(*(self.test_connection(name) for name in names))
        return dict(zip(names, results))

    def snapshot(self) -> Dict[str, Any]:
        return {
            "sources": {
                name: config.model_dump(mode="json") for name, config in self.configured_sources.items()
            },
            "active_source": self.active_source_name,
            "connection_status": {
                name: status.model_dump(mode="json") for name, status in self.connection_status.items()
            },
            "busy": self.busy,
            "error": self.last_error.to_dict() if self.last_error else None,
        }
