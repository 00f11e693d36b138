"""
Plugin Store
Plugin catalog, plugin installation and the Traefik static config path
"""

import logging
from typing import Any, Dict, List, Optional, Union

from pydantic import ValidationError

from ..errors import ConsoleError, ValidationFailure
from ..models import Plugin, PluginInstall
from ..transport import Transport

logger = logging.getLogger(__name__)


class PluginStore:
    """
    Store for the plugin hub.

    Installing a plugin only edits Traefik's static configuration on the
    backend; the catalog itself does not change, so nothing is re-fetched.
    """

    endpoint = "/api/plugins"

    def __init__(self, transport: Transport):
        self.transport = transport
        self.plugins: List[Plugin] = []
        self.config_path = ""
        self.last_message: Optional[str] = None
        self.last_error: Optional[ConsoleError] = None
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

    def _reject(self, error: ValidationFailure):
        self.last_error = error
        logger.error(f"Rejected before sending: {error}")

    def clear_error(self):
        self.last_error = None

    def find(self, module_name: str) -> Optional[Plugin]:
        return next((plugin for plugin in self.plugins if plugin.module_name == module_name), None)

    @staticmethod
    def _parse_plugins(data: Any) -> List[Plugin]:
        if data is None:
            return []
        if not isinstance(data, list):
            raise ValidationFailure("Expected a list of plugins")
        try:
            return [Plugin.model_validate(item) for item in data]
        except ValidationError as e:
            raise ValidationFailure(
                "Unexpected plugin payload",
                details=e.errors(include_url=False, include_context=False)
            ) from e

    # Operations

    async def fetch_all(self) -> Optional[List[Plugin]]:
        """Load the plugin catalog"""
        self._begin()
        try:
            data = await self.transport.get(self.endpoint)
            plugins = self._parse_plugins(data)
        except ConsoleError as e:
            self._fail(e, "Failed to load plugins")
            return None
        finally:
            self._end()

        self.plugins = plugins
        logger.debug(f"Loaded {len(plugins)} plugins")
        return plugins

    async def install_plugin(self, request: Union[PluginInstall, Dict[str, Any]]) -> bool:
        """Ask the backend to add a plugin to Traefik's static configuration"""
        try:
            install = request if isinstance(request, PluginInstall) else PluginInstall.model_validate(request)
        except ValidationError as e:
            self._reject(ValidationFailure(
                "Invalid plugin install request",
                details=e.errors(include_url=False, include_context=False)
            ))
            return False

        self._begin()
        try:
            data = await self.transport.post(f"{self.endpoint}/install", install.to_payload())
        except ConsoleError as e:
            self._fail(e, f"Failed to install plugin {install.module_name}")
            return False
        finally:
            self._end()

        message = data.get("message") if isinstance(data, dict) else None
        self.last_message = message or f"Plugin {install.module_name} installation initiated"
        logger.info(self.last_message)
        return True

    async def fetch_config_path(self) -> Optional[str]:
        """Load the Traefik static config path the backend edits on install"""
        self._begin()
        try:
            data = await self.transport.get(f"{self.endpoint}/configpath")
        except ConsoleError as e:
            self._fail(e, "Failed to load Traefik config path")
            return None
        finally:
            self._end()

        path = data.get("path") if isinstance(data, dict) else None
        self.config_path = str(path or "")
        return self.config_path

    async def update_config_path(self, path: str) -> bool:
        """Point the backend at another static config file; keeps the path it confirms"""
        path = (path or "").strip()
        if not path:
            self._reject(ValidationFailure("Traefik config path is required"))
            return False

        self._begin()
        try:
            data = await self.transport.put(f"{self.endpoint}/configpath", {"path": path})
        except ConsoleError as e:
            self._fail(e, "Failed to update Traefik config path")
            return False
        finally:
            self._end()

        confirmed = data.get("path") if isinstance(data, dict) else None
        self.config_path = str(confirmed or path)
        self.last_message = data.get("message") if isinstance(data, dict) else None
        logger.info(f"Traefik config path set to {self.config_path}")
        return True

    def snapshot(self) -> Dict[str, Any]:
        return {
            "items": [plugin.model_dump(mode="json", by_alias=True) for plugin in self.plugins],
            "config_path": self.config_path,
            "busy": self.busy,
            "error": self.last_error.to_dict() if self.last_error else None,
            "message": self.last_message,
        }
