"""
Console Data Models
Pydantic models for resources, middlewares, services and data sources
"""

import json
import logging
from enum import Enum
from typing import Any, Dict, List, Optional, Union

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator

logger = logging.getLogger(__name__)

DEFAULT_MIDDLEWARE_PRIORITY = 100
DEFAULT_ROUTER_PRIORITY = 100

# Placeholder the backend shows instead of a stored password
MASKED_PASSWORD = "••••••••"


class MiddlewareType(str, Enum):
    """Middleware variants supported by the backend"""
    BASIC_AUTH = "basicAuth"
    DIGEST_AUTH = "digestAuth"
    FORWARD_AUTH = "forwardAuth"
    IP_WHITE_LIST = "ipWhiteList"
    IP_ALLOW_LIST = "ipAllowList"
    RATE_LIMIT = "rateLimit"
    HEADERS = "headers"
    STRIP_PREFIX = "stripPrefix"
    STRIP_PREFIX_REGEX = "stripPrefixRegex"
    ADD_PREFIX = "addPrefix"
    REDIRECT_REGEX = "redirectRegex"
    REDIRECT_SCHEME = "redirectScheme"
    REPLACE_PATH = "replacePath"
    REPLACE_PATH_REGEX = "replacePathRegex"
    CHAIN = "chain"
    PLUGIN = "plugin"
    BUFFERING = "buffering"
    CIRCUIT_BREAKER = "circuitBreaker"
    COMPRESS = "compress"
    CONTENT_TYPE = "contentType"
    ERRORS = "errors"
    GRPC_WEB = "grpcWeb"
    IN_FLIGHT_REQ = "inFlightReq"
    PASS_TLS_CLIENT_CERT = "passTLSClientCert"
    RETRY = "retry"


class ServiceType(str, Enum):
    """Service variants supported by the backend"""
    LOAD_BALANCER = "loadBalancer"
    WEIGHTED = "weighted"
    MIRRORING = "mirroring"
    FAILOVER = "failover"


class DataSourceType(str, Enum):
    """Backend APIs a data source can point at"""
    PANGOLIN = "pangolin"
    TRAEFIK = "traefik"


class ConnectionState(str, Enum):
    """Result of the last connection probe for a data source"""
    UNTESTED = "untested"
    TESTING = "testing"
    SUCCESS = "success"
    ERROR = "error"


def _parse_config(value: Any) -> Dict[str, Any]:
    # The backend occasionally sends config as a JSON string
    if value is None:
        return {}
    if isinstance(value, str):
        try:
            value = json.loads(value)
        except ValueError:
            logger.error("Error parsing config string, treating it as empty")
            return {}
    return value if isinstance(value, dict) else {}


class MiddlewareAssignment(BaseModel):
    """A middleware attached directly to a resource"""
    middleware_id: str
    priority: int = DEFAULT_MIDDLEWARE_PRIORITY
    name: Optional[str] = None
    resource_id: Optional[str] = None

    def to_payload(self) -> Dict[str, Any]:
        return {"middleware_id": self.middleware_id, "priority": self.priority}


def parse_middlewares(value: Any) -> List[MiddlewareAssignment]:
    """Parse the "id:name:priority,..." list the backend attaches to resources"""
    if not value or not isinstance(value, str):
        return []

    assignments = []
    for item in value.split(","):
        if not item:
            continue
        parts = item.split(":")
        middleware_id = parts[0]
        name = parts[1] if len(parts) > 1 else None
        try:
            priority = int(parts[2]) if len(parts) > 2 else DEFAULT_MIDDLEWARE_PRIORITY
        except ValueError:
            priority = DEFAULT_MIDDLEWARE_PRIORITY
        # The backend treats 0 as unset
        assignments.append(MiddlewareAssignment(
            middleware_id=middleware_id,
            name=name,
            priority=priority or DEFAULT_MIDDLEWARE_PRIORITY
        ))
    return assignments


class Resource(BaseModel):
    """A router exposed by the proxy"""
    model_config = ConfigDict(extra="allow")

    id: str
    name: Optional[str] = None
    host: str = ""
    service_id: Optional[str] = None
    org_id: Optional[str] = None
    site_id: Optional[str] = None
    status: Optional[str] = None
    entrypoints: Optional[str] = None
    tls_domains: Optional[str] = None
    tcp_enabled: Optional[bool] = False
    tcp_entrypoints: Optional[str] = None
    tcp_sni_rule: Optional[str] = None
    custom_headers: Optional[Union[str, Dict[str, Any]]] = None
    router_priority: int = DEFAULT_ROUTER_PRIORITY
    middlewares: Optional[str] = None
    source_type: Optional[str] = None

    @field_validator("router_priority", mode="before")
    @classmethod
    def default_router_priority(cls, value: Any) -> Any:
        return DEFAULT_ROUTER_PRIORITY if value in (None, "", 0) else value

    @property
    def display_name(self) -> str:
        return self.name or self.host or self.id

    @property
    def service_ref(self) -> Optional[str]:
        return self.service_id or None

    @property
    def is_disabled(self) -> bool:
        return self.status == "disabled"

    @property
    def assignments(self) -> List[MiddlewareAssignment]:
        return [
            assignment.model_copy(update={"resource_id": self.id})
            for assignment in parse_middlewares(self.middlewares)
        ]

    def headers(self) -> Dict[str, Any]:
        """Custom headers as a dict, whichever form the backend used"""
        value = self.custom_headers
        if isinstance(value, str):
            if not value:
                return {}
            try:
                value = json.loads(value)
            except ValueError:
                logger.error(f"Error parsing custom headers for resource {self.id}")
                return {}
        return dict(value) if isinstance(value, dict) else {}


class Middleware(BaseModel):
    """A reusable request/response transform"""
    model_config = ConfigDict(extra="allow")

    id: str
    name: str = ""
    type: str
    config: Dict[str, Any] = Field(default_factory=dict)

    @field_validator("config", mode="before")
    @classmethod
    def normalize_config(cls, value: Any) -> Dict[str, Any]:
        return _parse_config(value)

    @property
    def is_chain(self) -> bool:
        return self.type == MiddlewareType.CHAIN.value

    @property
    def chain_members(self) -> List[str]:
        """Referenced middleware IDs in application order, duplicates kept"""
        if not self.is_chain:
            return []
        members = self.config.get("middlewares")
        if not isinstance(members, list):
            return []
        return [str(member) for member in members]


class Service(BaseModel):
    """A backend target group"""
    model_config = ConfigDict(extra="allow")

    id: str
    name: str = ""
    type: str
    config: Dict[str, Any] = Field(default_factory=dict)

    @field_validator("config", mode="before")
    @classmethod
    def normalize_config(cls, value: Any) -> Dict[str, Any]:
        return _parse_config(value)


class BasicAuth(BaseModel):
    username: str = ""
    password: str = ""


class DataSourceConfig(BaseModel):
    """Connection parameters for one backend API"""
    model_config = ConfigDict(extra="allow", populate_by_name=True)

    type: DataSourceType = DataSourceType.PANGOLIN
    url: str = ""
    basic_auth: Optional[BasicAuth] = Field(
        default=None,
        validation_alias=AliasChoices("basic_auth", "basicAuth")
    )

    @property
    def has_credentials(self) -> bool:
        return bool(self.basic_auth and self.basic_auth.username)


class BasicAuthUpdate(BaseModel):
    username: Optional[str] = None
    password: Optional[str] = None


class DataSourceUpdate(BaseModel):
    """
    Partial data source edit.

    Only fields that were explicitly provided are sent. A password equal to
    ``MASKED_PASSWORD`` is the backend's own placeholder and counts as not
    provided, so saving an untouched form keeps the stored secret.
    """
    model_config = ConfigDict(populate_by_name=True)

    type: Optional[DataSourceType] = None
    url: Optional[str] = None
    basic_auth: Optional[BasicAuthUpdate] = Field(
        default=None,
        validation_alias=AliasChoices("basic_auth", "basicAuth")
    )

    def to_payload(self) -> Dict[str, Any]:
        payload = self.model_dump(mode="json", exclude_unset=True)
        auth = payload.get("basic_auth")
        if isinstance(auth, dict) and auth.get("password") == MASKED_PASSWORD:
            del auth["password"]
        return payload


class ConnectionStatus(BaseModel):
    state: ConnectionState = ConnectionState.UNTESTED
    message: Optional[str] = None


class Plugin(BaseModel):
    """Catalog entry for a Traefik plugin"""
    model_config = ConfigDict(extra="allow", populate_by_name=True)

    display_name: str = Field(default="", alias="displayName")
    type: str = ""
    icon_path: str = Field(default="", alias="iconPath")
    module_name: str = Field(default="", alias="import")
    summary: str = ""
    author: Optional[str] = None
    version: Optional[str] = None
    tested_with: Optional[str] = None
    stars: int = 0
    homepage: Optional[str] = None
    docs: Optional[str] = None


class PluginInstall(BaseModel):
    """Install request; an empty version lets the backend pick one"""
    model_config = ConfigDict(populate_by_name=True)

    module_name: str = Field(alias="moduleName")
    version: Optional[str] = None

    @field_validator("module_name")
    @classmethod
    def require_module_name(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("module name is required")
        return value

    @field_validator("version", mode="before")
    @classmethod
    def empty_version_is_none(cls, value: Any) -> Any:
        if isinstance(value, str) and not value.strip():
            return None
        return value

    def to_payload(self) -> Dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


class Reference(BaseModel):
    """Outcome of looking up a cross-reference by ID or name"""
    model_config = ConfigDict(arbitrary_types_allowed=True)

    key: str
    kind: str
    entity: Optional[Any] = None

    @property
    def resolved(self) -> bool:
        return self.entity is not None

    @property
    def label(self) -> str:
        if self.entity is None:
            return f"{self.key} (unknown {self.kind})"
        name = getattr(self.entity, "name", "") or self.key
        entity_type = getattr(self.entity, "type", None)
        return f"{name} ({entity_type})" if entity_type else name
