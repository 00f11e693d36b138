"""
Configuration Templates
Typed default configurations and descriptions for every middleware and service variant
"""

import json
from enum import Enum
from typing import Any, Dict, List, Optional, Type

from pydantic import BaseModel, ConfigDict, Field, RootModel
from pydantic.alias_generators import to_camel

from .models import MiddlewareType, ServiceType

EMPTY_TEMPLATE = "{}"


class EntityKind(str, Enum):
    MIDDLEWARE = "middleware"
    SERVICE = "service"


class Protocol(str, Enum):
    HTTP = "http"
    TCP = "tcp"
    UDP = "udp"


class VariantConfig(BaseModel):
    """Base for variant payloads; field names are emitted in camelCase"""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="allow")


# Middleware variants

class BasicAuthConfig(VariantConfig):
    users: List[str] = Field(default_factory=lambda: ["admin:$apr1$H6uskkkW$IgXLP6ewTrSuBkTrqE8wj/"])


class DigestAuthConfig(VariantConfig):
    users: List[str] = Field(default_factory=lambda: ["test:traefik:a2688e031edb4be6a3797f3882655c05"])


class ForwardAuthConfig(VariantConfig):
    address: str = "http://auth-service:9090/auth"
    trust_forward_header: bool = True
    auth_response_headers: List[str] = Field(default_factory=lambda: ["X-Auth-User", "X-Auth-Roles"])


class SourceRangeConfig(VariantConfig):
    source_range: List[str] = Field(default_factory=lambda: ["127.0.0.1/32", "192.168.1.0/24"])


class RateLimitConfig(VariantConfig):
    average: int = 100
    burst: int = 50


class HeadersConfig(VariantConfig):
    browser_xss_filter: bool = True
    content_type_nosniff: bool = True
    custom_frame_options_value: str = "SAMEORIGIN"
    force_sts_header: bool = Field(default=True, alias="forceSTSHeader")
    sts_include_subdomains: bool = True
    sts_seconds: int = 63072000
    custom_response_headers: Dict[str, str] = Field(
        default_factory=lambda: {"X-Custom-Header": "value", "Server": ""}
    )


class StripPrefixConfig(VariantConfig):
    prefixes: List[str] = Field(default_factory=lambda: ["/api"])
    force_slash: bool = True


class StripPrefixRegexConfig(VariantConfig):
    regex: List[str] = Field(default_factory=lambda: [r"^/api/v\d+/"])


class AddPrefixConfig(VariantConfig):
    prefix: str = "/api"


class RedirectRegexConfig(VariantConfig):
    regex: str = "^http://(.*)$"
    replacement: str = "https://${1}"
    permanent: bool = True


class RedirectSchemeConfig(VariantConfig):
    scheme: str = "https"
    permanent: bool = True
    port: str = "443"


class ReplacePathConfig(VariantConfig):
    path: str = "/newpath"


class ReplacePathRegexConfig(VariantConfig):
    regex: str = "^/api/(.*)"
    replacement: str = "/bar/$1"


class ChainConfig(VariantConfig):
    middlewares: List[str] = Field(default_factory=list)


class PluginConfig(RootModel[Dict[str, Dict[str, Any]]]):
    # Keyed by plugin name, passed through untouched
    root: Dict[str, Dict[str, Any]] = Field(
        default_factory=lambda: {"plugin-name": {"option1": "value1", "option2": "value2"}}
    )


class BufferingConfig(VariantConfig):
    max_request_body_bytes: int = 10485760
    mem_request_body_bytes: int = 2097152
    max_response_body_bytes: int = 10485760
    mem_response_body_bytes: int = 2097152
    retry_expression: str = "IsNetworkError() && Attempts() < 2"


class CircuitBreakerConfig(VariantConfig):
    expression: str = "NetworkErrorRatio() > 0.5 && Requests > 10"


class CompressConfig(VariantConfig):
    excluded_content_types: List[str] = Field(default_factory=lambda: ["text/event-stream"])


class ContentTypeConfig(VariantConfig):
    pass


class ErrorsConfig(VariantConfig):
    status: List[str] = Field(default_factory=lambda: ["500-599"])
    service: str = "error-service@file"
    query: str = "/{status}.html"


class GrpcWebConfig(VariantConfig):
    pass


class InFlightReqConfig(VariantConfig):
    amount: int = 10


class PassTLSClientCertConfig(VariantConfig):
    pem: bool = True


class RetryConfig(VariantConfig):
    attempts: int = 4


# Service variants

class Server(VariantConfig):
    url: Optional[str] = None
    address: Optional[str] = None
    weight: Optional[int] = None
    tls: Optional[bool] = None


class HealthCheck(VariantConfig):
    path: Optional[str] = None
    interval: Optional[str] = None
    timeout: Optional[str] = None


class StickyCookie(VariantConfig):
    name: str
    secure: Optional[bool] = None
    http_only: Optional[bool] = None


class Sticky(VariantConfig):
    cookie: StickyCookie


class LoadBalancerConfig(VariantConfig):
    servers: List[Server] = Field(default_factory=lambda: [
        Server(url="http://backend1:80"),
        Server(url="http://backend2:80", weight=2),
    ])
    health_check: Optional[HealthCheck] = Field(
        default_factory=lambda: HealthCheck(path="/health", interval="10s", timeout="3s")
    )
    sticky: Optional[Sticky] = Field(
        default_factory=lambda: Sticky(cookie=StickyCookie(name="sticky_session", secure=True, http_only=True))
    )
    pass_host_header: Optional[bool] = True
    termination_delay: Optional[int] = None


class WeightedService(VariantConfig):
    name: str
    weight: int = 1


class WeightedConfig(VariantConfig):
    services: List[WeightedService] = Field(default_factory=lambda: [
        WeightedService(name="primary-service@file", weight=3),
        WeightedService(name="backup-service@file", weight=1),
    ])
    health_check: Optional[HealthCheck] = Field(default_factory=HealthCheck)
    sticky: Optional[Sticky] = Field(
        default_factory=lambda: Sticky(cookie=StickyCookie(name="weighted_sticky"))
    )


class Mirror(VariantConfig):
    name: str
    percent: int = 0


class MirroringConfig(VariantConfig):
    service: str = "primary-service@file"
    mirrors: List[Mirror] = Field(default_factory=lambda: [
        Mirror(name="analytics-service@file", percent=10),
        Mirror(name="testing-service@file", percent=5),
    ])
    mirror_body: bool = True
    max_body_size: int = 10485760
    health_check: Optional[HealthCheck] = Field(default_factory=HealthCheck)


class FailoverConfig(VariantConfig):
    service: str = "main-service@file"
    fallback: str = "backup-service@file"
    health_check: Optional[HealthCheck] = Field(default_factory=HealthCheck)


MIDDLEWARE_CONFIGS: Dict[str, Type[BaseModel]] = {
    MiddlewareType.BASIC_AUTH.value: BasicAuthConfig,
    MiddlewareType.DIGEST_AUTH.value: DigestAuthConfig,
    MiddlewareType.FORWARD_AUTH.value: ForwardAuthConfig,
    MiddlewareType.IP_WHITE_LIST.value: SourceRangeConfig,
    MiddlewareType.IP_ALLOW_LIST.value: SourceRangeConfig,
    MiddlewareType.RATE_LIMIT.value: RateLimitConfig,
    MiddlewareType.HEADERS.value: HeadersConfig,
    MiddlewareType.STRIP_PREFIX.value: StripPrefixConfig,
    MiddlewareType.STRIP_PREFIX_REGEX.value: StripPrefixRegexConfig,
    MiddlewareType.ADD_PREFIX.value: AddPrefixConfig,
    MiddlewareType.REDIRECT_REGEX.value: RedirectRegexConfig,
    MiddlewareType.REDIRECT_SCHEME.value: RedirectSchemeConfig,
    MiddlewareType.REPLACE_PATH.value: ReplacePathConfig,
    MiddlewareType.REPLACE_PATH_REGEX.value: ReplacePathRegexConfig,
    MiddlewareType.CHAIN.value: ChainConfig,
    MiddlewareType.PLUGIN.value: PluginConfig,
    MiddlewareType.BUFFERING.value: BufferingConfig,
    MiddlewareType.CIRCUIT_BREAKER.value: CircuitBreakerConfig,
    MiddlewareType.COMPRESS.value: CompressConfig,
    MiddlewareType.CONTENT_TYPE.value: ContentTypeConfig,
    MiddlewareType.ERRORS.value: ErrorsConfig,
    MiddlewareType.GRPC_WEB.value: GrpcWebConfig,
    MiddlewareType.IN_FLIGHT_REQ.value: InFlightReqConfig,
    MiddlewareType.PASS_TLS_CLIENT_CERT.value: PassTLSClientCertConfig,
    MiddlewareType.RETRY.value: RetryConfig,
}

SERVICE_CONFIGS: Dict[str, Type[BaseModel]] = {
    ServiceType.LOAD_BALANCER.value: LoadBalancerConfig,
    ServiceType.WEIGHTED.value: WeightedConfig,
    ServiceType.MIRRORING.value: MirroringConfig,
    ServiceType.FAILOVER.value: FailoverConfig,
}

PROTOCOL_CONFIGS: Dict[str, LoadBalancerConfig] = {
    Protocol.TCP.value: LoadBalancerConfig(
        servers=[Server(address="backend1:8080"), Server(address="backend2:8080", tls=True)],
        health_check=None,
        sticky=None,
        pass_host_header=None,
        termination_delay=100,
    ),
    Protocol.UDP.value: LoadBalancerConfig(
        servers=[Server(address="backend1:53"), Server(address="backend2:53")],
        health_check=None,
        sticky=None,
        pass_host_header=None,
    ),
}


class VariantInfo(BaseModel):
    """Human-readable description of a variant"""
    label: str = ""
    description: str
    format: Optional[str] = None
    notes: Optional[str] = None
    options: List[str] = Field(default_factory=list)


MIDDLEWARE_INFO: Dict[str, VariantInfo] = {
    "basicAuth": VariantInfo(
        label="Basic Authentication",
        description="Restricts access to users listed as name:hashed-password pairs",
        format="users: Array of \"user:htpasswd-hash\" strings",
    ),
    "digestAuth": VariantInfo(
        label="Digest Authentication",
        description="Restricts access using HTTP digest authentication",
        format="users: Array of \"user:realm:hash\" strings",
    ),
    "forwardAuth": VariantInfo(
        label="Forward Authentication",
        description="Delegates authentication to an external service",
        notes="Headers listed in authResponseHeaders are copied from the auth response",
    ),
    "ipWhiteList": VariantInfo(
        label="IP Whitelist",
        description="Allows requests only from the listed IP ranges",
        notes="Deprecated name; prefer ipAllowList",
    ),
    "ipAllowList": VariantInfo(
        label="IP Allow List",
        description="Allows requests only from the listed IP ranges",
    ),
    "rateLimit": VariantInfo(
        label="Rate Limiting",
        description="Limits the average request rate with an allowed burst",
    ),
    "headers": VariantInfo(
        label="HTTP Headers",
        description="Adds security and custom headers to requests and responses",
    ),
    "stripPrefix": VariantInfo(
        label="Strip Prefix",
        description="Removes the listed path prefixes before forwarding",
    ),
    "stripPrefixRegex": VariantInfo(
        label="Strip Prefix Regex",
        description="Removes path prefixes matching the listed regular expressions",
    ),
    "addPrefix": VariantInfo(
        label="Add Prefix",
        description="Prepends a prefix to the request path",
    ),
    "redirectRegex": VariantInfo(
        label="Redirect Regex",
        description="Redirects requests whose URL matches a regular expression",
    ),
    "redirectScheme": VariantInfo(
        label="Redirect Scheme",
        description="Redirects requests to another scheme and port",
    ),
    "replacePath": VariantInfo(
        label="Replace Path",
        description="Replaces the request path",
    ),
    "replacePathRegex": VariantInfo(
        label="Replace Path Regex",
        description="Rewrites the request path with a regular expression",
    ),
    "chain": VariantInfo(
        label="Middleware Chain",
        description="Applies other middlewares in a fixed order",
        format="middlewares: Array of middleware IDs",
        notes="Middlewares are applied in the order listed",
    ),
    "plugin": VariantInfo(
        label="Traefik Plugin",
        description="Passes configuration through to an installed plugin",
        format="Object keyed by plugin name",
    ),
    "buffering": VariantInfo(
        label="Buffering",
        description="Buffers request and response bodies with size limits",
    ),
    "circuitBreaker": VariantInfo(
        label="Circuit Breaker",
        description="Stops forwarding to an unhealthy backend while the expression holds",
    ),
    "compress": VariantInfo(
        label="Compression",
        description="Compresses responses",
    ),
    "contentType": VariantInfo(
        label="Content Type",
        description="Controls automatic Content-Type detection",
    ),
    "errors": VariantInfo(
        label="Error Pages",
        description="Serves custom pages for the listed status ranges",
    ),
    "grpcWeb": VariantInfo(
        label="gRPC Web",
        description="Converts gRPC-Web requests to HTTP/2 gRPC",
    ),
    "inFlightReq": VariantInfo(
        label="In-Flight Request Limiter",
        description="Limits the number of simultaneous requests",
    ),
    "passTLSClientCert": VariantInfo(
        label="Pass TLS Client Certificate",
        description="Forwards the client certificate in a request header",
    ),
    "retry": VariantInfo(
        label="Retry",
        description="Retries failed requests up to the given number of attempts",
    ),
}

SERVICE_INFO: Dict[str, VariantInfo] = {
    "loadBalancer": VariantInfo(
        label="Load Balancer",
        description="Routes requests to multiple backend servers with load balancing",
        format="url: \"http://server-address:port\" (HTTP) or address: \"server:port\" (TCP/UDP)",
        options=[
            "sticky: For session persistence",
            "healthCheck: For server health monitoring",
            "passHostHeader: To control Host header forwarding",
            "weight: To distribute load proportionally",
        ],
    ),
    "weighted": VariantInfo(
        label="Weighted",
        description="Distributes requests across multiple named services with weighted load balancing",
        format="services: Array of {name, weight} objects",
        notes="Must reference existing services (e.g., service-name@file)",
    ),
    "mirroring": VariantInfo(
        label="Mirroring",
        description="Forwards requests to a primary service while mirroring a percentage of traffic to other services",
        format="service: Primary service, mirrors: Array of {name, percent} objects",
        notes="Used for testing, analytics, or gradual deployments",
    ),
    "failover": VariantInfo(
        label="Failover",
        description="Routes to a primary service until it fails, then uses a fallback service",
        format="service: Main service, fallback: Backup service",
        notes="Typically used with healthCheck configuration",
    ),
}


def render(config: BaseModel) -> str:
    """Canonical pretty-printed JSON for a variant payload"""
    return json.dumps(config.model_dump(mode="json", by_alias=True, exclude_none=True), indent=2)


class ConfigTemplateRegistry:
    """Maps (entity kind, variant) to default configuration text and descriptions"""

    @staticmethod
    def variants(kind: str) -> List[str]:
        if kind == EntityKind.MIDDLEWARE.value:
            return list(MIDDLEWARE_CONFIGS)
        if kind == EntityKind.SERVICE.value:
            return list(SERVICE_CONFIGS)
        return []

    @staticmethod
    def config_model(kind: str, variant: str) -> Optional[Type[BaseModel]]:
        if kind == EntityKind.MIDDLEWARE.value:
            return MIDDLEWARE_CONFIGS.get(variant)
        if kind == EntityKind.SERVICE.value:
            return SERVICE_CONFIGS.get(variant)
        return None

    @staticmethod
    def template_for(kind: str, variant: str) -> str:
        """Default configuration for a variant; unknown variants get an empty object"""
        model = ConfigTemplateRegistry.config_model(kind, variant)
        if model is None:
            return EMPTY_TEMPLATE
        return render(model())

    @staticmethod
    def template_dict(kind: str, variant: str) -> Dict[str, Any]:
        return json.loads(ConfigTemplateRegistry.template_for(kind, variant))

    @staticmethod
    def protocol_template(protocol: str) -> str:
        """Load-balancer template for a transport protocol (tcp/udp; http is the plain default)"""
        if protocol == Protocol.HTTP.value:
            return ConfigTemplateRegistry.template_for(EntityKind.SERVICE.value, ServiceType.LOAD_BALANCER.value)
        config = PROTOCOL_CONFIGS.get(protocol)
        if config is None:
            return EMPTY_TEMPLATE
        return render(config)

    @staticmethod
    def describe_variant(kind: str, variant: str) -> VariantInfo:
        if kind == EntityKind.MIDDLEWARE.value:
            return MIDDLEWARE_INFO.get(variant) or VariantInfo(description="Unknown middleware type")
        if kind == EntityKind.SERVICE.value:
            return SERVICE_INFO.get(variant) or VariantInfo(description="Unknown service type")
        return VariantInfo(description="Unknown type")

    @staticmethod
    def missing_variants() -> Dict[str, List[str]]:
        """Enumerated variants without a template or description"""
        missing = {}
        for kind, enum, configs, info in (
            (EntityKind.MIDDLEWARE.value, MiddlewareType, MIDDLEWARE_CONFIGS, MIDDLEWARE_INFO),
            (EntityKind.SERVICE.value, ServiceType, SERVICE_CONFIGS, SERVICE_INFO),
        ):
            absent = [member.value for member in enum if member.value not in configs or member.value not in info]
            if absent:
                missing[kind] = absent
        return missing


def detect_protocol(config_text: str) -> str:
    """Best guess of a load-balancer's protocol from its configuration text"""
    if '"address":' in config_text:
        if ":53" in config_text or '"udp"' in config_text:
            return Protocol.UDP.value
        return Protocol.TCP.value
    return Protocol.HTTP.value
