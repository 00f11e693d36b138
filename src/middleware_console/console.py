"""
Middleware Console App
Exposes store state, templates and dashboard data to a UI over HTTP
"""

import logging
from contextlib import asynccontextmanager
from typing import Any, Callable, Dict, Optional

from fastapi import FastAPI, HTTPException, Request
from pydantic import BaseModel

from .client import ConsoleClient
from .config import ConsoleConfig, configure_logging
from .errors import ValidationFailure
from .templates import ConfigTemplateRegistry, EntityKind

logger = logging.getLogger(__name__)

ClientFactory = Callable[[], ConsoleClient]


def _console(request: Request) -> ConsoleClient:
    return request.app.state.console


def _entity_store(console: ConsoleClient, kind: str):
    store = console.store(kind)
    if store is None:
        raise HTTPException(status_code=404, detail=f"Unknown entity kind: {kind}")
    return store


def _any_store(console: ConsoleClient, kind: str):
    if kind == "datasources":
        return console.datasources
    if kind == "plugins":
        return console.plugins
    return _entity_store(console, kind)


def _store_failure(store) -> HTTPException:
    # Validation failures here are requests rejected before sending
    error = store.last_error
    status_code = 400 if isinstance(error, ValidationFailure) else 502
    return HTTPException(status_code=status_code, detail=error.to_dict())


class ConfigPathUpdate(BaseModel):
    path: str = ""


def create_app(client_factory: Optional[ClientFactory] = None) -> FastAPI:
    """Build the console app; the client is created once per app lifespan"""

    if client_factory is None:
        def client_factory() -> ConsoleClient:
            return ConsoleClient(ConsoleConfig.from_env())

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        # Startup
        app.state.console = client_factory()
        logger.info(f"Console connected to {app.state.console.config.api_url}")
        yield
        # Shutdown
        await app.state.console.close()

    app = FastAPI(
        title="Middleware Console",
        description="Client-side state for the proxy middleware manager",
        version="1.0.0",
        lifespan=lifespan,
    )

    @app.get("/health")
    async def health_check(request: Request):
        """Health check endpoint"""
        backend = await _console(request).health_check()
        return {"status": "healthy", "service": "middleware-console", "backend": backend}

    @app.get("/console/dashboard")
    async def dashboard(request: Request):
        return _console(request).dashboard_summary()

    @app.get("/console/datasources")
    async def datasources(request: Request):
        return _console(request).datasources.snapshot()

    @app.post("/console/datasources/test")
    async def test_datasources(request: Request):
        """Probe every configured data source"""
        store = _console(request).datasources
        results = await store.test_all_connections()
        return {name: status.model_dump(mode="json") for name, status in results.items()}

    @app.get("/console/templates/{kind}/{variant}")
    async def template(kind: str, variant: str):
        if kind not in {member.value for member in EntityKind}:
            raise HTTPException(status_code=404, detail=f"Unknown template kind: {kind}")
        return {
            "kind": kind,
            "variant": variant,
            "template": ConfigTemplateRegistry.template_for(kind, variant),
            "info": ConfigTemplateRegistry.describe_variant(kind, variant).model_dump(mode="json"),
        }

    @app.get("/console/middlewares/{middleware_id}/chain")
    async def middleware_chain(middleware_id: str, request: Request):
        store = _console(request).middlewares
        if store.get(middleware_id) is None:
            raise HTTPException(status_code=404, detail=f"Unknown middleware: {middleware_id}")
        return [
            {"id": ref.key, "resolved": ref.resolved, "label": ref.label}
            for ref in store.resolve_chain(middleware_id)
        ]

    @app.post("/console/plugins/install")
    async def install_plugin(body: Dict[str, Any], request: Request):
        """Add a plugin to Traefik's static configuration"""
        store = _console(request).plugins
        if not await store.install_plugin(body):
            raise _store_failure(store)
        return {"message": store.last_message}

    @app.get("/console/plugins/configpath")
    async def plugin_config_path(request: Request):
        store = _console(request).plugins
        if await store.fetch_config_path() is None:
            raise _store_failure(store)
        return {"path": store.config_path}

    @app.put("/console/plugins/configpath")
    async def update_plugin_config_path(body: ConfigPathUpdate, request: Request):
        store = _console(request).plugins
        if not await store.update_config_path(body.path):
            raise _store_failure(store)
        return {"path": store.config_path, "message": store.last_message}

    @app.get("/console/{kind}")
    async def snapshot(kind: str, request: Request):
        return _any_store(_console(request), kind).snapshot()

    @app.post("/console/{kind}/refresh")
    async def refresh(kind: str, request: Request):
        store = _any_store(_console(request), kind)
        if await store.fetch_all() is None:
            raise HTTPException(status_code=502, detail=store.last_error.to_dict())
        return store.snapshot()

    @app.delete("/console/{kind}/error")
    async def dismiss_error(kind: str, request: Request):
        _any_store(_console(request), kind).clear_error()
        return {"status": "cleared", "kind": kind}

    return app


configure_logging(ConsoleConfig.from_env().log_level)
app = create_app()


if __name__ == "__main__":
    import uvicorn
    uvicorn.run("middleware_console.console:app", host="0.0.0.0", port=8080, reload=True)
