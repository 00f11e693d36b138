"""
Middleware Store
Handles middleware CRUD and chain lookups
"""

import logging
from typing import List, Optional, Union

from ..chain import resolve_chain
from ..models import Middleware, MiddlewareType
from ..templates import ConfigTemplateRegistry, EntityKind
from .base import CrudEntityStore

logger = logging.getLogger(__name__)


class MiddlewareStore(CrudEntityStore[Middleware]):
    """Store for middleware configurations"""

    endpoint = "/api/middlewares"
    model = Middleware
    label = "middleware"
    plural = "middlewares"

    def chains(self) -> List[Middleware]:
        return [item for item in self.collection if item.is_chain]

    def chain_candidates(self, exclude_id: Optional[str] = None) -> List[Middleware]:
        """Middlewares that may be placed in a chain (never the chain itself)"""
        return [item for item in self.collection if item.id != exclude_id]

    def resolve_chain(self, middleware: Union[Middleware, str]):
        """Chain members of a middleware, unknown IDs left unresolved"""
        if isinstance(middleware, str):
            found = self.get(middleware)
            if found is None:
                logger.debug(f"Cannot resolve chain for unknown middleware {middleware}")
                return []
            middleware = found
        return resolve_chain(middleware, self.collection)

    def chains_using(self, middleware_id: str) -> List[Middleware]:
        """Chains that reference the given middleware"""
        return [item for item in self.chains() if middleware_id in item.chain_members]

    @staticmethod
    def template_for(variant: str) -> str:
        return ConfigTemplateRegistry.template_for(EntityKind.MIDDLEWARE.value, variant)

    @staticmethod
    def is_known_type(variant: str) -> bool:
        return variant in {member.value for member in MiddlewareType}
