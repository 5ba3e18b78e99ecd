"""
FastAPI application factory.

Routes are thin: identity, rate limiting and DB sessions arrive through
dependencies, and every decision is delegated to the resolver, the policy
evaluator or the settlement services.
"""

import logging
from typing import Callable, Optional

from fastapi import FastAPI
from sqlalchemy.orm import sessionmaker

from access_core import __version__
from access_core.api.routes import payments, plans, products, suggestions
from access_core.database import build_engine, build_session_factory
from access_core.platform.errors import register_error_handlers
from access_core.policy.platform_snapshot import PlatformSnapshotCache

logger = logging.getLogger(__name__)


def create_app(
    session_factory: Optional[sessionmaker] = None,
    gateway_factory: Optional[Callable] = None,
    platform_cache: Optional[PlatformSnapshotCache] = None,
) -> FastAPI:
    """
    Build the application.

    Args:
        session_factory: SQLAlchemy sessionmaker (from DATABASE_URL if omitted)
        gateway_factory: Callable returning an async-context-managed gateway client
        platform_cache: Platform snapshot cache (process default if omitted)
    """
    app = FastAPI(title="Creator Access Core", version=__version__)

    app.state.session_factory = session_factory or build_session_factory(build_engine())
    app.state.gateway_factory = gateway_factory
    app.state.platform_cache = platform_cache

    register_error_handlers(app)

    app.include_router(products.router)
    app.include_router(suggestions.router)
    app.include_router(payments.router)
    app.include_router(plans.router)

    logger.info("Access core application created", extra={"version": __version__})
    return app
