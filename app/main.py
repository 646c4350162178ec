from __future__ import annotations

from contextlib import asynccontextmanager
import logging

from fastapi import FastAPI

from app.db.init_db import init_db
from app.db.session import create_db_engine, create_session_factory
from app.db.stores import SqlDirectoryStore, SqlProfileStore
from app.identity import IdentityTokenValidator
from app.logging_config import configure_app_logging
from app.routers import health, scope
from app.scope_engine import CapabilityEvaluator
from app.security.sessions import SessionRegistry
from app.settings import Settings, get_settings

logger = logging.getLogger(__name__)


def create_app(settings: Settings | None = None, token_validator: IdentityTokenValidator | None = None) -> FastAPI:
    @asynccontextmanager
    async def lifespan(app: FastAPI):
        # Startup
        cfg = settings or get_settings()
        configure_app_logging(cfg.log_level)
        logger.info("App startup beginning")

        engine = create_db_engine(cfg.resolved_db_url())
        session_factory = create_session_factory(engine)
        init_db(engine, session_factory, seed=cfg.seed_demo_data)
        logger.info("Database initialized (tables ensured, seed=%s)", cfg.seed_demo_data)

        capability_path = cfg.resolved_capability_config_path()
        evaluator = CapabilityEvaluator.from_yaml(capability_path) if capability_path.exists() else CapabilityEvaluator()
        logger.info("Capability table loaded roles=%s", sorted(evaluator.table))

        app.state.settings = cfg
        app.state.token_validator = token_validator or IdentityTokenValidator()
        app.state.session_registry = SessionRegistry(
            SqlDirectoryStore(session_factory),
            SqlProfileStore(session_factory),
            evaluator,
            device_cache_dir=cfg.resolved_device_cache_dir(),
        )

        yield
        # Shutdown
        engine.dispose()

    app = FastAPI(title="Case scope service", lifespan=lifespan)

    app.include_router(health.router)
    app.include_router(scope.router)

    return app


app = create_app()
