import logging

import uvicorn
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from starlette.middleware.sessions import SessionMiddleware

from subsites.config import settings
from subsites.database import Base, engine
from subsites.exception_handlers import register_exception_handlers
from subsites.middleware.tenant import TenantMiddleware
from subsites.routes import pages, tenants
from subsites.tenancy.accessible import on_db_reset

logging.basicConfig(level=logging.INFO, format="%(asctime)s - %(levelname)s - %(message)s")
logger = logging.getLogger(__name__)


def create_app() -> FastAPI:
    """Create the FastAPI application."""
    app = FastAPI(
        title=settings.app_name,
        description="Multi-tenant subsites for the CMS",
        debug=settings.debug,
        version=settings.app_version,
    )

    # Middleware is LIFO: SessionMiddleware wraps TenantMiddleware so the
    # session exists when the subsite is resolved
    app.add_middleware(TenantMiddleware)
    app.add_middleware(SessionMiddleware, secret_key=settings.secret_key)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    register_exception_handlers(app)

    # Include routers
    app.include_router(tenants.router, prefix="/api/v1")
    app.include_router(pages.router, prefix="/api/v1")

    @app.on_event("startup")
    async def startup_event():
        logger.info("Starting up the application...")
        if settings.debug:
            async with engine.begin() as conn:
                await conn.run_sync(Base.metadata.create_all)
            logger.info("Database tables created (if not existing).")
            on_db_reset()

    @app.get("/", tags=["Root"])
    async def root():
        return {"message": "Welcome to the CMS Subsites API"}

    if settings.debug:
        logger.info("Running in %s mode", settings.environment)
        logging.getLogger("sqlalchemy.engine").setLevel(logging.INFO)

    return app


app = create_app()


if __name__ == "__main__":
    uvicorn.run("main:app", host="0.0.0.0", port=8000, reload=settings.debug)
