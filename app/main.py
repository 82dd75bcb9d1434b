import uvicorn
from fastapi import FastAPI

from app.api.routes.health import router as health_router
from app.api.routes.internal_access import router as internal_access_router
from app.api.routes.internal_payments import router as internal_payments_router
from app.api.routes.internal_purchases import router as internal_purchases_router
from app.api.routes.internal_users import router as internal_users_router
from app.api.routes.internal_wallet import router as internal_wallet_router
from app.api.routes.payments import router as payments_router
from app.core.config import get_settings
from app.core.logging import configure_logging


def create_app() -> FastAPI:
    settings = get_settings()
    configure_logging(settings.log_level)

    docs_enabled = settings.enable_openapi_docs
    app = FastAPI(
        title="VOD Wallet Ledger API",
        version="0.1.0",
        docs_url="/docs" if docs_enabled else None,
        redoc_url="/redoc" if docs_enabled else None,
        openapi_url="/openapi.json" if docs_enabled else None,
    )
    app.include_router(health_router)
    app.include_router(payments_router)
    app.include_router(internal_users_router)
    app.include_router(internal_wallet_router)
    app.include_router(internal_purchases_router)
    app.include_router(internal_access_router)
    app.include_router(internal_payments_router)
    return app


app = create_app()


def run() -> None:
    settings = get_settings()
    uvicorn.run(
        "app.main:app",
        host=settings.app_host,
        port=settings.app_port,
        reload=settings.app_env == "dev",
    )


if __name__ == "__main__":
    run()
