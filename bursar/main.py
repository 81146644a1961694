import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from bursar.api.v1.gateway.router import router as gateway_router
from bursar.api.v1.obligations.router import router as obligations_router
from bursar.api.v1.payments.router import router as payments_router
from bursar.api.v1.reconciliation.router import router as reconciliation_router
from bursar.api.v1.reminders.router import router as reminders_router
from bursar.api.v1.webhooks.router import router as webhooks_router
from bursar.core.config import settings


def configure_logging() -> None:
    logging.basicConfig(
        level=getattr(logging, settings.log_level.upper(), logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


def create_app() -> FastAPI:
    configure_logging()
    app = FastAPI(title="Bursar Payments")

    # CORS: allow the school frontend to call this API
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Routers
    app.include_router(obligations_router)
    app.include_router(payments_router)
    app.include_router(webhooks_router)
    app.include_router(gateway_router)
    app.include_router(reminders_router)
    app.include_router(reconciliation_router)

    return app


app = create_app()
