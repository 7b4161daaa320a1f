from fastapi import FastAPI

from app.retailflow.api import api_router
from app.retailflow.core.config import settings
from app.retailflow.core.errors import setup_exception_handlers
from app.retailflow.core.logging import configure_logging
from app.retailflow.middleware.auth_context import AuthContextMiddleware
from app.retailflow.middleware.observability import ObservabilityMiddleware
from app.retailflow.middleware.trace import TraceIdMiddleware
from app.retailflow.pos.registry import CartRegistry


def create_app() -> FastAPI:
    configure_logging()
    app = FastAPI(title=settings.APP_NAME)
    app.state.cart_registry = CartRegistry()
    app.add_middleware(AuthContextMiddleware)
    app.add_middleware(TraceIdMiddleware)
    app.add_middleware(ObservabilityMiddleware)
    setup_exception_handlers(app)
    app.include_router(api_router)
    return app


app = create_app()
