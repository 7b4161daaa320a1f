from fastapi import APIRouter

from app.retailflow.core.config import settings
from app.retailflow.routers.auth import router as auth_router
from app.retailflow.routers.health import router as health_router
from app.retailflow.routers.metrics import router as metrics_router
from app.retailflow.routers.pos import router as pos_router
from app.retailflow.routers.products import router as products_router
from app.retailflow.routers.reports import router as reports_router
from app.retailflow.routers.settings import router as settings_router
from app.retailflow.routers.stock import router as stock_router
from app.retailflow.routers.suppliers import router as suppliers_router
from app.retailflow.routers.users import router as users_router

API_PREFIX = "/retailflow"

api_router = APIRouter()
api_router.include_router(health_router)
api_router.include_router(auth_router, prefix=f"{API_PREFIX}/auth", tags=["auth"])
api_router.include_router(users_router, prefix=API_PREFIX, tags=["users"])
api_router.include_router(products_router, prefix=API_PREFIX, tags=["catalog"])
api_router.include_router(suppliers_router, prefix=API_PREFIX, tags=["suppliers"])
api_router.include_router(stock_router, prefix=API_PREFIX, tags=["stock"])
api_router.include_router(pos_router, prefix=API_PREFIX, tags=["pos"])
api_router.include_router(reports_router, prefix=API_PREFIX, tags=["reports"])
api_router.include_router(settings_router, prefix=API_PREFIX, tags=["settings"])
if settings.METRICS_ENABLED:
    api_router.include_router(metrics_router, tags=["ops"])
