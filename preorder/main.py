from contextlib import asynccontextmanager
from fastapi import FastAPI, Request
from fastapi.responses import HTMLResponse, JSONResponse
from sqlalchemy.exc import SQLAlchemyError
from typing import Optional
import datetime
import logging

from preorder.api.endpoints import auth as auth_api
from preorder.api.endpoints import orders as orders_api
from preorder.api.endpoints import payments as payments_api
from preorder.core.config import get_settings
from preorder.db.session import init_db
from preorder.templating import templates

logging.basicConfig(
    level=get_settings().LOG_LEVEL.upper(),
    format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    # Tables go into the database the active settings point at, so a
    # settings override (tests, one-off scripts) never touches the default store.
    settings = app.dependency_overrides.get(get_settings, get_settings)()
    init_db(settings.DATABASE_URL)
    yield


app = FastAPI(title="Lifting Social Pre-order API", version="0.1.0", lifespan=lifespan)


@app.exception_handler(SQLAlchemyError)
async def store_unavailable_handler(request: Request, exc: SQLAlchemyError):
    # Each mutation is a single-row operation, so nothing is half-written here.
    logger.error(f"Order store error on {request.method} {request.url.path}: {exc}")
    return JSONResponse(status_code=503, content={"detail": "Order store unavailable"})


# Include API routers
app.include_router(auth_api.router, prefix="/api/v1/auth", tags=["Authentication"])
app.include_router(orders_api.router, prefix="/api/v1/orders", tags=["Orders"])
app.include_router(payments_api.router, prefix="/api/v1/payments", tags=["Payments"])

@app.get("/ping", tags=["Health Check"])
async def ping():
    return {"message": "pong"}

# PayHere return_url / cancel_url targets
@app.get("/success", response_class=HTMLResponse, tags=["Frontend"])
async def route_success(request: Request, order_id: Optional[str] = None):
    return templates.TemplateResponse(request, "success.html", {"order_id": order_id, "current_year": datetime.datetime.utcnow().year})

@app.get("/cancel", response_class=HTMLResponse, tags=["Frontend"])
async def route_cancel(request: Request):
    return templates.TemplateResponse(request, "cancel.html", {"current_year": datetime.datetime.utcnow().year})
