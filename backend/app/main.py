import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from app.api import auth, invites, products, reports, sales, users, ws
from app.core.config import settings
from app.core.errors import DomainError
from app.core.logging import setup_logging
from app.services.notifications import ConnectionManager

logger = logging.getLogger(__name__)

API_VERSION = "1.0.0"


@asynccontextmanager
async def lifespan(app: FastAPI):
    setup_logging(settings.LOG_LEVEL, settings.LOG_JSON)
    logger.info("%s starting", settings.PROJECT_NAME)
    yield
    logger.info("%s stopped", settings.PROJECT_NAME)


app = FastAPI(
    title=settings.PROJECT_NAME,
    description="Inventory, sales and staff invitations for Amantena Highway Farms",
    version=API_VERSION,
    lifespan=lifespan,
)

app.state.broadcaster = ConnectionManager()

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(DomainError)
async def domain_error_handler(request: Request, exc: DomainError):
    return JSONResponse(
        status_code=exc.status_code,
        content={"error": exc.error, "detail": exc.message},
    )


# Routers
app.include_router(auth.router, prefix="/api")
app.include_router(products.router, prefix="/api")
app.include_router(sales.router, prefix="/api")
app.include_router(invites.router, prefix="/api")
app.include_router(reports.router, prefix="/api")
app.include_router(users.router, prefix="/api")
app.include_router(ws.router)


@app.get("/health")
async def health_check():
    return {"status": "ok", "version": API_VERSION}
