from contextlib import asynccontextmanager
import logging

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from quoteflow.core.logging import configure_logging
from quoteflow import models  # noqa: F401
from quoteflow.routers.auth import router as auth_router
from quoteflow.routers.documents import router as documents_router
from quoteflow.routers.events import router as events_router
from quoteflow.routers.executions import router as executions_router
from quoteflow.routers.forms import router as forms_router

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    configure_logging()
    yield


app = FastAPI(
    title="Quoteflow",
    lifespan=lifespan,
)


@app.middleware("http")
async def catch_unhandled_exceptions(request: Request, call_next):
    try:
        return await call_next(request)
    except Exception:
        logger.exception("Unhandled exception")
        return JSONResponse(status_code=500, content={"detail": "Internal Server Error"})


app.include_router(auth_router)
app.include_router(forms_router)
app.include_router(events_router)
app.include_router(executions_router)
app.include_router(documents_router)


@app.get("/")
def root():
    return {"status": "Quoteflow running"}


@app.get("/health")
def health():
    return {
        "status": "ok",
        "version": "1.0.0",
    }
