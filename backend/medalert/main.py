"""Module: main."""

from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from medalert.api.v1.api import api_router
from medalert.api.v1.routes.deps import shutdown_dispatcher
from medalert.core.config import settings
from medalert.core.errors import MedAlertError
from medalert.core.logging import configure_logging
from medalert.db.init_db import init_db

configure_logging(settings.log_level)


# The shared notification dispatcher closes with the app.
@asynccontextmanager
async def lifespan(app: FastAPI):
    yield
    shutdown_dispatcher()


app = FastAPI(title="MedAlert API", version="0.1.0", lifespan=lifespan)

app.include_router(api_router, prefix="/api/v1")

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# Scheduling and transition failures carry their own status and machine code.
@app.exception_handler(MedAlertError)
async def medalert_error_handler(request: Request, exc: MedAlertError):
    return JSONResponse(status_code=exc.status_code, content={"detail": exc.detail, "error": exc.code})


init_db()
