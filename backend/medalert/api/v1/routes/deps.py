"""Module: deps."""

import uuid
from typing import Generator

from fastapi import Depends, HTTPException
from sqlalchemy.orm import Session

from medalert.core.config import settings
from medalert.db.session import SessionLocal
from medalert.services.notifications import NotificationDispatcher
from medalert.services.transitions import DoseTransitionService

_dispatcher: NotificationDispatcher | None = None


# Dependency provider: one DB session per request lifecycle.
def get_db() -> Generator[Session, None, None]:
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


# One dispatcher (thread pool + HTTP client) shared by the whole process.
def get_dispatcher() -> NotificationDispatcher:
    global _dispatcher
    if _dispatcher is None:
        _dispatcher = NotificationDispatcher(
            SessionLocal,
            gateway_url=settings.notify_gateway_url,
            timeout=settings.dispatch_timeout_seconds,
            workers=settings.dispatch_workers,
        )
    return _dispatcher


def shutdown_dispatcher() -> None:
    global _dispatcher
    if _dispatcher is not None:
        _dispatcher.shutdown(wait=False)
        _dispatcher = None


def get_transitions(
    db: Session = Depends(get_db),
    dispatcher: NotificationDispatcher = Depends(get_dispatcher),
) -> DoseTransitionService:
    return DoseTransitionService(db, dispatcher)


# Validate and coerce UUID inputs from query/path payloads.
def parse_uuid(value: str, field_name: str = "id") -> uuid.UUID:
    try:
        return uuid.UUID(value)
    except ValueError:
        raise HTTPException(status_code=400, detail=f"Invalid {field_name} (must be UUID)")
