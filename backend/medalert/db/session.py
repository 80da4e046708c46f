"""Module: session."""

from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from medalert.core.config import settings

_connect_args = {"check_same_thread": False} if settings.database_url.startswith("sqlite") else {}

engine = create_engine(settings.database_url, pool_pre_ping=True, connect_args=_connect_args)

# expire_on_commit=False keeps committed rows readable after the transition returns.
SessionLocal = sessionmaker(bind=engine, autoflush=False, expire_on_commit=False)
