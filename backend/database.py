"""SQLAlchemy engine, declarative base and the request-scoped session."""

import logging
import uuid
from functools import lru_cache

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import DeclarativeBase, sessionmaker

from config import settings

logger = logging.getLogger(__name__)


def generate_uuid() -> str:
    """String primary key for tables without a natural key."""
    return str(uuid.uuid4())


class Base(DeclarativeBase):
    pass


@lru_cache
def get_engine() -> Engine:
    """Engine for ``settings.DATABASE_URL``, created once per process."""
    url = settings.DATABASE_URL
    # FastAPI runs sync endpoints and the webhook ingestor on worker threads
    connect_args = {"check_same_thread": False} if url.startswith("sqlite") else {}
    engine = create_engine(url, connect_args=connect_args, echo=False)
    logger.debug("Database engine created for %s", engine.url.get_backend_name())
    return engine


@lru_cache
def get_session_local() -> sessionmaker:
    return sessionmaker(autocommit=False, autoflush=False, bind=get_engine())


def get_db():
    """FastAPI dependency yielding one session per request.

    Services only ``flush()``; the route commits. Two places commit on
    their own:

    - ``WebhookIngestor.ingest()`` commits the event record before routing,
      then commits the routed changes separately.
    - ``CustomerLinkRegistry.get_or_create_customer()`` commits the new
      mapping and recovers from a concurrent insert with rollback + re-read.
    """
    db = get_session_local()()
    try:
        yield db
    except Exception:
        db.rollback()
        raise
    finally:
        db.close()
