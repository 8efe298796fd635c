import logging
from typing import Optional

from sqlalchemy import create_engine, inspect, text
from sqlalchemy.orm import sessionmaker, Session, declarative_base

from sms_gateway.config import settings
from sms_gateway.metrics import record_store_query

logger = logging.getLogger(__name__)

# check_same_thread=False is required for SQLite to work with FastAPI's threadpool
engine = create_engine(
    settings.DATABASE_URL,
    connect_args={"check_same_thread": False} if settings.DATABASE_URL.startswith("sqlite") else {},
    echo=False,
)

SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

Base = declarative_base()

STORE_TABLES = ("sms", "conversations")


def init_db() -> None:
    """
    Create the store tables.

    The gateway never writes to the store; this exists so development and
    test deployments can stand up an empty store.
    """
    logger.debug(f"Initializing message store schema at {settings.DATABASE_URL}")
    try:
        from sms_gateway.models import Sms, Conversation  # noqa: F401

        Base.metadata.create_all(bind=engine)
        logger.info("Message store schema initialized")
    except Exception as e:
        logger.error(f"Failed to initialize message store schema: {e}")
        raise


def check_db_health() -> Optional[str]:
    """
    Check that the store is reachable and exposes both tables.

    Returns:
        None if healthy, otherwise a short reason string.
    """
    logger.debug("Checking message store health...")
    try:
        with SessionLocal() as db:
            db.execute(text("SELECT 1"))
            existing = set(inspect(db.get_bind()).get_table_names())
        missing = [name for name in STORE_TABLES if name not in existing]
        if missing:
            logger.error(f"Message store is missing tables: {missing}")
            return f"Message store missing tables: {', '.join(missing)}"
        logger.debug("Message store health check passed")
        return None
    except Exception as e:
        logger.error(f"Message store health check failed: {e}")
        return "Message store not reachable"


# =============================================================================
# Store Queries
# =============================================================================
#
# Each helper issues exactly one query. Filtering, ordering and windowing are
# pushed down to the store; rows come back fully fetched so the cursor is
# released before the helper returns.


def query_all_sms(db: Session) -> list:
    """All SMS rows, newest first."""
    from sms_gateway.models import Sms

    logger.debug("Querying all SMS rows ordered by date DESC")
    record_store_query("sms")
    return (
        db.query(Sms)
        .order_by(Sms.date.desc(), Sms.id.desc())
        .all()
    )


def query_sms_by_address(db: Session, address: str) -> list:
    """SMS rows exchanged with one address, oldest first."""
    from sms_gateway.models import Sms

    logger.debug(f"Querying SMS rows where address = {address!r}")
    record_store_query("sms")
    return (
        db.query(Sms)
        .filter(Sms.address == address)
        .order_by(Sms.date.asc(), Sms.id.asc())
        .all()
    )


def query_sms_by_thread(db: Session, thread_id: str) -> list:
    """SMS rows in one thread, oldest first."""
    from sms_gateway.models import Sms

    logger.debug(f"Querying SMS rows where thread_id = {thread_id!r}")
    record_store_query("sms")
    return (
        db.query(Sms)
        .filter(Sms.thread_id == thread_id)
        .order_by(Sms.date.asc(), Sms.id.asc())
        .all()
    )


def query_latest_sms_in_thread(db: Session, thread_id: int):
    """
    The single newest SMS row in a thread.

    Returns:
        Row of (address, body, date) if the thread has any message, None otherwise
    """
    from sms_gateway.models import Sms

    record_store_query("sms")
    return (
        db.query(Sms.address, Sms.body, Sms.date)
        .filter(Sms.thread_id == thread_id)
        .order_by(Sms.date.desc(), Sms.id.desc())
        .limit(1)
        .first()
    )


def query_conversations(db: Session, limit: int = 0, offset: int = 0) -> list:
    """
    Conversation rows, newest first.

    Args:
        db: Database session
        limit: Maximum rows to return; 0 means unbounded
        offset: Rows to skip; only applied when limit > 0

    Returns:
        List of Conversation objects
    """
    from sms_gateway.models import Conversation

    logger.debug(f"Querying conversations: limit={limit}, offset={offset}")
    record_store_query("conversations")
    query = db.query(Conversation).order_by(Conversation.date.desc(), Conversation.id.desc())

    if limit > 0:
        query = query.limit(limit)
        if offset > 0:
            query = query.offset(offset)

    return query.all()
