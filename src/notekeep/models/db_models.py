"""SQLAlchemy database models for the notekeep item store."""
from typing import Optional

from sqlalchemy import JSON, BigInteger, Column, String, create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.orm import declarative_base, sessionmaker
from sqlalchemy.pool import StaticPool

from notekeep.config import config

# Create base class for SQLAlchemy models
Base = declarative_base()


class DBItem(Base):
    """One stored record of one collection (notes, content, tags, ...)."""
    __tablename__ = "items"
    collection = Column(String(64), primary_key=True)
    id = Column(String(255), primary_key=True, index=True)
    data = Column(JSON, nullable=False)
    date_edited = Column(BigInteger, nullable=True)

    def __repr__(self) -> str:
        """Return string representation of the item."""
        return f"<Item(collection='{self.collection}', id='{self.id}')>"


def init_db(db_url: Optional[str] = None) -> Engine:
    """Create an engine for the item store and make sure the schema exists.

    File databases run in WAL mode with NORMAL synchronous writes.
    In-memory databases share a single connection across threads, since
    every connection to ``sqlite://`` would otherwise see its own empty
    database.
    """
    db_url = db_url or config.get_db_url()
    if db_url in ("sqlite://", "sqlite:///:memory:"):
        engine = create_engine(
            db_url,
            connect_args={"check_same_thread": False},
            poolclass=StaticPool,
        )
    else:
        engine = create_engine(db_url, pool_pre_ping=True)

        @event.listens_for(engine, "connect")
        def set_sqlite_pragma(dbapi_connection, connection_record):
            cursor = dbapi_connection.cursor()
            # WAL mode: writes go to separate journal, preventing corruption on crash
            cursor.execute("PRAGMA journal_mode=WAL")
            cursor.execute("PRAGMA synchronous=NORMAL")
            cursor.close()

    Base.metadata.create_all(engine)
    return engine


def get_session_factory(engine=None):
    """Get a session factory for the database."""
    if engine is None:
        engine = init_db()
    return sessionmaker(bind=engine)
