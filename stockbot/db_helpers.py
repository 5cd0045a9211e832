# stockbot/db_helpers.py
import logging
import os

from dotenv import load_dotenv
from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import sessionmaker

from stockbot.entities import Base

load_dotenv()

logger = logging.getLogger("stockbot")

# --- Configuration ---
DATABASE_URL = os.getenv("DATABASE_URL", "")

DB_HOST             = os.environ.get("DB_HOST", "localhost")
DB_PORT             = int(os.environ.get("DB_PORT", "5432"))
DB_NAME             = os.environ.get("DB_NAME", "")
DB_USER             = os.environ.get("DB_USER", "")
DB_PASSWORD         = os.environ.get("DB_PASSWORD", "")
SQLITE_PATH         = os.environ.get("SQLITE_PATH", "database.sqlite")

IS_LOCAL_DB = (DB_HOST == "localhost")


def build_database_url() -> str:
    """
    DATABASE_URL wins. Otherwise a local SQLite file when DB_HOST is localhost,
    and Postgres through pg8000 for anything else.
    """
    if DATABASE_URL:
        return DATABASE_URL

    if IS_LOCAL_DB:
        return f"sqlite:///{SQLITE_PATH}"

    if not DB_PASSWORD:
        raise RuntimeError("No DB_PASSWORD configured for remote database")
    return f"postgresql+pg8000://{DB_USER}:{DB_PASSWORD}@{DB_HOST}:{DB_PORT}/{DB_NAME}"


def get_db_engine(url: str | None = None) -> Engine:
    url = url or build_database_url()

    if url.startswith("sqlite"):
        logger.info(f"[DB] Using SQLite URL: {url}")
        # sessions are opened from asyncio.to_thread workers
        return create_engine(url, connect_args={"check_same_thread": False})

    logger.info("[DB] Connecting to Postgres host %s:%s/%s", DB_HOST, DB_PORT, DB_NAME)

    # pg8000 supports 'timeout' in seconds
    return create_engine(
        url,
        pool_pre_ping=True,
        connect_args={"timeout": 10},  # fail in 10s instead of hanging forever
    )


def create_session_factory(url: str | None = None) -> sessionmaker:
    engine = get_db_engine(url)
    Base.metadata.create_all(engine)
    return sessionmaker(bind=engine, autoflush=False)
