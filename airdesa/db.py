import os
import sqlite3
from pathlib import Path

from sqlalchemy import event
from sqlalchemy.engine import Engine
from sqlmodel import SQLModel, create_engine

# Base dir = repository root (one level above the package)
BASE_DIR = Path(__file__).resolve().parent.parent

DATA_DIR = BASE_DIR / "data"
DATA_DIR.mkdir(parents=True, exist_ok=True)

# Allow overriding via environment variable (useful in CI). Normalize
# any relative sqlite path to an absolute path under the repository to avoid
# "unable to open database file" when working directories differ.
env_database_url = os.getenv("DATABASE_URL")
if env_database_url:
    DATABASE_URL = env_database_url
else:
    DATABASE_URL = f"sqlite:///{(DATA_DIR / 'airdesa.db').as_posix()}"

if DATABASE_URL.startswith("sqlite:///") and DATABASE_URL != "sqlite:///:memory:":
    p = Path(DATABASE_URL.replace("sqlite:///", "", 1))
    if not p.is_absolute():
        p = (BASE_DIR / p).resolve()
        DATABASE_URL = f"sqlite:///{p.as_posix()}"
    p.parent.mkdir(parents=True, exist_ok=True)

connect_args = {"check_same_thread": False} if DATABASE_URL.startswith("sqlite") else {}
engine = create_engine(DATABASE_URL, echo=False, connect_args=connect_args)


@event.listens_for(Engine, "connect")
def _set_sqlite_pragma(dbapi_connection, connection_record):
    # Enable WAL and foreign keys on each new sqlite connection
    if not isinstance(dbapi_connection, sqlite3.Connection):
        return
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA journal_mode=WAL;")
    cursor.execute("PRAGMA foreign_keys=ON;")
    cursor.close()


def init_db():
    SQLModel.metadata.create_all(engine)
