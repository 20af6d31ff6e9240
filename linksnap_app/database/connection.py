from sqlalchemy import create_engine
from sqlalchemy.orm import declarative_base, sessionmaker

from linksnap_app.config import settings


def _connect_args(database_url: str) -> dict:
    # SQLite connections are shared between the event loop and worker threads
    if database_url.startswith("sqlite"):
        return {"check_same_thread": False}
    return {}


engine = create_engine(settings.database_url, connect_args=_connect_args(settings.database_url))
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

Base = declarative_base()
