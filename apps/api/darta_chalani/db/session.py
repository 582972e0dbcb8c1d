from sqlalchemy import create_engine
from sqlalchemy.engine import make_url
from sqlalchemy.orm import sessionmaker

from darta_chalani.core.config import settings


def build_engine(database_url: str):
    """Create an engine with backend-specific connection options."""
    url = make_url(database_url)
    connect_args = {}
    engine_kwargs = {"pool_pre_ping": True}
    backend = url.get_backend_name()
    if backend.startswith("postgresql"):
        connect_args["options"] = "-c timezone=utc"
        engine_kwargs["isolation_level"] = settings.DATABASE_ISOLATION_LEVEL
    elif backend == "sqlite":
        # Writers wait on the database lock instead of failing immediately
        connect_args["check_same_thread"] = False
        connect_args["timeout"] = 30
    return create_engine(database_url, connect_args=connect_args, **engine_kwargs)


engine = build_engine(settings.DATABASE_URL)
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)
