from sqlalchemy import create_engine
from sqlalchemy.orm import declarative_base, sessionmaker

from country_cache.config import DATABASE_URL


def make_engine(url: str = DATABASE_URL):
    connect_args = {}
    if url.startswith("sqlite"):
        # sessions are handed to threadpool workers
        connect_args["check_same_thread"] = False
    return create_engine(url, connect_args=connect_args, pool_pre_ping=True)


def make_session_factory(bind):
    return sessionmaker(autocommit=False, autoflush=False, bind=bind)


engine = make_engine()

SessionLocal = make_session_factory(engine)

Base = declarative_base()


def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
