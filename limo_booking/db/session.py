from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker, declarative_base

from limo_booking.core.config import DATABASE_URL


def make_engine(url: str = DATABASE_URL):
    # SQLite needs check_same_thread=False under a threaded web server
    connect_args = {"check_same_thread": False} if url.startswith("sqlite") else {}
    return create_engine(url, connect_args=connect_args, pool_pre_ping=True)


engine = make_engine()
SessionLocal = sessionmaker(bind=engine, autoflush=False, autocommit=False)
Base = declarative_base()


def init_db(bind=None):
    # Import models so they are registered on Base before create_all
    import limo_booking.models.vehicle  # noqa: F401
    import limo_booking.models.booking  # noqa: F401

    Base.metadata.create_all(bind=bind or engine)
