import logging

from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker, declarative_base

from app.config import settings

logger = logging.getLogger(__name__)

SQLALCHEMY_DATABASE_URL = settings.database_url


def _connect_args(url: str) -> dict:
    if url.startswith("sqlite"):
        return {"check_same_thread": False}
    return {}


engine = create_engine(
    SQLALCHEMY_DATABASE_URL, connect_args=_connect_args(SQLALCHEMY_DATABASE_URL)
)
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

Base = declarative_base()

DEFAULT_RESOURCES = [
    ("Computer Lab 1", "LAB", 40),
    ("Main Auditorium", "HALL", 300),
    ("Seminar Hall A", "SEMINAR", 120),
    ("Meeting Room 101", "MEETING", 20),
]


def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def seed_resources(db) -> int:
    """Insert the default resources when the table is empty. Returns rows added."""
    from app.models import Resource

    if db.query(Resource).first():
        return 0
    db.add_all(
        Resource(name=name, type=kind, capacity=capacity)
        for name, kind, capacity in DEFAULT_RESOURCES
    )
    db.commit()
    logger.info("default_resources_created", extra={"count": len(DEFAULT_RESOURCES)})
    return len(DEFAULT_RESOURCES)


def init_db(bind=None):
    # Import models here to create tables
    from app import models  # noqa: F401

    bind = bind or engine
    Base.metadata.create_all(bind=bind)

    if not settings.seed_demo_data:
        return
    db = sessionmaker(autocommit=False, autoflush=False, bind=bind)()
    try:
        seed_resources(db)
    finally:
        db.close()
