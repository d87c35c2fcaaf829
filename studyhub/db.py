from sqlalchemy.pool import StaticPool
from sqlmodel import Session, SQLModel, create_engine

from studyhub.config import settings

DATABASE_URL = settings.database_url


def build_engine(url: str):
    connect_args = {}
    kwargs = {}
    if url.startswith("sqlite"):
        connect_args["check_same_thread"] = False
        # in-memory sqlite needs one shared connection or every session sees an empty db
        if url in ("sqlite://", "sqlite:///:memory:"):
            kwargs["poolclass"] = StaticPool
    return create_engine(url, echo=False, connect_args=connect_args, **kwargs)


engine = build_engine(DATABASE_URL)


def create_db_and_tables(bind=None):
    SQLModel.metadata.create_all(bind or engine)


def get_session():
    with Session(engine) as session:
        yield session
