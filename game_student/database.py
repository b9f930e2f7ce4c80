from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker, declarative_base

Base = declarative_base()


def make_engine(database_url: str, **kwargs):
    connect_args = {"check_same_thread": False} if database_url.startswith("sqlite") else {}
    return create_engine(database_url, connect_args=connect_args, **kwargs)


def make_session_factory(engine):
    # Rows handed back by the store stay readable after the session closes
    return sessionmaker(bind=engine, autocommit=False, autoflush=False, expire_on_commit=False)
