from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker

from .core.config import settings
from .identity import IdentityProvider, LocalIdentityProvider
from .store import DocumentStore, SqlDocumentStore


def build_engine(url: str):
    connect_args = {"check_same_thread": False} if url.startswith("sqlite") else {}
    return create_engine(url, pool_pre_ping=True, future=True, connect_args=connect_args)


engine = build_engine(settings.database_url)
SessionLocal = sessionmaker(bind=engine, autoflush=False, expire_on_commit=False, class_=Session)


def get_store() -> DocumentStore:
    return SqlDocumentStore(SessionLocal)


def get_identity_provider() -> IdentityProvider:
    return LocalIdentityProvider(SessionLocal)
