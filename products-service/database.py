from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import DeclarativeBase, sessionmaker
from sqlalchemy.pool import StaticPool

from config import DATABASE_URL, DB_TIMEOUT_SECONDS


class Base(DeclarativeBase):
    pass


def build_engine(url: str = DATABASE_URL) -> Engine:
    """Crée l'engine SQLAlchemy avec des timeouts bornés."""
    if url.startswith("sqlite"):
        connect_args = {"check_same_thread": False, "timeout": DB_TIMEOUT_SECONDS}
        if url in ("sqlite://", "sqlite:///:memory:"):
            # Base en mémoire : une seule connexion partagée, sinon chaque connexion voit une base vide
            return create_engine(url, connect_args=connect_args, poolclass=StaticPool)
        return create_engine(url, connect_args=connect_args, pool_pre_ping=True)
    return create_engine(url, pool_pre_ping=True, pool_timeout=DB_TIMEOUT_SECONDS)


def build_session_factory(bind: Engine) -> sessionmaker:
    # expire_on_commit=False : les entités restent lisibles après le commit
    return sessionmaker(bind=bind, expire_on_commit=False)


def init_db(bind: Engine) -> None:
    import models  # noqa: F401  (enregistre la table products)
    Base.metadata.create_all(bind)


engine = build_engine()
SessionLocal = build_session_factory(engine)
