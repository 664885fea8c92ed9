from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import DeclarativeBase, sessionmaker

from provider_onboarding.config import settings

engine = create_engine(
    settings.DATABASE_URL, pool_pre_ping=True, pool_size=settings.DB_POOL_SIZE
)


class Base(DeclarativeBase):
    pass


def session_factory_for(bind: Engine) -> sessionmaker:
    return sessionmaker(bind=bind, autocommit=False, autoflush=False)
