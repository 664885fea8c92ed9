"""FastAPI dependencies: a database session per request, and storage over it."""

from fastapi import Depends, Request
from sqlalchemy.orm import Session

from provider_onboarding.config import settings
from provider_onboarding.storage.base import Storage
from provider_onboarding.storage.database import DatabaseStorage


def get_db(request: Request):
    """Yield a session from the factory the app was created with."""
    db = request.app.state.session_factory()
    try:
        yield db
    finally:
        db.close()


def get_storage(db: Session = Depends(get_db)) -> Storage:
    return DatabaseStorage(db, actor=settings.AUDIT_ACTOR)
