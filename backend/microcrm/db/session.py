from contextlib import contextmanager
from typing import Generator, Iterator

from fastapi import Depends
from sqlmodel import Session, SQLModel

import microcrm.db.base  # noqa: F401
from microcrm.core.config import settings
from microcrm.core.logging_setup import logger
from microcrm.storage import SQLStorage, storage_class_for_url

storage_class = storage_class_for_url(settings.database_url)

engine = storage_class.build_engine(settings.database_url, echo=settings.debug)


def init_db() -> None:
    SQLModel.metadata.create_all(bind=engine)
    logger.info("Database ready (%s)", storage_class.dialect)


def get_session() -> Generator[Session, None, None]:
    with Session(engine) as session:
        yield session


def get_storage(session: Session = Depends(get_session)) -> SQLStorage:
    return storage_for(session)


def storage_for(session: Session) -> SQLStorage:
    """Wrap a session in the storage backend matching the engine it is bound to."""
    bind = session.get_bind()
    return storage_class_for_url(bind.url.drivername)(session)


@contextmanager
def storage_scope() -> Iterator[SQLStorage]:
    """Storage bound to a fresh session, for work outside a request."""
    with Session(engine, expire_on_commit=False) as session:
        yield storage_for(session)
