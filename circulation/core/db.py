import logging
from contextlib import contextmanager
from sqlalchemy import create_engine, event
from sqlalchemy.exc import (
    DBAPIError,
    DisconnectionError,
    IntegrityError,
    InterfaceError,
    OperationalError,
    TimeoutError as PoolTimeoutError,
)
from sqlalchemy.orm import sessionmaker, declarative_base
from sqlalchemy.orm.exc import StaleDataError
from sqlalchemy.pool import StaticPool
from circulation.configs import DB_URI, DEBUG
from circulation.core.exceptions import (
    CirculationError,
    PersistenceConflictError,
    UnavailableError,
)

logger = logging.getLogger(__name__)


def make_engine(uri=DB_URI, echo=DEBUG):
    """Builds an engine; sqlite connections are shared across threads."""
    engine_kwargs = {'echo': echo}
    if uri.startswith('sqlite'):
        engine_kwargs['connect_args'] = {'check_same_thread': False, 'timeout': 30}
        if ':memory:' in uri or uri == 'sqlite://':
            engine_kwargs['poolclass'] = StaticPool
    new_engine = create_engine(uri, **engine_kwargs)
    if uri.startswith('sqlite'):
        event.listen(new_engine, 'connect', _enable_sqlite_foreign_keys)
    return new_engine


def _enable_sqlite_foreign_keys(dbapi_connection, connection_record):
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


def make_session_factory(bind):
    return sessionmaker(bind=bind, autocommit=False, autoflush=False,
                        expire_on_commit=False)


engine = make_engine()
SessionLocal = make_session_factory(engine)


class CirculationBase:
    @classmethod
    def get_many(cls, session, offset=None, limit=None):
        return session.query(cls).offset(offset).limit(limit).all()


Base = declarative_base(cls=CirculationBase)


def init(engine_to_init=engine):
    """Creates every table registered on Base."""
    from circulation.core import models  # noqa: F401 registers tables
    Base.metadata.create_all(bind=engine_to_init)
    return engine_to_init


def _is_unreachable(e):
    if isinstance(e, (InterfaceError, DisconnectionError, PoolTimeoutError)):
        return True
    return isinstance(e, DBAPIError) and e.connection_invalidated


@contextmanager
def transaction(session_factory=SessionLocal):
    """Runs the enclosed block as one unit of work.

    Everything flushed inside the block commits together or not at all.
    Storage failures surface as PersistenceConflictError, or as
    UnavailableError when the database cannot be reached.
    """
    session = session_factory()
    try:
        session.connection()
    except (DBAPIError, DisconnectionError, PoolTimeoutError) as e:
        session.close()
        logger.error(f"Database unreachable: {e}")
        raise UnavailableError(f"Database unavailable: {e}") from e
    try:
        yield session
        session.commit()
    except CirculationError:
        session.rollback()
        raise
    except (IntegrityError, StaleDataError) as e:
        session.rollback()
        logger.warning(f"Write conflict, rolled back: {e}")
        raise PersistenceConflictError(f"Concurrent write detected: {e}") from e
    except (DBAPIError, DisconnectionError, PoolTimeoutError) as e:
        session.rollback()
        if _is_unreachable(e):
            logger.error(f"Database unreachable: {e}")
            raise UnavailableError(f"Database unavailable: {e}") from e
        if isinstance(e, OperationalError):
            logger.warning(f"Operational conflict, rolled back: {e}")
            raise PersistenceConflictError(f"Write could not complete: {e}") from e
        raise
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()
