import logging
from contextlib import contextmanager
from typing import Iterator, Optional

from sqlalchemy import create_engine, text
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, declarative_base, sessionmaker
from sqlalchemy.pool import StaticPool

log = logging.getLogger(__name__)

DEFAULT_DATABASE_URL = "sqlite+pysqlite:///./app.db"

# >>> This is what models.py and alembic/env.py import <<<
Base = declarative_base()


def make_engine(database_url: str, echo: bool = False) -> Engine:
    is_sqlite = database_url.startswith("sqlite")
    # SQLite needs this; Postgres doesn't.
    connect_args = {"check_same_thread": False} if is_sqlite else {}
    in_memory = is_sqlite and (":memory:" in database_url or database_url.endswith("://"))
    if in_memory:
        # one shared connection, otherwise every session sees an empty database
        return create_engine(database_url, echo=echo, connect_args=connect_args, poolclass=StaticPool)
    return create_engine(
        database_url,
        echo=echo,
        pool_pre_ping=True,
        connect_args=connect_args,
        # pool config only for non-sqlite
        **({} if is_sqlite else {"pool_size": 5, "max_overflow": 10})
    )


class Database:
    """Process-wide storage handle.

    Built once by the application root and passed to whoever needs it.
    """

    def __init__(self, database_url: str = DEFAULT_DATABASE_URL, engine: Optional[Engine] = None, echo: bool = False):
        self.url = database_url
        self.engine = engine or make_engine(database_url, echo=echo)
        self.SessionLocal = sessionmaker(bind=self.engine, autoflush=False, expire_on_commit=False)

    def create_all(self) -> None:
        import gym_backend.models  # noqa: F401  (registers tables on Base)

        Base.metadata.create_all(bind=self.engine)
        log.info(f"Schema ensured on {self.engine.url.render_as_string(hide_password=True)}")

    def drop_all(self) -> None:
        Base.metadata.drop_all(bind=self.engine)

    def dispose(self) -> None:
        self.engine.dispose()

    @contextmanager
    def atomic(self) -> Iterator[Session]:
        """Run the block in one transaction.

        Commits on normal exit, rolls back on any exception, and always
        releases the session.
        """
        session = self.SessionLocal()
        try:
            with session.begin():
                yield session
        finally:
            session.close()

    @contextmanager
    def scoped(self, session: Optional[Session] = None) -> Iterator[Session]:
        """Join the caller's transaction when given one, else open a fresh one."""
        if session is not None:
            yield session
            return
        with self.atomic() as own:
            yield own

    def ping(self) -> bool:
        with self.engine.connect() as conn:
            conn.execute(text("SELECT 1"))
        return True
