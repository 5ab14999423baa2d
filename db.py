from sqlalchemy import create_engine, text
from sqlalchemy.orm import sessionmaker, declarative_base
from core.config import settings


def build_engine(database_url: str, echo: bool = False):
    """
    Create an engine with bounded waits.
    Postgres: connect timeout + lock/statement timeouts, SQLite: busy timeout.
    """
    timeout = settings.db_timeout_seconds
    if database_url.startswith("sqlite"):
        return create_engine(
            database_url,
            echo=echo,
            connect_args={
                "check_same_thread": False,
                "timeout": timeout,
            },
        )

    timeout_ms = timeout * 1000
    return create_engine(
        database_url,
        echo=echo,
        pool_size=10,
        max_overflow=20,
        pool_pre_ping=True,
        pool_recycle=3600,
        pool_timeout=timeout,
        connect_args={
            "connect_timeout": timeout,
            "options": f"-c lock_timeout={timeout_ms} -c statement_timeout={timeout_ms}",
        },
    )


engine = build_engine(settings.database_url, echo=settings.debug)

Base = declarative_base()

SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


def get_db():
    """
    FastAPI dependency: one session per request, closed afterwards.
    """
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def test_connection():
    try:
        with engine.connect() as connection:
            connection.execute(text("SELECT 1"))
            print("✅ Database connection OK")
            print(f"URL: {engine.url.render_as_string(hide_password=True)}")
    except Exception as e:
        print("❌ Database connection failed:")
        print(e)

if __name__ == "__main__":
    test_connection()
