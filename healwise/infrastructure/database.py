from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker, declarative_base
from healwise.core.config import settings

# Check if using SQLite
is_sqlite = settings.DATABASE_URL.lower().startswith("sqlite")

engine = create_engine(
    settings.DATABASE_URL,
    pool_pre_ping=True,
    echo=settings.DEBUG,
    connect_args={"check_same_thread": False} if is_sqlite else {}
)

SessionLocal = sessionmaker(
    bind=engine,
    autocommit=False,
    autoflush=False,
    expire_on_commit=False
)

# Base model
Base = declarative_base()


def get_db():
    """Dependency to get database session"""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def init_db():
    """Initialize database tables"""
    # Register models on Base.metadata
    from healwise.domain.users import models as _users  # noqa: F401
    from healwise.domain.appointments import models as _appointments  # noqa: F401
    Base.metadata.create_all(bind=engine)


def close_db():
    """Close database connections"""
    engine.dispose()
