"""
Async SQLAlchemy setup shared by every model and request.

  engine             one async engine per process (DATABASE_URL)
  AsyncSessionLocal  session factory; objects stay loaded after commit
  Base               declarative base for the ORM models
  get_db()           per-request session dependency

Session lifecycle:
  Each API request gets its own session via get_db(). The session commits
  only when the request succeeds. Any exception, including domain errors such
  as InsufficientFundsError, rolls the whole request back: a rejected
  operation leaves no trace in the database.
"""

from sqlalchemy.ext.asyncio import create_async_engine, AsyncSession, async_sessionmaker
from sqlalchemy.orm import DeclarativeBase

from bankcards.config import settings


# echo=True in debug mode logs all SQL statements. Card numbers never appear
# in SQL: only ciphertext and the HMAC lookup value are bound as parameters.
engine = create_async_engine(
    settings.DATABASE_URL,
    echo=settings.DEBUG,
)

# expire_on_commit=False prevents lazy-load errors after commit in async code.
AsyncSessionLocal = async_sessionmaker(
    engine,
    class_=AsyncSession,
    expire_on_commit=False,
)


class Base(DeclarativeBase):
    """Base class for all SQLAlchemy ORM models."""
    pass


async def get_db():
    """
    Yield one session for the duration of a request.

    Usage in a route:
        @router.post("/transfers")
        async def create_transfer(db: AsyncSession = Depends(get_db)):
            ...

    The session is committed on success and rolled back on any exception,
    then closed when the request completes.
    """
    async with AsyncSessionLocal() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise
