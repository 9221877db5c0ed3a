from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine, async_sessionmaker
from sqlalchemy.orm import declarative_base

from .config import DATABASE_URL
from .errors import Conflict, UpstreamUnavailable

engine = create_async_engine(DATABASE_URL, echo=False, future=True)

SessionLocal = async_sessionmaker(
    bind=engine,
    expire_on_commit=False,
)

Base = declarative_base()


async def get_db():
    async with SessionLocal() as session:
        yield session


async def commit(db: AsyncSession, action: str) -> None:
    """Commit a primary write; store failures surface as booking errors instead of 500s."""
    try:
        await db.commit()
    except IntegrityError as e:
        await db.rollback()
        raise Conflict(f"Could not {action}: it clashes with existing data") from e
    except SQLAlchemyError as e:
        await db.rollback()
        raise UpstreamUnavailable(f"Could not {action}, please retry") from e
