from sqlalchemy.ext.asyncio import AsyncEngine

from field_dispatch.db.session import engine as default_engine
from field_dispatch.models import Base


async def init_db(engine: AsyncEngine | None = None) -> None:
    async with (engine or default_engine).begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
