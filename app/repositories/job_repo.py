"""Read access to the job catalog."""

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.job import Job


class JobRepository:
    """Encapsulates job lookups."""

    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def find_by_id(self, job_id: int) -> Job | None:
        result = await self._session.execute(select(Job).where(Job.id == job_id))
        return result.scalar_one_or_none()
