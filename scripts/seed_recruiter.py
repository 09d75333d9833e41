"""Seed a recruiter and a job for local guest chat testing.

Usage:
    python -m scripts.seed_recruiter --email recruiter@acme-corp.com --company "Acme Corp"

Prints the job id and a bearer token for the recruiter endpoints.
"""

import argparse
import asyncio

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.database import Base, async_session_factory, engine
from app.models.guest_chat_session import GuestChatSession  # noqa: F401
from app.models.guest_message import GuestMessage  # noqa: F401
from app.models.job import Job
from app.models.user import User
from app.services.token_service import TokenService


async def seed_recruiter(
    email: str, username: str, company: str | None, job_title: str
) -> None:
    """Create the recruiter if missing and add a job they own."""
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    async with async_session_factory() as session:
        session: AsyncSession
        result = await session.execute(select(User).where(User.email == email))
        user = result.scalar_one_or_none()
        if user is None:
            user = User(
                email=email,
                username=username,
                role="recruiter",
                company_name=company,
            )
            session.add(user)
            await session.flush()
            print(f"Recruiter created: {email} (id={user.id})")
        else:
            print(f"Recruiter '{email}' already exists (id={user.id}).")

        job = Job(
            recruiter_id=user.id,
            title=job_title,
            description=f"{job_title} at {company or 'our company'}.",
        )
        session.add(job)
        await session.commit()
        print(f"Job created: {job.title} (id={job.id})")

        token = TokenService().create_access_token(
            user_id=user.id, email=user.email, role=user.role
        )
        print(f"Bearer token: {token}")

    await engine.dispose()


def main() -> None:
    parser = argparse.ArgumentParser(description="Seed a recruiter and a job")
    parser.add_argument("--email", required=True, help="Recruiter email")
    parser.add_argument("--username", default="recruiter", help="Recruiter display name")
    parser.add_argument("--company", default=None, help="Company name")
    parser.add_argument("--job-title", default="Software Engineer", help="Job title")
    args = parser.parse_args()

    asyncio.run(seed_recruiter(args.email, args.username, args.company, args.job_title))


if __name__ == "__main__":
    main()
