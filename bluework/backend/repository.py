"""
Table-level reads and writes for postings and applicants on top of a QueryClient
"""

import logging
from collections import defaultdict
from datetime import datetime, timezone
from typing import Callable, Optional

from bluework.backend.base import QueryClient
from bluework.core import applicant as applicant_model
from bluework.core import job as job_model
from bluework.core.applicant import Applicant
from bluework.core.job import JobPosting, distinct_titles

logger = logging.getLogger(__name__)


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class JobPostingRepository:
    def __init__(self, query: QueryClient, clock: Callable[[], datetime] = utc_now):
        self.query = query
        self.clock = clock

    async def list_all(self) -> list[JobPosting]:
        """All postings, newest first"""
        rows = await self.query.select(job_model.TABLE, order_by="created_at", descending=True)
        return [JobPosting.from_record(row) for row in rows]

    async def list_active(self) -> list[JobPosting]:
        return [posting for posting in await self.list_all() if posting.is_active]

    async def get(self, posting_id: str) -> Optional[JobPosting]:
        rows = await self.query.select(job_model.TABLE, filters={"id": posting_id})
        return JobPosting.from_record(rows[0]) if rows else None

    async def create(self, posting: JobPosting) -> JobPosting:
        posting.validate_for_save()
        record = {**posting.to_record(), "created_at": self.clock().isoformat()}
        rows = await self.query.insert(job_model.TABLE, [record])
        created = JobPosting.from_record(rows[0]) if rows else posting
        logger.info(f"➕ Job posting created: {created}")
        return created

    async def update(self, posting_id: str, posting: JobPosting) -> None:
        posting.validate_for_save()
        await self.query.update(job_model.TABLE, posting.to_record(), {"id": posting_id})
        logger.info(f"✏️ Job posting {posting_id} updated")

    async def delete(self, posting_id: str) -> None:
        await self.query.delete(job_model.TABLE, {"id": posting_id})
        logger.info(f"🗑️ Job posting {posting_id} deleted")

    async def titles(self) -> list[str]:
        rows = await self.query.select(job_model.TABLE, columns="title")
        return distinct_titles([JobPosting.from_record(row) for row in rows])


class ApplicantRepository:
    def __init__(self, query: QueryClient):
        self.query = query

    async def list_with_experiences(self) -> list[Applicant]:
        """Applicants newest first, each with its own experience list attached"""
        rows = await self.query.select(applicant_model.TABLE, order_by="applied_at", descending=True)
        experience_rows = await self.query.select(applicant_model.EXPERIENCE_TABLE)

        by_application = defaultdict(list)
        for exp in experience_rows:
            by_application[str(exp.get(applicant_model.EXPERIENCE_FK))].append(exp)

        return [
            Applicant.from_record({
                **row,
                applicant_model.EXPERIENCE_TABLE: by_application.get(str(row.get("id")), []),
            })
            for row in rows
        ]
