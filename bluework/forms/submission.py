"""
Application submission - validates a draft, uploads documents and writes the
applicant plus its work experiences.

Steps run strictly in sequence: upload photo -> upload CV -> insert applicant
-> insert experiences. If the experience insert fails the applicant row is
deleted again so the two inserts look atomic to the caller.
"""

import logging
from contextlib import contextmanager
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import PurePath
from typing import Callable, Optional

from bluework.backend.base import QueryClient, StorageClient
from bluework.core import applicant as applicant_model
from bluework.core.errors import ConsistencyError, DependencyError, SubmissionInProgressError, ValidationError
from bluework.forms.draft import FormDraft, UploadedFile
from bluework.utils.config import UploadConfig

logger = logging.getLogger(__name__)

SUCCESS_MESSAGE = "Lamaran Anda berhasil dikirim! Anda akan segera diarahkan kembali ke halaman utama."


def format_limit(limit_bytes: int) -> str:
    if limit_bytes >= 1024 * 1024 and limit_bytes % (1024 * 1024) == 0:
        return f"{limit_bytes // (1024 * 1024)}MB"
    return f"{limit_bytes // 1024}KB"


def check_file_sizes(draft: FormDraft, config: UploadConfig) -> None:
    """Runs before any upload, so an oversized file never leaves a partial upload behind"""
    if draft.photo is not None and draft.photo.size > config.photo_max_bytes:
        raise ValidationError(f"Ukuran foto melebihi {format_limit(config.photo_max_bytes)}.", field="photo")
    if draft.cv is not None and draft.cv.size > config.cv_max_bytes:
        raise ValidationError(f"Ukuran CV melebihi {format_limit(config.cv_max_bytes)}.", field="cv")


@dataclass
class SubmissionResult:
    applicant_id: str
    experience_count: int
    photo_url: str = ""
    cv_url: str = ""
    message: str = SUCCESS_MESSAGE


class SubmissionGuard:
    """Rejects a second submission of the same draft while the first is in flight"""

    def __init__(self):
        self._in_flight: set[str] = set()

    def is_busy(self, draft_id: str) -> bool:
        return draft_id in self._in_flight

    @contextmanager
    def hold(self, draft_id: str):
        if draft_id in self._in_flight:
            raise SubmissionInProgressError("Lamaran sedang dikirim, mohon tunggu.")
        self._in_flight.add(draft_id)
        try:
            yield
        finally:
            self._in_flight.discard(draft_id)


class ApplicationSubmitter:
    def __init__(
        self,
        query: QueryClient,
        storage: StorageClient,
        uploads: Optional[UploadConfig] = None,
        clock: Callable[[], datetime] = lambda: datetime.now(timezone.utc),
        guard: Optional[SubmissionGuard] = None,
    ):
        self.query = query
        self.storage = storage
        self.uploads = uploads or UploadConfig()
        self.clock = clock
        self.guard = guard or SubmissionGuard()

    def object_key(self, prefix: str, filename: str) -> str:
        """Timestamp-prefixed key, e.g. ``photos/1718000000000-me.jpg``"""
        name = PurePath(filename.replace("\\", "/")).name or "file"
        stamp = int(self.clock().timestamp() * 1000)
        return f"{prefix}/{stamp}-{name}"

    async def _upload(self, file: Optional[UploadedFile], prefix: str) -> str:
        if file is None:
            return ""
        key = self.object_key(prefix, file.filename)
        await self.storage.upload(self.uploads.bucket, key, file.content, file.content_type)
        logger.info(f"   📎 Uploaded {key} ({file.size} bytes)")
        return self.storage.get_public_url(self.uploads.bucket, key)

    async def submit(self, draft: FormDraft) -> SubmissionResult:
        with self.guard.hold(draft.draft_id):
            return await self._submit(draft)

    async def _submit(self, draft: FormDraft) -> SubmissionResult:
        draft.validate()
        check_file_sizes(draft, self.uploads)

        logger.info(f"📨 Submitting application from {draft.full_name} for {draft.applied_position}")

        photo_url = await self._upload(draft.photo, self.uploads.photo_prefix)
        cv_url = await self._upload(draft.cv, self.uploads.cv_prefix)

        applicant = draft.to_applicant(photo_url=photo_url, cv_url=cv_url, applied_at=self.clock())
        rows = await self.query.insert(applicant_model.TABLE, [applicant.to_record()])
        if not rows or rows[0].get("id") is None:
            raise DependencyError("Insert lamaran tidak mengembalikan ID.")
        applicant_id = str(rows[0]["id"])
        logger.info(f"   ✅ Application {applicant_id} stored")

        experiences = [exp.to_record(applicant_id) for exp in applicant.work_experiences]
        if experiences:
            try:
                await self.query.insert(applicant_model.EXPERIENCE_TABLE, experiences)
            except Exception as e:
                cause = e if isinstance(e, DependencyError) else DependencyError(str(e) or e.__class__.__name__, cause=e)
                raise await self._roll_back(applicant_id, cause) from e
            logger.info(f"   ✅ {len(experiences)} work experience(s) stored")

        return SubmissionResult(
            applicant_id=applicant_id,
            experience_count=len(experiences),
            photo_url=photo_url,
            cv_url=cv_url,
        )

    async def _roll_back(self, applicant_id: str, cause: DependencyError) -> ConsistencyError:
        logger.warning(f"   ⚠️ Work experience insert failed for {applicant_id}, deleting application: {cause}")
        try:
            await self.query.delete(applicant_model.TABLE, {"id": applicant_id})
        except Exception as cleanup_error:
            logger.error(
                f"   ❌ Compensating delete failed, application {applicant_id} needs manual cleanup: {cleanup_error}"
            )
            return ConsistencyError(
                f"{cause} (pembersihan data lamaran {applicant_id} juga gagal: {cleanup_error})",
                primary_id=applicant_id,
                cause=cause,
                cleanup_error=cleanup_error,
            )
        return ConsistencyError(str(cause), primary_id=applicant_id, cause=cause)
