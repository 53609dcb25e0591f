"""
Job posting model - represents an advertised open position
"""

from datetime import datetime
from typing import Any, Optional
from pydantic import BaseModel, Field, field_validator

from bluework.core.errors import ValidationError

TABLE = "job_listings"

REQUIRED_WHEN_ACTIVE = {
    "title": "Judul posisi",
    "company": "Perusahaan",
    "location": "Lokasi",
    "type": "Tipe pekerjaan",
}


class JobPosting(BaseModel):
    """
    A job posting shown on the public landing page.
    """
    id: Optional[str] = Field(default=None, description="Backend-assigned identifier")

    title: str = Field(default="", description="Position title")
    company: str = Field(default="", description="Hiring company")
    location: str = Field(default="", description="Job location")
    type: str = Field(default="", description="Full-time, Part-time, Contract, ...")
    description: str = Field(default="", description="Free-text description")

    is_active: bool = Field(default=True, description="Shown on the public listing")
    created_at: Optional[datetime] = Field(default=None, description="When the posting was created")

    @field_validator("id", mode="before")
    @classmethod
    def _coerce_id(cls, value: Any) -> Optional[str]:
        return None if value is None else str(value)

    @field_validator("title", "company", "location", "type", "description", mode="before")
    @classmethod
    def _none_to_empty(cls, value: Any) -> str:
        return "" if value is None else value

    def __str__(self) -> str:
        return f"{self.title} at {self.company}"

    def __repr__(self) -> str:
        return f"JobPosting(title='{self.title}', company='{self.company}', active={self.is_active})"

    def validate_for_save(self) -> None:
        """Active postings need title, company, location and type"""
        if not self.is_active:
            return
        for field, label in REQUIRED_WHEN_ACTIVE.items():
            if not getattr(self, field).strip():
                raise ValidationError(f"{label} wajib diisi untuk lowongan aktif.", field=field)

    def to_record(self) -> dict:
        """Row shape for the job_listings table (without id / created_at)"""
        return {
            "title": self.title,
            "company": self.company,
            "location": self.location,
            "type": self.type,
            "description": self.description,
            "is_active": self.is_active,
        }

    @classmethod
    def from_record(cls, record: dict) -> "JobPosting":
        return cls(**{k: v for k, v in record.items() if k in cls.model_fields})


def distinct_titles(postings: list[JobPosting]) -> list[str]:
    """Unique titles in first-seen order, used by the applicant position selector"""
    seen: dict[str, None] = {}
    for posting in postings:
        if posting.title:
            seen.setdefault(posting.title, None)
    return list(seen)
