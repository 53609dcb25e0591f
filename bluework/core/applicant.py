"""
Applicant data model - a submitted job application and its work history
"""

from datetime import date, datetime
from enum import Enum
from typing import Any, Optional
from pydantic import BaseModel, Field, field_validator, model_validator

TABLE = "applications"
EXPERIENCE_TABLE = "applicant_work_experiences"
EXPERIENCE_FK = "application_id"


class EducationLevel(str, Enum):
    """Last completed education level"""
    SMP = "SMP"
    SMA = "SMA"
    D1 = "D1"
    D3 = "D3"
    S1 = "S1"


class WorkExperience(BaseModel):
    """One prior-employment entry owned by an applicant"""
    id: Optional[str] = None
    application_id: Optional[str] = None
    position: str
    company_name: str
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    is_current_job: bool = False

    @field_validator("id", "application_id", mode="before")
    @classmethod
    def _coerce_id(cls, value: Any) -> Optional[str]:
        return None if value is None else str(value)

    @model_validator(mode="after")
    def _current_job_has_no_end(self) -> "WorkExperience":
        if self.is_current_job:
            self.end_date = None
        return self

    def to_record(self, application_id: str) -> dict:
        return {
            EXPERIENCE_FK: application_id,
            "position": self.position,
            "company_name": self.company_name,
            "start_date": self.start_date.isoformat() if self.start_date else None,
            "end_date": self.end_date.isoformat() if self.end_date else None,
            "is_current_job": self.is_current_job,
        }


def sort_experiences(experiences: list[WorkExperience]) -> list[WorkExperience]:
    """Current job first, then most recent start date first"""
    return sorted(
        experiences,
        key=lambda exp: (
            not exp.is_current_job,
            -(exp.start_date.toordinal() if exp.start_date else 0),
        ),
    )


class Applicant(BaseModel):
    """
    A submitted application. Created once at submission, read-only afterwards.
    """
    id: Optional[str] = Field(default=None, description="Backend-assigned identifier")

    # Personal info
    full_name: str = ""
    nick_name: str = ""
    address: str = ""
    date_of_birth: Optional[date] = None
    age: Optional[int] = Field(default=None, description="Derived from date_of_birth")
    phone_number: str = ""
    email: str = ""
    ktp_number: str = Field(default="", description="National ID (KTP) number")
    last_education: str = ""

    # Application
    applied_position: str = ""
    last_salary: Optional[float] = None
    expected_salary: Optional[float] = None
    domicile_city: str = ""
    ready_to_relocate: bool = False

    # Documents
    photo_url: str = ""
    cv_url: str = ""

    applied_at: Optional[datetime] = None

    work_experiences: list[WorkExperience] = Field(default_factory=list)

    @field_validator("id", mode="before")
    @classmethod
    def _coerce_id(cls, value: Any) -> Optional[str]:
        return None if value is None else str(value)

    @field_validator(
        "full_name", "nick_name", "address", "phone_number", "email", "ktp_number",
        "last_education", "applied_position", "domicile_city", "photo_url", "cv_url",
        mode="before",
    )
    @classmethod
    def _none_to_empty(cls, value: Any) -> str:
        return "" if value is None else value

    @field_validator("date_of_birth", mode="before")
    @classmethod
    def _blank_date(cls, value: Any) -> Any:
        return None if value == "" else value

    def __str__(self) -> str:
        return f"{self.full_name} ({self.email})"

    @property
    def sorted_experiences(self) -> list[WorkExperience]:
        return sort_experiences(self.work_experiences)

    def to_record(self) -> dict:
        """Row shape for the applications table (scalar columns only)"""
        return {
            "full_name": self.full_name,
            "nick_name": self.nick_name,
            "address": self.address,
            "date_of_birth": self.date_of_birth.isoformat() if self.date_of_birth else None,
            "age": self.age,
            "phone_number": self.phone_number,
            "email": self.email,
            "ktp_number": self.ktp_number,
            "last_education": self.last_education,
            "applied_position": self.applied_position,
            "last_salary": self.last_salary,
            "expected_salary": self.expected_salary,
            "domicile_city": self.domicile_city,
            "ready_to_relocate": self.ready_to_relocate,
            "photo_url": self.photo_url,
            "cv_url": self.cv_url,
            "applied_at": self.applied_at.isoformat() if self.applied_at else None,
        }

    @classmethod
    def from_record(cls, record: dict) -> "Applicant":
        """Build from a joined row carrying the nested experience list"""
        data = {k: v for k, v in record.items() if k in cls.model_fields}
        data["work_experiences"] = [
            WorkExperience(**exp) for exp in (record.get(EXPERIENCE_TABLE) or [])
        ]
        return cls(**data)
