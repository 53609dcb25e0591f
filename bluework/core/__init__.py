"""
Core models package
"""

from bluework.core.job import JobPosting, distinct_titles
from bluework.core.applicant import Applicant, WorkExperience, EducationLevel, sort_experiences
from bluework.core.errors import (
    BlueWorkError,
    ValidationError,
    DependencyError,
    ConsistencyError,
    SubmissionInProgressError,
)

__all__ = [
    "JobPosting",
    "distinct_titles",
    "Applicant",
    "WorkExperience",
    "EducationLevel",
    "sort_experiences",
    "BlueWorkError",
    "ValidationError",
    "DependencyError",
    "ConsistencyError",
    "SubmissionInProgressError",
]
