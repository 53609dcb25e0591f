"""
Application form package
"""

from bluework.forms.age import calculate_age
from bluework.forms.experience import ExperienceDraft, ExperienceGroup, MAX_EXPERIENCES
from bluework.forms.draft import FormDraft, UploadedFile
from bluework.forms.submission import ApplicationSubmitter, SubmissionGuard, SubmissionResult

__all__ = [
    "calculate_age",
    "ExperienceDraft",
    "ExperienceGroup",
    "MAX_EXPERIENCES",
    "FormDraft",
    "UploadedFile",
    "ApplicationSubmitter",
    "SubmissionGuard",
    "SubmissionResult",
]
