"""
Listing filters - free-text and selector filtering over fetched snapshots
"""

from typing import Any, Iterable, Optional, Sequence, TypeVar

from bluework.core.applicant import Applicant
from bluework.core.job import JobPosting

T = TypeVar("T")

PUBLIC_POSTING_FIELDS = ("title", "company", "location", "type")
ADMIN_POSTING_FIELDS = PUBLIC_POSTING_FIELDS + ("description",)
APPLICANT_FIELDS = ("full_name", "email", "domicile_city", "phone_number")
EXPERIENCE_FIELDS = ("position", "company_name")


def _contains(record: Any, fields: Sequence[str], needle: str) -> bool:
    for field in fields:
        value = getattr(record, field, None)
        if value and needle in str(value).casefold():
            return True
    return False


def filter_records(
    records: Iterable[T],
    query: str = "",
    fields: Sequence[str] = (),
    selector: Optional[str] = None,
    selector_field: Optional[str] = None,
    nested_attr: Optional[str] = None,
    nested_fields: Sequence[str] = (),
) -> list[T]:
    """
    Return the records matching both criteria.

    ``selector`` must equal ``selector_field`` exactly. ``query`` must appear
    (case-insensitively) in one of ``fields`` or in one of ``nested_fields`` of
    any item under ``nested_attr``. Empty criteria match everything.
    """
    needle = (query or "").strip().casefold()
    result = []
    for record in records:
        if selector and selector_field and getattr(record, selector_field, None) != selector:
            continue
        if needle:
            matched = _contains(record, fields, needle)
            if not matched and nested_attr:
                matched = any(
                    _contains(item, nested_fields, needle)
                    for item in (getattr(record, nested_attr, None) or [])
                )
            if not matched:
                continue
        result.append(record)
    return result


def filter_postings(
    postings: Iterable[JobPosting],
    query: str = "",
    active_only: bool = False,
    admin: bool = False,
) -> list[JobPosting]:
    if active_only:
        postings = [p for p in postings if p.is_active]
    return filter_records(
        postings,
        query=query,
        fields=ADMIN_POSTING_FIELDS if admin else PUBLIC_POSTING_FIELDS,
    )


def filter_applicants(
    applicants: Iterable[Applicant],
    query: str = "",
    position: Optional[str] = None,
) -> list[Applicant]:
    """A hit in any nested work experience counts as a hit on the applicant"""
    return filter_records(
        applicants,
        query=query,
        fields=APPLICANT_FIELDS,
        selector=position,
        selector_field="applied_position",
        nested_attr="work_experiences",
        nested_fields=EXPERIENCE_FIELDS,
    )
