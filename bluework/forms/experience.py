"""
Repeatable work-experience entries for the application form.

The group keeps an ordered list of drafts (at most ``MAX_EXPERIENCES``) and a
single expanded index: at most one entry is open for editing at a time.
Entries are immutable; every mutation swaps in a replacement entry so that no
intermediate state (e.g. current job *and* an end period) is ever observable.
"""

from dataclasses import dataclass, replace
from datetime import date, datetime
from typing import Optional

from bluework.core.applicant import WorkExperience
from bluework.core.errors import ValidationError

MAX_EXPERIENCES = 5
CAPACITY_MESSAGE = f"Maksimal {MAX_EXPERIENCES} pengalaman kerja."

EDITABLE_FIELDS = ("position", "company_name", "start_period", "end_period", "is_current")


def period_to_date(period: str) -> date:
    """YYYY-MM -> first day of that month"""
    try:
        return datetime.strptime(period.strip(), "%Y-%m").date()
    except ValueError:
        raise ValidationError(f"Format periode tidak valid: {period!r} (gunakan YYYY-MM).") from None


@dataclass(frozen=True)
class ExperienceDraft:
    position: str = ""
    company_name: str = ""
    start_period: str = ""  # YYYY-MM
    end_period: str = ""    # YYYY-MM
    is_current: bool = False

    @property
    def is_complete(self) -> bool:
        return bool(self.position.strip() and self.company_name.strip() and self.start_period.strip())

    @property
    def is_blank(self) -> bool:
        return not (self.position or self.company_name or self.start_period or self.end_period or self.is_current)

    @property
    def missing_end_period(self) -> bool:
        return not self.is_current and not self.end_period.strip()

    def to_work_experience(self) -> WorkExperience:
        return WorkExperience(
            position=self.position.strip(),
            company_name=self.company_name.strip(),
            start_date=period_to_date(self.start_period),
            end_date=None if self.is_current or not self.end_period.strip() else period_to_date(self.end_period),
            is_current_job=self.is_current,
        )


class ExperienceGroup:
    """Ordered, capped list of experience drafts with one optional expanded entry"""

    def __init__(
        self,
        entries: Optional[list[ExperienceDraft]] = None,
        expanded: Optional[int] = 0,
        max_entries: int = MAX_EXPERIENCES,
    ):
        self.max_entries = max_entries
        self.entries: list[ExperienceDraft] = list(entries) if entries is not None else [ExperienceDraft()]
        self.entries = self.entries[:max_entries]
        self.expanded: Optional[int] = expanded if self._valid_index(expanded) else None

    def __len__(self) -> int:
        return len(self.entries)

    def __iter__(self):
        return iter(self.entries)

    def __getitem__(self, index: int) -> ExperienceDraft:
        return self.entries[index]

    def _valid_index(self, index: Optional[int]) -> bool:
        return index is not None and 0 <= index < len(self.entries)

    @property
    def can_add(self) -> bool:
        return len(self.entries) < self.max_entries

    @property
    def can_remove(self) -> bool:
        return len(self.entries) > 1

    def is_expanded(self, index: int) -> bool:
        return self.expanded == index

    def add(self) -> bool:
        """Append a blank entry and focus it. Returns False when the cap is reached."""
        if not self.can_add:
            return False
        self.entries.append(ExperienceDraft())
        self.expanded = len(self.entries) - 1
        return True

    def remove(self, index: int) -> None:
        if not self._valid_index(index):
            return
        del self.entries[index]

        if self.expanded == index:
            self.expanded = None
        elif self.expanded is not None and self.expanded > index:
            self.expanded -= 1

        if len(self.entries) == 1:
            self.expanded = 0
        elif not self.entries:
            self.expanded = None

    def toggle_expand(self, index: int) -> None:
        if not self._valid_index(index):
            return
        self.expanded = None if self.expanded == index else index

    def set_field(self, index: int, field: str, value) -> ExperienceDraft:
        if field not in EDITABLE_FIELDS:
            raise ValueError(f"Unknown experience field: {field}")
        current = self.entries[index]

        if field == "is_current":
            is_current = bool(value)
            updated = replace(current, is_current=is_current, end_period="" if is_current else current.end_period)
        elif field == "end_period" and current.is_current:
            updated = current
        else:
            updated = replace(current, **{field: value or ""})

        self.entries[index] = updated
        return updated

    def complete_entries(self) -> list[ExperienceDraft]:
        """Entries with position, company and start period; partial ones are dropped silently"""
        return [entry for entry in self.entries if entry.is_complete]

    def validate(self) -> None:
        """Complete entries that are not the current job need an end period"""
        for number, entry in enumerate(self.entries, start=1):
            if not entry.is_complete:
                continue
            period_to_date(entry.start_period)
            if entry.missing_end_period:
                raise ValidationError(
                    f"Pengalaman kerja {number}: periode selesai wajib diisi jika bukan pekerjaan saat ini.",
                    field="end_period",
                )
            if not entry.is_current:
                period_to_date(entry.end_period)

    def to_work_experiences(self) -> list[WorkExperience]:
        return [entry.to_work_experience() for entry in self.complete_entries()]
