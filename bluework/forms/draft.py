"""
In-progress application form state.

The draft round-trips through the HTML form: every POST carries all fields,
the experience entries and the expanded index, so the server rebuilds the
draft, applies one action and renders it again.
"""

import math
import uuid
from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Any, Mapping, Optional

from bluework.core.applicant import Applicant, EducationLevel
from bluework.core.errors import ValidationError
from bluework.forms.age import age_from_input, parse_birth_date
from bluework.forms.experience import CAPACITY_MESSAGE, MAX_EXPERIENCES, ExperienceDraft, ExperienceGroup

REQUIRED_FIELDS = {
    "full_name": "Nama lengkap",
    "nick_name": "Nama panggilan",
    "address": "Alamat",
    "date_of_birth": "Tanggal lahir",
    "phone_number": "Nomor HP",
    "email": "Email",
    "ktp_number": "Nomor KTP",
    "last_education": "Pendidikan terakhir",
    "applied_position": "Posisi dilamar",
    "expected_salary": "Gaji yang diharapkan",
    "domicile_city": "Kota domisili",
}

TEXT_FIELDS = tuple(REQUIRED_FIELDS) + ("last_salary",)


@dataclass
class UploadedFile:
    filename: str
    content: bytes
    content_type: str = "application/octet-stream"

    @property
    def size(self) -> int:
        return len(self.content)


def _checked(value: Any) -> bool:
    return str(value).lower() in ("on", "true", "1", "yes")


def _parse_index(value: Any) -> Optional[int]:
    try:
        return int(value)
    except (TypeError, ValueError):
        return None


def _parse_amount(value: str, label: str) -> Optional[float]:
    if not value.strip():
        return None
    try:
        amount = float(value.strip())
    except ValueError:
        raise ValidationError(f"{label} harus berupa angka.") from None
    if not math.isfinite(amount):
        raise ValidationError(f"{label} harus berupa angka.")
    return amount


@dataclass
class FormDraft:
    full_name: str = ""
    nick_name: str = ""
    address: str = ""
    date_of_birth: str = ""
    age: str = ""
    phone_number: str = ""
    email: str = ""
    ktp_number: str = ""
    last_education: str = ""
    applied_position: str = ""
    last_salary: str = ""
    expected_salary: str = ""
    domicile_city: str = ""
    ready_to_relocate: bool = False

    experiences: ExperienceGroup = field(default_factory=ExperienceGroup)
    photo: Optional[UploadedFile] = None
    cv: Optional[UploadedFile] = None
    draft_id: str = field(default_factory=lambda: uuid.uuid4().hex)

    @classmethod
    def blank(cls, applied_position: str = "") -> "FormDraft":
        return cls(applied_position=applied_position)

    @classmethod
    def from_form(
        cls,
        form: Mapping[str, Any],
        photo: Optional[UploadedFile] = None,
        cv: Optional[UploadedFile] = None,
        today: Optional[date] = None,
    ) -> "FormDraft":
        """Rebuild a draft from posted form fields. Any posted age is ignored."""
        draft = cls(
            photo=photo,
            cv=cv,
            ready_to_relocate=_checked(form.get("ready_to_relocate", "")),
        )
        if form.get("draft_id"):
            draft.draft_id = str(form["draft_id"])
        for name in TEXT_FIELDS:
            setattr(draft, name, str(form.get(name) or ""))
        draft.set_date_of_birth(draft.date_of_birth, today=today)

        count = min(max(_parse_index(form.get("experience_count")) or 0, 0), MAX_EXPERIENCES)
        entries = []
        for i in range(count):
            prefix = f"experience-{i}-"
            is_current = _checked(form.get(prefix + "is_current", ""))
            entries.append(ExperienceDraft(
                position=str(form.get(prefix + "position") or ""),
                company_name=str(form.get(prefix + "company_name") or ""),
                start_period=str(form.get(prefix + "start_period") or ""),
                end_period="" if is_current else str(form.get(prefix + "end_period") or ""),
                is_current=is_current,
            ))
        if not entries:
            entries = [ExperienceDraft()]
        draft.experiences = ExperienceGroup(entries, expanded=_parse_index(form.get("expanded")))
        return draft

    def set_date_of_birth(self, value: str, today: Optional[date] = None) -> None:
        self.date_of_birth = value
        self.age = age_from_input(value, today)

    def apply_action(self, action: str) -> Optional[str]:
        """
        Apply a form button action (``add``, ``remove:<i>``, ``toggle:<i>``).
        Returns a message for the user, if any.
        """
        name, _, arg = (action or "").partition(":")
        index = _parse_index(arg)
        if name == "add":
            if not self.experiences.add():
                return CAPACITY_MESSAGE
        elif name == "remove" and index is not None and self.experiences.can_remove:
            self.experiences.remove(index)
        elif name == "toggle" and index is not None:
            self.experiences.toggle_expand(index)
        return None

    def validate(self, today: Optional[date] = None) -> None:
        for name, label in REQUIRED_FIELDS.items():
            if not str(getattr(self, name)).strip():
                raise ValidationError(f"{label} wajib diisi.", field=name)
        birth = parse_birth_date(self.date_of_birth)
        if birth is None:
            raise ValidationError("Tanggal lahir tidak valid.", field="date_of_birth")
        if birth > (today or date.today()):
            raise ValidationError("Tanggal lahir tidak boleh di masa depan.", field="date_of_birth")
        if self.last_education not in {level.value for level in EducationLevel}:
            raise ValidationError("Pendidikan terakhir tidak valid.", field="last_education")
        _parse_amount(self.expected_salary, REQUIRED_FIELDS["expected_salary"])
        _parse_amount(self.last_salary, "Gaji terakhir")
        self.experiences.validate()

    def to_applicant(self, photo_url: str = "", cv_url: str = "", applied_at: Optional[datetime] = None) -> Applicant:
        return Applicant(
            full_name=self.full_name.strip(),
            nick_name=self.nick_name.strip(),
            address=self.address.strip(),
            date_of_birth=parse_birth_date(self.date_of_birth),
            age=int(self.age) if self.age else None,
            phone_number=self.phone_number.strip(),
            email=self.email.strip(),
            ktp_number=self.ktp_number.strip(),
            last_education=self.last_education,
            applied_position=self.applied_position.strip(),
            last_salary=_parse_amount(self.last_salary, "Gaji terakhir"),
            expected_salary=_parse_amount(self.expected_salary, REQUIRED_FIELDS["expected_salary"]),
            domicile_city=self.domicile_city.strip(),
            ready_to_relocate=self.ready_to_relocate,
            photo_url=photo_url,
            cv_url=cv_url,
            applied_at=applied_at,
            work_experiences=self.experiences.to_work_experiences(),
        )
