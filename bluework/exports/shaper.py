"""
Export projections of applicants with their work experiences.

``summary_rows`` packs all experiences into one multi-line cell (PDF table);
``flattened_rows`` spreads them over a fixed number of slots so every row has
the same columns (CSV).
"""

from datetime import date, datetime
from typing import Optional

from bluework.core.applicant import Applicant, WorkExperience, sort_experiences

PLACEHOLDER = "-"
CURRENT_LABEL = "Saat Ini"
DEFAULT_SLOTS = 5

MONTHS_ID = ("Jan", "Feb", "Mar", "Apr", "Mei", "Jun", "Jul", "Agu", "Sep", "Okt", "Nov", "Des")

SUMMARY_COLUMNS = [
    "Nama Lengkap",
    "Posisi Dilamar",
    "Email",
    "No HP",
    "Kota Domisili",
    "Siap Relokasi",
    "Pengalaman Kerja",
    "Diunggah Pada",
    "Dokumen (Foto & CV)",
]

FLAT_SCALAR_COLUMNS = [
    "Nama Lengkap",
    "Nama Panggilan",
    "Alamat",
    "Tanggal Lahir",
    "Usia",
    "Nomor HP",
    "Email",
    "Nomor KTP",
    "Pendidikan Terakhir",
    "Posisi Dilamar",
    "Gaji Terakhir",
    "Gaji Diharapkan",
    "Kota Domisili",
    "Siap Relokasi",
    "Diunggah Pada",
    "URL Foto",
    "URL CV",
]

SLOT_FIELDS = ("Posisi", "Perusahaan", "Periode Mulai", "Periode Selesai", "Saat Ini")


def format_month_year(value: Optional[date]) -> str:
    if value is None:
        return ""
    return f"{MONTHS_ID[value.month - 1]} {value.year}"


def format_timestamp(value: Optional[datetime]) -> str:
    if value is None:
        return PLACEHOLDER
    return f"{value.day:02d} {MONTHS_ID[value.month - 1]} {value.year} {value.hour:02d}:{value.minute:02d}"


def yes_no(value: bool) -> str:
    return "Ya" if value else "Tidak"


def _or_placeholder(value) -> str:
    if value is None or value == "":
        return PLACEHOLDER
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


def end_label(experience: WorkExperience) -> str:
    if experience.is_current_job:
        return CURRENT_LABEL
    return format_month_year(experience.end_date)


def format_experience_line(experience: WorkExperience) -> str:
    start = format_month_year(experience.start_date)
    return f"{experience.position} di {experience.company_name} ({start} - {end_label(experience)})"


def format_experiences(experiences: list[WorkExperience]) -> str:
    """One line per experience, current job first then newest start date"""
    if not experiences:
        return PLACEHOLDER
    return "\n".join(format_experience_line(exp) for exp in sort_experiences(experiences))


def format_documents(applicant: Applicant, width: int = 30) -> str:
    parts = []
    if applicant.photo_url:
        parts.append(f"Foto: {applicant.photo_url[:width]}...")
    if applicant.cv_url:
        parts.append(f"CV: {applicant.cv_url[:width]}...")
    return "\n".join(parts) or PLACEHOLDER


def summary_rows(applicants: list[Applicant]) -> list[dict[str, str]]:
    return [
        {
            "Nama Lengkap": applicant.full_name,
            "Posisi Dilamar": applicant.applied_position,
            "Email": applicant.email,
            "No HP": applicant.phone_number,
            "Kota Domisili": applicant.domicile_city,
            "Siap Relokasi": yes_no(applicant.ready_to_relocate),
            "Pengalaman Kerja": format_experiences(applicant.work_experiences),
            "Diunggah Pada": format_timestamp(applicant.applied_at),
            "Dokumen (Foto & CV)": format_documents(applicant),
        }
        for applicant in applicants
    ]


def slot_columns(slot: int) -> list[str]:
    return [f"Pengalaman Kerja {slot} - {field}" for field in SLOT_FIELDS]


def flattened_columns(slots: int = DEFAULT_SLOTS) -> list[str]:
    columns = list(FLAT_SCALAR_COLUMNS)
    for slot in range(1, slots + 1):
        columns.extend(slot_columns(slot))
    return columns


def flatten_experiences(
    experiences: list[WorkExperience],
    slots: int = DEFAULT_SLOTS,
    placeholder: str = PLACEHOLDER,
) -> dict[str, str]:
    """Exactly ``slots`` groups of five columns; missing slots are all placeholder"""
    ordered = sort_experiences(experiences)
    flattened = {}
    for slot in range(1, slots + 1):
        columns = slot_columns(slot)
        if slot <= len(ordered):
            exp = ordered[slot - 1]
            values = [
                exp.position,
                exp.company_name,
                format_month_year(exp.start_date),
                end_label(exp),
                yes_no(exp.is_current_job),
            ]
        else:
            values = [placeholder] * len(columns)
        flattened.update(zip(columns, values))
    return flattened


def flattened_row(applicant: Applicant, slots: int = DEFAULT_SLOTS, placeholder: str = PLACEHOLDER) -> dict[str, str]:
    row = {
        "Nama Lengkap": applicant.full_name,
        "Nama Panggilan": _or_placeholder(applicant.nick_name),
        "Alamat": _or_placeholder(applicant.address),
        "Tanggal Lahir": _or_placeholder(applicant.date_of_birth.isoformat() if applicant.date_of_birth else None),
        "Usia": _or_placeholder(applicant.age),
        "Nomor HP": applicant.phone_number,
        "Email": applicant.email,
        "Nomor KTP": _or_placeholder(applicant.ktp_number),
        "Pendidikan Terakhir": _or_placeholder(applicant.last_education),
        "Posisi Dilamar": applicant.applied_position,
        "Gaji Terakhir": _or_placeholder(applicant.last_salary),
        "Gaji Diharapkan": _or_placeholder(applicant.expected_salary),
        "Kota Domisili": applicant.domicile_city,
        "Siap Relokasi": yes_no(applicant.ready_to_relocate),
        "Diunggah Pada": format_timestamp(applicant.applied_at),
        "URL Foto": _or_placeholder(applicant.photo_url),
        "URL CV": _or_placeholder(applicant.cv_url),
    }
    row.update(flatten_experiences(applicant.work_experiences, slots, placeholder))
    return row


def flattened_rows(applicants: list[Applicant], slots: int = DEFAULT_SLOTS, placeholder: str = PLACEHOLDER) -> list[dict[str, str]]:
    return [flattened_row(applicant, slots, placeholder) for applicant in applicants]
