"""Typed records decoded from raw store items.

Store items arrive as loosely-typed attribute maps whose field names drifted
over time. Everything past this module works on the dataclasses below; items
that lack their identity fields are dropped here instead of travelling deeper.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterable
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Any, TypeVar

logger = logging.getLogger(__name__)

APPLICANT_ID_FIELDS = ("professionalUserSub", "applicantId", "userSub")
APPLICATION_STATUS_FIELDS = ("applicationStatus", "status")

R = TypeVar("R")


def to_plain(value: Any) -> Any:
    if isinstance(value, bool):
        return value
    if isinstance(value, Decimal):
        return int(value) if value == value.to_integral_value() else float(value)
    if isinstance(value, (set, frozenset)):
        return sorted((to_plain(item) for item in value), key=str)
    if isinstance(value, (list, tuple)):
        return [to_plain(item) for item in value]
    if isinstance(value, dict):
        return {str(key): to_plain(item) for key, item in value.items()}
    return value


def text(value: Any) -> str:
    if isinstance(value, str):
        return value.strip()
    if isinstance(value, bool):
        return ""
    if isinstance(value, (int, float, Decimal)):
        return str(to_plain(value))
    return ""


def first_present(raw: dict[str, Any], fields: Iterable[str]) -> str:
    for name in fields:
        value = text(raw.get(name))
        if value:
            return value
    return ""


def number(value: Any) -> int | float | None:
    if isinstance(value, bool) or value is None:
        return None
    if isinstance(value, (int, float, Decimal)):
        return to_plain(value)
    if isinstance(value, str) and value.strip():
        try:
            parsed = Decimal(value.strip())
        except ArithmeticError:
            return None
        return to_plain(parsed) if parsed.is_finite() else None
    return None


def string_list(value: Any) -> list[str]:
    """Normalize list-or-set attributes into one ordered list of strings."""
    if value is None:
        return []
    if isinstance(value, str):
        return [value] if value.strip() else []
    if isinstance(value, (set, frozenset)):
        return sorted(item for item in (text(entry) for entry in value) if item)
    if isinstance(value, (list, tuple)):
        return [item for item in (text(entry) for entry in value) if item]
    return []


def timestamp(value: Any) -> str | int | float | None:
    if isinstance(value, str):
        return value.strip() or None
    return number(value)


@dataclass(slots=True, frozen=True)
class JobPosting:
    clinic_id: str
    job_id: str
    job_type: str = ""
    role: str = ""
    status: str = "unknown"
    date: str = ""
    dates: list[str] = field(default_factory=list)
    date_range: str = ""
    start_date: str = ""
    start_time: str = ""
    end_time: str = ""
    hourly_rate: int | float | None = None
    salary_min: int | float | None = None
    salary_max: int | float | None = None
    created_at: str | int | float | None = None
    updated_at: str | int | float | None = None


@dataclass(slots=True, frozen=True)
class Application:
    application_id: str
    clinic_id: str
    job_id: str = ""
    applicant_id: str = ""
    status: str = ""
    negotiation_id: str = ""
    applicant_name: str = ""
    proposed_rate: int | float | None = None
    applied_at: str | int | float | None = None
    updated_at: str | int | float | None = None

    @property
    def normalized_status(self) -> str:
        return self.status.lower()


@dataclass(slots=True, frozen=True)
class ApplicantProfile:
    applicant_id: str
    attributes: dict[str, Any] = field(default_factory=dict)


@dataclass(slots=True, frozen=True)
class Negotiation:
    negotiation_id: str
    application_id: str = ""
    clinic_id: str = ""
    status: str = ""
    clinic_counter_hourly_rate: int | float | None = None
    professional_counter_hourly_rate: int | float | None = None
    created_at: str | int | float | None = None
    updated_at: str | int | float | None = None


def decode_job_posting(raw: dict[str, Any]) -> JobPosting | None:
    clinic_id = text(raw.get("clinicId"))
    job_id = text(raw.get("jobId"))
    if not clinic_id or not job_id:
        return None
    return JobPosting(
        clinic_id=clinic_id,
        job_id=job_id,
        job_type=first_present(raw, ("job_type", "jobType")),
        role=first_present(raw, ("professional_role", "professionalRole", "jobTitle")),
        status=text(raw.get("status")) or "unknown",
        date=text(raw.get("date")),
        dates=string_list(raw.get("dates")),
        date_range=first_present(raw, ("date_range", "dateRange")),
        start_date=first_present(raw, ("start_date", "startDate")),
        start_time=first_present(raw, ("start_time", "startTime")),
        end_time=first_present(raw, ("end_time", "endTime")),
        hourly_rate=number(raw.get("hourly_rate", raw.get("hourlyRate"))),
        salary_min=number(raw.get("salary_min", raw.get("salaryMin"))),
        salary_max=number(raw.get("salary_max", raw.get("salaryMax"))),
        created_at=timestamp(raw.get("createdAt")),
        updated_at=timestamp(raw.get("updatedAt")),
    )


def decode_application(raw: dict[str, Any]) -> Application | None:
    application_id = text(raw.get("applicationId"))
    clinic_id = text(raw.get("clinicId"))
    if not application_id or not clinic_id:
        return None
    return Application(
        application_id=application_id,
        clinic_id=clinic_id,
        job_id=text(raw.get("jobId")),
        applicant_id=first_present(raw, APPLICANT_ID_FIELDS),
        status=first_present(raw, APPLICATION_STATUS_FIELDS),
        negotiation_id=text(raw.get("negotiationId")),
        applicant_name=text(raw.get("professionalName")),
        proposed_rate=number(raw.get("proposedRate", raw.get("proposed_rate"))),
        applied_at=timestamp(raw.get("appliedAt")),
        updated_at=timestamp(raw.get("updatedAt")),
    )


def decode_profile(raw: dict[str, Any]) -> ApplicantProfile | None:
    applicant_id = text(raw.get("userSub"))
    if not applicant_id:
        return None
    return ApplicantProfile(applicant_id=applicant_id, attributes=to_plain(raw))


def decode_negotiation(raw: dict[str, Any]) -> Negotiation | None:
    negotiation_id = text(raw.get("negotiationId"))
    if not negotiation_id:
        return None
    return Negotiation(
        negotiation_id=negotiation_id,
        application_id=text(raw.get("applicationId")),
        clinic_id=first_present(raw, ("clinicId", "clinic")),
        status=first_present(raw, ("negotiationStatus", "status")),
        clinic_counter_hourly_rate=number(raw.get("clinicCounterHourlyRate")),
        professional_counter_hourly_rate=number(raw.get("professionalCounterHourlyRate")),
        created_at=timestamp(raw.get("createdAt")),
        updated_at=timestamp(raw.get("updatedAt")),
    )


def decode_many(raw_items: Iterable[dict[str, Any]], decoder: Callable[[dict[str, Any]], R | None], kind: str) -> list[R]:
    decoded: list[R] = []
    dropped = 0
    for raw in raw_items:
        record = decoder(raw)
        if record is None:
            dropped += 1
            continue
        decoded.append(record)
    if dropped:
        logger.warning("dropped malformed %s records count=%s", kind, dropped)
    return decoded
