from __future__ import annotations

from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from app.services.aggregation import ClinicApplicants, ClinicSummary, ActionNeededSummary
from app.services.enrichment import EnrichedApplication
from app.services.records import Application, JobPosting, Negotiation

Timestamp = str | int | float | None


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class JobPostingOut(CamelModel):
    clinic_id: str
    job_id: str
    job_type: str = ""
    role: str = ""
    status: str = "unknown"
    date: str = ""
    dates: list[str] = Field(default_factory=list)
    date_range: str = ""
    start_date: str = ""
    start_time: str = ""
    end_time: str = ""
    hourly_rate: float | None = None
    salary_min: float | None = None
    salary_max: float | None = None
    created_at: Timestamp = None
    updated_at: Timestamp = None

    @classmethod
    def from_record(cls, posting: JobPosting) -> JobPostingOut:
        return cls(
            clinic_id=posting.clinic_id,
            job_id=posting.job_id,
            job_type=posting.job_type,
            role=posting.role,
            status=posting.status,
            date=posting.date,
            dates=list(posting.dates),
            date_range=posting.date_range,
            start_date=posting.start_date,
            start_time=posting.start_time,
            end_time=posting.end_time,
            hourly_rate=posting.hourly_rate,
            salary_min=posting.salary_min,
            salary_max=posting.salary_max,
            created_at=posting.created_at,
            updated_at=posting.updated_at,
        )


class ApplicationOut(CamelModel):
    application_id: str
    clinic_id: str
    job_id: str = ""
    applicant_id: str = ""
    application_status: str = ""
    negotiation_id: str | None = None
    applicant_name: str | None = None
    proposed_rate: float | None = None
    applied_at: Timestamp = None
    updated_at: Timestamp = None

    @classmethod
    def from_record(cls, application: Application) -> ApplicationOut:
        return cls(
            application_id=application.application_id,
            clinic_id=application.clinic_id,
            job_id=application.job_id,
            applicant_id=application.applicant_id,
            application_status=application.status,
            negotiation_id=application.negotiation_id or None,
            applicant_name=application.applicant_name or None,
            proposed_rate=application.proposed_rate,
            applied_at=application.applied_at,
            updated_at=application.updated_at,
        )


class NegotiationOut(CamelModel):
    negotiation_id: str
    application_id: str = ""
    clinic_id: str = ""
    status: str = ""
    clinic_counter_hourly_rate: float | None = None
    professional_counter_hourly_rate: float | None = None
    created_at: Timestamp = None
    updated_at: Timestamp = None

    @classmethod
    def from_record(cls, negotiation: Negotiation) -> NegotiationOut:
        return cls(
            negotiation_id=negotiation.negotiation_id,
            application_id=negotiation.application_id,
            clinic_id=negotiation.clinic_id,
            status=negotiation.status,
            clinic_counter_hourly_rate=negotiation.clinic_counter_hourly_rate,
            professional_counter_hourly_rate=negotiation.professional_counter_hourly_rate,
            created_at=negotiation.created_at,
            updated_at=negotiation.updated_at,
        )


class EnrichedApplicationOut(ApplicationOut):
    profile: dict[str, Any] | None = None
    negotiation: NegotiationOut | None = None

    @classmethod
    def from_enriched(cls, item: EnrichedApplication) -> EnrichedApplicationOut:
        base = ApplicationOut.from_record(item.application)
        return cls(
            **base.model_dump(),
            profile=dict(item.profile.attributes) if item.profile is not None else None,
            negotiation=NegotiationOut.from_record(item.negotiation) if item.negotiation is not None else None,
        )


class JobApplicantsOut(CamelModel):
    job_id: str
    job_posting: JobPostingOut
    applicants: list[EnrichedApplicationOut] = Field(default_factory=list)


class ClinicApplicantsOut(CamelModel):
    status: Literal["success"] = "success"
    type: Literal["clinic_applicants"] = "clinic_applicants"
    clinic_id: str
    statuses: list[str] | None = None
    jobs: list[JobApplicantsOut] = Field(default_factory=list)
    total_applicants: int = 0

    @classmethod
    def from_result(cls, result: ClinicApplicants) -> ClinicApplicantsOut:
        return cls(
            clinic_id=result.clinic_id,
            statuses=result.statuses,
            jobs=[
                JobApplicantsOut(
                    job_id=job.job_id,
                    job_posting=JobPostingOut.from_record(job.job_posting),
                    applicants=[EnrichedApplicationOut.from_enriched(item) for item in job.applicants],
                )
                for job in result.jobs
            ],
            total_applicants=result.total_applicants,
        )


class ClinicSummaryOut(CamelModel):
    clinic_id: str
    total_applications: int = 0
    total_pending: int = 0
    total_negotiating: int = 0
    pending_applications: list[EnrichedApplicationOut] = Field(default_factory=list)
    negotiating_applications: list[EnrichedApplicationOut] = Field(default_factory=list)

    @classmethod
    def from_summary(cls, summary: ClinicSummary) -> ClinicSummaryOut:
        return cls(
            clinic_id=summary.clinic_id,
            total_applications=summary.total_applications,
            total_pending=summary.total_pending,
            total_negotiating=summary.total_negotiating,
            pending_applications=[EnrichedApplicationOut.from_enriched(item) for item in summary.pending_applications],
            negotiating_applications=[
                EnrichedApplicationOut.from_enriched(item) for item in summary.negotiating_applications
            ],
        )


class ActionNeededSummaryOut(CamelModel):
    status: Literal["success"] = "success"
    type: Literal["aggregated"] = "aggregated"
    total_clinics: int = 0
    statuses: list[str] = Field(default_factory=list)
    clinic_summaries: list[ClinicSummaryOut] = Field(default_factory=list)

    @classmethod
    def from_result(cls, result: ActionNeededSummary) -> ActionNeededSummaryOut:
        return cls(
            total_clinics=result.total_clinics,
            statuses=result.statuses,
            clinic_summaries=[ClinicSummaryOut.from_summary(summary) for summary in result.clinic_summaries],
        )
