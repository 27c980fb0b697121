from __future__ import annotations

import asyncio
import logging
import math
from collections.abc import Awaitable, Iterable
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from functools import partial
from typing import Any, TypeVar

from opentelemetry import trace

from app.core.config import Settings, parse_csv
from app.services.concurrency import gather_bounded
from app.services.enrichment import EnrichedApplication, enrich
from app.services.pagination import fetch_all
from app.services.records import (
    ApplicantProfile,
    Application,
    JobPosting,
    Negotiation,
    decode_application,
    decode_job_posting,
    decode_many,
    decode_negotiation,
    decode_profile,
)
from app.services.references import applicant_id_of, collect, negotiation_key_of
from app.services.resolver import BatchedResolver, TableRef
from app.services.store import Cursor, DynamoStore, Page, StoreError

logger = logging.getLogger(__name__)
tracer = trace.get_tracer(__name__)

T = TypeVar("T")


class AggregationError(Exception):
    """Base aggregation error."""


class ClientInputError(AggregationError):
    """Raised when a request does not say which clinic data it wants."""


class AggregationTimeoutError(AggregationError):
    """Raised when a request does not finish within its deadline."""


class AggregationMode(str, Enum):
    CLINIC = "clinic"
    SUMMARY = "summary"


@dataclass(slots=True, frozen=True)
class ModeSelection:
    mode: AggregationMode
    clinic_id: str | None = None


@dataclass(slots=True)
class JobApplicants:
    job_id: str
    job_posting: JobPosting
    applicants: list[EnrichedApplication]


@dataclass(slots=True)
class ClinicApplicants:
    clinic_id: str
    jobs: list[JobApplicants]
    statuses: list[str] | None = None

    @property
    def total_applicants(self) -> int:
        return sum(len(job.applicants) for job in self.jobs)


@dataclass(slots=True)
class ClinicSummary:
    clinic_id: str
    total_applications: int = 0
    pending_applications: list[EnrichedApplication] = field(default_factory=list)
    negotiating_applications: list[EnrichedApplication] = field(default_factory=list)

    @property
    def total_pending(self) -> int:
        return len(self.pending_applications)

    @property
    def total_negotiating(self) -> int:
        return len(self.negotiating_applications)


@dataclass(slots=True)
class ActionNeededSummary:
    statuses: list[str]
    clinic_summaries: list[ClinicSummary]

    @property
    def total_clinics(self) -> int:
        return len(self.clinic_summaries)


@dataclass(slots=True, frozen=True)
class ShiftApplication:
    application: Application
    posting: JobPosting | None = None


@dataclass(slots=True)
class ShiftDashboard:
    clinic_id: str
    open_shifts: list[JobPosting]
    scheduled_jobs: list[ShiftApplication]
    action_needed_jobs: list[ShiftApplication]
    completed_jobs: list[ShiftApplication]
    total_shifts: int


def select_mode(clinic_id: str | None, aggregate: bool) -> ModeSelection:
    clinic_id = (clinic_id or "").strip() or None
    if clinic_id and not aggregate:
        return ModeSelection(mode=AggregationMode.CLINIC, clinic_id=clinic_id)
    if aggregate:
        return ModeSelection(mode=AggregationMode.SUMMARY, clinic_id=clinic_id)
    raise ClientInputError("clinicId is required or set ?aggregate=true to get all clinics")


def parse_statuses(raw: str | None, defaults: Iterable[str]) -> list[str]:
    return parse_csv(raw) or list(defaults)


def _timestamp_score(value: Any) -> float:
    if isinstance(value, bool) or value is None:
        return -math.inf
    if isinstance(value, str):
        stripped = value.strip()
        if not stripped:
            return -math.inf
        try:
            value = float(stripped)
        except ValueError:
            try:
                parsed = datetime.fromisoformat(stripped.replace("Z", "+00:00"))
            except ValueError:
                return -math.inf
            if parsed.tzinfo is None:
                parsed = parsed.replace(tzinfo=timezone.utc)
            return parsed.timestamp() * 1000.0
    if isinstance(value, (int, float)):
        if value <= 0 or not math.isfinite(value):
            return -math.inf
        # Epoch seconds are stored alongside epoch milliseconds.
        return float(value) * 1000.0 if value < 1e11 else float(value)
    return -math.inf


def choose_latest_negotiation(negotiations: Iterable[Negotiation]) -> Negotiation | None:
    latest: Negotiation | None = None
    latest_score = -math.inf
    for negotiation in negotiations:
        stamp = negotiation.updated_at if negotiation.updated_at is not None else negotiation.created_at
        score = _timestamp_score(stamp)
        if latest is None or score > latest_score:
            latest = negotiation
            latest_score = score
    return latest


class ApplicantAggregator:
    """Join job postings, applications, profiles and negotiations for clinics."""

    def __init__(self, store: DynamoStore, settings: Settings) -> None:
        self.store = store
        self.settings = settings
        self.resolver = BatchedResolver(
            store,
            chunk_size=settings.batch_chunk_size,
            max_concurrency=settings.fanout_concurrency,
        )
        self.profiles_table = TableRef(settings.profiles_table, ("userSub",), decode_profile, "profile")
        self.negotiations_table = TableRef(
            settings.negotiations_table,
            settings.negotiation_key_schema,
            decode_negotiation,
            "negotiation",
        )
        self.pending_statuses = set(parse_csv(settings.pending_statuses))
        self.negotiating_statuses = set(parse_csv(settings.negotiating_statuses))
        self.scheduled_statuses = set(parse_csv(settings.scheduled_statuses))
        self.completed_statuses = set(parse_csv(settings.completed_statuses))
        self.ignored_statuses = set(parse_csv(settings.terminal_ignore_statuses))

    async def run(self, operation: Awaitable[T]) -> T:
        try:
            return await asyncio.wait_for(operation, timeout=self.settings.aggregation_timeout_seconds)
        except asyncio.TimeoutError as exc:
            logger.error("aggregation timed out after %.1fs", self.settings.aggregation_timeout_seconds)
            raise AggregationTimeoutError(
                f"aggregation did not finish within {self.settings.aggregation_timeout_seconds:g}s"
            ) from exc

    async def action_needed(
        self,
        selection: ModeSelection,
        statuses: list[str],
    ) -> ClinicApplicants | ActionNeededSummary:
        if selection.mode is AggregationMode.CLINIC and selection.clinic_id:
            return await self.clinic_applicants(selection.clinic_id, statuses=statuses)
        return await self.summary(statuses, clinic_id=selection.clinic_id)

    async def clinic_applicants(self, clinic_id: str, *, statuses: list[str] | None = None) -> ClinicApplicants:
        with tracer.start_as_current_span("aggregation.clinic_applicants") as span:
            span.set_attribute("clinic.id", clinic_id)
            postings = decode_many(
                await fetch_all(partial(self._postings_page, clinic_id)),
                decode_job_posting,
                "job_posting",
            )
            per_job = await gather_bounded(
                [partial(self._job_applications, clinic_id, posting.job_id) for posting in postings],
                self.settings.fanout_concurrency,
            )
            if statuses is not None:
                allowed = set(statuses)
                per_job = [
                    [application for application in applications if application.normalized_status in allowed]
                    for applications in per_job
                ]

            combined = [application for applications in per_job for application in applications]
            profiles, negotiations, fallback = await self._resolve_references(combined, with_profiles=True)

            jobs = [
                JobApplicants(
                    job_id=posting.job_id,
                    job_posting=posting,
                    applicants=enrich(applications, profiles, negotiations, fallback_negotiations=fallback),
                )
                for posting, applications in zip(postings, per_job)
            ]
            result = ClinicApplicants(clinic_id=clinic_id, jobs=jobs, statuses=statuses)
            span.set_attribute("clinic.jobs", len(jobs))
            span.set_attribute("clinic.applicants", result.total_applicants)
            logger.info(
                "clinic applicants aggregated clinic_id=%s jobs=%s applicants=%s",
                clinic_id,
                len(jobs),
                result.total_applicants,
            )
            return result

    async def summary(self, statuses: list[str], *, clinic_id: str | None = None) -> ActionNeededSummary:
        with tracer.start_as_current_span("aggregation.summary") as span:
            if clinic_id:
                span.set_attribute("clinic.id", clinic_id)
                raw = await fetch_all(partial(self._clinic_applications_page, clinic_id))
            else:
                raw = await fetch_all(self._all_applications_page)
            applications = decode_many(raw, decode_application, "application")

            allowed = set(statuses)
            filtered = [application for application in applications if application.normalized_status in allowed]
            _, negotiations, fallback = await self._resolve_references(filtered, with_profiles=False)

            summaries: dict[str, ClinicSummary] = {}
            for item in enrich(filtered, {}, negotiations, fallback_negotiations=fallback):
                application = item.application
                summary = summaries.setdefault(application.clinic_id, ClinicSummary(clinic_id=application.clinic_id))
                summary.total_applications += 1
                if application.normalized_status in self.pending_statuses:
                    summary.pending_applications.append(item)
                elif application.normalized_status in self.negotiating_statuses:
                    summary.negotiating_applications.append(item)

            ordered = sorted(summaries.values(), key=lambda summary: summary.total_applications, reverse=True)
            span.set_attribute("summary.clinics", len(ordered))
            logger.info(
                "action needed summary aggregated clinics=%s applications=%s of=%s statuses=%s",
                len(ordered),
                len(filtered),
                len(applications),
                ",".join(statuses),
            )
            return ActionNeededSummary(statuses=statuses, clinic_summaries=ordered)

    async def shift_dashboard(self, clinic_id: str) -> ShiftDashboard:
        with tracer.start_as_current_span("aggregation.shift_dashboard") as span:
            span.set_attribute("clinic.id", clinic_id)
            raw_postings, raw_applications = await gather_bounded(
                [
                    partial(fetch_all, partial(self._postings_page, clinic_id)),
                    partial(fetch_all, partial(self._clinic_applications_page, clinic_id)),
                ],
                2,
            )
            postings = decode_many(raw_postings, decode_job_posting, "job_posting")
            applications = decode_many(raw_applications, decode_application, "application")

            by_job_id = {posting.job_id: posting for posting in postings}
            rows = [ShiftApplication(application, by_job_id.get(application.job_id)) for application in applications]

            scheduled = [row for row in rows if row.application.normalized_status in self.scheduled_statuses]
            completed = [row for row in rows if row.application.normalized_status in self.completed_statuses]
            settled = self.scheduled_statuses | self.completed_statuses | self.ignored_statuses
            action_needed = [row for row in rows if row.application.normalized_status not in settled]

            filled_job_ids = {row.application.job_id for row in scheduled + completed}
            open_shifts = [
                posting
                for posting in postings
                if posting.job_id not in filled_job_ids and posting.status.lower() not in self.ignored_statuses
            ]
            logger.info(
                "shift dashboard aggregated clinic_id=%s shifts=%s open=%s scheduled=%s action_needed=%s completed=%s",
                clinic_id,
                len(postings),
                len(open_shifts),
                len(scheduled),
                len(action_needed),
                len(completed),
            )
            return ShiftDashboard(
                clinic_id=clinic_id,
                open_shifts=open_shifts,
                scheduled_jobs=scheduled,
                action_needed_jobs=action_needed,
                completed_jobs=completed,
                total_shifts=len(postings),
            )

    async def _job_applications(self, clinic_id: str, job_id: str) -> list[Application]:
        raw = await fetch_all(partial(self._job_applications_page, clinic_id, job_id))
        return decode_many(raw, decode_application, "application")

    async def _resolve_references(
        self,
        applications: list[Application],
        *,
        with_profiles: bool,
    ) -> tuple[dict[str, ApplicantProfile], dict[str, Negotiation], dict[str, Negotiation]]:
        applicant_ids = collect(applications, applicant_id_of) if with_profiles else set()
        negotiation_keys = collect(applications, negotiation_key_of(self.negotiations_table.key_attributes))
        fallback_ids = self._fallback_application_ids(applications)

        profiles, negotiations, fallback = await gather_bounded(
            [
                partial(self.resolver.resolve, applicant_ids, self.profiles_table),
                partial(self.resolver.resolve, negotiation_keys, self.negotiations_table),
                partial(self._negotiations_by_application, fallback_ids),
            ],
            3,
        )
        by_negotiation_id = {record.negotiation_id: record for record in negotiations.values()}
        return profiles, by_negotiation_id, fallback

    def _fallback_application_ids(self, applications: list[Application]) -> list[str]:
        if not self.settings.negotiation_fallback_enabled:
            return []
        ids = [
            application.application_id
            for application in applications
            if not application.negotiation_id and application.normalized_status in self.negotiating_statuses
        ]
        return list(dict.fromkeys(ids))

    async def _negotiations_by_application(self, application_ids: list[str]) -> dict[str, Negotiation]:
        if not application_ids:
            return {}
        latest = await gather_bounded(
            [partial(self._latest_negotiation_for, application_id) for application_id in application_ids],
            self.settings.fanout_concurrency,
        )
        return {
            application_id: negotiation
            for application_id, negotiation in zip(application_ids, latest)
            if negotiation is not None
        }

    async def _latest_negotiation_for(self, application_id: str) -> Negotiation | None:
        try:
            raw = await fetch_all(partial(self._negotiations_by_application_page, application_id))
        except StoreError as exc:
            logger.warning("negotiation lookup failed application_id=%s: %s", application_id, exc)
            return None
        return choose_latest_negotiation(decode_many(raw, decode_negotiation, "negotiation"))

    def _postings_page(self, clinic_id: str, cursor: Cursor | None) -> Awaitable[Page]:
        return self.store.query_page(
            self.settings.job_postings_table,
            key_values={"clinicId": clinic_id},
            cursor=cursor,
        )

    def _job_applications_page(self, clinic_id: str, job_id: str, cursor: Cursor | None) -> Awaitable[Page]:
        return self.store.query_page(
            self.settings.job_applications_table,
            key_values={"clinicId": clinic_id, "jobId": job_id},
            index_name=self.settings.applications_clinic_index,
            cursor=cursor,
        )

    def _clinic_applications_page(self, clinic_id: str, cursor: Cursor | None) -> Awaitable[Page]:
        return self.store.query_page(
            self.settings.job_applications_table,
            key_values={"clinicId": clinic_id},
            index_name=self.settings.applications_clinic_index,
            cursor=cursor,
        )

    def _all_applications_page(self, cursor: Cursor | None) -> Awaitable[Page]:
        return self.store.scan_page(self.settings.job_applications_table, cursor=cursor)

    def _negotiations_by_application_page(self, application_id: str, cursor: Cursor | None) -> Awaitable[Page]:
        return self.store.query_page(
            self.settings.negotiations_table,
            key_values={"applicationId": application_id},
            index_name=self.settings.negotiations_application_index,
            cursor=cursor,
        )
