from __future__ import annotations

from typing import Literal

from pydantic import Field

from app.schemas.applicants import ApplicationOut, CamelModel, JobPostingOut
from app.services.aggregation import ShiftApplication, ShiftDashboard


class ShiftApplicationOut(ApplicationOut):
    job_title: str = "No Title"
    date: str | None = None
    start_time: str | None = None
    end_time: str | None = None
    hourly_rate: float | None = None

    @classmethod
    def from_row(cls, row: ShiftApplication) -> ShiftApplicationOut:
        base = ApplicationOut.from_record(row.application).model_dump()
        posting = row.posting
        if posting is None:
            return cls(**base)
        return cls(
            **base,
            job_title=posting.role or "No Title",
            date=posting.date or None,
            start_time=posting.start_time or None,
            end_time=posting.end_time or None,
            hourly_rate=posting.hourly_rate,
        )


class ShiftCountsOut(CamelModel):
    open_shifts: int = 0
    scheduled_jobs: int = 0
    action_needed_jobs: int = 0
    completed_jobs: int = 0
    total_shifts: int = 0


class ShiftDataOut(CamelModel):
    open_shifts: list[JobPostingOut] = Field(default_factory=list)
    scheduled_jobs: list[ShiftApplicationOut] = Field(default_factory=list)
    action_needed_jobs: list[ShiftApplicationOut] = Field(default_factory=list)
    completed_jobs: list[ShiftApplicationOut] = Field(default_factory=list)


class ShiftDashboardOut(CamelModel):
    status: Literal["success"] = "success"
    type: Literal["shift_dashboard"] = "shift_dashboard"
    clinic_id: str
    counts: ShiftCountsOut
    data: ShiftDataOut

    @classmethod
    def from_result(cls, result: ShiftDashboard) -> ShiftDashboardOut:
        return cls(
            clinic_id=result.clinic_id,
            counts=ShiftCountsOut(
                open_shifts=len(result.open_shifts),
                scheduled_jobs=len(result.scheduled_jobs),
                action_needed_jobs=len(result.action_needed_jobs),
                completed_jobs=len(result.completed_jobs),
                total_shifts=result.total_shifts,
            ),
            data=ShiftDataOut(
                open_shifts=[JobPostingOut.from_record(posting) for posting in result.open_shifts],
                scheduled_jobs=[ShiftApplicationOut.from_row(row) for row in result.scheduled_jobs],
                action_needed_jobs=[ShiftApplicationOut.from_row(row) for row in result.action_needed_jobs],
                completed_jobs=[ShiftApplicationOut.from_row(row) for row in result.completed_jobs],
            ),
        )
