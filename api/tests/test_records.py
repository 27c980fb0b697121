from decimal import Decimal

from app.services.records import (
    decode_application,
    decode_job_posting,
    decode_many,
    decode_negotiation,
    decode_profile,
    string_list,
)
from app.services.references import applicant_id_of, collect, negotiation_id_of, negotiation_key_of


def test_decode_application_prefers_legacy_applicant_fields_in_order() -> None:
    application = decode_application(
        {
            "applicationId": "app-1",
            "clinicId": "C1",
            "professionalUserSub": "  ",
            "applicantId": "A2",
            "userSub": "A3",
            "status": "Pending",
        }
    )

    assert application is not None
    assert application.applicant_id == "A2"
    assert application.status == "Pending"
    assert application.normalized_status == "pending"


def test_decode_application_uses_first_applicant_field_when_present() -> None:
    application = decode_application(
        {
            "applicationId": "app-1",
            "clinicId": "C1",
            "professionalUserSub": "A1",
            "applicantId": "A2",
            "applicationStatus": "negotiate",
            "status": "pending",
        }
    )

    assert application is not None
    assert application.applicant_id == "A1"
    assert application.status == "negotiate"


def test_decode_many_drops_records_without_identity() -> None:
    decoded = decode_many(
        [
            {"applicationId": "app-1", "clinicId": "C1"},
            {"applicationId": "", "clinicId": "C1"},
            {"clinicId": "C1"},
            {"applicationId": "app-2"},
        ],
        decode_application,
        "application",
    )

    assert [application.application_id for application in decoded] == ["app-1"]


def test_decode_job_posting_normalizes_sets_and_numbers() -> None:
    posting = decode_job_posting(
        {
            "clinicId": "C1",
            "jobId": "J1",
            "job_type": "multi_day_consulting",
            "professional_role": "Dental Hygienist",
            "dates": {"2025-03-02", "2025-03-01"},
            "hourly_rate": Decimal("42"),
            "salary_min": Decimal("10.5"),
        }
    )

    assert posting is not None
    assert posting.dates == ["2025-03-01", "2025-03-02"]
    assert posting.hourly_rate == 42
    assert isinstance(posting.hourly_rate, int)
    assert posting.salary_min == 10.5
    assert posting.status == "unknown"
    assert posting.role == "Dental Hygienist"


def test_string_list_keeps_list_order() -> None:
    assert string_list(["b", "a", ""]) == ["b", "a"]
    assert string_list("2025-01-01") == ["2025-01-01"]
    assert string_list(None) == []


def test_decode_profile_and_negotiation_require_keys() -> None:
    assert decode_profile({"first_name": "Ann"}) is None
    profile = decode_profile({"userSub": "A1", "yearsExperience": Decimal("3")})
    assert profile is not None
    assert profile.attributes == {"userSub": "A1", "yearsExperience": 3}

    assert decode_negotiation({"applicationId": "app-1"}) is None
    negotiation = decode_negotiation(
        {"negotiationId": "N1", "applicationId": "app-1", "clinicCounterHourlyRate": Decimal("55.5")}
    )
    assert negotiation is not None
    assert negotiation.clinic_counter_hourly_rate == 55.5


def test_collect_deduplicates_and_skips_empty_values() -> None:
    applications = decode_many(
        [
            {"applicationId": "1", "clinicId": "C1", "professionalUserSub": "A1", "negotiationId": "N1"},
            {"applicationId": "2", "clinicId": "C1", "applicantId": "A1"},
            {"applicationId": "3", "clinicId": "C1", "userSub": "A2", "negotiationId": " "},
            {"applicationId": "4", "clinicId": "C1"},
        ],
        decode_application,
        "application",
    )

    assert collect(applications, applicant_id_of) == {"A1", "A2"}
    assert collect(applications, negotiation_id_of) == {"N1"}
    assert collect(applications, negotiation_key_of(("applicationId", "negotiationId"))) == {("1", "N1")}
    assert collect(applications, negotiation_key_of(("negotiationId",))) == {("N1",)}
    assert "" not in collect(applications, lambda application: application.job_id)
