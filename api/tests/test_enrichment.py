from app.services.enrichment import enrich
from app.services.records import ApplicantProfile, Application, Negotiation


def test_enrich_attaches_found_records_and_keeps_order() -> None:
    applications = [
        Application(application_id="2", clinic_id="C1", job_id="J1", applicant_id="A1", negotiation_id="N1"),
        Application(application_id="1", clinic_id="C1", job_id="J1", applicant_id="A2"),
    ]
    profiles = {"A1": ApplicantProfile(applicant_id="A1", attributes={"first_name": "Ann"})}
    negotiations = {"N1": Negotiation(negotiation_id="N1", application_id="2")}

    enriched = enrich(applications, profiles, negotiations)

    assert [item.application.application_id for item in enriched] == ["2", "1"]
    assert enriched[0].profile is profiles["A1"]
    assert enriched[0].negotiation is negotiations["N1"]
    assert enriched[1].profile is None
    assert enriched[1].negotiation is None
    assert enriched[1].application is applications[1]


def test_enrich_leaves_missing_profile_absent() -> None:
    application = Application(application_id="1", clinic_id="C1", job_id="J1", applicant_id="A1", status="pending")

    [item] = enrich([application], {}, {})

    assert item.profile is None
    assert item.application.applicant_id == "A1"
    assert item.application.status == "pending"


def test_enrich_uses_fallback_only_without_negotiation_id() -> None:
    with_id = Application(application_id="1", clinic_id="C1", negotiation_id="N-missing", status="negotiate")
    without_id = Application(application_id="2", clinic_id="C1", status="negotiate")
    fallback = {
        "1": Negotiation(negotiation_id="N-other"),
        "2": Negotiation(negotiation_id="N2"),
    }

    first, second = enrich([with_id, without_id], {}, {}, fallback_negotiations=fallback)

    assert first.negotiation is None
    assert second.negotiation is not None
    assert second.negotiation.negotiation_id == "N2"
