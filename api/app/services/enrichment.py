from __future__ import annotations

from collections.abc import Iterable, Mapping
from dataclasses import dataclass

from app.services.records import ApplicantProfile, Application, Negotiation


@dataclass(slots=True, frozen=True)
class EnrichedApplication:
    application: Application
    profile: ApplicantProfile | None = None
    negotiation: Negotiation | None = None


def enrich(
    applications: Iterable[Application],
    profiles: Mapping[str, ApplicantProfile],
    negotiations: Mapping[str, Negotiation],
    *,
    fallback_negotiations: Mapping[str, Negotiation] | None = None,
) -> list[EnrichedApplication]:
    """Attach whatever profile and negotiation each application references.

    ``fallback_negotiations`` is keyed by application id and only consulted
    when the application names no negotiation id of its own.
    """
    fallback = fallback_negotiations or {}
    enriched: list[EnrichedApplication] = []
    for application in applications:
        if application.negotiation_id:
            negotiation = negotiations.get(application.negotiation_id)
        else:
            negotiation = fallback.get(application.application_id)
        enriched.append(
            EnrichedApplication(
                application=application,
                profile=profiles.get(application.applicant_id) if application.applicant_id else None,
                negotiation=negotiation,
            )
        )
    return enriched
