from __future__ import annotations

from collections.abc import Callable, Hashable, Iterable, Sequence

from app.services.records import Application


def applicant_id_of(application: Application) -> str:
    return application.applicant_id


def negotiation_id_of(application: Application) -> str:
    return application.negotiation_id


def negotiation_key_of(key_attributes: Sequence[str]) -> Callable[[Application], tuple[str, ...]]:
    """Build the negotiations table key for an application.

    Each key attribute is read from the application carrying the same
    attribute name, so a table keyed by ``applicationId, negotiationId`` gets
    both halves from the application that references the negotiation.
    """
    sources: dict[str, Callable[[Application], str]] = {
        "applicationId": lambda application: application.application_id,
        "negotiationId": negotiation_id_of,
    }
    readers = [sources[attribute] for attribute in key_attributes]

    def extract(application: Application) -> tuple[str, ...]:
        return tuple(read(application) for read in readers)

    return extract


def _clean(value: str | tuple[str, ...] | None) -> Hashable | None:
    if value is None:
        return None
    if isinstance(value, tuple):
        parts = tuple((part or "").strip() for part in value)
        return parts if parts and all(parts) else None
    value = value.strip()
    return value or None


def collect(
    applications: Iterable[Application],
    extractor: Callable[[Application], str | tuple[str, ...] | None],
) -> set:
    """Distinct, non-empty foreign keys referenced by the given applications.

    Composite keys are kept only when every part is present.
    """
    ids: set = set()
    for application in applications:
        value = _clean(extractor(application))
        if value is not None:
            ids.add(value)
    return ids
