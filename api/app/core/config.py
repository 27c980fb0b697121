from functools import lru_cache

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

# Application attributes a negotiation key can be built from.
NEGOTIATION_KEY_SOURCES = ("applicationId", "negotiationId")


def parse_csv(raw: str | None) -> list[str]:
    if not raw:
        return []
    return [chunk.strip().lower() for chunk in raw.split(",") if chunk.strip()]


class Settings(BaseSettings):
    app_name: str = "clinic-applicants-api"
    environment: str = "dev"
    aws_region: str = "us-east-1"
    dynamodb_endpoint_url: str | None = None
    job_postings_table: str = "DentiPal-JobPostings"
    job_applications_table: str = "DentiPal-JobApplications"
    profiles_table: str = "DentiPal-ProfessionalProfiles"
    negotiations_table: str = "DentiPal-JobNegotiations"
    applications_clinic_index: str = "clinicId-jobId-index"
    negotiations_application_index: str = "applicationId-index"
    negotiations_key_attributes: str = "applicationId,negotiationId"
    batch_chunk_size: int = 100
    fanout_concurrency: int = 10
    aggregation_timeout_seconds: float = 25.0
    negotiation_fallback_enabled: bool = True
    action_needed_statuses: str = "pending,negotiate"
    pending_statuses: str = "pending"
    negotiating_statuses: str = "negotiate,negotiating"
    scheduled_statuses: str = "scheduled,accepted,booked"
    completed_statuses: str = "completed,paid"
    terminal_ignore_statuses: str = "rejected,cancelled,declined"
    root_group: str = "Root"
    cors_allow_origins: str = "http://localhost:5173"
    otel_enabled: bool = True
    otel_service_name: str = "clinic-applicants-api"
    otel_exporter_otlp_endpoint: str | None = None
    otel_exporter_otlp_headers: str | None = None
    otel_trace_sample_ratio: float = 1.0
    otel_log_correlation: bool = True

    model_config = SettingsConfigDict(env_prefix="CA_", extra="ignore")

    @field_validator("negotiations_key_attributes")
    @classmethod
    def _check_negotiation_key(cls, value: str) -> str:
        attributes = [chunk.strip() for chunk in value.split(",") if chunk.strip()]
        unknown = set(attributes) - set(NEGOTIATION_KEY_SOURCES)
        if unknown or "negotiationId" not in attributes or len(set(attributes)) != len(attributes):
            raise ValueError(f"unsupported negotiation key schema: {value!r}")
        return ",".join(attributes)

    @property
    def default_statuses(self) -> list[str]:
        return parse_csv(self.action_needed_statuses)

    @property
    def negotiation_key_schema(self) -> tuple[str, ...]:
        return tuple(self.negotiations_key_attributes.split(","))

    @property
    def cors_origins(self) -> list[str]:
        return [origin.strip() for origin in self.cors_allow_origins.split(",") if origin.strip()]


@lru_cache
def get_settings() -> Settings:
    return Settings()
