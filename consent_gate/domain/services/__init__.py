"""Pure domain services."""

from consent_gate.domain.services.consent_mapper import (
    effective,
    jurisdiction_gdpr_subject,
)

__all__: list[str] = ["effective", "jurisdiction_gdpr_subject"]
