"""Value types exchanged with the vendor SDK."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum


@dataclass(frozen=True)
class VendorConsent:
    """The vendor's own consent object (forwarded via set_consent_data).

    Attributes:
        is_gdpr_subject: User falls under CMP-gated jurisdiction.
        has_data_usage_consent: User allows data usage for measurement.
        has_ad_personalization_consent: User allows ad personalization.
    """

    is_gdpr_subject: bool
    has_data_usage_consent: bool
    has_ad_personalization_consent: bool


class DeepLinkStatus(Enum):
    """Outcome of a vendor deep-link resolution."""

    FOUND = "FOUND"
    NOT_FOUND = "NOT_FOUND"
    ERROR = "ERROR"


@dataclass(frozen=True)
class DeepLinkResult:
    """Deep-link callback payload delivered by the vendor."""

    status: DeepLinkStatus
    deep_link: str | None = None
    error: str | None = None
