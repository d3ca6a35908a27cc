"""Consent mapper: reduces every signal to one authorization boolean.

Pure and deterministic. Safe to call on every signal tick, including
redundant ones.

Rules:
- cmp_allows = not gdpr_subject or (cmp_ready and has_transparency_string)
- policy_allows = required is a subset of granted (empty required allows)
- allow = policy_allows and cmp_allows
"""

from __future__ import annotations

from collections.abc import Set

from consent_gate.domain.models.cmp_signal import CmpSnapshot, Tri
from consent_gate.domain.models.consent import ConsentType
from consent_gate.domain.models.lifecycle import AuthorizationDecision


def effective(
    granted: Set[ConsentType],
    required: Set[ConsentType],
    gdpr_subject: bool,
    cmp_ready: bool,
    has_transparency_string: bool,
) -> AuthorizationDecision:
    """Compute the authorization decision for one vendor.

    Under a CMP-gated jurisdiction the CMP must be initialized AND have
    produced a transparency string, whatever the user toggled.

    Args:
        granted: Categories the user granted.
        required: Categories the vendor policy requires.
        gdpr_subject: User falls under CMP-gated jurisdiction.
        cmp_ready: CMP finished initialization.
        has_transparency_string: CMP produced a usable transparency string.

    Returns:
        AuthorizationDecision. ``policy_unconfigured`` is set when the
        required set is empty so callers can surface it distinctly.
    """
    cmp_allows = (not gdpr_subject) or (cmp_ready and has_transparency_string)
    policy_allows = required <= granted
    return AuthorizationDecision(
        allow=policy_allows and cmp_allows,
        policy_allows=policy_allows,
        cmp_allows=cmp_allows,
        policy_unconfigured=not required,
    )


def jurisdiction_gdpr_subject(cmp: CmpSnapshot) -> bool:
    """Default GDPR-subject resolution from the CMP's jurisdiction signal.

    UNKNOWN is treated as a GDPR subject so an unresolved jurisdiction keeps
    the gate closed until the CMP is ready.
    """
    return cmp.jurisdiction_applies is not Tri.FALSE
