"""
Consent Gate - consent-gated activation gateway for a vendor analytics SDK.

Keeps a third-party marketing/analytics SDK dark until the user's consent
choices, the CMP readiness signal, the jurisdiction and the declarative
vendor policy all authorize it, and scrubs buffered vendor state the moment
that authorization is withdrawn.

Operating Rules:
- Nothing reaches the vendor before an explicit allow decision
- Withdrawal stops delivery first, then stops the SDK, then purges
- The latest signal always wins
"""

__version__ = "0.1.0"
__all__ = ["__version__"]
