"""
Domain layer - Pure business logic for Consent Gate.

This layer contains:
- Consent, CMP and vendor policy models (immutable value types)
- The consent mapper (pure authorization function)
- Domain exceptions

CRITICAL: This layer must NOT import from application, infrastructure, or cli.
Only stdlib and typing imports are allowed.
"""

from consent_gate.domain.exceptions import ConsentGateError

__all__: list[str] = ["ConsentGateError"]
