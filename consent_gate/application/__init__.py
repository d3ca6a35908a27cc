"""
Application layer - Use cases and orchestration for Consent Gate.

This layer contains:
- Port definitions (protocols for consent store, CMP source, vendor SDK,
  vendor storage and diagnostics)
- The replay-latest state stream
- The SDK lifecycle controller and the consent coordinator

IMPORT RULES:
- CAN import from: domain
- CANNOT import from: infrastructure, bootstrap, cli
"""
