"""
cloudsync Test Suite.

This package contains:
- unit/: Unit tests (no external dependencies; HTTP served by httpx.MockTransport)
- integration/: Integration tests (Reconciler and Cloud engine on the in-memory store)
"""
