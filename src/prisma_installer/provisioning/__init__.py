"""Idempotent provisioning components.

- Settings loaded from .env
- Structured logging
- Environment probes and an external command wrapper
- Ordered steps run by a stop-on-first-failure orchestrator
"""
