"""Aggregate model imports for Alembic auto-detection."""

from onboarding.models.application import AgentApplication  # noqa: F401
from onboarding.models.application_history import ApplicationHistory  # noqa: F401

__all__ = ["AgentApplication", "ApplicationHistory"]
