"""Shared router dependencies (overridden in tests to point at a scratch database)."""

from fastapi import Depends

from onboarding.services.applications import ApplicationService
from onboarding.services.store import ApplicationStore


def get_store() -> ApplicationStore:
    return ApplicationStore()


def get_service(store: ApplicationStore = Depends(get_store)) -> ApplicationService:
    return ApplicationService(store)
