from __future__ import annotations

import logging
from typing import Optional

from fastapi import Request

from reconforge.engine.coordinator import JobCoordinator

logger = logging.getLogger(__name__)


class ApplicationState:
    _instance = None

    @classmethod
    def instance(cls) -> ApplicationState:
        if cls._instance is None:
            cls._instance = cls()
        return cls._instance

    def __init__(self):
        self._coordinator: Optional[JobCoordinator] = None

    @property
    def coordinator(self) -> JobCoordinator:
        if self._coordinator is None:
            self._coordinator = JobCoordinator()
        return self._coordinator

    @coordinator.setter
    def coordinator(self, value: JobCoordinator) -> None:
        self._coordinator = value


def get_state() -> ApplicationState:
    return ApplicationState.instance()


def get_coordinator(request: Request) -> JobCoordinator:
    """FastAPI dependency: the coordinator bound to this app."""
    coordinator = getattr(request.app.state, "coordinator", None)
    return coordinator or get_state().coordinator
