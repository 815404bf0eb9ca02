from typing import Annotated

from fastapi import Depends, Request

from booking_scraper.config import BackendConfig
from booking_scraper.services.orchestrator import ScraperOrchestrator


def get_orchestrator(request: Request) -> ScraperOrchestrator:
    return request.app.state.orchestrator


def get_backend_config(request: Request) -> BackendConfig:
    return getattr(request.app.state, "backend_config", None) or BackendConfig()


OrchestratorDep = Annotated[ScraperOrchestrator, Depends(get_orchestrator)]
BackendConfigDep = Annotated[BackendConfig, Depends(get_backend_config)]
