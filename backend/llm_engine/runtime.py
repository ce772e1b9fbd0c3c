from __future__ import annotations

from .agents.registry import AgentTypeRegistry
from .agents.service import AgentService
from .observability.logging import configure_logging, get_logger
from .observability.otel import configure_otel
from .repositories.base_repository import AgentRepository
from .settings import Settings, settings as default_settings


def build_agent_service(
    registry: AgentTypeRegistry,
    repository: AgentRepository,
    *,
    settings: Settings | None = None,
) -> AgentService:
    """Process entrypoint: set up logging and tracing, then build the agent service."""
    s = settings or default_settings
    configure_logging(level=s.log_level)
    traced = configure_otel(s)
    get_logger("runtime").info(
        "agent_service_ready",
        environment=s.environment,
        agent_types=registry.keys(),
        tracing=traced,
    )
    return AgentService(registry, repository, settings=s)
