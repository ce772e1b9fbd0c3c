from __future__ import annotations

import anyio

from conftest import EchoAgentType


def test_configure_otel_is_off_by_default(monkeypatch):
    from llm_engine.observability.otel import configure_otel
    from llm_engine.settings import Settings

    monkeypatch.delenv("OTEL_ENABLED", raising=False)
    assert configure_otel(Settings()) is False


def test_trace_agent_call_passes_result_through():
    from llm_engine.observability.otel import trace_agent_call

    async def call():
        return [{"visible": True, "message": "hi"}]

    result = anyio.run(trace_agent_call, "echo", {"agent.id": "a1", "llm.model": None}, call)
    assert result == [{"visible": True, "message": "hi"}]


def test_settings_read_environment(monkeypatch):
    from llm_engine.settings import Settings

    monkeypatch.setenv("VLLM_API_URL", "http://gpu-1:8000/v1")
    monkeypatch.setenv("TRANSCRIPT_RETENTION_PERIOD", "2 weeks")
    s = Settings()
    assert s.vllm_base_url == "http://gpu-1:8000/v1"
    assert s.transcript_retention_period == "2 weeks"
    assert s.transcript_channel == "transcript"


def test_build_agent_service(monkeypatch):
    from llm_engine.agents.registry import AgentTypeRegistry
    from llm_engine.agents.service import AgentService
    from llm_engine.repositories.agents_repo import InMemoryAgentRepository
    from llm_engine.runtime import build_agent_service
    from llm_engine.settings import Settings

    monkeypatch.delenv("OTEL_ENABLED", raising=False)
    service = build_agent_service(
        AgentTypeRegistry([EchoAgentType()]), InMemoryAgentRepository(), settings=Settings(LOG_LEVEL="WARNING")
    )
    assert isinstance(service, AgentService)
    assert "echo" in service.registry
