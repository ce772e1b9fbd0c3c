from __future__ import annotations

import pytest

from conftest import EchoAgentType


def test_register_and_require():
    from llm_engine.agents.registry import AgentTypeRegistry

    echo = EchoAgentType()
    registry = AgentTypeRegistry()
    registry.register(echo)

    assert "echo" in registry
    assert len(registry) == 1
    assert registry.require("echo") is echo
    assert registry.get("missing") is None


def test_register_under_explicit_key_replaces_existing():
    from llm_engine.agents.registry import AgentTypeRegistry

    first, second = EchoAgentType(), EchoAgentType()
    registry = AgentTypeRegistry([first])
    registry.register(second, key="echo")
    registry.register(second, key="echo-copy")

    assert registry.require("echo") is second
    assert registry.keys() == ["echo", "echo-copy"]


def test_unknown_agent_type_raises():
    from llm_engine.agents.registry import AgentTypeRegistry
    from llm_engine.errors import UnknownAgentTypeError

    registry = AgentTypeRegistry()
    with pytest.raises(UnknownAgentTypeError) as exc:
        registry.require("nope")
    assert exc.value.agent_type == "nope"
    assert "nope" in str(exc.value)


def test_register_requires_a_key():
    from llm_engine.agents.registry import AgentTypeRegistry

    class KeylessAgentType(EchoAgentType):
        key = ""

    with pytest.raises(ValueError):
        AgentTypeRegistry().register(KeylessAgentType())


def test_agent_type_must_implement_evaluate_and_respond():
    from llm_engine.agents.registry import AgentType

    class SilentAgentType(AgentType):
        key = "silent"

        async def evaluate(self, agent, user_message):
            return None

    with pytest.raises(TypeError):
        SilentAgentType()
    with pytest.raises(TypeError):
        AgentType()


def test_unregister():
    from llm_engine.agents.registry import AgentTypeRegistry

    registry = AgentTypeRegistry([EchoAgentType()])
    assert registry.unregister("echo") is True
    assert registry.unregister("echo") is False
    assert "echo" not in registry


def test_platform_catalog_copies_vllm_defaults():
    from llm_engine.agents.platforms import LlmPlatformCatalog
    from llm_engine.errors import UnknownLlmPlatformError
    from llm_engine.settings import Settings

    catalog = LlmPlatformCatalog.from_settings(Settings(VLLM_API_URL="http://vllm.local/v1"))
    options = catalog.options_for("vllm")
    assert options == {"use_keep_alive": True, "base_url": "http://vllm.local/v1"}

    options["base_url"] = "changed"
    assert catalog.options_for("vllm")["base_url"] == "http://vllm.local/v1"
    assert catalog.options_for("openai") is None
    with pytest.raises(UnknownLlmPlatformError):
        catalog.options_for("mystery")
