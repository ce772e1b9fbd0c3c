from __future__ import annotations

from dataclasses import replace

import anyio
import pytest

from conftest import EchoAgentType


def live(body: str, **kwargs):
    from llm_engine.agents.conversation import Message

    kwargs.setdefault("owner", "user-live")
    kwargs.setdefault("pseudonym", "Live User")
    return Message(body=body, **kwargs)


def test_inactive_agent_is_not_evaluated(env):
    async def _run():
        conversation = env.conversation("hello")
        agent = await env.add_agent(conversation, start=False)
        assert await env.service.evaluate(agent, live("anyone there?")) is None
        assert await env.service.evaluate(agent) is None

    anyio.run(_run)
    assert env.echo.evaluated == []


def test_watermark_skips_messages_already_seen(env):
    from llm_engine.agents.conversation import Message
    from llm_engine.agents.models import AgentMessageAction

    async def _run():
        conversation = env.conversation("hello", "again")
        agent = await env.add_agent(conversation)

        message = live("third")
        evaluation = await env.service.evaluate(agent, message)
        assert evaluation.action == AgentMessageAction.CONTRIBUTE
        assert evaluation.user_message is message
        assert agent.last_active_message_count == 3
        assert (await env.repo.get(agent.id)).last_active_message_count == 3

        # the live message is stored, then the agent's own reply
        conversation.messages.append(message)
        conversation.messages.append(Message(body="echo: third", owner=agent.id, from_agent=True, pseudonym="Echo"))

        periodic = await env.service.evaluate(agent)
        assert periodic.action == AgentMessageAction.OK
        assert periodic.user_contribution_visible is True

    anyio.run(_run)
    assert len(env.echo.evaluated) == 1


def test_other_agents_messages_count_toward_watermark(env):
    from llm_engine.agents.activation import count_messages
    from llm_engine.agents.conversation import Message

    async def _run():
        conversation = env.conversation("hello")
        agent = await env.add_agent(conversation)
        conversation.messages.append(Message(body="beep", owner="other-agent", from_agent=True, pseudonym="Bot"))
        conversation.messages.append(Message(body="mine", owner=agent.id, from_agent=True, pseudonym="Echo"))
        return agent, conversation

    agent, conversation = anyio.run(_run)
    assert count_messages(agent, conversation, None) == 2
    assert count_messages(agent, conversation, live("next")) == 3


def test_min_new_messages_waits_for_enough_messages(env):
    from llm_engine.agents.models import PerMessageTrigger, Triggers

    async def _run():
        conversation = env.conversation()
        agent = await env.add_agent(
            conversation, triggers=Triggers(per_message=PerMessageTrigger(min_new_messages=2))
        )

        first = live("one")
        evaluation = await env.service.evaluate(agent, first)
        assert evaluation.model_dump(exclude_none=True) == {"action": 0, "user_contribution_visible": True}
        assert agent.last_active_message_count == 0
        conversation.messages.append(first)

        await env.service.evaluate(agent, live("two"))
        return agent

    agent = anyio.run(_run)
    assert agent.last_active_message_count == 2
    assert [m.body for m in env.echo.evaluated] == ["two"]


def test_rejected_message_does_not_advance_watermark(env):
    from llm_engine.agents.models import AgentMessageAction

    env.echo.evaluation = {
        "user_message": None,
        "action": AgentMessageAction.REJECT,
        "agent_contribution_visible": False,
        "user_contribution_visible": True,
        "suggestion": "Be nicer",
    }

    async def _run():
        conversation = env.conversation()
        agent = await env.add_agent(conversation)
        evaluation = await env.service.evaluate(agent, live("you are all wrong"))
        return agent, evaluation

    agent, evaluation = anyio.run(_run)
    assert evaluation.action == AgentMessageAction.REJECT
    assert evaluation.suggestion == "Be nicer"
    assert agent.last_active_message_count == 0
    assert env.echo.responded == []


def test_second_periodic_evaluation_is_a_no_op(env):
    async def _run():
        conversation = env.conversation()
        agent = await env.add_agent(conversation)
        message = live("hi")
        await env.service.evaluate(agent, message)
        assert agent.last_active_message_count == 1
        conversation.messages.append(message)
        await env.service.evaluate(agent)

    anyio.run(_run)
    assert len(env.echo.evaluated) == 1


def test_missing_evaluation_property_is_a_contract_violation(env):
    from llm_engine.errors import InvalidAgentEvaluation

    env.echo.evaluation = {"action": 2, "user_contribution_visible": True, "suggestion": None}

    async def _run():
        conversation = env.conversation()
        agent = await env.add_agent(conversation)
        with pytest.raises(InvalidAgentEvaluation) as exc:
            await env.service.evaluate(agent, live("hi"))
        return agent, exc.value

    agent, error = anyio.run(_run)
    assert error.prop == "user_message"
    assert error.agent_id == agent.id
    assert agent.last_active_message_count == 0


def test_channel_restricted_trigger(env):
    from llm_engine.agents.models import AgentMessageAction, PerMessageTrigger, Triggers

    async def _run():
        conversation = env.conversation()
        agent = await env.add_agent(
            conversation, triggers=Triggers(per_message=PerMessageTrigger(channels=["moderators"]))
        )
        actions = []
        for message in (
            live("off topic", channels=["general"]),
            live("flagged", channels=["general", "moderators"]),
            live("plain"),
        ):
            actions.append((await env.service.evaluate(agent, message)).action)
            conversation.messages.append(message)
        # messages without channels are not restricted
        assert actions == [AgentMessageAction.OK, AgentMessageAction.CONTRIBUTE, AgentMessageAction.CONTRIBUTE]

    anyio.run(_run)
    assert [m.body for m in env.echo.evaluated] == ["flagged", "plain"]


def test_direct_message_trigger_requires_agent_in_channel(env):
    from llm_engine.agents.conversation import Channel
    from llm_engine.agents.models import PerMessageTrigger, Triggers

    async def _run():
        conversation = env.conversation()
        agent = await env.add_agent(
            conversation, triggers=Triggers(per_message=PerMessageTrigger(direct_messages=True))
        )
        conversation.channels.append(Channel(name="dm-agent", direct=True, participants=["user-live", agent.id]))
        conversation.channels.append(Channel(name="dm-people", direct=True, participants=["user-live", "user-2"]))

        await env.service.evaluate(agent, live("just between us", channels=["dm-people"]))
        await env.service.evaluate(agent, live("hey bot", channels=["dm-agent"]))

    anyio.run(_run)
    assert [m.body for m in env.echo.evaluated] == ["hey bot"]


def test_direct_channel_ignored_when_direct_messages_disabled(env):
    from llm_engine.agents.conversation import Channel
    from llm_engine.agents.models import PerMessageTrigger, Triggers

    async def _run():
        conversation = env.conversation()
        agent = await env.add_agent(
            conversation, triggers=Triggers(per_message=PerMessageTrigger(direct_messages=False))
        )
        conversation.channels.append(Channel(name="dm", direct=True, participants=["user-live", agent.id]))
        await env.service.evaluate(agent, live("hey bot", channels=["dm"]))
        await env.service.evaluate(agent, live("anyone here?", channels=["general"]))

    anyio.run(_run)
    assert env.echo.evaluated == []


def test_own_and_agent_messages_are_not_evaluated(env):
    from llm_engine.agents.models import AgentMessageAction

    async def _run():
        conversation = env.conversation("hello")
        agent = await env.add_agent(conversation)
        results = [
            await env.service.evaluate(agent, live("me again", owner=agent.id, pseudonym="Echo", from_agent=True)),
            await env.service.evaluate(agent, live("posing", owner="user-9", pseudonym="Echo")),
            await env.service.evaluate(agent, live("beep", owner="bot-2", pseudonym="Bot", from_agent=True)),
        ]
        return results

    results = anyio.run(_run)
    assert all(r.action == AgentMessageAction.OK for r in results)
    assert env.echo.evaluated == []


def test_pre_filter_can_veto_messages(env):
    from llm_engine.agents.service import AgentService
    from llm_engine.settings import Settings

    seen: list[int] = []

    async def pre_filter(agent, message, message_count):
        seen.append(message_count)
        return message.body != "spam"

    service = AgentService(env.registry, env.repo, settings=Settings(), pre_filter=pre_filter)

    async def _run():
        conversation = env.conversation()
        agent = await env.add_agent(conversation)
        await service.evaluate(agent, live("spam"))
        await service.evaluate(agent, live("ham"))

    anyio.run(_run)
    assert seen == [1, 1]
    assert [m.body for m in env.echo.evaluated] == ["ham"]


def test_parse_input_translates_live_message(env):
    class ShoutingAgentType(EchoAgentType):
        key = "shout"
        name = "Shout"

        def parse_input(self, message):
            return replace(message, body=str(message.body).upper())

    shout = ShoutingAgentType()
    env.registry.register(shout)

    async def _run():
        conversation = env.conversation()
        agent = await env.add_agent(conversation, agent_type="shout")
        await env.service.evaluate(agent, live("quiet please"))

    anyio.run(_run)
    assert [m.body for m in shout.evaluated] == ["QUIET PLEASE"]


def test_missing_conversation_is_a_configuration_error(env):
    from llm_engine.agents.models import Agent
    from llm_engine.errors import AgentConfigurationError

    agent = Agent(agent_type="echo", id="a1", active=True)
    with pytest.raises(AgentConfigurationError):
        anyio.run(env.service.evaluate, agent)
