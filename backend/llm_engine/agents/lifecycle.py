from __future__ import annotations

import asyncio
import copy
from collections.abc import Mapping
from typing import Any

from ..errors import AgentConfigurationError, MissingAgentIdentityError
from ..observability.logging import get_logger
from ..repositories.base_repository import AgentRepository
from ..utils.merge import deep_merge
from .contracts import validate_responses
from .conversation import Channel
from .keepalive import LlmPinger
from .models import FAKE_AGENT_TOKEN, Agent, ConversationHistorySettings, MessageDraft, Pseudonym
from .pipeline import create_message_drafts
from .platforms import LlmPlatformCatalog
from .registry import AgentTypeRegistry

log = get_logger("agent_lifecycle")


def _ensure_single_pseudonym(agent: Agent) -> None:
    if not agent.pseudonyms:
        agent.pseudonyms = [
            Pseudonym(pseudonym=agent.instance_name or agent.name, token=FAKE_AGENT_TOKEN, active=True, is_deleted=False)
        ]
        log.debug("agent_pseudonym_created", agent_type=agent.agent_type, pseudonym=agent.pseudonyms[0].pseudonym)
    if len(agent.pseudonyms) > 1:
        agent.pseudonyms = agent.pseudonyms[:1]


class AgentLifecycle:
    def __init__(
        self,
        registry: AgentTypeRegistry,
        repository: AgentRepository,
        platforms: LlmPlatformCatalog,
        *,
        pinger: LlmPinger | None = None,
    ) -> None:
        self._registry = registry
        self._repository = repository
        self._platforms = platforms
        self._pinger = pinger
        self._background: set[asyncio.Task[None]] = set()

    def apply_defaults(self, agent: Agent) -> Agent:
        """
        Fill unset configuration from the agent type and enforce a single pseudonym.

        Raises UnknownAgentTypeError / UnknownLlmPlatformError for configurations
        that cannot run.
        """
        agent_type = self._registry.require(agent.agent_type)

        if agent.name is None:
            agent.name = agent_type.name
        if agent.description is None:
            agent.description = agent_type.description
        if agent.priority is None:
            agent.priority = agent_type.priority

        _ensure_single_pseudonym(agent)

        if agent.llm_templates is None:
            agent.llm_templates = copy.deepcopy(agent_type.default_llm_templates)
        if agent.llm_platform is None:
            agent.llm_platform = agent_type.default_llm_platform
        platform_options = self._platforms.options_for(agent.llm_platform)
        if agent.llm_platform_options is None and platform_options is not None:
            agent.llm_platform_options = platform_options

        if agent.llm_model is None:
            agent.llm_model = agent_type.default_llm_model
        if agent.llm_model_options is None and agent_type.default_llm_model_options:
            agent.llm_model_options = copy.deepcopy(agent_type.default_llm_model_options)
        if agent.triggers is None:
            agent.triggers = copy.deepcopy(agent_type.default_triggers)
        if agent.agent_config is None and agent_type.default_agent_config:
            agent.agent_config = copy.deepcopy(agent_type.default_agent_config)
        if agent.conversation_history_settings is None and agent_type.default_conversation_history_settings:
            agent.conversation_history_settings = copy.deepcopy(agent_type.default_conversation_history_settings)

        # periodic agents look back one timer period unless told otherwise
        if agent.conversation_history_settings is None and agent.triggers and agent.triggers.periodic:
            agent.conversation_history_settings = ConversationHistorySettings(
                time_window=agent.triggers.periodic.timer_period
            )

        if agent.rag_collection_name is None:
            agent.rag_collection_name = agent_type.rag_collection_name
        if agent.use_transcript_rag_collection is None:
            agent.use_transcript_rag_collection = agent_type.use_transcript_rag_collection

        agent_type.pre_validate(agent)
        return agent

    async def create(self, agent: Agent) -> Agent:
        self.apply_defaults(agent)
        saved = await self._repository.save(agent)
        log.info(
            "agent_created",
            agent_id=saved.id,
            agent_type=saved.agent_type,
            llm_platform=saved.llm_platform,
            llm_model=saved.llm_model,
        )
        return saved

    async def initialize(self, agent: Agent) -> bool:
        """
        Load the agent's conversation and run the type's initialize hook.

        An agent whose conversation no longer exists is deleted and False is returned.
        """
        if not agent.id:
            raise MissingAgentIdentityError(
                message="Agent must be saved before it is initialized", agent_type=agent.agent_type
            )
        agent_type = self._registry.require(agent.agent_type)

        conversation_id = agent.conversation_id or (agent.conversation.id if agent.conversation else None)
        conversation = await self._repository.load_conversation(conversation_id) if conversation_id else None
        if conversation is None:
            log.warning("agent_conversation_missing_deleting", agent_id=agent.id, conversation_id=conversation_id)
            await self._repository.delete(agent.id)
            return False

        agent.conversation = conversation
        agent.conversation_id = conversation.id
        await agent_type.initialize(agent)
        log.info("agent_initialized", agent_id=agent.id, agent_type=agent.agent_type, conversation_id=conversation.id)
        return True

    async def start(self, agent: Agent) -> None:
        agent_type = self._registry.require(agent.agent_type)
        agent.active = True
        await self._repository.save(agent)
        await agent_type.start(agent)
        log.info("agent_started", agent_id=agent.id, agent_type=agent.agent_type)
        if (agent.llm_platform_options or {}).get("use_keep_alive"):
            self._schedule_keep_alive(agent)

    async def stop(self, agent: Agent) -> None:
        agent_type = self._registry.require(agent.agent_type)
        agent.active = False
        await self._repository.save(agent)
        await agent_type.stop(agent)
        log.info("agent_stopped", agent_id=agent.id, agent_type=agent.agent_type)

    def _schedule_keep_alive(self, agent: Agent) -> None:
        if self._pinger is None:
            return
        task = asyncio.create_task(self._ping(agent))
        # hold a reference until done, the loop only keeps weak ones
        self._background.add(task)
        task.add_done_callback(self._background.discard)

    async def _ping(self, agent: Agent) -> None:
        try:
            await self._pinger(agent)
        except Exception as e:
            log.warning("llm_ping_failed", agent_id=agent.id, llm_platform=agent.llm_platform, error=str(e))

    async def wait_for_background(self) -> None:
        """Await outstanding keep-alive pings (shutdown and tests)."""
        if self._background:
            await asyncio.gather(*list(self._background), return_exceptions=True)

    async def introduce(self, agent: Agent, channel: Channel) -> list[MessageDraft]:
        if not agent.active:
            return []
        if channel.direct and not channel.has_participant(agent.id):
            return []
        agent_type = self._registry.require(agent.agent_type)
        responses = validate_responses(await agent_type.introduce(agent, channel), agent=agent)
        drafts = create_message_drafts(agent, agent_type, responses, channel)
        log.info("agent_introduced", agent_id=agent.id, agent_type=agent.agent_type, channel=channel.name, drafts=len(drafts))
        return drafts

    def deep_patch(self, agent: Agent, patch: Mapping[str, Any]) -> Agent:
        """
        Deep-merge `patch` onto the agent's stored state.

        The conversation reference is not part of that state, so it survives
        the merge untouched; a `conversation` key in the patch is ignored.
        """
        changes = {k: v for k, v in patch.items() if k != "conversation"}
        if "agent_type" in changes and changes["agent_type"] != agent.agent_type:
            raise AgentConfigurationError(
                message="agent_type cannot be changed", agent_type=agent.agent_type, agent_id=agent.id
            )

        conversation = agent.conversation
        updated = Agent.model_validate(deep_merge(agent.model_dump(), changes))
        for name in Agent.model_fields:
            if name != "conversation":
                setattr(agent, name, getattr(updated, name))
        _ensure_single_pseudonym(agent)
        agent.conversation = conversation
        return agent
