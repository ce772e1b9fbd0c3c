from __future__ import annotations

from datetime import datetime, timezone
from typing import Awaitable, Callable

import httpx

from ..observability.logging import get_logger
from ..settings import settings
from ..utils.time_diff import time_diff_human
from .models import Agent

log = get_logger("llm_keepalive")

LlmPinger = Callable[[Agent], Awaitable[None]]


class HttpLlmPinger:
    """
    Keeps a self-hosted, OpenAI-compatible model server warm by listing its models.

    The server is read from the agent's `llm_platform_options["base_url"]`.
    """

    def __init__(
        self,
        *,
        timeout_seconds: float | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._timeout = float(timeout_seconds or settings.llm_ping_timeout_seconds)
        self._transport = transport

    async def __call__(self, agent: Agent) -> None:
        base_url = str((agent.llm_platform_options or {}).get("base_url") or "").strip()
        if not base_url:
            log.warning("llm_ping_skipped", agent_id=agent.id, reason="no_base_url")
            return

        started = datetime.now(timezone.utc)
        async with httpx.AsyncClient(
            base_url=base_url, timeout=self._timeout, transport=self._transport
        ) as client:
            resp = await client.get("/models")
            resp.raise_for_status()
        log.info(
            "llm_ping_completed",
            agent_id=agent.id,
            llm_platform=agent.llm_platform,
            took=time_diff_human(datetime.now(timezone.utc), started),
        )
