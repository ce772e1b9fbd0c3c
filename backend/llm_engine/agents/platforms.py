from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Iterable

from ..errors import UnknownLlmPlatformError
from ..settings import Settings


@dataclass(frozen=True)
class LlmPlatform:
    name: str
    # options copied onto agents that do not set their own
    default_options: dict[str, Any] | None = None


def default_platforms(settings: Settings) -> list[LlmPlatform]:
    return [
        LlmPlatform(name="bedrock"),
        LlmPlatform(name="openai"),
        LlmPlatform(name="ollama"),
        LlmPlatform(name="perspective"),
        LlmPlatform(name="google"),
        LlmPlatform(
            name="vllm",
            default_options={"use_keep_alive": True, "base_url": settings.vllm_base_url},
        ),
    ]


class LlmPlatformCatalog:
    def __init__(self, platforms: Iterable[LlmPlatform]) -> None:
        self._platforms = {p.name: p for p in platforms}

    @classmethod
    def from_settings(cls, settings: Settings) -> LlmPlatformCatalog:
        return cls(default_platforms(settings))

    def options_for(self, name: str | None) -> dict[str, Any] | None:
        """Default options for `name`; None when the platform declares none."""
        platform = self._platforms.get(str(name or ""))
        if platform is None:
            raise UnknownLlmPlatformError(
                message=f"Missing LLM platform details for {name}", platform=name
            )
        if platform.default_options is None:
            return None
        return dict(platform.default_options)

    def names(self) -> list[str]:
        return sorted(self._platforms)
