"""Generation service hooks.

The scheduler and edit sessions only depend on :class:`GenerationService`.
The process starts with :class:`UnconfiguredGenerationService` installed; the
application factory replaces it with a real client when credentials are
available, and tests install fakes through ``configure_generation_service``.
"""
from __future__ import annotations

from typing import Protocol, Sequence

from podstudio.core.errors import GenerationFailure
from podstudio.domain import ReferenceAsset, Tier


class GenerationService(Protocol):
    """Contract for image generation backends."""

    async def generate(
        self,
        references: Sequence[ReferenceAsset | None],
        instruction: str | None,
        conditioning_asset: str | None,
        tier: Tier,
    ) -> str:
        """Produce one asset as a data URL or raise :class:`GenerationFailure`."""


class UnconfiguredGenerationService:
    """Fallback used when no generation backend is configured."""

    async def generate(
        self,
        references: Sequence[ReferenceAsset | None],
        instruction: str | None,
        conditioning_asset: str | None,
        tier: Tier,
    ) -> str:
        raise GenerationFailure("generation service not configured; set GEMINI_API_KEY")


_service: GenerationService = UnconfiguredGenerationService()


def configure_generation_service(service: GenerationService) -> None:
    """Install the generation backend used by the scheduler and edit sessions."""

    global _service
    _service = service


def get_generation_service() -> GenerationService:
    """Return the currently configured generation backend."""

    return _service


def reset_generation_service() -> None:
    configure_generation_service(UnconfiguredGenerationService())
