"""Infrastructure layer exports."""

from .access import ElevatedAccessBroker, configure_access_broker, get_access_broker, reset_access_broker
from .assets import RemoteAssetResolver
from .batches import BatchRepository, InMemoryBatchRepository
from .gemini import GeminiImageClient
from .generation import (
    GenerationService,
    UnconfiguredGenerationService,
    configure_generation_service,
    get_generation_service,
    reset_generation_service,
)

__all__ = [
    "BatchRepository",
    "ElevatedAccessBroker",
    "GeminiImageClient",
    "GenerationService",
    "InMemoryBatchRepository",
    "RemoteAssetResolver",
    "UnconfiguredGenerationService",
    "configure_access_broker",
    "configure_generation_service",
    "get_access_broker",
    "get_generation_service",
    "reset_access_broker",
    "reset_generation_service",
]
