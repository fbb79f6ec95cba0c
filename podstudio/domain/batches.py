"""Domain entities for batch redesign jobs."""
from __future__ import annotations

from collections import deque
from dataclasses import dataclass, field
from enum import Enum

REFERENCE_SLOTS = 5


class Tier(str, Enum):
    """Quality level of a generation call."""

    STANDARD = "standard"
    ENHANCED = "enhanced"

    @property
    def archive_label(self) -> str:
        return "Standard" if self is Tier.STANDARD else "Pro"


class BatchStatus(str, Enum):
    IDLE = "idle"
    PROCESSING = "processing"
    STOPPING = "stopping"
    COMPLETED = "completed"
    ERROR = "error"

    @property
    def busy(self) -> bool:
        return self in (BatchStatus.PROCESSING, BatchStatus.STOPPING)


@dataclass(frozen=True, slots=True)
class ReferenceAsset:
    """A reference image fetched from the job sheet."""

    source_url: str
    encoded_data: str | None = None

    @property
    def resolved(self) -> bool:
        return bool(self.encoded_data)


def _empty_results() -> dict[Tier, list[str]]:
    return {tier: [] for tier in Tier}


@dataclass(slots=True)
class Batch:
    """One design job: a name, instructions, references and generated results."""

    batch_id: str
    name: str
    custom_prompt: str | None = None
    references: list[ReferenceAsset | None] = field(default_factory=lambda: [None] * REFERENCE_SLOTS)
    status: BatchStatus = BatchStatus.IDLE
    active_mode: Tier | None = None
    results: dict[Tier, list[str]] = field(default_factory=_empty_results)
    last_error: str | None = None

    def __post_init__(self) -> None:
        if len(self.references) != REFERENCE_SLOTS:
            raise ValueError(f"a batch carries exactly {REFERENCE_SLOTS} reference slots")

    @property
    def results_standard(self) -> list[str]:
        return self.results[Tier.STANDARD]

    @property
    def results_pro(self) -> list[str]:
        return self.results[Tier.ENHANCED]

    def has_results(self) -> bool:
        return any(self.results[tier] for tier in Tier)


@dataclass(slots=True)
class EditHistory:
    """Undo/redo state for a single open edit session.

    ``limit`` caps both stacks; ``None`` keeps them unbounded. When a cap is
    set the oldest entries fall off first.
    """

    displayed: str
    limit: int | None = None
    undo_stack: deque[str] = field(init=False)
    redo_stack: deque[str] = field(init=False)

    def __post_init__(self) -> None:
        self.undo_stack = deque(maxlen=self.limit)
        self.redo_stack = deque(maxlen=self.limit)
