from __future__ import annotations


class CancellationToken:
    """Cooperative stop signal handed to the generation scheduler.

    Cancelling never interrupts a call already in flight; the scheduler polls
    :attr:`cancelled` before starting each batch and each generation call.
    """

    __slots__ = ("_cancelled", "_reason")

    def __init__(self) -> None:
        self._cancelled = False
        self._reason: str | None = None

    @property
    def cancelled(self) -> bool:
        return self._cancelled

    @property
    def reason(self) -> str | None:
        return self._reason

    def cancel(self, reason: str = "stop requested") -> None:
        if not self._cancelled:
            self._cancelled = True
            self._reason = reason

    def __repr__(self) -> str:  # pragma: no cover - debugging aid
        return f"CancellationToken(cancelled={self._cancelled!r}, reason={self._reason!r})"
