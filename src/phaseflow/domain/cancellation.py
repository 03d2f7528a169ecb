"""Cooperative cancellation flag shared by the orchestrator and lifecycle operations."""

from phaseflow.domain.exceptions import AutomationCancelled


class CancellationToken:
    """
    One-way stop flag.

    The flag is polled between operations and after each external call
    returns, never during a call. Once cancelled it stays cancelled.
    """

    def __init__(self) -> None:
        self._cancelled = False
        self._reason = ""

    def cancel(self, reason: str = "stop requested") -> None:
        self._cancelled = True
        self._reason = reason

    @property
    def cancelled(self) -> bool:
        return self._cancelled

    @property
    def reason(self) -> str:
        return self._reason

    def raise_if_cancelled(self, operation: str) -> None:
        """
        Raises:
            AutomationCancelled: If cancel() has been called
        """
        if self._cancelled:
            raise AutomationCancelled(f"{operation} discarded: {self._reason}")
