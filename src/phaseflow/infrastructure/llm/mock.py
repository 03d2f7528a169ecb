"""
Mock generation service for testing without an LLM.

Returns predefined responses in sequence, with optional failure injection
and artificial latency.
"""

import asyncio
from collections.abc import Callable, Mapping

from phaseflow.domain.interfaces import GenerationServiceInterface
from phaseflow.domain.models import ChecklistItem, SprintSeed, SprintSpecification

DEFAULT_CHECKLIST = (
    ChecklistItem(id="req-trace", text="Every requirement is traced to the design"),
    ChecklistItem(id="risk", text="Principal risks have mitigations"),
    ChecklistItem(id="interfaces", text="External interfaces are specified"),
)

DEFAULT_SPRINT_SEEDS = (
    SprintSeed(name="Subsystem Design", description="Detail the primary subsystems."),
    SprintSeed(name="Integration Design", description="Define subsystem integration."),
)

DEFAULT_DELIVERABLES = ("Detailed drawings", "Interface control document")


class MockGenerationService(GenerationServiceInterface):
    """Returns predefined responses for testing."""

    def __init__(
        self,
        responses: list[str] | None = None,
        summary: str = "compacted: requirements summary",
        checklist: tuple[ChecklistItem, ...] = DEFAULT_CHECKLIST,
        sprint_seeds: tuple[SprintSeed, ...] = DEFAULT_SPRINT_SEEDS,
        deliverables: tuple[str, ...] = DEFAULT_DELIVERABLES,
        delay: float = 0.0,
        on_call: Callable[[str], None] | None = None,
    ):
        """
        Args:
            responses: generate() results in sequence (None = numbered documents)
            summary: summarize() result
            checklist: review_checklist() result
            sprint_seeds: expand_sprints() result
            deliverables: Deliverables returned by specify_sprint()
            delay: Seconds each call sleeps before answering
            on_call: Hook invoked with the operation name while a call is in flight
        """
        self._responses = responses
        self._summary = summary
        self._checklist = checklist
        self._sprint_seeds = sprint_seeds
        self._deliverables = deliverables
        self._delay = delay
        self._on_call = on_call
        self._failures: dict[str, tuple[Exception, int | None]] = {}
        self._call_count = 0
        self.calls: list[tuple[str, Mapping[str, object]]] = []

    def fail(
        self, operation: str, error: Exception | None = None, times: int | None = None
    ) -> None:
        """
        Make an operation raise.

        Args:
            operation: generate, specify_sprint, summarize, compare,
                expand_sprints or review_checklist
            error: Exception to raise (default RuntimeError)
            times: Number of failing calls before recovering (None = always)
        """
        self._failures[operation] = (
            error or RuntimeError(f"{operation} unavailable"),
            times,
        )

    def recover(self, operation: str | None = None) -> None:
        if operation is None:
            self._failures.clear()
        else:
            self._failures.pop(operation, None)

    async def _enter(self, operation: str, **args: object) -> None:
        self.calls.append((operation, args))
        if self._on_call is not None:
            self._on_call(operation)
        if self._delay:
            await asyncio.sleep(self._delay)
        failure = self._failures.get(operation)
        if failure is not None:
            error, times = failure
            if times is not None:
                if times <= 1:
                    del self._failures[operation]
                else:
                    self._failures[operation] = (error, times - 1)
            raise error

    async def generate(
        self, prompt: str, context: str, tuning_settings: Mapping[str, int]
    ) -> str:
        """Return the next predefined response."""
        await self._enter(
            "generate", prompt=prompt, context=context, tuning_settings=tuning_settings
        )
        return self._next_document()

    async def specify_sprint(
        self, prompt: str, context: str, tuning_settings: Mapping[str, int]
    ) -> SprintSpecification:
        """Return the next predefined response with the configured deliverables."""
        await self._enter(
            "specify_sprint",
            prompt=prompt,
            context=context,
            tuning_settings=tuning_settings,
        )
        return SprintSpecification(self._next_document(), self._deliverables)

    def _next_document(self) -> str:
        if self._responses is None:
            self._call_count += 1
            return f"Document {self._call_count}"
        if self._call_count >= len(self._responses):
            raise RuntimeError("MockGenerationService exhausted responses")
        content = self._responses[self._call_count]
        self._call_count += 1
        return content

    async def summarize(self, content: str) -> str:
        await self._enter("summarize", content=content)
        return self._summary

    async def compare(
        self, content_a: str, content_b: str, reason_a: str = "", reason_b: str = ""
    ) -> str:
        await self._enter(
            "compare",
            content_a=content_a,
            content_b=content_b,
            reason_a=reason_a,
            reason_b=reason_b,
        )
        if content_a == content_b:
            return "No differences."
        return f"Changed from ({reason_a}) to ({reason_b})."

    async def expand_sprints(self, seed_content: str) -> list[SprintSeed]:
        await self._enter("expand_sprints", seed_content=seed_content)
        return list(self._sprint_seeds)

    async def review_checklist(self, content: str) -> list[ChecklistItem]:
        await self._enter("review_checklist", content=content)
        return list(self._checklist)

    @property
    def call_count(self) -> int:
        """Number of documents generate() and specify_sprint() have returned."""
        return self._call_count

    def calls_to(self, operation: str) -> list[Mapping[str, object]]:
        return [args for op, args in self.calls if op == operation]

    def reset(self) -> None:
        """Reset counters and recorded calls to reuse responses."""
        self._call_count = 0
        self.calls.clear()
