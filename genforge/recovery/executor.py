"""
Retry execution on top of tenacity.

tenacity drives the attempt loop; every "retry or not" and "how long"
question is answered by ErrorClassifier.decide(), and the delay is awaited
on the calling coroutine. A cancellation event is checked before and after
each delay.

Copyright (c) 2025 GenForge
"""

import asyncio
from dataclasses import replace
from typing import Awaitable, Callable, Optional, TypeVar

import structlog
from tenacity import AsyncRetrying, RetryCallState, stop_after_attempt

from genforge.exceptions import GenerationCancelled, RetryExhausted
from genforge.utils import monotonic_ms

from .classifier import ErrorClassifier
from .models import ErrorContext, RetryConfig, RetryDecision

logger = structlog.get_logger(__name__)

T = TypeVar("T")


class RetryExecutor:
    """
    Runs an async operation under the retry policy.

    Usage:
        executor = RetryExecutor()
        artifact = await executor.run(
            lambda attempt: backend.generate(prompt, params),
            ErrorContext(step="generate", session_id=sid),
            cancel_event=request_aborted,
        )
    """

    def __init__(self, classifier: Optional[ErrorClassifier] = None,
                 config: Optional[RetryConfig] = None):
        self.config = config or (classifier.config if classifier else RetryConfig())
        self.classifier = classifier or ErrorClassifier(self.config)

    async def run(
        self,
        operation: Callable[[int], Awaitable[T]],
        context: ErrorContext,
        cancel_event: Optional[asyncio.Event] = None,
    ) -> T:
        """
        Call ``operation(attempt)`` until it succeeds or the policy gives up.

        Raises:
            GenerationCancelled: cancel_event was set
            RetryExhausted: terminal failure, carries the final ErrorAnalysis
        """
        started = monotonic_ms()
        state = {"decision": None, "attempt": 0}

        def should_retry(retry_state: RetryCallState) -> bool:
            outcome = retry_state.outcome
            if outcome is None or not outcome.failed:
                return False
            error = outcome.exception()
            if isinstance(error, GenerationCancelled):
                return False
            attempt_context = replace(
                context,
                attempt=retry_state.attempt_number,
                max_attempts=self.config.max_attempts,
                duration_ms=int(monotonic_ms() - started),
            )
            decision = self.classifier.decide(error, attempt_context, self.config)
            state["decision"] = decision
            return decision.retry

        def wait_for_decision(retry_state: RetryCallState) -> float:
            decision: Optional[RetryDecision] = state["decision"]
            return decision.delay_ms / 1000 if decision else 0.0

        async def sleep(seconds: float) -> None:
            self._check_cancelled(cancel_event, context, state["attempt"], "before delay")
            if cancel_event is None:
                await asyncio.sleep(seconds)
            else:
                try:
                    await asyncio.wait_for(cancel_event.wait(), timeout=seconds)
                except asyncio.TimeoutError:
                    pass
            self._check_cancelled(cancel_event, context, state["attempt"], "after delay")

        retrying = AsyncRetrying(
            retry=should_retry,
            wait=wait_for_decision,
            stop=stop_after_attempt(self.config.max_attempts),
            sleep=sleep,
            reraise=True,
        )

        try:
            async for attempt in retrying:
                with attempt:
                    state["attempt"] = attempt.retry_state.attempt_number
                    self._check_cancelled(cancel_event, context, state["attempt"], "before attempt")
                    result = await operation(state["attempt"])
        except GenerationCancelled:
            raise
        except Exception as e:
            decision = state["decision"]
            analysis = decision.analysis if decision else None
            kind = analysis.kind.value if analysis else "unclassified"
            logger.error(
                "Retries exhausted",
                step=context.step,
                session_id=context.session_id,
                attempts=state["attempt"],
                kind=kind,
            )
            raise RetryExhausted(
                analysis.user_message if analysis else f"{context.step} failed: {e}",
                analysis=analysis,
                attempts=state["attempt"],
                last_error=e,
            ) from e

        if state["attempt"] > 1:
            logger.info("Recovered after retry", step=context.step, attempts=state["attempt"])
        return result

    @staticmethod
    def _check_cancelled(cancel_event: Optional[asyncio.Event], context: ErrorContext,
                         attempt: int, where: str) -> None:
        if cancel_event is not None and cancel_event.is_set():
            logger.warning("Generation cancelled", step=context.step, attempt=attempt, where=where)
            raise GenerationCancelled(f"{context.step} cancelled {where}", attempts=attempt)
