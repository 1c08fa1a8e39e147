#!/usr/bin/env python3
"""
prompt_task.py
--------------
Background writing-prompt requests.

The prompt generator itself (an LLM service) is an external collaborator:
anything with a ``generate_prompt(text) -> str`` method. This module runs
it off the caller's thread and delivers the outcome to one listener.

Classes:
    PromptGenerator: Protocol for prompt generators
    PromptResult: Success or error payload
    PromptTask: Handle on one request (subscribe, unsubscribe, result)
    PromptDispatcher: Thread pool issuing PromptTasks

Usage:
    dispatcher = PromptDispatcher(my_generator)
    task = dispatcher.request(entry_text, listener=show_prompt)
    ...
    task.unsubscribe()        # editor closed; generation keeps running
    dispatcher.shutdown()
"""
# --- Annotations ---
from __future__ import annotations

# --- Standard library imports ---
import threading
from concurrent.futures import Future, ThreadPoolExecutor
from concurrent.futures import TimeoutError as FutureTimeoutError
from dataclasses import asdict, dataclass
from typing import Any, Callable, Dict, Optional, Protocol

# --- Local imports ---
from momentum.core.exceptions import ValidationError
from momentum.core.logging_manager import MomentumLogger, safe_logger

FALLBACK_MESSAGE = "I'm sorry, I couldn't generate a response at this time."

STATUS_SUCCESS = "success"
STATUS_ERROR = "error"


class PromptGenerator(Protocol):
    """Anything that turns entry text into a writing prompt."""

    def generate_prompt(self, text: str) -> str:
        ...


@dataclass(frozen=True)
class PromptResult:
    """
    Outcome of a prompt request.

    Attributes:
        status: 'success' or 'error'
        prompt: Generated prompt, or the fallback message on error
        error: Failure description (error only)
    """

    status: str
    prompt: Optional[str] = None
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.status == STATUS_SUCCESS

    @classmethod
    def success(cls, prompt: str) -> "PromptResult":
        return cls(status=STATUS_SUCCESS, prompt=prompt)

    @classmethod
    def failure(cls, error: str, fallback: str = FALLBACK_MESSAGE) -> "PromptResult":
        return cls(status=STATUS_ERROR, prompt=fallback, error=error)

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


PromptListener = Callable[[PromptResult], None]


class PromptTask:
    """
    Handle on one in-flight prompt request.

    At most one listener is registered at a time. It receives the result
    exactly once, when the work completes (or immediately on subscribe if
    it already has). Unsubscribing stops delivery but never cancels the
    underlying work.
    """

    def __init__(
        self,
        future: "Future[str]",
        fallback_message: str = FALLBACK_MESSAGE,
        logger: Optional[MomentumLogger] = None,
    ) -> None:
        self._future = future
        self.fallback_message = fallback_message
        self.logger = logger

        self._lock = threading.Lock()
        self._listener: Optional[PromptListener] = None
        self._notified: Optional[PromptListener] = None
        self._outcome: Optional[PromptResult] = None

        future.add_done_callback(self._on_done)

    # ---- Listener registration ----
    def subscribe(self, listener: PromptListener) -> None:
        """Register ``listener``, replacing any previous one."""
        with self._lock:
            self._listener = listener
            outcome = self._outcome
            deliver = outcome is not None and self._notified != listener
            if deliver:
                self._notified = listener
        if deliver:
            self._deliver(listener, outcome)

    def unsubscribe(self) -> None:
        """Stop listening; the generation itself keeps running."""
        with self._lock:
            self._listener = None

    # ---- Completion ----
    def done(self) -> bool:
        return self._future.done()

    def result(self, timeout: Optional[float] = None) -> PromptResult:
        """
        Wait for the outcome.

        Never raises for generator failures: a timeout or an error gives an
        error PromptResult carrying the fallback message.
        """
        try:
            prompt = self._future.result(timeout=timeout)
        except FutureTimeoutError as e:
            if self._future.done():
                return PromptResult.failure(str(e) or type(e).__name__, self.fallback_message)
            return PromptResult.failure(
                f"Prompt generation timed out after {timeout}s", self.fallback_message
            )
        except Exception as e:
            return PromptResult.failure(str(e) or type(e).__name__, self.fallback_message)
        return PromptResult.success(prompt)

    def _on_done(self, future: "Future[str]") -> None:
        outcome = self.result()
        if not outcome.ok:
            error_type = (
                "CancelledError" if future.cancelled() else type(future.exception()).__name__
            )
            safe_logger(self.logger).log_warning(
                "Prompt generation failed",
                {"error": outcome.error, "error_type": error_type},
            )

        with self._lock:
            self._outcome = outcome
            listener = self._listener
            if listener is not None:
                self._notified = listener
        if listener is not None:
            self._deliver(listener, outcome)

    def _deliver(self, listener: PromptListener, outcome: PromptResult) -> None:
        try:
            listener(outcome)
        except Exception as e:
            safe_logger(self.logger).log_error(e, {"operation": "prompt_listener"})


class PromptDispatcher:
    """
    Runs a PromptGenerator on a small thread pool.

    Args:
        generator: External prompt generator
        max_workers: Concurrent generations
        logger: Optional logger
        fallback_message: Prompt text delivered with error results
    """

    def __init__(
        self,
        generator: PromptGenerator,
        max_workers: int = 2,
        logger: Optional[MomentumLogger] = None,
        fallback_message: str = FALLBACK_MESSAGE,
    ) -> None:
        self.generator = generator
        self.logger = logger
        self.fallback_message = fallback_message
        self._executor = ThreadPoolExecutor(
            max_workers=max_workers, thread_name_prefix="momentum-prompt"
        )

    def request(self, text: str, listener: Optional[PromptListener] = None) -> PromptTask:
        """
        Start generating a prompt for ``text``.

        Raises:
            ValidationError: If text is not a string
        """
        if not isinstance(text, str):
            raise ValidationError(f"Prompt text must be a string, got {type(text).__name__}")

        future = self._executor.submit(self._generate, text)
        task = PromptTask(future, self.fallback_message, self.logger)
        if listener is not None:
            task.subscribe(listener)
        return task

    def _generate(self, text: str) -> str:
        logger = safe_logger(self.logger)
        logger.log_debug("prompt_requested", {"chars": len(text)})

        prompt = self.generator.generate_prompt(text)
        if not isinstance(prompt, str):
            raise ValidationError(
                f"Prompt generator returned {type(prompt).__name__}, expected str"
            )

        logger.log_operation("prompt_generated", {"chars": len(prompt)})
        return prompt

    def shutdown(self, wait: bool = True) -> None:
        self._executor.shutdown(wait=wait)

    def __enter__(self) -> "PromptDispatcher":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.shutdown()
