"""Engine configuration."""

from __future__ import annotations

import os
from collections.abc import Mapping
from dataclasses import dataclass, field

from litestar_taskflow.core.definition import RetryStrategy
from litestar_taskflow.core.types import ErrorHandling

__all__ = ["EngineConfig"]


@dataclass
class EngineConfig:
    """Defaults and limits applied by the execution engine.

    Attributes:
        default_retry_strategy: Retry policy for tasks that do not set one.
        default_error_handling: Error handling for tasks that do not set one.
        max_audit_entries: Upper bound of an instance's audit log. The oldest
            entries are dropped first. ``None`` keeps everything.
        persist_on_transition: Save the instance to the repository after every
            task transition, not only on lifecycle changes.
    """

    default_retry_strategy: RetryStrategy = field(default_factory=RetryStrategy)
    default_error_handling: ErrorHandling = ErrorHandling.FAIL
    max_audit_entries: int | None = None
    persist_on_transition: bool = True

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> EngineConfig:
        """Build a configuration from ``TASKFLOW_*`` environment variables.

        Reads ``TASKFLOW_DEFAULT_MAX_ATTEMPTS``, ``TASKFLOW_DEFAULT_RETRY_DELAY``,
        ``TASKFLOW_DEFAULT_ERROR_HANDLING`` and ``TASKFLOW_MAX_AUDIT_ENTRIES``.
        Unset variables keep their defaults.

        Args:
            environ: Mapping to read instead of ``os.environ``.

        Returns:
            The configuration.

        Raises:
            ValueError: If a variable holds an invalid value.
        """
        env = os.environ if environ is None else environ
        max_audit = env.get("TASKFLOW_MAX_AUDIT_ENTRIES")
        return cls(
            default_retry_strategy=RetryStrategy(
                max_attempts=int(env.get("TASKFLOW_DEFAULT_MAX_ATTEMPTS", 1)),
                delay=float(env.get("TASKFLOW_DEFAULT_RETRY_DELAY", 0.0)),
            ),
            default_error_handling=ErrorHandling(env.get("TASKFLOW_DEFAULT_ERROR_HANDLING", ErrorHandling.FAIL)),
            max_audit_entries=int(max_audit) if max_audit else None,
        )
