"""Phase timing for publish operations."""

import logging
import time
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Dict, Optional, Any, Generator


@dataclass
class PerformanceMetrics:
    """Timing of one publish phase."""
    operation: str
    duration: float
    start_time: float
    end_time: float
    context: Optional[Dict[str, Any]] = None
    success: bool = True


class PerformanceLogger:
    """
    Times publish phases and logs their durations.

    Metrics are kept per operation name for the lifetime of the logger, so
    one instance is created per publish.
    """

    SLOW_OPERATION_SECONDS = 10.0

    def __init__(self, logger_name: str = 'ghpublish.git_publish.performance'):
        self.logger = logging.getLogger(logger_name)
        self._metrics: Dict[str, PerformanceMetrics] = {}

    @contextmanager
    def time_operation(
        self,
        operation: str,
        context: Optional[Dict[str, Any]] = None,
        log_level: int = logging.DEBUG
    ) -> Generator[None, None, None]:
        """
        Context manager for timing a phase.

        Args:
            operation: Name of the phase being timed
            context: Additional context information
            log_level: Logging level for completion messages
        """
        start_time = time.time()
        self.logger.log(log_level, f"Starting {operation}")

        success = True
        try:
            yield
        except Exception as e:
            success = False
            self.logger.error(f"{operation} failed after {time.time() - start_time:.3f}s: {e}")
            raise
        finally:
            end_time = time.time()
            duration = end_time - start_time

            self._metrics[operation] = PerformanceMetrics(
                operation=operation,
                duration=duration,
                start_time=start_time,
                end_time=end_time,
                context=context,
                success=success
            )

            if success:
                self.logger.log(log_level, f"{operation} completed in {duration:.3f}s")
                if duration > self.SLOW_OPERATION_SECONDS:
                    self.logger.warning(f"Slow publish phase detected: '{operation}' took {duration:.3f}s")
                if context:
                    context_str = ", ".join(f"{k}={v}" for k, v in context.items())
                    self.logger.debug(f"{operation} context: {context_str}")

    @contextmanager
    def accumulate_operation(self, operation: str, context: Optional[Dict[str, Any]] = None) -> Generator[None, None, None]:
        """
        Add the time spent in the block to the running total of ``operation``.

        For phases that hand items to a consumer between units of work: only
        the time inside the block is counted.
        """
        start_time = time.time()
        success = True
        try:
            yield
        except Exception as e:
            success = False
            self.logger.error(f"{operation} failed: {e}")
            raise
        finally:
            end_time = time.time()
            previous = self._metrics.get(operation)
            self._metrics[operation] = PerformanceMetrics(
                operation=operation,
                duration=(previous.duration if previous else 0.0) + end_time - start_time,
                start_time=previous.start_time if previous else start_time,
                end_time=end_time,
                context=context if context is not None else (previous.context if previous else None),
                success=success and (previous.success if previous else True)
            )

    def get_metrics(self, operation: str) -> Optional[PerformanceMetrics]:
        return self._metrics.get(operation)

    def durations(self) -> Dict[str, float]:
        """Duration in seconds of every timed phase, in execution order."""
        return {name: metrics.duration for name, metrics in self._metrics.items()}
