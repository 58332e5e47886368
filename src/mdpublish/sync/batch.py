"""Batch execution with per-item failure isolation.

``BatchProcess.execute`` collects items, runs a task on each one in order,
then hands every collected error to an ``after_batch`` callback.  A failing
item never stops the batch and never rolls back items already processed.
If errors remain unhandled after the callback, one ``BatchProcessError``
wrapping all of them is raised.

Usage:
    batch = BatchProcess()
    batch.execute(
        lambda: context.documents,
        publish_one,
        lambda errors: report(errors) or EXCEPTIONS_HANDLED,
    )
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterable
from typing import Generic, TypeVar

from ..exceptions import BatchProcessError, PublishError
from .models import DocumentMetadata

logger = logging.getLogger(__name__)

T = TypeVar("T")

#: ``after_batch`` return values.
EXCEPTIONS_HANDLED = True
EXCEPTIONS_UNHANDLED = False


def _unhandled(errors: list[PublishError]) -> bool:
    return EXCEPTIONS_UNHANDLED


class BatchProcess(Generic[T]):
    """Run one task over a collection of items, collecting failures.

    Attributes:
        errors: Errors collected by the most recent ``execute`` call.
    """

    def __init__(self) -> None:
        self.errors: list[PublishError] = []

    def execute(
        self,
        collect: Callable[[], Iterable[T]],
        task: Callable[[T], None],
        after_batch: Callable[[list[PublishError]], bool] = _unhandled,
    ) -> None:
        """Run *task* over every item returned by *collect*.

        Args:
            collect: Returns the items to process.  If it raises, no task
                runs and the failure becomes the batch's error list.
            task: Called once per item, in collection order.
            after_batch: Receives every collected error and returns
                ``EXCEPTIONS_HANDLED`` if the caller has dealt with them.

        Raises:
            BatchProcessError: Errors were collected and ``after_batch``
                did not report them handled.
        """
        errors: list[PublishError] = []
        self.errors = errors

        try:
            items = list(collect())
        except Exception as exc:
            self._record(errors, exc, None, "Unexpected exception thrown collecting batch")
            items = []

        for item in items:
            try:
                task(item)
            except Exception as exc:
                self._record(errors, exc, item, "Unexpected exception thrown processing task")

        handled = EXCEPTIONS_UNHANDLED
        try:
            handled = after_batch(errors)
        except Exception as exc:
            self._record(errors, exc, None, "Unexpected exception thrown after batch")

        if errors and not handled:
            raise BatchProcessError("Batch processing failed", errors)

    @staticmethod
    def _record(
        errors: list[PublishError],
        exc: Exception,
        item: object | None,
        message: str,
    ) -> None:
        metadata = item if isinstance(item, DocumentMetadata) else None

        if isinstance(exc, BatchProcessError):
            if exc.errors:
                errors.extend(exc.errors)
            else:
                wrapped = PublishError(exc.message, exc.metadata or metadata)
                wrapped.__cause__ = exc
                errors.append(wrapped)
            return

        if isinstance(exc, PublishError):
            if exc.metadata is None:
                exc.metadata = metadata
            logger.debug("Batch item failed: %s", exc)
            errors.append(exc)
            return

        wrapped = PublishError(f"{message}: {exc}", metadata)
        wrapped.__cause__ = exc
        logger.debug("Batch item failed: %s", wrapped, exc_info=exc)
        errors.append(wrapped)
