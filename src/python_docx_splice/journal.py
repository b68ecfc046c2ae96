"""Step journal for multi-part package edits.

Creating or copying a chart writes several parts in order (workbook, chart,
chart relationships, content types, document relationships, document body).
Each step is recorded together with the action that undoes it, and a failure
part-way through undoes the completed steps in reverse order.

Example:
    >>> with MutationJournal(package) as journal:
    ...     journal.snapshot("word/charts/chart3.xml", "write chart part")
    ...     package.write_bytes("word/charts/chart3.xml", data)
    ...     journal.snapshot("word/document.xml", "insert drawing")
    ...     package.write_text("word/document.xml", body)
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any

from .errors import PackagingError
from .package import OOXMLPackage

logger = logging.getLogger(__name__)


@dataclass
class JournalStep:
    """One recorded mutation.

    Attributes:
        description: What the step did, for logs
        undo: Callable that reverses the step
    """

    description: str
    undo: Callable[[], None]


class MutationJournal:
    """Records package mutations so they can be reversed as a unit.

    Used as a context manager, the journal rolls back when the block raises
    and clears itself when the block completes.
    """

    def __init__(self, package: OOXMLPackage) -> None:
        self._package = package
        self._steps: list[JournalStep] = []

    @property
    def steps(self) -> list[JournalStep]:
        """Recorded steps in the order they happened."""
        return list(self._steps)

    def record(self, description: str, undo: Callable[[], None]) -> None:
        """Record a completed step and the action that reverses it."""
        self._steps.append(JournalStep(description, undo))
        logger.debug(f"Journal step {len(self._steps)}: {description}")

    def snapshot(self, part_name: str, description: str | None = None) -> None:
        """Record the current state of a part before it is written.

        Undoing restores the previous bytes, or deletes the part if it did
        not exist yet.
        """
        package = self._package
        previous = package.read_bytes(part_name) if package.part_exists(part_name) else None

        def restore() -> None:
            if previous is None:
                package.remove_part(part_name)
            else:
                package.write_bytes(part_name, previous)

        self.record(description or f"write {part_name}", restore)

    def rollback(self) -> None:
        """Undo every recorded step, newest first.

        A failing undo is logged and the remaining steps are still undone.
        """
        if self._steps:
            logger.warning(f"Rolling back {len(self._steps)} package step(s)")
        while self._steps:
            step = self._steps.pop()
            try:
                step.undo()
            except (OSError, PackagingError):
                logger.exception(f"Failed to undo step: {step.description}")

    def commit(self) -> None:
        """Forget the recorded steps; they can no longer be undone."""
        self._steps.clear()

    def __enter__(self) -> MutationJournal:
        return self

    def __exit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        if exc_type is not None:
            self.rollback()
        else:
            self.commit()
