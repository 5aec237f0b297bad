"""
Diagnostics sink for the enrichment retrievers.

Retrievers report skipped rows, missing query templates and failed queries
as structured events on a sink that is passed in, rather than only writing
to a module logger. Each event is also forwarded to a logger so crawls stay
visible in normal log output.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional

logger = logging.getLogger(__name__)


class EventKind(str, Enum):
    """Categories of retriever diagnostics."""
    CAPABILITY_ABSENT = "capability_absent"
    NOT_FOUND = "not_found"
    QUERY_FAILED = "query_failed"
    SKIPPED = "skipped"


@dataclass(frozen=True)
class DiagnosticEvent:
    """One diagnostic emitted by a retriever."""
    kind: EventKind
    level: int
    source: str
    message: str
    context: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "kind": self.kind.value,
            "level": logging.getLevelName(self.level),
            "source": self.source,
            "message": self.message,
            "context": dict(self.context),
        }


class DiagnosticsSink:
    """
    Collects diagnostic events and forwards them to a logger.

    Args:
        log: Logger to forward events to (defaults to this module's logger)
    """

    def __init__(self, log: Optional[logging.Logger] = None):
        self.events: List[DiagnosticEvent] = []
        self._log = log or logger

    def emit(
        self,
        kind: EventKind,
        level: int,
        source: str,
        message: str,
        exc_info: Optional[BaseException] = None,
        **context: Any,
    ) -> DiagnosticEvent:
        event = DiagnosticEvent(
            kind=kind,
            level=level,
            source=source,
            message=message,
            context=context,
        )
        self.events.append(event)
        self._log.log(level, f"[{source}] {message}", exc_info=exc_info)
        return event

    def capability_absent(self, source: str, message: str, **context: Any) -> DiagnosticEvent:
        return self.emit(EventKind.CAPABILITY_ABSENT, logging.DEBUG, source, message, **context)

    def not_found(self, source: str, message: str, **context: Any) -> DiagnosticEvent:
        return self.emit(EventKind.NOT_FOUND, logging.DEBUG, source, message, **context)

    def skipped(self, source: str, message: str, **context: Any) -> DiagnosticEvent:
        return self.emit(EventKind.SKIPPED, logging.DEBUG, source, message, **context)

    def query_failed(
        self,
        source: str,
        message: str,
        error: BaseException,
        **context: Any,
    ) -> DiagnosticEvent:
        return self.emit(
            EventKind.QUERY_FAILED,
            logging.WARNING,
            source,
            f"{message}: {error}",
            exc_info=error,
            error=repr(error),
            **context,
        )

    def of_kind(self, kind: EventKind) -> List[DiagnosticEvent]:
        """Return the events of one kind, in emission order."""
        return [e for e in self.events if e.kind == kind]

    def counts(self) -> Dict[str, int]:
        """Count events per kind."""
        counts: Dict[str, int] = {}
        for event in self.events:
            counts[event.kind.value] = counts.get(event.kind.value, 0) + 1
        return counts

    def clear(self) -> None:
        self.events.clear()
