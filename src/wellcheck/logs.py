"""Buffered logging for per-well evaluation passes."""

import logging
import typing

import attrs

__all__ = ["LogRecord", "DeferredLogger"]

logger = logging.getLogger(__name__)


@attrs.frozen(slots=True)
class LogRecord:
    """A single buffered log message."""

    level: int
    """Logging level of the message."""
    message: str
    """The message text."""
    tag: typing.Optional[str] = None
    """Short identifier for warnings (e.g. 'NOT_SUPPORTING_MAX_GLR')."""


@attrs.define
class DeferredLogger:
    """
    Logger that buffers messages until they are explicitly flushed.

    Evaluators write into a `DeferredLogger` while a step is being evaluated,
    and the time-step driver replays the messages afterwards, once per rank.
    Recording a message never raises.
    """

    records: typing.List[LogRecord] = attrs.field(factory=list)
    """Buffered messages, in the order they were recorded."""

    def info(self, message: str) -> None:
        self.records.append(LogRecord(level=logging.INFO, message=message))

    def debug(self, message: str) -> None:
        self.records.append(LogRecord(level=logging.DEBUG, message=message))

    def warning(self, tag: str, message: str) -> None:
        """
        Record a warning.

        :param tag: Short identifier of the warning kind.
        :param message: The warning text.
        """
        self.records.append(
            LogRecord(level=logging.WARNING, message=message, tag=tag)
        )

    def error(self, tag: str, message: str) -> None:
        self.records.append(LogRecord(level=logging.ERROR, message=message, tag=tag))

    @property
    def messages(self) -> typing.List[str]:
        return [record.message for record in self.records]

    def tags(self, level: typing.Optional[int] = None) -> typing.List[str]:
        """Return the tags of buffered records, optionally filtered by level."""
        return [
            record.tag
            for record in self.records
            if record.tag is not None and (level is None or record.level == level)
        ]

    def extend(self, other: "DeferredLogger") -> None:
        """Append the records of another deferred logger to this one."""
        self.records.extend(other.records)

    def clear(self) -> None:
        self.records.clear()

    def flush(
        self,
        target: typing.Optional[logging.Logger] = None,
        info_level: int = logging.INFO,
    ) -> int:
        """
        Replay buffered messages into a standard logger and clear the buffer.

        :param target: Logger to write into. Defaults to this module's logger.
        :param info_level: Level used for `info` records.
        :return: Number of records written.
        """
        target = target or logger
        count = len(self.records)
        for record in self.records:
            level = info_level if record.level == logging.INFO else record.level
            if record.tag is not None:
                target.log(level, f"[{record.tag}] {record.message}")
            else:
                target.log(level, record.message)
        self.records.clear()
        return count

    def __len__(self) -> int:
        return len(self.records)
