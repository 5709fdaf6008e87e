"""
Context Store

Holds the immutable "original reality" of a room and the session's
conversation log. Chat messages are append-only; display-only notices can
be withdrawn. Pure data: the Director only reads from it.
"""

from typing import Iterator, List, Tuple

from lumina.core.exceptions import AlreadyInitializedError
from lumina.models.chat import ChatMessage, DisplayOnlyNotice, HistoryEntry, LogEntry


HISTORY_SEPARATOR = " | "


class ContextStore:
    """One per session. Reset by discarding the instance."""

    def __init__(self):
        self._analysis = None
        self._log: List[LogEntry] = []

    @property
    def analysis(self):
        """The original RoomAnalysis, or None before analysis completes."""
        return self._analysis

    @property
    def messages(self) -> Tuple[LogEntry, ...]:
        """Full display log, notices included, in insertion order."""
        return tuple(self._log)

    def record_analysis(self, analysis) -> None:
        if self._analysis is not None:
            raise AlreadyInitializedError()
        self._analysis = analysis

    def append_message(self, entry: LogEntry) -> None:
        self._log.append(entry)

    def withdraw_notice(self, notice: DisplayOnlyNotice) -> None:
        """Drop a status notice whose work never happened. Chat messages are never removed."""
        self._log = [entry for entry in self._log if entry is not notice]

    def history(self, max_chars: int) -> Iterator[HistoryEntry]:
        """
        Lazily yield prompting history, oldest first, within a character budget.

        Display-only notices never appear. When the budget is exceeded the
        oldest messages are dropped; the most recent message is always kept,
        clipped if it alone does not fit.
        """
        chat = [m for m in self._log if isinstance(m, ChatMessage)]
        if not chat or max_chars <= 0:
            return

        start = len(chat)
        used = 0
        for index in range(len(chat) - 1, -1, -1):
            cost = len(HistoryEntry(role=chat[index].role, text=chat[index].text).render())
            if start < len(chat):
                cost += len(HISTORY_SEPARATOR)
            if used + cost > max_chars and start < len(chat):
                break
            used += cost
            start = index

        for message in chat[start:]:
            entry = HistoryEntry(role=message.role, text=message.text)
            overflow = len(entry.render()) - max_chars
            if overflow > 0:
                keep = max(0, len(message.text) - overflow)
                entry = HistoryEntry(role=message.role, text=message.text[:keep])
            yield entry

    def transcript(self, max_chars: int) -> str:
        return HISTORY_SEPARATOR.join(entry.render() for entry in self.history(max_chars))
