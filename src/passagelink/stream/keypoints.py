"""
Incremental key-point parsing of a streaming summary.

The summary arrives as text chunks in which ``*`` separates key points. Each
character either opens an entry, extends the open entry's live text or closes
it; subscribers receive a fresh snapshot whenever the visible state changed.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Any, AsyncIterable, Awaitable, Callable, Dict, List, Optional, Union

import structlog

logger = structlog.get_logger(__name__)

_LEADING_WHITESPACE = re.compile(r"^\s+")
_NEWLINE_RUN = re.compile(r"\s*\n\s*")
_WHITESPACE_RUN = re.compile(r"\s+")


@dataclass(slots=True, frozen=True)
class KeyPointEntry:
    """One key point; ids are assigned in creation order and never reused."""

    id: int
    text: str

    def to_dict(self) -> Dict[str, Any]:
        return {"id": self.id, "text": self.text}


@dataclass(slots=True)
class _OpenEntry:
    id: int
    text: str = ""


UpdateCallback = Callable[[List[KeyPointEntry]], Any]


def normalize_partial(raw: str) -> str:
    """Live view of an open entry: no leading whitespace, newline runs as spaces."""
    return _NEWLINE_RUN.sub(" ", _LEADING_WHITESPACE.sub("", raw))


def normalize_final(raw: str) -> str:
    return _WHITESPACE_RUN.sub(" ", _NEWLINE_RUN.sub(" ", raw)).strip()


class KeyPointStream:
    """Character-driven parser of delimiter-separated key points."""

    def __init__(self, on_update: Optional[UpdateCallback] = None, delimiter: str = "*") -> None:
        if len(delimiter) != 1:
            raise ValueError("delimiter must be a single character")
        self._on_update = on_update if callable(on_update) else None
        self.delimiter = delimiter
        self._entries: List[_OpenEntry] = []
        self._current_entry: Optional[_OpenEntry] = None
        self._current_raw = ""
        self._next_id = 0
        self._ready_for_new_entry = True

    def ingest(self, chunk: str = "") -> None:
        if not chunk:
            return
        mutated = False
        for char in chunk:
            if char == self.delimiter:
                mutated = self._handle_delimiter() or mutated
            else:
                mutated = self._append_char(char) or mutated
        if mutated:
            self._notify()

    def complete(self, notify: bool = True) -> List[KeyPointEntry]:
        """Finalize any open entry, as if a trailing delimiter had arrived."""
        mutated = self._finalize_current()
        if mutated and notify:
            self._notify()
        return self.value()

    def value(self) -> List[KeyPointEntry]:
        return [KeyPointEntry(id=entry.id, text=entry.text) for entry in self._entries]

    # --- state machine ---

    def _append_char(self, char: str) -> bool:
        if self._ready_for_new_entry and self._current_entry is None and char.isspace():
            return False
        entry = self._current_entry or self._begin_new_entry()

        self._ready_for_new_entry = False
        self._current_raw += char
        normalized = normalize_partial(self._current_raw)
        if normalized == entry.text:
            return False
        entry.text = normalized
        return True

    def _handle_delimiter(self) -> bool:
        finalized = self._finalize_current()
        self._ready_for_new_entry = True
        return finalized

    def _begin_new_entry(self) -> _OpenEntry:
        entry = _OpenEntry(id=self._next_id)
        self._next_id += 1
        self._current_entry = entry
        self._current_raw = ""
        self._entries.append(entry)
        return entry

    def _finalize_current(self) -> bool:
        entry = self._current_entry
        if entry is None:
            self._ready_for_new_entry = True
            return False

        final = normalize_final(self._current_raw)
        mutated = False
        if not final:
            if entry in self._entries:
                self._entries.remove(entry)
                mutated = True
        elif final != entry.text:
            entry.text = final
            mutated = True

        self._current_entry = None
        self._current_raw = ""
        self._ready_for_new_entry = True
        return mutated

    def _notify(self) -> None:
        if self._on_update is None:
            return
        self._on_update(self.value())


async def consume_stream(
    source: AsyncIterable[str], on_update: Optional[UpdateCallback] = None
) -> List[KeyPointEntry]:
    """Feed every chunk of ``source`` to a new parser, in order.

    ``on_update`` also receives the empty snapshot before the first chunk.
    """
    stream = KeyPointStream(on_update)
    if on_update is not None:
        on_update(stream.value())
    chunks = 0
    async for chunk in source:
        stream.ingest(chunk)
        chunks += 1
    entries = stream.complete()
    logger.debug("Consumed key point stream", chunks=chunks, entries=len(entries))
    return entries


def create_key_point_stream(
    source_or_callback: Union[AsyncIterable[str], UpdateCallback, None] = None,
    on_update: Optional[UpdateCallback] = None,
) -> Union[KeyPointStream, Awaitable[List[KeyPointEntry]]]:
    """A parser, or an awaitable consuming ``source_or_callback`` when it is an async iterable."""
    callback = source_or_callback if callable(source_or_callback) else on_update
    if hasattr(source_or_callback, "__aiter__"):
        return consume_stream(source_or_callback, callback)  # type: ignore[arg-type]
    return KeyPointStream(callback)  # type: ignore[arg-type]
