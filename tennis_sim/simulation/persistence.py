"""
Point log export: CSV writer, in-memory sink, and the bounded buffer that
flushes completed matches to a sink at a fixed interval.
"""
from __future__ import annotations

import csv
import logging
from pathlib import Path
from typing import Any, Iterable, Protocol

from ..errors import ExportError
from .schemas import PointLogEntry, PointOutcome

log = logging.getLogger(__name__)

CSV_COLUMNS = ("match_id", "set_index", "game_index", "point_index", "server_name", "outcome")
SCORE_COLUMNS = ("receiver_name", "point_score", "game_score", "set_score", "tiebreak")


def entry_to_row(e: PointLogEntry, include_scores: bool = False) -> list[Any]:
    """PointLogEntry to a CSV row, in CSV_COLUMNS order (then SCORE_COLUMNS)."""
    row: list[Any] = [e.match_id, e.set_index, e.game_index, e.point_index, e.server, e.outcome.value]
    if include_scores:
        row.extend([e.receiver, e.point_score, e.game_score, e.set_score, int(e.tiebreak)])
    return row


class PointLogSink(Protocol):
    def open(self) -> None: ...

    def write(self, entries: Iterable[PointLogEntry]) -> None: ...

    def close(self) -> None: ...


class MemorySink:
    """Keeps every entry in memory (tests, small runs)."""

    def __init__(self) -> None:
        self.entries: list[PointLogEntry] = []

    def open(self) -> None:
        pass

    def write(self, entries: Iterable[PointLogEntry]) -> None:
        self.entries.extend(entries)

    def close(self) -> None:
        pass


class CsvPointLogExporter:
    """
    Writes point log rows to a CSV file. open() truncates the file and writes
    the header (write() opens it if needed); later writes append.
    OSError surfaces as ExportError.
    """

    def __init__(self, path: str | Path, include_scores: bool = False) -> None:
        self.path = Path(path)
        self.include_scores = include_scores
        self.rows_written = 0
        self._fh = None
        self._writer = None

    @property
    def header(self) -> tuple[str, ...]:
        if self.include_scores:
            return CSV_COLUMNS + SCORE_COLUMNS
        return CSV_COLUMNS

    def open(self) -> None:
        if self._fh is not None:
            return
        try:
            if self.path.parent != Path("."):
                self.path.parent.mkdir(parents=True, exist_ok=True)
            self._fh = open(self.path, "w", newline="", encoding="utf-8")
            self._writer = csv.writer(self._fh)
            self._writer.writerow(self.header)
        except OSError as e:
            self._fh = None
            raise ExportError(f"Cannot create point log {self.path}: {e}") from e
        log.info("Exporting point log to %s", self.path)

    def write(self, entries: Iterable[PointLogEntry]) -> None:
        self.open()
        try:
            for e in entries:
                self._writer.writerow(entry_to_row(e, self.include_scores))
                self.rows_written += 1
            self._fh.flush()
        except OSError as e:
            raise ExportError(f"Writing point log {self.path} failed: {e}") from e

    def close(self) -> None:
        if self._fh is None:
            return
        try:
            self._fh.close()
        except OSError as e:
            raise ExportError(f"Closing point log {self.path} failed: {e}") from e
        finally:
            self._fh = None
            self._writer = None

    def __enter__(self) -> CsvPointLogExporter:
        self.open()
        return self

    def __exit__(self, *exc) -> None:
        self.close()


class PointLogBuffer:
    """
    Collects per-match point logs and hands them to the sink every
    `flush_every` matches, so at most that many matches are held in memory.
    """

    def __init__(self, sink: PointLogSink, flush_every: int) -> None:
        self.sink = sink
        self.flush_every = flush_every
        self._pending: list[PointLogEntry] = []
        self._pending_matches = 0
        self.flushes = 0

    @property
    def pending_matches(self) -> int:
        return self._pending_matches

    def add_match(self, entries: Iterable[PointLogEntry]) -> None:
        self._pending.extend(entries)
        self._pending_matches += 1
        if self._pending_matches >= self.flush_every:
            self.flush()

    def flush(self) -> None:
        if not self._pending_matches:
            return
        batch, self._pending = self._pending, []
        matches, self._pending_matches = self._pending_matches, 0
        self.sink.write(batch)
        self.flushes += 1
        log.debug("Flushed %d points from %d matches", len(batch), matches)

    def discard(self) -> None:
        self._pending = []
        self._pending_matches = 0


def load_point_log(path: str | Path) -> list[PointLogEntry]:
    """Read a CSV written by CsvPointLogExporter back into entries."""
    entries = []
    with open(path, newline="", encoding="utf-8") as fh:
        for row in csv.DictReader(fh):
            entries.append(
                PointLogEntry(
                    match_id=int(row["match_id"]),
                    set_index=int(row["set_index"]),
                    game_index=int(row["game_index"]),
                    point_index=int(row["point_index"]),
                    server=row["server_name"],
                    outcome=PointOutcome(row["outcome"]),
                    receiver=row.get("receiver_name") or "",
                    point_score=row.get("point_score") or "",
                    game_score=row.get("game_score") or "",
                    set_score=row.get("set_score") or "",
                    tiebreak=row.get("tiebreak") == "1",
                )
            )
    return entries
