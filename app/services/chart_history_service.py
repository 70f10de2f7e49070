"""
Historial del odontograma.

- Pilas acotadas de deshacer/rehacer con snapshots serializados (JSON).
- Registro de actividad append-only, más reciente primero, sin límite.

El snapshot previo debe capturarse con before_mutate() ANTES de
confirmar una mutación; si no, deshacer restauraría el estado nuevo.
"""

import logging
import time
from collections import deque
from datetime import datetime, timezone

from pydantic import TypeAdapter, ValidationError

from app.config import get_settings
from app.core.exceptions import ChartCorruptionError
from app.schemas.dental_chart import HistoryEntry, Tooth

logger = logging.getLogger(__name__)

_snapshot_adapter = TypeAdapter(list[Tooth])


def serialize_snapshot(teeth: list[Tooth]) -> str:
    return _snapshot_adapter.dump_json(teeth, by_alias=True).decode("utf-8")


def deserialize_snapshot(raw: str) -> list[Tooth]:
    """Reconstruye un snapshot; lanza ChartCorruptionError si está dañado."""
    try:
        return _snapshot_adapter.validate_json(raw)
    except (ValidationError, ValueError) as exc:
        raise ChartCorruptionError(
            f"Snapshot de historial corrupto: {exc}"
        ) from exc


class ChartHistory:
    """Pilas undo/redo (capacidad fija cada una) y registro de actividad."""

    def __init__(self, limit: int | None = None, entries: list[HistoryEntry] | None = None):
        self.limit = limit or get_settings().UNDO_STACK_LIMIT
        # El extremo derecho es el más reciente; maxlen descarta el más antiguo
        self._undo: deque[str] = deque(maxlen=self.limit)
        self._redo: deque[str] = deque(maxlen=self.limit)
        self._entries: list[HistoryEntry] = list(entries or [])
        self._last_entry_id = max((e.id for e in self._entries), default=0)

    # ── Deshacer / rehacer ───────────────────────────

    @property
    def undo_depth(self) -> int:
        return len(self._undo)

    @property
    def redo_depth(self) -> int:
        return len(self._redo)

    def before_mutate(self, current: list[Tooth]) -> None:
        """Guarda el estado actual en undo y vacía redo."""
        self._undo.append(serialize_snapshot(current))
        self._redo.clear()

    def undo(self, current: list[Tooth]) -> list[Tooth] | None:
        """
        Devuelve el snapshot anterior o None si no hay nada que deshacer.
        Si la entrada está corrupta lanza ChartCorruptionError y deja
        ambas pilas intactas.
        """
        if not self._undo:
            logger.debug("Undo: pila vacía")
            return None
        restored = deserialize_snapshot(self._undo[-1])
        self._undo.pop()
        self._redo.append(serialize_snapshot(current))
        return restored

    def redo(self, current: list[Tooth]) -> list[Tooth] | None:
        """Inverso simétrico de undo()."""
        if not self._redo:
            logger.debug("Redo: pila vacía")
            return None
        restored = deserialize_snapshot(self._redo[-1])
        self._redo.pop()
        self._undo.append(serialize_snapshot(current))
        return restored

    # ── Registro de actividad ────────────────────────

    @property
    def entries(self) -> list[HistoryEntry]:
        return list(self._entries)

    def log(self, text: str) -> HistoryEntry:
        """Antepone una entrada; nunca se recorta ni se reordena."""
        entry_id = int(time.time() * 1000)
        if entry_id <= self._last_entry_id:
            entry_id = self._last_entry_id + 1
        self._last_entry_id = entry_id
        entry = HistoryEntry(
            id=entry_id,
            timestamp=datetime.now(timezone.utc).isoformat(),
            text=text,
        )
        self._entries.insert(0, entry)
        return entry
