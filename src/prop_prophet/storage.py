"""Ledger and alert-log persistence with atomic writes and a single-writer lock."""

from __future__ import annotations

import json
import os
import uuid
from collections.abc import Iterator
from contextlib import contextmanager, suppress
from pathlib import Path
from typing import Any

from prop_prophet.errors import InputError, LedgerLockedError, LedgerWriteError
from prop_prophet.gates import PublishedPick
from prop_prophet.ledger import HistoryPick, dump_ledger, load_ledger

HISTORY_FILENAME = "prophet_history.json"
ALERTS_FILENAME = "alerts_sent.json"
SNAPSHOT_FILENAME = "last_commit_picks.json"
LOCK_FILENAME = ".ledger.lock"


def atomic_write_text(path: Path, content: str) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    tmp_path = path.with_name(f".tmp-{path.name}-{uuid.uuid4().hex}")
    try:
        tmp_path.write_text(content, encoding="utf-8")
        os.replace(tmp_path, path)
    except OSError:
        with suppress(FileNotFoundError):
            tmp_path.unlink()
        raise


def _atomic_write_json(path: Path, value: Any) -> None:
    payload = json.dumps(value, ensure_ascii=False, indent=2) + "\n"
    try:
        atomic_write_text(path, payload)
    except OSError as exc:
        raise LedgerWriteError(f"failed writing {path}: {exc}") from exc


def _read_json(path: Path) -> Any | None:
    if not path.exists():
        return None
    try:
        return json.loads(path.read_text(encoding="utf-8"))
    except (OSError, json.JSONDecodeError) as exc:
        raise InputError(f"unreadable ledger file: {path}") from exc


class LedgerStore:
    """History ledger, alert log and last commit snapshot under ``<root>/history``."""

    def __init__(self, root: Path | str = Path("data")) -> None:
        self.root = Path(root)
        self.history_dir = self.root / "history"

    @property
    def history_path(self) -> Path:
        return self.history_dir / HISTORY_FILENAME

    @property
    def alerts_path(self) -> Path:
        return self.history_dir / ALERTS_FILENAME

    @property
    def snapshot_path(self) -> Path:
        return self.history_dir / SNAPSHOT_FILENAME

    @contextmanager
    def lock(self) -> Iterator[None]:
        """Take the exclusive writer lock; concurrent runs fail fast."""
        self.history_dir.mkdir(parents=True, exist_ok=True)
        lock_path = self.history_dir / LOCK_FILENAME
        try:
            fd = os.open(lock_path, os.O_CREAT | os.O_EXCL | os.O_WRONLY)
        except FileExistsError as exc:
            raise LedgerLockedError(f"ledger is locked: {lock_path}") from exc
        try:
            os.write(fd, str(os.getpid()).encode("utf-8"))
            yield
        finally:
            os.close(fd)
            with suppress(FileNotFoundError):
                lock_path.unlink()

    def load_history(self) -> list[HistoryPick]:
        payload = _read_json(self.history_path)
        try:
            return load_ledger(payload)
        except ValueError as exc:
            raise InputError(f"invalid ledger file {self.history_path}: {exc}") from exc

    def save_history(self, ledger: list[HistoryPick]) -> None:
        _atomic_write_json(self.history_path, dump_ledger(ledger))

    def load_alerts(self) -> dict[str, Any]:
        payload = _read_json(self.alerts_path)
        if payload is None:
            return {}
        if not isinstance(payload, dict):
            raise InputError(f"alert log must be a JSON object: {self.alerts_path}")
        return payload

    def save_alerts(self, sent: dict[str, Any]) -> None:
        _atomic_write_json(self.alerts_path, sent)

    def load_snapshot(self) -> list[PublishedPick]:
        """Picks published by the last commit run, empty before the first one."""
        payload = _read_json(self.snapshot_path)
        if payload is None:
            return []
        rows = payload.get("picks") if isinstance(payload, dict) else None
        if not isinstance(rows, list):
            raise InputError(f"commit snapshot must hold a picks list: {self.snapshot_path}")
        try:
            return [PublishedPick.from_dict(row) for row in rows if isinstance(row, dict)]
        except ValueError as exc:
            raise InputError(f"invalid commit snapshot {self.snapshot_path}: {exc}") from exc

    def save_snapshot(self, picks: list[PublishedPick], *, generated_at_utc: str) -> None:
        payload = {
            "generated_at_utc": generated_at_utc,
            "picks": [pick.to_dict() for pick in picks],
        }
        _atomic_write_json(self.snapshot_path, payload)
