"""JSON save file with two keys: the game blob and the first-run flag."""
from __future__ import annotations

import json
import logging
import os
from typing import Any, Dict, Optional

from .snapshot import GameSnapshot, SnapshotError

logger = logging.getLogger(__name__)

GAME_KEY = "game_state"
WELCOME_KEY = "seen_welcome"


class SaveStore:
    def __init__(self, path: str = "savegame.json") -> None:
        self.path = path

    def _read(self) -> Dict[str, Any]:
        try:
            with open(self.path, "r", encoding="utf-8") as f:
                data = json.load(f)
        except FileNotFoundError:
            return {}
        except json.JSONDecodeError as exc:
            logger.warning("save file %s is corrupt, starting over: %s", self.path, exc)
            return {}
        return data if isinstance(data, dict) else {}

    def _write(self, data: Dict[str, Any]) -> None:
        tmp = f"{self.path}.tmp"
        with open(tmp, "w", encoding="utf-8") as f:
            json.dump(data, f, indent=2)
        os.replace(tmp, self.path)

    def save_game(self, snap: GameSnapshot) -> None:
        data = self._read()
        data[GAME_KEY] = snap.to_dict()
        self._write(data)

    def load_game(self) -> Optional[GameSnapshot]:
        """Saved game, or None when there is none or it cannot be read."""
        raw = self._read().get(GAME_KEY)
        if raw is None:
            return None
        try:
            return GameSnapshot.from_dict(raw)
        except SnapshotError as exc:
            logger.warning("ignoring unreadable save in %s: %s", self.path, exc)
            return None

    def delete_game(self) -> None:
        data = self._read()
        if data.pop(GAME_KEY, None) is not None:
            self._write(data)

    def seen_welcome(self) -> bool:
        return bool(self._read().get(WELCOME_KEY, False))

    def mark_welcome_seen(self) -> None:
        data = self._read()
        data[WELCOME_KEY] = True
        self._write(data)
