"""
Replay files.

A replay is {"seed": ..., "actions": [...]} as produced by
GameEngine.get_replay(); it is the only persisted form of a run.

Usage:
    save_replay(engine.get_replay(), "run.json")
    replay = load_replay("run.json")
    report = verify_replay(replay)
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Optional, Union

from .errors import ReplayError
from .game import GameEngine, GameReplay

logger = logging.getLogger(__name__)

PathLike = Union[str, Path]


def save_replay(replay: GameReplay, path: PathLike) -> Path:
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, "w") as f:
        json.dump(replay.to_dict(), f, indent=2)
    logger.info("Saved replay (%d actions) to %s", len(replay.actions), path)
    return path


def load_replay(path: PathLike) -> GameReplay:
    with open(path) as f:
        data = json.load(f)
    if not isinstance(data, dict) or "seed" not in data:
        raise ReplayError(f"{path} is not a replay file")
    return GameReplay.from_dict(data)


def view_fingerprint(view: Dict[str, Any]) -> str:
    """Canonical JSON of a view, used to compare two runs byte for byte."""
    return json.dumps(view, sort_keys=True)


@dataclass
class ReplayReport:
    ok: bool
    actions: int
    phase: Optional[str] = None
    stage: Optional[int] = None
    error: Optional[str] = None


def verify_replay(replay: GameReplay) -> ReplayReport:
    """Replay twice from scratch and check both runs end in the same view."""
    try:
        first = GameEngine.from_replay(replay)
        second = GameEngine.from_replay(replay)
    except ReplayError as exc:
        logger.warning("Replay rejected: %s", exc)
        return ReplayReport(ok=False, actions=len(replay.actions), error=str(exc))

    if view_fingerprint(first.get_view()) != view_fingerprint(second.get_view()):
        return ReplayReport(ok=False, actions=len(replay.actions), phase=first.phase.value,
                            stage=first.stage, error="Replays diverged")
    return ReplayReport(ok=True, actions=len(replay.actions),
                        phase=first.phase.value, stage=first.stage)
