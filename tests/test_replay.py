"""
Replay File Tests
"""

import json

import pytest

from packages.geniejack.errors import ReplayError
from packages.geniejack.game import GameEngine, GamePhase, GameReplay, _auto_action
from packages.geniejack.replay import load_replay, save_replay, verify_replay, view_fingerprint


def auto_play(seed, steps=60):
    engine = GameEngine(seed)
    for _ in range(steps):
        if engine.is_over or engine.phase is GamePhase.GENIE:
            break
        engine.perform_action(_auto_action(engine))
    return engine


class TestReplayFiles:

    def test_save_and_load(self, tmp_path):
        engine = auto_play("file-run")
        path = save_replay(engine.get_replay(), tmp_path / "runs" / "run.json")
        assert path.exists()
        assert json.loads(path.read_text())["seed"] == "file-run"

        loaded = load_replay(path)
        assert loaded.seed == "file-run"
        assert loaded.actions == engine.get_replay().actions
        clone = GameEngine.from_replay(loaded)
        assert view_fingerprint(clone.get_view()) == view_fingerprint(engine.get_view())

    def test_load_rejects_other_json(self, tmp_path):
        path = tmp_path / "list.json"
        path.write_text("[1, 2, 3]")
        with pytest.raises(ReplayError):
            load_replay(path)

    def test_from_dict_defaults(self):
        replay = GameReplay.from_dict({"seed": 5})
        assert replay.actions == []
        assert replay.to_dict() == {"seed": 5, "actions": []}


class TestVerifyReplay:

    def test_valid(self):
        engine = auto_play("verify-me")
        report = verify_replay(engine.get_replay())
        assert report.ok
        assert report.actions == len(engine.action_log)
        assert report.phase == engine.phase.value
        assert report.stage == engine.stage

    def test_rejected_action(self):
        report = verify_replay(GameReplay(seed="bad", actions=[{"type": "stand"}]))
        assert not report.ok
        assert "rejected" in report.error

    def test_fingerprint_ignores_key_order(self):
        assert view_fingerprint({"a": 1, "b": 2}) == view_fingerprint({"b": 2, "a": 1})
