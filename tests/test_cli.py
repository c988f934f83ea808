import yaml

import main
from conftest import landmark_frame


def write_recording(path):
    frame = landmark_frame({11: (0.5, 0.5, 0.0), 13: (0.5, 1.0, 0.0)})
    with open(path, "w") as f:
        yaml.safe_dump({"frames": [frame, None, frame]}, f)
    return path


def test_parse_args_defaults():
    args = main.parse_args([])
    assert args.config == "config.yaml"
    assert args.replay is None
    assert not args.debug


def test_replay_run(tmp_path, config, monkeypatch):
    monkeypatch.chdir(tmp_path)
    recording = write_recording(tmp_path / "rec.yaml")

    code = main.main(["--config", config.path, "--replay", str(recording), "--strategy", "pole", "--max-frames", "3"])

    assert code == 0
    assert config.get("tracking.strategy") == "pole"


def test_missing_config_exits_with_error(tmp_path, monkeypatch, capsys):
    monkeypatch.chdir(tmp_path)
    assert main.main(["--config", str(tmp_path / "nope.yaml")]) == 1
    assert "Error" in capsys.readouterr().out


def test_unreadable_replay_exits_with_error(tmp_path, config, monkeypatch):
    monkeypatch.chdir(tmp_path)
    assert main.main(["--config", config.path, "--replay", str(tmp_path / "none.yaml")]) == 1


def test_invalid_strategy_in_config_exits_with_error(tmp_path, config, monkeypatch):
    monkeypatch.chdir(tmp_path)
    recording = write_recording(tmp_path / "rec.yaml")
    with open(config.path) as f:
        data = yaml.safe_load(f)
    data["tracking"]["strategy"] = "sideways"
    with open(config.path, "w") as f:
        yaml.safe_dump(data, f)

    assert main.main(["--config", config.path, "--replay", str(recording)]) == 1
