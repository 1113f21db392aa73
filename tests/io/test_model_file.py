import json
import math
from pathlib import Path

import pytest
import yaml

from hmmpath.core.identity import NamedObservation, NamedState
from hmmpath.decode.decoder import eval_path
from hmmpath.io.model_file import ModelFileError, load_model, read_mapping, save_model

WEATHER = {
    "log_space": False,
    "states": [{"id": 1, "name": "Healthy"}, {"id": 2, "name": "Fever"}],
    "observations": [{"id": 1, "name": "normal"}, {"id": 2, "name": "cold"}, {"id": 3, "name": "dizzy"}],
    "start": {"Healthy": 0.6, "Fever": 0.4},
    "emission": {
        "Healthy": {"normal": 0.5, "cold": 0.4, "dizzy": 0.1},
        "Fever": {"normal": 0.1, "cold": 0.3, "dizzy": 0.6},
    },
    "transition": {
        "Healthy": {"Healthy": 0.7, "Fever": 0.3},
        "Fever": {"Healthy": 0.4, "Fever": 0.6},
    },
}


@pytest.mark.parametrize("suffix", [".json", ".yaml", ".yml"])
def test_load_model_decodes_weather_example(tmp_path: Path, suffix: str) -> None:
    path = tmp_path / f"weather{suffix}"
    text = json.dumps(WEATHER) if suffix == ".json" else yaml.safe_dump(WEATHER)
    path.write_text(text)

    loaded = load_model(path)
    assert loaded.path == path
    assert loaded.log_space is False
    assert loaded.model.states == (NamedState(1, "Healthy"), NamedState(2, "Fever"))

    result = eval_path(loaded.model)
    assert [s.name for s in result.path] == ["Healthy", "Healthy", "Fever"]
    assert result.probability == pytest.approx(0.01512)


def test_shipped_sample_model_loads() -> None:
    sample = Path(__file__).resolve().parents[2] / "sample_models" / "weather.yaml"
    loaded = load_model(sample)
    assert loaded.model.num_observations() == 3


def test_log_space_flag_and_infinity_strings(tmp_path: Path) -> None:
    data = {
        "log_space": True,
        "states": [{"id": 1, "name": "A"}, {"id": 2, "name": "B"}],
        "observations": [{"id": 1, "name": "x"}],
        "start": {"A": "-inf", "B": -2.0},
        "emission": {"A": {"x": 0.0}, "B": {"x": -0.5}},
    }
    path = tmp_path / "m.yaml"
    path.write_text(yaml.safe_dump(data))

    loaded = load_model(path)
    assert loaded.log_space is True
    assert loaded.model.start_probability(NamedState(1, "A")) == -math.inf


def test_save_model_round_trips(tmp_path: Path) -> None:
    src = tmp_path / "weather.json"
    src.write_text(json.dumps(WEATHER))
    model = load_model(src).model

    for name in ("copy.yaml", "copy.json"):
        out = tmp_path / "nested" / name
        save_model(model, out, log_space=False)
        again = load_model(out).model
        assert again.states == model.states
        assert again.observations == model.observations
        assert again.transition_table() == model.transition_table()
        assert again.emission_probability(NamedState(2, "Fever"), NamedObservation(3, "dizzy")) == 0.6


@pytest.mark.parametrize(
    "content, message",
    [
        ("[1, 2]", "top level must be a mapping"),
        ("{\"states\": []}", "missing required key"),
        ("{\"states\": {}, \"observations\": []}", "'states' must be a list"),
        ("{\"states\": [{\"id\": 1}], \"observations\": []}", "states\\[0\\]"),
        ("{\"states\": [], \"observations\": [], \"start\": [1]}", "'start' must be a mapping"),
        ("{\"states\": [], \"observations\": [], \"emission\": {\"A\": 1}}", "emission.A must be a mapping"),
        ("{\"states\": [], \"observations\": [], \"start\": {\"ghost\": 1}}", "Unknown state 'ghost'"),
        ("{not json", "cannot parse"),
    ],
)
def test_malformed_files_raise_model_file_error(tmp_path: Path, content: str, message: str) -> None:
    path = tmp_path / "bad.json"
    path.write_text(content)
    with pytest.raises(ModelFileError, match=message):
        load_model(path)


def test_unsupported_suffix_and_missing_file(tmp_path: Path) -> None:
    with pytest.raises(ModelFileError, match="unsupported"):
        read_mapping(tmp_path / "model.txt")
    with pytest.raises(ModelFileError, match="cannot read"):
        read_mapping(tmp_path / "absent.yaml")


@pytest.mark.parametrize("flag", ["false", "true", 0, None])
def test_log_space_must_be_a_real_boolean(tmp_path: Path, flag: object) -> None:
    path = tmp_path / "weather.json"
    path.write_text(json.dumps(dict(WEATHER, log_space=flag)))
    with pytest.raises(ModelFileError, match="'log_space' must be true or false"):
        load_model(path)


def test_missing_log_space_defaults_to_linear(tmp_path: Path) -> None:
    data = {k: v for k, v in WEATHER.items() if k != "log_space"}
    path = tmp_path / "weather.yaml"
    path.write_text(yaml.safe_dump(data))
    assert load_model(path).log_space is False
