"""Settings persistence and the effective supervision policy."""

import json

import pytest
from pydantic import ValidationError

from nyx_launcher.core import config
from nyx_launcher.core.models import SupervisorPolicy


@pytest.fixture(autouse=True)
def isolated_home(tmp_path, monkeypatch):
    config._reset_for_tests(tmp_path)
    monkeypatch.delenv("NYX_HEALTH_URL", raising=False)
    monkeypatch.delenv("NYX_SERVER_DIR", raising=False)
    yield tmp_path


def test_defaults_without_settings_file():
    cfg = config.read_config()

    assert cfg["supervisor"] == {}
    assert cfg["window"]["width"] == 1024


def test_save_and_read_roundtrip():
    cfg = config.read_config()
    cfg["supervisor"] = {"max_attempts": 10}
    config.save_config(cfg)

    assert config.read_config()["supervisor"] == {"max_attempts": 10}
    assert not config._CONFIG_PATH.with_suffix(".tmp").exists()


def test_corrupt_settings_are_backed_up():
    config._CONFIG_PATH.write_text("{not json", encoding="utf-8")

    cfg = config.read_config()

    assert cfg["supervisor"] == {}
    assert config._CONFIG_PATH.with_suffix(".bak").read_text(encoding="utf-8") == "{not json"


def test_policy_defaults():
    policy = config.supervisor_policy()

    assert policy.health_url == "http://localhost:3000/health"
    assert policy.probe_timeout == 5.0
    assert policy.max_attempts == 30
    assert policy.interval == 1.0
    assert policy.readiness_budget == 30
    assert policy.external_locations[0] == "./server/start.js"
    assert policy.interpreters[".js"] == "node"


def test_policy_reads_settings_and_env(monkeypatch):
    config._CONFIG_PATH.write_text(
        json.dumps({"supervisor": {"max_attempts": 5, "health_url": "http://a/health"}}),
        encoding="utf-8",
    )
    monkeypatch.setenv("NYX_HEALTH_URL", "http://b:4000/health")

    policy = config.supervisor_policy()

    assert policy.max_attempts == 5
    assert policy.health_url == "http://b:4000/health"


def test_autostart_flag(monkeypatch):
    monkeypatch.setenv("NYX_AUTOSTART", "0")
    assert not config.autostart_enabled()
    monkeypatch.setenv("NYX_AUTOSTART", "1")
    assert config.autostart_enabled()


def test_readiness_probe_must_be_shorter_than_interval():
    with pytest.raises(ValidationError):
        SupervisorPolicy(interval=0.5, readiness_probe_timeout=0.5)


def test_interpreter_suffixes_are_normalised():
    policy = SupervisorPolicy(interpreters={"PY": "python3", ".Js": "node"})

    assert policy.interpreters == {".py": "python3", ".js": "node"}


@pytest.mark.parametrize(
    "field, value",
    [
        ("external_locations", ["./server/start.js", "{home}/start.js"]),
        ("external_locations", ["{0}/start.js"]),
        ("embedded_location", "{resource_dir}/nyx-server{exe"),
        ("server_dir", "{user}/server"),
    ],
)
def test_location_templates_only_use_known_placeholders(field, value):
    with pytest.raises(ValidationError):
        SupervisorPolicy(**{field: value})


def test_known_placeholders_are_accepted():
    policy = SupervisorPolicy(external_locations=["{resource_dir}/start.js", "nyx-server{exe}"])

    assert policy.external_locations == ["{resource_dir}/start.js", "nyx-server{exe}"]
