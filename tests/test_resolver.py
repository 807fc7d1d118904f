"""Candidate discovery: priority order, kinds, placeholders."""

from pathlib import Path

import pytest

from nyx_launcher.core.models import CandidateKind
from nyx_launcher.core.resolver import CandidateResolver


def touch(path: Path) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text("")
    return path


def make_resolver(base: Path, **placeholders) -> CandidateResolver:
    return CandidateResolver({".js", ".mjs"}, placeholders=placeholders, base_dir=base)


def test_returns_none_when_nothing_exists(tmp_path):
    resolver = make_resolver(tmp_path)

    assert resolver.resolve(["./server/start.js", "../server/start.js", "nyx-server"]) is None


def test_empty_location_list(tmp_path):
    assert make_resolver(tmp_path).resolve([]) is None


@pytest.mark.parametrize(
    "existing, expected",
    [
        (["a.js", "b.js", "c"], "a.js"),
        (["b.js", "c"], "b.js"),
        (["c"], "c"),
        (["c", "b.js"], "b.js"),
    ],
)
def test_first_existing_location_wins(tmp_path, existing, expected):
    for name in existing:
        touch(tmp_path / name)

    candidate = make_resolver(tmp_path).resolve(["a.js", "b.js", "c"])

    assert candidate.path == (tmp_path / expected).resolve()


def test_search_stops_at_first_hit(tmp_path):
    touch(tmp_path / "first.js")
    seen = []

    class Spy(CandidateResolver):
        def expand(self, template):
            seen.append(template)
            return super().expand(template)

    Spy({".js"}, base_dir=tmp_path).resolve(["missing.js", "first.js", "never-checked.js"])

    assert seen == ["missing.js", "first.js"]


def test_script_suffix_means_script(tmp_path):
    touch(tmp_path / "server" / "start.MJS")

    candidate = make_resolver(tmp_path).resolve(["server/start.MJS"])

    assert candidate.kind == CandidateKind.script
    assert candidate.is_script


def test_other_files_are_executables(tmp_path):
    touch(tmp_path / "dist" / "nyx-server.exe")

    candidate = make_resolver(tmp_path).resolve(["dist/nyx-server.exe"])

    assert candidate.kind == CandidateKind.executable


def test_directories_are_skipped(tmp_path):
    (tmp_path / "server.js").mkdir()
    touch(tmp_path / "nyx-server")

    candidate = make_resolver(tmp_path).resolve(["server.js", "nyx-server"])

    assert candidate.path.name == "nyx-server"


def test_placeholders_are_expanded(tmp_path):
    resources = tmp_path / "bundle"
    touch(resources / "nyx-server.exe")
    resolver = make_resolver(tmp_path / "elsewhere", resource_dir=str(resources), exe=".exe")

    candidate = resolver.resolve(["{resource_dir}/nyx-server{exe}"])

    assert candidate.path == (resources / "nyx-server.exe").resolve()


def test_relative_templates_use_base_dir(tmp_path):
    resolver = make_resolver(tmp_path / "app")

    assert resolver.expand("../server/start.js") == tmp_path / "app" / ".." / "server" / "start.js"


def test_candidates_are_immutable(tmp_path):
    touch(tmp_path / "start.js")
    candidate = make_resolver(tmp_path).resolve(["start.js"])

    with pytest.raises(Exception):
        candidate.path = tmp_path / "other.js"


@pytest.mark.parametrize("template", ["{home}/server/start.js", "{0}/start.js", "server/start{.js"])
def test_malformed_templates_are_skipped(tmp_path, template):
    touch(tmp_path / "server" / "start.js")

    candidate = make_resolver(tmp_path).resolve([template, "server/start.js"])

    assert candidate.path == (tmp_path / "server" / "start.js").resolve()


def test_only_malformed_templates_find_nothing(tmp_path):
    assert make_resolver(tmp_path).resolve(["{home}/start.js"]) is None


def test_unreadable_location_is_skipped(tmp_path, monkeypatch):
    touch(tmp_path / "nyx-server")
    real_is_file = Path.is_file

    def is_file(self):
        if self.parent.name == "locked":
            raise PermissionError(13, "Permission denied", str(self))
        return real_is_file(self)

    monkeypatch.setattr(Path, "is_file", is_file)

    candidate = make_resolver(tmp_path).resolve(["locked/start.js", "nyx-server"])

    assert candidate.path.name == "nyx-server"


def test_describe_falls_back_to_raw_template(tmp_path):
    resolver = make_resolver(tmp_path)

    assert resolver.describe("{home}/x") == "{home}/x"
    assert resolver.describe("x") == str(tmp_path / "x")
