"""Test the command-line interface."""

import json
from pathlib import Path

import pytest

from tag_reaper.cli import _load_config, _parse_args, run
from tag_reaper.exceptions import RegistryServerError
from tag_reaper.storage.preloaded import PreloadedRegistryClient


@pytest.fixture(autouse=True)
def no_env_credentials(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.delenv("REGISTRY_USER", raising=False)
    monkeypatch.delenv("REGISTRY_PASSWORD", raising=False)


def _live_copy(contents_file: Path, tmp_path: Path) -> Path:
    # Live runs mutate only the in-memory registry, but keep the
    # fixture pristine anyway.
    copy = tmp_path / "contents.json"
    copy.write_text(contents_file.read_text())
    return copy


def test_dry_run(contents_file: Path, capsys: pytest.CaptureFixture) -> None:
    argv = [
        "-r",
        "https://registry.example.com",
        "-m",
        "2",
        "-t",
        "^dev-",
        "-i",
        "^team/",
        "-f",
        str(contents_file),
    ]
    assert run(argv) == 0
    out = capsys.readouterr().out
    assert "Found 2 tag(s) to delete" in out
    assert "would delete" in out


def test_live_run_with_failure(
    contents_file: Path, tmp_path: Path, capsys: pytest.CaptureFixture
) -> None:
    """The shared digest in team/shared makes a live run fail."""
    argv = [
        "-r",
        "https://registry.example.com",
        "-m",
        "2",
        "-t",
        "^dev-",
        "-f",
        str(_live_copy(contents_file, tmp_path)),
        "--delete",
    ]
    assert run(argv) == 1
    out = capsys.readouterr().out
    assert "Deleted 3 tag(s)" in out
    assert "Remember to run garbage collection" in out


def test_live_run_clean(contents_file: Path, tmp_path: Path) -> None:
    argv = [
        "-r",
        "https://registry.example.com",
        "-m",
        "2",
        "-t",
        "^dev-",
        "-i",
        "^vendor/",
        "-f",
        str(_live_copy(contents_file, tmp_path)),
        "-d",
    ]
    assert run(argv) == 0


def test_config_file_overrides(test_config: Path) -> None:
    args = _parse_args(
        ["-c", str(test_config), "-m", "5", "-t", "^rc-", "--semver"]
    )
    cfg = _load_config(args)
    assert cfg.max_per_tag == 5
    assert cfg.tags == ["^rc-"]
    assert cfg.images == ["^team/"]
    assert cfg.semver
    assert cfg.workers == 2
    assert not cfg.delete


def test_snake_case_file_overridden(tmp_path: Path) -> None:
    config = tmp_path / "config.yaml"
    config.write_text(
        json.dumps(
            {"registry_url": "https://registry.example.com", "max_per_tag": 2}
        )
    )
    cfg = _load_config(_parse_args(["-c", str(config), "-m", "7"]))
    assert cfg.max_per_tag == 7


def test_env_credentials(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("REGISTRY_USER", "fbooth")
    monkeypatch.setenv("REGISTRY_PASSWORD", "hunter2")
    args = _parse_args(["-r", "https://registry.example.com", "-m", "1"])
    cfg = _load_config(args)
    assert cfg.auth is not None
    assert cfg.auth.username == "fbooth"
    assert cfg.auth.password is not None
    assert cfg.auth.password.get_secret_value() == "hunter2"


def test_invalid_regex() -> None:
    argv = ["-r", "https://registry.example.com", "-m", "1", "-t", "dev-("]
    assert run(argv) == 1


def test_missing_max_per_tag() -> None:
    assert run(["-r", "https://registry.example.com", "-t", "^dev-"]) == 1


def test_dump(
    contents_file: Path, tmp_path: Path, contents: dict[str, dict[str, str]]
) -> None:
    outputfile = tmp_path / "dump.json"
    argv = [
        "-r",
        "https://registry.example.com",
        "-m",
        "1",
        "-f",
        str(contents_file),
        "--dump",
        str(outputfile),
    ]
    assert run(argv) == 0
    assert json.loads(outputfile.read_text())["data"] == contents


def test_env_password_without_user(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("REGISTRY_PASSWORD", "hunter2")
    argv = ["-r", "https://registry.example.com", "-m", "1", "-t", "^dev-"]
    assert run(argv) == 1


@pytest.mark.parametrize(
    "dump", ['{"metadata": {}}', '{"data": ["team/app"]}', "[]", "nope"]
)
def test_bad_input_file(tmp_path: Path, dump: str) -> None:
    inputfile = tmp_path / "dump.json"
    inputfile.write_text(dump)
    argv = [
        "-r",
        "https://registry.example.com",
        "-m",
        "1",
        "-t",
        "^dev-",
        "-f",
        str(inputfile),
    ]
    assert run(argv) == 1


def test_live_run_with_unlisted_repository(
    contents_file: Path,
    tmp_path: Path,
    monkeypatch: pytest.MonkeyPatch,
    capsys: pytest.CaptureFixture,
) -> None:
    """A repository that cannot be listed is reported but not fatal."""
    list_tags = PreloadedRegistryClient.list_tags

    def grumpy_list_tags(
        self: PreloadedRegistryClient, repository: str
    ) -> list[str]:
        if repository == "team/app":
            raise RegistryServerError("boom", status=502)
        return list_tags(self, repository)

    monkeypatch.setattr(PreloadedRegistryClient, "list_tags", grumpy_list_tags)
    argv = [
        "-r",
        "https://registry.example.com",
        "-m",
        "2",
        "-t",
        "^dev-",
        "-i",
        "^(team/app|vendor/)",
        "-f",
        str(_live_copy(contents_file, tmp_path)),
        "-d",
    ]
    assert run(argv) == 0
    out = capsys.readouterr().out
    assert "team/app: RegistryServerError: boom" in out
    assert "Deleted 1 tag(s)" in out
