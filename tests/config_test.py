"""Test configuration."""

from pathlib import Path

import pytest
from pydantic import HttpUrl, ValidationError

from tag_reaper.config import RegistryAuth, ReaperConfig
from tag_reaper.services.reaper import Reaper


def test_config_from_file(test_config: Path) -> None:
    """Test loading a config from a YAML file and running it."""
    cfg = ReaperConfig.from_file(test_config)
    assert cfg.max_per_tag == 2
    assert cfg.tags == ["^dev-"]
    assert cfg.images == ["^team/"]
    assert cfg.dry_run
    assert cfg.input_file is not None
    report = Reaper(cfg).reap()
    assert report.render()


def test_defaults() -> None:
    cfg = ReaperConfig.model_validate(
        {"registryUrl": "https://registry.example.com", "maxPerTag": 3}
    )
    assert cfg.tags == []
    assert cfg.images == []
    assert not cfg.semver
    assert not cfg.delete
    assert cfg.dry_run
    assert cfg.workers == 4
    assert cfg.auth is None


def test_patterns() -> None:
    cfg = ReaperConfig(
        registry_url=HttpUrl("https://registry.example.com"),
        max_per_tag=1,
        tags=["^dev-", "^v"],
        images=["^team/"],
    )
    assert [p.source for p in cfg.tag_patterns] == ["^dev-", "^v"]
    assert cfg.image_patterns[0].matches("team/app")


@pytest.mark.parametrize(
    "bad",
    [
        {"maxPerTag": 1, "tags": ["dev-("]},
        {"maxPerTag": 1, "images": ["[team"]},
        {"maxPerTag": 0},
        {"maxPerTag": -2},
        {},
    ],
)
def test_invalid(bad: dict) -> None:
    with pytest.raises(ValidationError):
        ReaperConfig.model_validate(
            {"registryUrl": "https://registry.example.com", **bad}
        )


def test_invalid_url() -> None:
    with pytest.raises(ValidationError):
        ReaperConfig.model_validate({"registryUrl": "nope", "maxPerTag": 1})


def test_auth() -> None:
    cfg = ReaperConfig.model_validate(
        {
            "registryUrl": "https://registry.example.com",
            "maxPerTag": 1,
            "auth": {"username": "fbooth", "password": "hunter2"},
        }
    )
    assert cfg.auth is not None
    assert cfg.auth.username == "fbooth"
    assert cfg.auth.password is not None
    assert cfg.auth.password.get_secret_value() == "hunter2"
    assert "hunter2" not in repr(cfg)


def test_empty_credentials_are_none() -> None:
    auth = RegistryAuth(username="", password="")
    assert auth.username is None
    assert auth.password is None


def test_password_without_username() -> None:
    with pytest.raises(ValidationError, match="without a username"):
        ReaperConfig.model_validate(
            {
                "registryUrl": "https://registry.example.com",
                "maxPerTag": 1,
                "auth": {"password": "hunter2"},
            }
        )
