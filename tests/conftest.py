"""Test fixtures for registry tag reaper."""

import json
from collections.abc import Iterator
from pathlib import Path
from tempfile import TemporaryDirectory

import pytest
import yaml
from pydantic import HttpUrl

from tag_reaper.config import ReaperConfig
from tag_reaper.storage.preloaded import PreloadedRegistryClient


@pytest.fixture
def contents_file() -> Path:
    """JSON dump of a small registry."""
    return Path(__file__).parent / "support" / "registry.contents.json"


@pytest.fixture
def contents(contents_file: Path) -> dict[str, dict[str, str]]:
    """Registry contents: repository to tag to digest."""
    return json.loads(contents_file.read_text())["data"]


@pytest.fixture
def preloaded_client(contents_file: Path) -> PreloadedRegistryClient:
    """In-memory registry client loaded from the dump."""
    return PreloadedRegistryClient.from_file(contents_file)


@pytest.fixture
def reaper_cfg(contents_file: Path) -> ReaperConfig:
    """Config keeping two ``dev-`` tags in each ``team/`` repository."""
    return ReaperConfig(
        registry_url=HttpUrl("https://registry.example.com/"),
        max_per_tag=2,
        tags=["^dev-"],
        images=["^team/"],
        workers=2,
        debug=True,
        input_file=contents_file,
    )


@pytest.fixture
def test_config() -> Iterator[Path]:
    """YAML configuration file pointing at the dump."""
    with TemporaryDirectory() as td:
        new_config = Path(td) / "config.yaml"
        support_dir = Path(__file__).parent / "support"
        config = yaml.safe_load((support_dir / "config.yaml").read_text())
        config["inputFile"] = str(support_dir / "registry.contents.json")
        new_config.write_text(yaml.dump(config))

        yield new_config
