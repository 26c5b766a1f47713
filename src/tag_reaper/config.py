"""Configuration for the tag reaper."""

from __future__ import annotations

from pathlib import Path
from typing import Annotated, Any, Self

import yaml
from pydantic import (
    BaseModel,
    BeforeValidator,
    Field,
    HttpUrl,
    SecretStr,
    field_validator,
    model_validator,
)
from safir.pydantic import CamelCaseModel

from .models.pattern import Pattern


def _empty_str_is_none(inp: Any) -> Any:
    if isinstance(inp, str) and inp == "":
        return None
    return inp


class RegistryAuth(BaseModel):
    """Credentials for a container registry.

    They are used for HTTP Basic authentication, and as the credentials
    presented to the token service when the registry asks for a bearer
    token.
    """

    username: Annotated[
        str | None,
        BeforeValidator(_empty_str_is_none),
        Field(
            title="Username",
            description="Username (if any) for authentication.",
            examples=["fbooth"],
        ),
    ] = None

    password: Annotated[
        SecretStr | None,
        BeforeValidator(_empty_str_is_none),
        Field(
            title="Password",
            description="Secret (password or token) for authentication.",
            examples=["hunter2"],
        ),
    ] = None

    @model_validator(mode="after")
    def _validate_password_has_username(self) -> Self:
        if self.password is not None and self.username is None:
            raise ValueError("Password given without a username")
        return self


class ReaperConfig(CamelCaseModel):
    """Configuration for one reaping pass over a registry."""

    registry_url: Annotated[
        HttpUrl,
        Field(
            title="Registry URL",
            description="Base URL of the container registry",
            examples=[HttpUrl("https://registry.example.com/")],
        ),
    ]

    max_per_tag: Annotated[
        int,
        Field(
            title="Maximum per tag pattern",
            description=(
                "Number of tags to keep for each tag pattern within each "
                "repository."
            ),
            gt=0,
            examples=[5],
        ),
    ]

    tags: Annotated[
        list[str],
        Field(
            title="Tag patterns",
            description=(
                "Regular expressions selecting tags.  Each pattern is a "
                "separate retention group.  If none are given, no tags are "
                "touched."
            ),
            examples=[["^dev-", r"^v\d+"]],
        ),
    ] = []

    images: Annotated[
        list[str],
        Field(
            title="Image patterns",
            description=(
                "Regular expressions selecting repositories.  A repository "
                "is considered if any pattern matches.  If none are given, "
                "all repositories are considered."
            ),
            examples=[["^team/"]],
        ),
    ] = []

    semver: Annotated[
        bool,
        Field(
            title="Semantic version ordering",
            description=(
                "Order tags by semantic version rather than by name.  Tags "
                "that are not semantic versions are ignored."
            ),
        ),
    ] = False

    delete: Annotated[
        bool,
        Field(
            title="Delete",
            description=(
                "Actually delete tags.  Otherwise only report what would be "
                "deleted."
            ),
        ),
    ] = False

    auth: Annotated[
        RegistryAuth | None,
        Field(
            title="Registry Auth",
            description="Authentication details for the registry.",
        ),
    ] = None

    workers: Annotated[
        int,
        Field(
            title="Workers",
            description="Number of repositories processed concurrently.",
            gt=0,
        ),
    ] = 4

    timeout: Annotated[
        float,
        Field(
            title="Timeout",
            description="Timeout in seconds for each registry request.",
            gt=0,
        ),
    ] = 30.0

    page_size: Annotated[
        int,
        Field(
            title="Page size",
            description="Entries requested per page of a paginated listing.",
            gt=0,
        ),
    ] = 100

    debug: Annotated[
        bool,
        Field(
            title="Debug",
            description="Much more verbose logging.",
        ),
    ] = False

    input_file: Annotated[
        Path | None,
        Field(
            title="Input file",
            description=(
                "If supplied, use repository data from this file, rather than "
                "from the actual registry."
            ),
        ),
    ] = None

    @field_validator("tags", "images")
    @classmethod
    def _validate_patterns(cls, v: list[str]) -> list[str]:
        for source in v:
            Pattern.from_str(source)
        return v

    @property
    def dry_run(self) -> bool:
        return not self.delete

    @property
    def tag_patterns(self) -> list[Pattern]:
        return [Pattern.from_str(x) for x in self.tags]

    @property
    def image_patterns(self) -> list[Pattern]:
        return [Pattern.from_str(x) for x in self.images]

    @classmethod
    def from_file(cls, path: Path) -> Self:
        return cls.model_validate(yaml.safe_load(path.read_text()))
