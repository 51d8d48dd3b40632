"""
brew/outdated.py — `brew outdated --json` Report

Pydantic models for the report brew prints on `outdated --json` and the
decoder that turns the raw stdout into them. Order from brew's output is
kept as-is and nothing is deduplicated.

Example input:
    {"formulae": [{"name": "foo", "installed_versions": ["1.0"],
                   "current_version": "1.1", "pinned": false,
                   "pinned_version": null}],
     "casks": []}
"""

from __future__ import annotations

from typing import Iterator, Optional

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator, model_validator

from brew_maintainer.exceptions import OutdatedDecodeError


class Package(BaseModel):
    """One outdated formula or cask. Unknown fields from brew are ignored."""

    model_config = ConfigDict(extra="ignore", frozen=True)

    name: str = Field(min_length=1)
    installed_versions: list[str] = Field(default_factory=list)
    current_version: str
    pinned: bool = False
    pinned_version: Optional[str] = None

    @field_validator("installed_versions", mode="before")
    @classmethod
    def _coerce_versions(cls, v: object) -> object:
        # Casks occasionally report a single string instead of a list
        if isinstance(v, str):
            return [v]
        return [] if v is None else v

    @model_validator(mode="before")
    @classmethod
    def _drop_unpinned_version(cls, data: object) -> object:
        # brew reports pinned_version: null for unpinned packages; treat any
        # value there as absent unless the package is actually pinned
        if isinstance(data, dict) and not data.get("pinned"):
            data = {k: v for k, v in data.items() if k != "pinned_version"}
        return data

    @model_validator(mode="after")
    def _check_pin(self) -> "Package":
        if self.pinned and not self.pinned_version:
            raise ValueError(f"package '{self.name}' is pinned but has no pinned_version")
        return self

    def __str__(self) -> str:
        return (
            f"{self.name}(available:{self.current_version}): "
            f"|installed: {', '.join(self.installed_versions)}"
            f"|pinned: {str(self.pinned).lower()}"
            f"|pinned-version: {self.pinned_version or ''}|"
        )


class OutdatedPackages(BaseModel):
    """The (formulae, casks) pair. Iteration yields formulae first, then casks."""

    model_config = ConfigDict(extra="ignore", frozen=True)

    formulae: list[Package] = Field(default_factory=list)
    casks: list[Package] = Field(default_factory=list)

    def iter_packages(self) -> Iterator[Package]:
        yield from self.formulae
        yield from self.casks

    def __len__(self) -> int:
        return len(self.formulae) + len(self.casks)

    def __str__(self) -> str:
        if not len(self):
            return "(none)"
        return "\n".join(str(p) for p in self.iter_packages())


def parse_outdated(raw: str) -> OutdatedPackages:
    """
    Decode `brew outdated --json` stdout.

    Raises OutdatedDecodeError on anything that is not a valid report:
    invalid JSON, wrong top-level shape, or an invalid package record.
    """
    try:
        return OutdatedPackages.model_validate_json(raw)
    except ValidationError as exc:
        problems = "; ".join(
            f"{'.'.join(str(p) for p in e['loc']) or '<root>'}: {e['msg']}"
            for e in exc.errors()
        )
        raise OutdatedDecodeError(problems) from exc
