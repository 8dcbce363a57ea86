"""Pydantic models for projects and the run configuration.

WHY: Every stage of the pipeline reads project settings (test directory,
repeat count, grep patterns, dependencies) and run-wide settings (shard,
forbid-only, loader strategy). Pydantic validates the config file once at
the boundary, so the pipeline can trust the values it reads.

HOW: ProjectConfig, ShardConfig and RunConfig are frozen models, one
immutable snapshot per run. RunConfig.from_file() reads a JSON config,
resolves relative directories against the config file's folder and wraps
validation failures in ConfigError.

RULES:
- Models are frozen; a run never changes its configuration
- Project names are unique; dependency names must refer to known projects
- Pattern fields accept a single string or a list and are stored as tuples
- Python 3.9 compatible (Optional, not X | Y, in model fields)
- projects keeps configuration order; the pipeline relies on it
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Dict, List, Literal, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator, model_validator

from suiteloader.config import (
    DEFAULT_GREP,
    DEFAULT_LOADER,
    DEFAULT_TEST_IGNORE,
    DEFAULT_TEST_MATCH,
    DEFAULT_WORKERS,
)
from suiteloader.errors import ConfigError


def _as_tuple(value: Any) -> Any:
    if isinstance(value, str):
        return (value,)
    if isinstance(value, list):
        return tuple(value)
    return value


class ShardConfig(BaseModel):
    """One segment of a sharded run (1-based, like ``--shard 2/3``)."""

    model_config = ConfigDict(frozen=True)

    current: int = Field(ge=1, description="1-based index of this shard.")
    total: int = Field(ge=1, description="Total number of shards.")

    @model_validator(mode="after")
    def _current_within_total(self) -> "ShardConfig":
        if self.current > self.total:
            raise ValueError(
                "shard current ({}) must not exceed total ({})".format(self.current, self.total)
            )
        return self

    @classmethod
    def parse(cls, value: str) -> "ShardConfig":
        """Parse ``"current/total"`` into a ShardConfig.

        Raises:
            ConfigError: If the value is not two positive integers
                separated by a slash, or current exceeds total.
        """
        parts = value.split("/")
        if len(parts) != 2 or not all(p.strip().isdigit() for p in parts):
            raise ConfigError(
                "Invalid shard '{}': expected 'current/total', e.g. '1/3'.".format(value)
            )
        try:
            return cls(current=int(parts[0]), total=int(parts[1]))
        except ValidationError as e:
            raise ConfigError("Invalid shard '{}': {}".format(value, e)) from e


class ProjectConfig(BaseModel):
    """Configuration of a single project.

    WHY: A project scopes a set of test files and the parameters they run
    with. Several projects may point at the same directory with different
    grep patterns or repeat counts.

    RULES:
    - name: unique within the run, also the project suite's title
    - test_dir: directory scanned for test files (absolute after from_file)
    - repeat_each: number of clones per file suite, at least 1
    - grep / grep_invert: regular expressions searched in the test's
      space-joined title path; grep defaults to ".*"
    - dependencies: names of projects that must fully load before this one
    """

    model_config = ConfigDict(frozen=True)

    name: str = Field(description="Unique project name.")
    test_dir: str = Field(default=".", description="Directory containing the project's tests.")
    test_match: Tuple[str, ...] = Field(default=DEFAULT_TEST_MATCH)
    test_ignore: Tuple[str, ...] = Field(default=DEFAULT_TEST_IGNORE)
    repeat_each: int = Field(default=1, ge=1)
    fully_parallel: bool = False
    grep: Tuple[str, ...] = Field(default=DEFAULT_GREP)
    grep_invert: Tuple[str, ...] = Field(default=())
    dependencies: Tuple[str, ...] = Field(default=())
    retries: int = Field(default=0, ge=0)
    timeout: Optional[float] = Field(default=None, gt=0)

    @field_validator("test_match", "test_ignore", "grep", "grep_invert", "dependencies", mode="before")
    @classmethod
    def _coerce_sequence(cls, value: Any) -> Any:
        return _as_tuple(value)


class RunConfig(BaseModel):
    """Run-wide configuration: the project list plus run options.

    RULES:
    - root_dir: base for relative paths in reports and hook resolution
    - shard: None means no sharding
    - loader: explicit loader strategy, no environment toggles downstream
    - workers: upper bound on out-of-process loader workers
    """

    model_config = ConfigDict(frozen=True)

    root_dir: str
    projects: Tuple[ProjectConfig, ...] = Field(default=())
    shard: Optional[ShardConfig] = None
    forbid_only: bool = False
    loader: Literal["in-process", "out-of-process"] = DEFAULT_LOADER  # type: ignore[assignment]
    workers: int = Field(default=DEFAULT_WORKERS, ge=1)
    global_setup: Optional[str] = None
    global_teardown: Optional[str] = None
    reporter: Optional[str] = None

    @field_validator("root_dir")
    @classmethod
    def _absolute_root(cls, value: str) -> str:
        return str(Path(value).resolve())

    @model_validator(mode="after")
    def _check_projects(self) -> "RunConfig":
        seen = set()
        for project in self.projects:
            if project.name in seen:
                raise ValueError("duplicate project name '{}'".format(project.name))
            seen.add(project.name)
        for project in self.projects:
            for dep in project.dependencies:
                if dep not in seen:
                    raise ValueError(
                        "project '{}' depends on unknown project '{}'".format(project.name, dep)
                    )
        return self

    def get_project(self, name: str) -> ProjectConfig:
        for project in self.projects:
            if project.name == name:
                return project
        raise KeyError(name)

    def dependencies_of(self, project: ProjectConfig) -> List[ProjectConfig]:
        """Direct dependencies of a project, in declaration order."""
        return [self.get_project(name) for name in project.dependencies]

    @classmethod
    def from_file(cls, path: str | Path) -> "RunConfig":
        """Load and validate a JSON config file.

        WHY: The CLI points at a suiteloader.json next to the tests. Paths
        inside it are written relative to that file, not to wherever the
        command happens to run.

        HOW: Read the JSON, default root_dir to the file's directory,
        resolve relative root_dir and test_dir values against it, then
        validate with pydantic.

        RULES:
        - Missing file, invalid JSON, non-string directories and validation
          failures all raise ConfigError naming the file
        - test_dir defaults to root_dir

        Raises:
            ConfigError: If the file cannot be read or does not validate.
        """
        config_path = Path(path).resolve()
        try:
            raw = json.loads(config_path.read_text(encoding="utf-8"))
        except FileNotFoundError as e:
            raise ConfigError("Config file not found: {}".format(config_path)) from e
        except (OSError, json.JSONDecodeError) as e:
            raise ConfigError("Cannot read config file {}: {}".format(config_path, e)) from e

        if not isinstance(raw, dict):
            raise ConfigError("Config file {} must contain a JSON object.".format(config_path))

        base_dir = config_path.parent
        try:
            root_dir = (base_dir / raw.get("root_dir", ".")).resolve()
            raw["root_dir"] = str(root_dir)

            projects: List[Dict[str, Any]] = []
            for project in raw.get("projects", []):
                if isinstance(project, dict):
                    project = dict(project)
                    project["test_dir"] = str((root_dir / project.get("test_dir", ".")).resolve())
                projects.append(project)
            raw["projects"] = projects
        except TypeError as e:
            # Non-string directories or a non-list "projects".
            raise ConfigError("Invalid config file {}: {}".format(config_path, e)) from e

        try:
            return cls.model_validate(raw)
        except ValidationError as e:
            raise ConfigError("Invalid config file {}:\n{}".format(config_path, e)) from e
