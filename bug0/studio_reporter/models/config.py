"""Reporter configuration read from the executor environment."""

import time
from collections.abc import Mapping
from typing import Literal

from pydantic import BaseModel, Field


def _parse_int(environ: Mapping[str, str], name: str) -> int | None:
    value = environ.get(name)
    if not value:
        return None
    try:
        return int(value)
    except ValueError as e:
        raise ValueError(f"Invalid integer in {name}: {value!r}") from e


class ReporterConfig(BaseModel):
    """Configuration for the run ingestion reporter."""

    store_url: str = Field(..., description="Document store connection string")
    project_id: str | None = Field(default=None, description="Studio project ID")
    execution_id: str = Field(..., description="External execution identifier")
    environment: Literal["production", "development"] = Field(
        default="development", description="Environment classification"
    )
    git_commit_sha: str | None = Field(default=None, description="Commit under test")
    git_branch: str = Field(default="main", description="Branch under test")
    report_url: str | None = Field(default=None, description="Link to the report")
    shard_index: int | None = Field(default=None, description="Shard index")
    shard_total: int | None = Field(default=None, description="Number of shards")
    ci: bool = Field(default=False, description="Whether running on CI")

    @property
    def ci_provider(self) -> str | None:
        """CI provider name recorded on the run."""
        return "github-actions" if self.ci else None

    @classmethod
    def from_env(cls, environ: Mapping[str, str]) -> "ReporterConfig":
        """Build configuration from environment variables.

        Raises:
            ValueError: If MONGO_URL is missing or a shard index is not an integer

        """
        store_url = environ.get("MONGO_URL")
        if not store_url:
            raise ValueError("Please define the MONGO_URL environment variable")

        return cls(
            store_url=store_url,
            project_id=environ.get("projectId") or None,
            execution_id=(
                environ.get("executionId") or f"exec-{int(time.time() * 1000)}"
            ),
            environment=(
                "production"
                if environ.get("NODE_ENV") == "production"
                else "development"
            ),
            git_commit_sha=environ.get("gitCommitSha") or None,
            git_branch=environ.get("gitBranch") or "main",
            report_url=environ.get("reportUrl") or None,
            shard_index=_parse_int(environ, "shardIndex"),
            shard_total=_parse_int(environ, "shardCount"),
            ci=bool(environ.get("CI")),
        )
