from __future__ import annotations

import os
from dataclasses import dataclass


@dataclass(frozen=True)
class GitHubConfig:
    github_token: str
    api_url: str
    max_tree_files: int
    fork_poll_attempts: int
    fork_poll_interval_seconds: float
    http_timeout_seconds: float

    @classmethod
    def from_env(cls) -> GitHubConfig:
        return cls(
            github_token=os.environ.get("GITHUB_ACCESS_TOKEN", "")
            or os.environ.get("GITHUB_TOKEN", ""),
            api_url=os.environ.get("GITHUB_API_URL", "https://api.github.com"),
            max_tree_files=int(os.environ.get("GITHUB_MAX_TREE_FILES", "600")),
            fork_poll_attempts=int(os.environ.get("GITHUB_FORK_POLL_ATTEMPTS", "5")),
            fork_poll_interval_seconds=float(
                os.environ.get("GITHUB_FORK_POLL_INTERVAL", "1.0")
            ),
            http_timeout_seconds=float(os.environ.get("GITHUB_HTTP_TIMEOUT", "30")),
        )
