"""
GitHub REST API client for the mentor backend.

Covers the handful of calls the UI needs:
- searching open, unassigned "good first issue" tickets
- listing a repository's files (flat, for the AI file finder) and a
  single directory (for the file tree)
- reading a file's content
- submitting an edited file as a pull request, forking first when the
  token has no push access to the upstream repository
"""

from __future__ import annotations

import asyncio
import base64
import logging
import re
import time
from collections.abc import Awaitable, Callable
from typing import Any

import httpx
from pydantic import BaseModel

from services.github_service.config import GitHubConfig
from shared.observability.metrics import pr_creation_latency

logger = logging.getLogger(__name__)

DEFAULT_API_URL = "https://api.github.com"

_EXCLUDED_FRAGMENTS = ("node_modules", ".git/", "package-lock.json", "yarn.lock")
_BINARY_RE = re.compile(r"\.(png|jpg|jpeg|gif|svg|ico|pdf)$", re.IGNORECASE)


class GitHubError(Exception):
    def __init__(self, status: int | None, message: str) -> None:
        self.status = status
        self.message = message
        super().__init__(f"GitHub API error ({status}): {message}")


class IssueSummary(BaseModel):
    id: int
    number: int
    title: str
    repo: str
    url: str
    body: str | None = None
    comments: int = 0
    language: str


class TreeItem(BaseModel):
    name: str
    path: str
    type: str


def is_relevant_path(path: str) -> bool:
    """Drop vendored, lock and binary files from the tree shown to the model."""
    if not path:
        return False
    if any(fragment in path for fragment in _EXCLUDED_FRAGMENTS):
        return False
    return _BINARY_RE.search(path) is None


def sort_tree_items(items: list[TreeItem]) -> list[TreeItem]:
    """Directories first, then files, each group alphabetical."""
    return sorted(items, key=lambda item: (item.type != "dir", item.name))


def build_pr_body(issue_number: int, file_path: str) -> str:
    lines = [
        f"Fix for #{issue_number}.",
        "",
        f"Updated `{file_path}`.",
        "",
        "---",
        "",
        "*Fix submitted via GitGud.*",
    ]
    return "\n".join(lines)


class GitHubClient:

    def __init__(
        self,
        token: str = "",
        api_url: str = DEFAULT_API_URL,
        max_tree_files: int = 600,
        fork_poll_attempts: int = 5,
        fork_poll_interval_seconds: float = 1.0,
        timeout: float = 30.0,
        transport: httpx.AsyncBaseTransport | None = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        headers = {
            "Accept": "application/vnd.github+json",
            "X-GitHub-Api-Version": "2022-11-28",
        }
        if token:
            headers["Authorization"] = f"Bearer {token}"
        self._http = httpx.AsyncClient(
            base_url=api_url.rstrip("/"),
            headers=headers,
            timeout=timeout,
            transport=transport,
        )
        self._max_tree_files = max_tree_files
        self._fork_poll_attempts = fork_poll_attempts
        self._fork_poll_interval = fork_poll_interval_seconds
        self._sleep = sleep

    @classmethod
    def from_config(cls, cfg: GitHubConfig) -> GitHubClient:
        return cls(
            token=cfg.github_token,
            api_url=cfg.api_url,
            max_tree_files=cfg.max_tree_files,
            fork_poll_attempts=cfg.fork_poll_attempts,
            fork_poll_interval_seconds=cfg.fork_poll_interval_seconds,
            timeout=cfg.http_timeout_seconds,
        )

    async def close(self) -> None:
        await self._http.aclose()

    async def _request(self, method: str, url: str, **kwargs: Any) -> Any:
        try:
            resp = await self._http.request(method, url, **kwargs)
        except httpx.HTTPError as exc:
            raise GitHubError(None, f"{method} {url} failed: {exc}") from exc

        if resp.status_code >= 400:
            try:
                body = resp.json()
            except ValueError:
                body = None
            message = body.get("message", resp.text) if isinstance(body, dict) else resp.text
            raise GitHubError(resp.status_code, message or resp.reason_phrase)

        if resp.status_code == 204 or not resp.content:
            return None
        return resp.json()

    # ------------------------------------------------------------------
    # Issues
    # ------------------------------------------------------------------

    async def search_good_first_issues(
        self, language: str, per_page: int = 20
    ) -> list[IssueSummary]:
        """Open, unassigned good-first-issues; empty list if GitHub fails."""
        query = (
            f'label:"good first issue" language:{language} '
            "state:open no:assignee is:issue"
        )
        try:
            data = await self._request(
                "GET",
                "/search/issues",
                params={"q": query, "sort": "updated", "order": "desc", "per_page": per_page},
            )
        except GitHubError:
            logger.exception("Issue search failed for language %s", language)
            return []

        return [
            IssueSummary(
                id=item["id"],
                number=item["number"],
                title=item["title"],
                repo="/".join(item["repository_url"].split("/")[-2:]),
                url=item["html_url"],
                body=item.get("body"),
                comments=item.get("comments", 0),
                language=language,
            )
            for item in data.get("items", [])
        ]

    # ------------------------------------------------------------------
    # Repository contents
    # ------------------------------------------------------------------

    async def get_repository(self, owner: str, repo: str) -> dict[str, Any]:
        return await self._request("GET", f"/repos/{owner}/{repo}")

    async def list_repository_files(self, owner: str, repo: str) -> list[str]:
        repo_data = await self.get_repository(owner, repo)
        default_branch = repo_data["default_branch"]
        tree = await self._request(
            "GET",
            f"/repos/{owner}/{repo}/git/trees/{default_branch}",
            params={"recursive": "true"},
        )
        paths = [
            item.get("path", "")
            for item in tree.get("tree", [])
            if item.get("type") == "blob"
        ]
        relevant = [p for p in paths if is_relevant_path(p)]
        return relevant[: self._max_tree_files]

    async def list_directory(
        self, owner: str, repo: str, path: str = ""
    ) -> list[TreeItem]:
        data = await self._request("GET", f"/repos/{owner}/{repo}/contents/{path}")
        if not isinstance(data, list):
            raise GitHubError(400, "Path is not a directory")
        items = [
            TreeItem(name=item["name"], path=item["path"], type=item["type"])
            for item in data
        ]
        return sort_tree_items(items)

    async def get_file_content(
        self, owner: str, repo: str, path: str, ref: str | None = None
    ) -> str:
        params = {"ref": ref} if ref else None
        data = await self._request(
            "GET", f"/repos/{owner}/{repo}/contents/{path}", params=params
        )
        if not isinstance(data, dict) or not data.get("content"):
            raise GitHubError(422, "File is empty or not a valid text file.")
        return base64.b64decode(data["content"]).decode("utf-8", errors="replace")

    async def _get_file_sha(
        self, owner: str, repo: str, path: str, ref: str
    ) -> str | None:
        try:
            data = await self._request(
                "GET", f"/repos/{owner}/{repo}/contents/{path}", params={"ref": ref}
            )
        except GitHubError as exc:
            if exc.status == 404:
                return None
            raise
        return data.get("sha") if isinstance(data, dict) else None

    # ------------------------------------------------------------------
    # Pull requests
    # ------------------------------------------------------------------

    async def _wait_for_ref(self, owner: str, repo: str, branch: str) -> dict[str, Any]:
        """Forks are created asynchronously; poll until the base branch exists."""
        last_error: GitHubError | None = None
        for attempt in range(1, self._fork_poll_attempts + 1):
            try:
                return await self._request(
                    "GET", f"/repos/{owner}/{repo}/git/ref/heads/{branch}"
                )
            except GitHubError as exc:
                if exc.status not in (404, 409):
                    raise
                last_error = exc
                logger.info(
                    "Fork %s/%s not ready yet (attempt %d/%d)",
                    owner, repo, attempt, self._fork_poll_attempts,
                )
                await self._sleep(self._fork_poll_interval)
        raise GitHubError(
            504,
            f"Fork {owner}/{repo} was not ready after {self._fork_poll_attempts} attempts: "
            f"{last_error.message if last_error else 'unknown'}",
        )

    async def submit_pull_request(
        self,
        owner: str,
        repo: str,
        issue_number: int,
        file_path: str,
        new_content: str,
    ) -> str:
        """Push ``new_content`` to a fresh branch and open a PR. Returns its URL."""
        start = time.monotonic()

        user = await self._request("GET", "/user")
        current_user = user["login"]

        repo_data = await self.get_repository(owner, repo)
        has_write_access = bool((repo_data.get("permissions") or {}).get("push"))
        default_branch = repo_data["default_branch"]

        head_owner, head_repo = owner, repo
        if not has_write_access:
            logger.info(
                "No write access to %s/%s. Forking to %s", owner, repo, current_user
            )
            fork = await self._request("POST", f"/repos/{owner}/{repo}/forks")
            head_owner = current_user
            head_repo = (fork or {}).get("name", repo)

        base_ref = await self._wait_for_ref(head_owner, head_repo, default_branch)

        branch_name = f"gitgud-fix-{issue_number}-{int(time.time() * 1000)}"
        await self._request(
            "POST",
            f"/repos/{head_owner}/{head_repo}/git/refs",
            json={"ref": f"refs/heads/{branch_name}", "sha": base_ref["object"]["sha"]},
        )

        file_sha = await self._get_file_sha(head_owner, head_repo, file_path, branch_name)
        payload: dict[str, Any] = {
            "message": f"fix(issue-{issue_number}): update {file_path}",
            "content": base64.b64encode(new_content.encode("utf-8")).decode("ascii"),
            "branch": branch_name,
        }
        if file_sha:
            payload["sha"] = file_sha
        await self._request(
            "PUT", f"/repos/{head_owner}/{head_repo}/contents/{file_path}", json=payload
        )

        pr = await self._request(
            "POST",
            f"/repos/{owner}/{repo}/pulls",
            json={
                "title": f"Fix for #{issue_number}: Updated {file_path}",
                "head": f"{head_owner}:{branch_name}",
                "base": default_branch,
                "body": build_pr_body(issue_number, file_path),
            },
        )

        pr_creation_latency.observe(time.monotonic() - start)
        logger.info("Opened PR #%d: %s", pr["number"], pr["html_url"])
        return pr["html_url"]
