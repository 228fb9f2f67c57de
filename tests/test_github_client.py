"""Tests for the GitHub REST client using httpx.MockTransport."""

import base64
import json

import httpx
import pytest

from services.github_service.client import (
    GitHubClient,
    GitHubError,
    TreeItem,
    is_relevant_path,
    sort_tree_items,
)


# -- Helpers -----------------------------------------------------------------


class Router:
    """Tiny method+path router that records every request."""

    def __init__(self, routes: dict[tuple[str, str], httpx.Response]) -> None:
        self.routes = routes
        self.requests: list[httpx.Request] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        key = (request.method, request.url.path)
        if key in self.routes:
            route = self.routes[key]
            if callable(route):
                return route(request)
            return httpx.Response(route.status_code, headers=route.headers, content=route.content)
        return httpx.Response(404, json={"message": "Not Found"})

    def paths(self, method: str) -> list[str]:
        return [r.url.path for r in self.requests if r.method == method]


async def _no_sleep(_seconds: float) -> None:
    return None


def _client(router: Router, **kwargs) -> GitHubClient:
    return GitHubClient(
        token="t0ken",
        transport=httpx.MockTransport(router),
        sleep=_no_sleep,
        **kwargs,
    )


def _b64(text: str) -> str:
    return base64.b64encode(text.encode()).decode()


# -- Pure helpers ------------------------------------------------------------


@pytest.mark.parametrize(
    ("path", "expected"),
    [
        ("src/tax.py", True),
        ("node_modules/lib/index.js", False),
        ("package-lock.json", False),
        ("web/yarn.lock", False),
        ("docs/logo.PNG", False),
        ("manual.pdf", False),
        ("", False),
    ],
)
def test_is_relevant_path(path: str, expected: bool) -> None:
    assert is_relevant_path(path) is expected


def test_directories_sort_before_files() -> None:
    items = [
        TreeItem(name="b.py", path="b.py", type="file"),
        TreeItem(name="src", path="src", type="dir"),
        TreeItem(name="a.py", path="a.py", type="file"),
        TreeItem(name="docs", path="docs", type="dir"),
    ]
    assert [i.name for i in sort_tree_items(items)] == ["docs", "src", "a.py", "b.py"]


# -- Issues ------------------------------------------------------------------


async def test_search_good_first_issues_maps_items() -> None:
    def search(request: httpx.Request) -> httpx.Response:
        assert 'label:"good first issue"' in request.url.params["q"]
        assert "language:python" in request.url.params["q"]
        assert request.url.params["sort"] == "updated"
        assert request.headers["Authorization"] == "Bearer t0ken"
        return httpx.Response(
            200,
            json={
                "items": [
                    {
                        "id": 1,
                        "number": 42,
                        "title": "Tax rounding bug",
                        "repository_url": "https://api.github.com/repos/acme/repo",
                        "html_url": "https://github.com/acme/repo/issues/42",
                        "body": "Totals are off by a cent",
                        "comments": 3,
                    }
                ]
            },
        )

    client = _client(Router({("GET", "/search/issues"): search}))
    issues = await client.search_good_first_issues("python")

    assert len(issues) == 1
    assert issues[0].repo == "acme/repo"
    assert issues[0].number == 42
    assert issues[0].language == "python"
    await client.close()


async def test_search_failure_returns_empty_list() -> None:
    router = Router({("GET", "/search/issues"): httpx.Response(403, json={"message": "rate limited"})})
    client = _client(router)

    assert await client.search_good_first_issues("rust") == []
    await client.close()


# -- Contents ----------------------------------------------------------------


async def test_list_repository_files_filters_and_limits() -> None:
    tree = {
        "tree": [
            {"path": "src", "type": "tree"},
            {"path": "src/tax.py", "type": "blob"},
            {"path": "src/util.py", "type": "blob"},
            {"path": "node_modules/x.js", "type": "blob"},
            {"path": "logo.png", "type": "blob"},
            {"path": "README.md", "type": "blob"},
        ]
    }
    router = Router(
        {
            ("GET", "/repos/acme/repo"): httpx.Response(200, json={"default_branch": "main"}),
            ("GET", "/repos/acme/repo/git/trees/main"): httpx.Response(200, json=tree),
        }
    )
    client = _client(router, max_tree_files=2)

    files = await client.list_repository_files("acme", "repo")

    assert files == ["src/tax.py", "src/util.py"]
    await client.close()


async def test_list_directory_sorts_and_rejects_files() -> None:
    listing = [
        {"name": "setup.py", "path": "setup.py", "type": "file"},
        {"name": "src", "path": "src", "type": "dir"},
    ]
    router = Router(
        {
            ("GET", "/repos/acme/repo/contents/"): httpx.Response(200, json=listing),
            ("GET", "/repos/acme/repo/contents/setup.py"): httpx.Response(
                200, json={"name": "setup.py", "content": _b64("x")}
            ),
        }
    )
    client = _client(router)

    items = await client.list_directory("acme", "repo")
    assert [i.name for i in items] == ["src", "setup.py"]

    with pytest.raises(GitHubError) as exc_info:
        await client.list_directory("acme", "repo", "setup.py")
    assert exc_info.value.status == 400
    await client.close()


async def test_get_file_content_decodes_base64() -> None:
    router = Router(
        {
            ("GET", "/repos/acme/repo/contents/src/tax.py"): httpx.Response(
                200, json={"content": _b64("rate = 0.2\n"), "sha": "abc"}
            )
        }
    )
    client = _client(router)

    assert await client.get_file_content("acme", "repo", "src/tax.py") == "rate = 0.2\n"
    await client.close()


async def test_get_file_content_errors() -> None:
    router = Router(
        {("GET", "/repos/acme/repo/contents/empty.txt"): httpx.Response(200, json={"content": ""})}
    )
    client = _client(router)

    with pytest.raises(GitHubError) as empty:
        await client.get_file_content("acme", "repo", "empty.txt")
    assert empty.value.status == 422

    with pytest.raises(GitHubError) as missing:
        await client.get_file_content("acme", "repo", "nope.txt")
    assert missing.value.status == 404
    assert missing.value.message == "Not Found"
    await client.close()


# -- Pull requests -----------------------------------------------------------


def _pr_routes(push: bool, head_owner: str) -> dict:
    return {
        ("GET", "/user"): httpx.Response(200, json={"login": "learner"}),
        ("GET", "/repos/acme/repo"): httpx.Response(
            200, json={"default_branch": "main", "permissions": {"push": push}}
        ),
        ("POST", "/repos/acme/repo/forks"): httpx.Response(202, json={"name": "repo"}),
        ("GET", f"/repos/{head_owner}/repo/git/ref/heads/main"): httpx.Response(
            200, json={"object": {"sha": "base-sha"}}
        ),
        ("POST", f"/repos/{head_owner}/repo/git/refs"): httpx.Response(201, json={}),
        ("POST", "/repos/acme/repo/pulls"): httpx.Response(
            201, json={"number": 7, "html_url": "https://github.com/acme/repo/pull/7"}
        ),
    }


async def test_submit_pr_with_push_access_skips_fork() -> None:
    routes = _pr_routes(push=True, head_owner="acme")

    def put_contents(request: httpx.Request) -> httpx.Response:
        body = json.loads(request.content)
        assert base64.b64decode(body["content"]).decode() == "fixed = True\n"
        assert body["branch"].startswith("gitgud-fix-42-")
        assert "sha" not in body
        return httpx.Response(201, json={})

    routes[("PUT", "/repos/acme/repo/contents/src/tax.py")] = put_contents
    router = Router(routes)
    client = _client(router)

    url = await client.submit_pull_request("acme", "repo", 42, "src/tax.py", "fixed = True\n")

    assert url == "https://github.com/acme/repo/pull/7"
    assert "/repos/acme/repo/forks" not in router.paths("POST")
    pr_body = json.loads(router.requests[-1].content)
    assert pr_body["head"].startswith("acme:gitgud-fix-42-")
    assert pr_body["base"] == "main"
    assert pr_body["title"] == "Fix for #42: Updated src/tax.py"
    await client.close()


async def test_submit_pr_without_push_access_forks_and_polls() -> None:
    routes = _pr_routes(push=False, head_owner="learner")
    ref_attempts = {"n": 0}

    def fork_ref(request: httpx.Request) -> httpx.Response:
        ref_attempts["n"] += 1
        if ref_attempts["n"] < 3:
            return httpx.Response(404, json={"message": "Not Found"})
        return httpx.Response(200, json={"object": {"sha": "fork-sha"}})

    def existing_file(request: httpx.Request) -> httpx.Response:
        if request.method == "GET":
            return httpx.Response(200, json={"sha": "old-sha", "content": _b64("old")})
        body = json.loads(request.content)
        assert body["sha"] == "old-sha"
        return httpx.Response(200, json={})

    routes[("GET", "/repos/learner/repo/git/ref/heads/main")] = fork_ref
    routes[("GET", "/repos/learner/repo/contents/src/tax.py")] = existing_file
    routes[("PUT", "/repos/learner/repo/contents/src/tax.py")] = existing_file
    router = Router(routes)
    client = _client(router)

    await client.submit_pull_request("acme", "repo", 42, "src/tax.py", "new")

    assert "/repos/acme/repo/forks" in router.paths("POST")
    assert ref_attempts["n"] == 3
    refs_request = next(r for r in router.requests if r.url.path == "/repos/learner/repo/git/refs")
    assert json.loads(refs_request.content)["sha"] == "fork-sha"
    pr_body = json.loads(router.requests[-1].content)
    assert pr_body["head"].startswith("learner:gitgud-fix-42-")
    await client.close()


async def test_fork_that_never_appears_gives_up() -> None:
    routes = _pr_routes(push=False, head_owner="learner")
    routes[("GET", "/repos/learner/repo/git/ref/heads/main")] = httpx.Response(
        404, json={"message": "Not Found"}
    )
    client = _client(Router(routes), fork_poll_attempts=2)

    with pytest.raises(GitHubError) as exc_info:
        await client.submit_pull_request("acme", "repo", 42, "src/tax.py", "new")
    assert exc_info.value.status == 504
    await client.close()


async def test_binary_file_content_is_decoded_lossily() -> None:
    png = b"\x89PNG\r\n\x1a\n\xff\xfe"
    router = Router(
        {
            ("GET", "/repos/acme/repo/contents/logo.png"): httpx.Response(
                200, json={"content": base64.b64encode(png).decode()}
            )
        }
    )
    client = _client(router)

    content = await client.get_file_content("acme", "repo", "logo.png")

    assert content.startswith("\ufffdPNG")
    assert content.endswith("\ufffd\ufffd")
    await client.close()
