"""
Mentor Service -- HTTP backend for the GitGud frontend.

Responsibilities:
1. GET  /api/issues        -- good-first-issue search on GitHub
2. POST /api/file-finder   -- AI guess of the file an issue is about
3. POST /api/repo-tree     -- one directory of a repository, dirs first
4. POST /api/file-content  -- decoded content of one file
5. POST /api/mentor        -- one-shot hint for the code in the editor
6. GET  /api/chat/history  -- persisted chat for (session, issue)
7. POST /api/chat/send     -- history-aware mentor chat
8. POST /api/submit-pr     -- push the edited file and open a pull request

Rate-limit outcomes from the language backend become HTTP 429 with a
Retry-After header when the backend told us how long to wait.
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, HTTPException, Query, Request, Response
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import BaseModel, ConfigDict, Field

from services.github_service.client import GitHubClient, GitHubError
from services.github_service.config import GitHubConfig
from services.mentor_service.chat import MentorChat
from services.mentor_service.config import MentorConfig
from services.mentor_service.session import attach_new_session, get_or_create_session_id
from shared.conversation.database import close_db, init_db
from shared.conversation.store import ConversationStore
from shared.llm_adapter import (
    BackendUnavailable,
    RateLimited,
    ResilientCompletionClient,
    build_completion_client,
)
from shared.logging.logger import setup_logging
from shared.observability.metrics import metrics_response

SERVICE_NAME = "mentor_service"
MENTOR_UNAVAILABLE = "The AI mentor is unavailable right now."

cfg: MentorConfig | None = None
github: GitHubClient | None = None
completions: ResilientCompletionClient | None = None
mentor: MentorChat | None = None

logger = logging.getLogger(SERVICE_NAME)


@asynccontextmanager
async def lifespan(application: FastAPI):
    global cfg, github, completions, mentor
    cfg = MentorConfig.from_env()
    setup_logging(SERVICE_NAME, cfg.log_level)

    logger.info("Initializing database")
    await init_db(cfg.database_url)

    github = GitHubClient.from_config(GitHubConfig.from_env())
    completions = build_completion_client(
        provider_name=cfg.llm_provider,
        redis_url=cfg.redis_url or None,
        cache_ttl_seconds=cfg.cache_ttl_seconds,
        sweep_interval_seconds=cfg.cache_sweep_interval_seconds,
        max_attempts=cfg.llm_max_attempts,
        request_timeout_seconds=cfg.llm_request_timeout_seconds,
        coalesce_inflight=cfg.llm_coalesce_inflight,
    )
    await completions.start()
    mentor = MentorChat(
        store=ConversationStore(),
        completions=completions,
        github=github,
        history_window=cfg.history_window,
    )
    logger.info("Mentor service ready")

    yield

    logger.info("Shutting down")
    if completions:
        await completions.stop()
    if github:
        await github.close()
    await close_db()


app = FastAPI(
    title="GitGud - Mentor Service",
    version="0.1.0",
    description="Good-first-issue browser, AI mentor chat and PR submission",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=list(MentorConfig.from_env().cors_origins),
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


def _get_mentor() -> MentorChat:
    if mentor is None:
        raise HTTPException(status_code=503, detail="Mentor not initialized")
    return mentor


def _get_github() -> GitHubClient:
    if github is None:
        raise HTTPException(status_code=503, detail="GitHub client not initialized")
    return github


def _secure_cookies() -> bool:
    return cfg.is_production if cfg else False


def _session_id(request: Request, response: Response) -> str:
    return get_or_create_session_id(request, response, secure=_secure_cookies())


# ---------------------------------------------------------------------------
# Error surface
# ---------------------------------------------------------------------------

@app.exception_handler(RateLimited)
async def rate_limited_handler(request: Request, exc: RateLimited):
    headers = {}
    if exc.retry_after_seconds is not None:
        headers["Retry-After"] = str(exc.retry_after_seconds)
    logger.warning(
        "Rate limited on %s (retry_after=%s)", request.url.path, exc.retry_after_seconds
    )
    response = JSONResponse(
        status_code=429,
        headers=headers,
        content={
            "error": "The AI mentor is busy. Please try again shortly.",
            "retryAfterSeconds": exc.retry_after_seconds,
        },
    )
    attach_new_session(request, response, secure=_secure_cookies())
    return response


@app.exception_handler(BackendUnavailable)
async def backend_unavailable_handler(request: Request, exc: BackendUnavailable):
    logger.error("Language backend unavailable on %s: %r", request.url.path, exc.cause)
    response = JSONResponse(status_code=503, content={"error": MENTOR_UNAVAILABLE})
    attach_new_session(request, response, secure=_secure_cookies())
    return response


@app.exception_handler(GitHubError)
async def github_error_handler(request: Request, exc: GitHubError):
    logger.error("GitHub call failed on %s: %s", request.url.path, exc)
    status = exc.status if exc.status and exc.status >= 400 else 500
    return JSONResponse(
        status_code=status, content={"success": False, "message": exc.message}
    )


# ---------------------------------------------------------------------------
# Health & metrics
# ---------------------------------------------------------------------------

@app.get("/health")
async def health():
    return {"status": "ok", "service": SERVICE_NAME}


@app.get("/metrics")
async def metrics():
    return metrics_response()


# ---------------------------------------------------------------------------
# Request bodies
# ---------------------------------------------------------------------------

class _CamelModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True)


class FileFinderRequest(_CamelModel):
    issue_title: str = Field(default="", alias="issueTitle")
    issue_body: str = Field(default="", alias="issueBody")
    owner: str = ""
    repo: str = ""


class RepoPathRequest(_CamelModel):
    owner: str = ""
    repo: str = ""
    path: str = ""


class MentorRequest(_CamelModel):
    user_message: str = Field(default="", alias="userMessage")
    issue: str = ""
    code: str = ""
    issue_id: str | None = Field(default=None, alias="issueId")


class ChatSendRequest(_CamelModel):
    prompt: str
    issue_id: str = Field(alias="issueId")
    issue: str = ""
    code: str = ""


class SubmitPrRequest(_CamelModel):
    owner: str
    repo: str
    issue_number: int = Field(alias="issueNumber")
    file_path: str = Field(alias="filePath")
    new_content: str = Field(alias="newContent")


def _bad_request(message: str) -> JSONResponse:
    return JSONResponse(status_code=400, content={"success": False, "message": message})


# ---------------------------------------------------------------------------
# GitHub browsing
# ---------------------------------------------------------------------------

@app.get("/api/issues")
async def list_issues(language: str = "python"):
    issues = await _get_github().search_good_first_issues(language)
    return {"issues": [i.model_dump() for i in issues]}


@app.post("/api/file-finder")
async def find_file(req: FileFinderRequest):
    if not req.owner or not req.repo:
        return _bad_request("Missing owner/repo")
    path = await _get_mentor().find_relevant_file(
        req.owner, req.repo, req.issue_title, req.issue_body
    )
    return {"path": path}


@app.post("/api/repo-tree")
async def repo_tree(req: RepoPathRequest):
    if not req.owner or not req.repo:
        return _bad_request("Missing owner/repo")
    items = await _get_github().list_directory(req.owner, req.repo, req.path)
    return {"success": True, "items": [i.model_dump() for i in items]}


@app.post("/api/file-content")
async def file_content(req: RepoPathRequest):
    if not req.owner or not req.repo or not req.path:
        return _bad_request("Missing parameters")
    try:
        content = await _get_github().get_file_content(req.owner, req.repo, req.path)
    except GitHubError as exc:
        if exc.status == 422:
            return {"success": False, "message": exc.message}
        logger.warning("File %s/%s:%s not found: %s", req.owner, req.repo, req.path, exc)
        return JSONResponse(
            status_code=404,
            content={"success": False, "message": "File not found on GitHub."},
        )
    return {"success": True, "content": content}


@app.post("/api/submit-pr")
async def submit_pr(req: SubmitPrRequest):
    pr_url = await _get_github().submit_pull_request(
        owner=req.owner,
        repo=req.repo,
        issue_number=req.issue_number,
        file_path=req.file_path,
        new_content=req.new_content,
    )
    return {"success": True, "prUrl": pr_url}


# ---------------------------------------------------------------------------
# Mentor
# ---------------------------------------------------------------------------

@app.post("/api/mentor")
async def ask_mentor(req: MentorRequest):
    if not req.user_message or not req.code or not req.issue:
        return JSONResponse(status_code=400, content={"error": "Missing necessary context."})
    answer = await _get_mentor().hint(
        topic_id=req.issue_id or req.issue,
        issue=req.issue,
        code=req.code,
        question=req.user_message,
    )
    return {"response": answer}


@app.get("/api/chat/history")
async def chat_history(
    request: Request,
    response: Response,
    issue_id: str | None = Query(default=None, alias="issueId"),
):
    session_id = _session_id(request, response)
    if not issue_id:
        return {"success": True, "history": []}
    turns = await _get_mentor().history(session_id, issue_id)
    return {"success": True, "history": [t.model_dump(mode="json") for t in turns]}


@app.post("/api/chat/send")
async def chat_send(req: ChatSendRequest, request: Request, response: Response):
    if not req.prompt.strip():
        return _bad_request("Prompt must not be empty")
    session_id = _session_id(request, response)
    reply = await _get_mentor().send(
        session_id=session_id,
        topic_id=req.issue_id,
        prompt=req.prompt,
        issue=req.issue,
        code=req.code,
    )
    return {"success": True, "message": reply.model_dump(mode="json")}
