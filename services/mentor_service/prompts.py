"""Prompt templates for the AI mentor and the relevant-file finder."""

from __future__ import annotations

MENTOR_SYSTEM_PROMPT = """You are a Senior Software Engineer acting as a helpful but strict mentor to a junior developer.
Your primary goal is to teach, not to solve.
1. DO NOT provide the solution code directly.
2. Provide simple, high-level guidance based on the code and issue context provided.
3. If the user asks for a direct solution, give them a subtle hint (e.g., "Check the operator on line X," or "Does that variable exist in this scope?").
4. Always maintain a professional and encouraging tone.
"""

MENTOR_QUESTION_PROMPT = """Current Bug Issue Description: "{issue}"
User's Current Code:
---
{code}
---
User's Question: "{question}"

Remember your system prompt: Offer a hint, but DO NOT provide the solution code.
"""

CHAT_CONTEXT_SUFFIX = """
The developer is working on this issue:
---
{issue}
---
Their current code:
---
{code}
---
"""

FILE_FINDER_PROMPT = """You are a Senior Software Architect. I have a GitHub issue and the list of ALL files in the repository.

YOUR GOAL: Identify the SINGLE file that most likely contains the code causing the issue.

CONTEXT:
Repo: {owner}/{repo}
Issue Title: "{title}"
Issue Description: "{body}"

ACTUAL REPOSITORY FILE STRUCTURE:
---
{file_list}
---

INSTRUCTIONS:
1. Analyze the issue to understand if it's a frontend bug, backend logic, style issue, etc.
2. Scan the "ACTUAL REPOSITORY FILE STRUCTURE" list above.
3. Select the ONE file path that is the best candidate for the fix.
4. Return ONLY the file path string. Do not add markdown, quotes, or explanations.

Example Output:
src/components/Navbar.jsx
"""

FILE_LIST_UNAVAILABLE = (
    "(Could not fetch file structure. Please guess based on standard conventions.)"
)

ISSUE_BODY_LIMIT = 2000


def build_mentor_question(issue: str, code: str, question: str) -> str:
    return MENTOR_QUESTION_PROMPT.format(issue=issue, code=code, question=question)


def build_chat_instruction(issue: str = "", code: str = "") -> str:
    """System instruction for the chat; adds issue/code context when known."""
    if not issue and not code:
        return MENTOR_SYSTEM_PROMPT
    return MENTOR_SYSTEM_PROMPT + CHAT_CONTEXT_SUFFIX.format(
        issue=issue or "(not provided)", code=code or "(not provided)"
    )


def build_file_finder_prompt(
    owner: str, repo: str, title: str, body: str, files: list[str] | None
) -> str:
    file_list = "\n".join(files) if files else FILE_LIST_UNAVAILABLE
    return FILE_FINDER_PROMPT.format(
        owner=owner,
        repo=repo,
        title=title,
        body=(body or "")[:ISSUE_BODY_LIMIT],
        file_list=file_list,
    )


def clean_predicted_path(text: str) -> str:
    """Strip quotes, backticks and surrounding noise from a model-predicted path."""
    cleaned = text.strip()
    for ch in ("`", "'", '"'):
        cleaned = cleaned.replace(ch, "")
    # First non-empty line is the path.
    lines = [line.strip() for line in cleaned.splitlines() if line.strip()]
    return lines[0] if lines else ""
