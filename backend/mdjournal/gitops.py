from __future__ import annotations

import logging
import subprocess
from pathlib import Path
from typing import List, Optional, Sequence

from pydantic import BaseModel, Field

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 30.0


class GitError(Exception):
    pass


class GitCommitResult(BaseModel):
    success: bool
    commit_hash: Optional[str] = None
    error: Optional[str] = None


class GitPushResult(BaseModel):
    success: bool
    error: Optional[str] = None


class GitFileStatus(BaseModel):
    path: str
    status: str


class GitCommitInfo(BaseModel):
    hash: str
    message: str
    date: str
    files: List[str] = Field(default_factory=list)


class GitStatus(BaseModel):
    is_repository: bool = False
    branch: str = "unknown"
    uncommitted: List[GitFileStatus] = Field(default_factory=list)
    unpushed: List[GitCommitInfo] = Field(default_factory=list)
    last_commit: Optional[GitCommitInfo] = None


def find_git_root(start: Path) -> Optional[Path]:
    """Walk up from ``start`` until a directory containing ``.git`` is found."""
    current = Path(start).resolve()
    if current.is_file():
        current = current.parent
    for candidate in [current, *current.parents]:
        if (candidate / ".git").exists():
            return candidate
    return None


def relative_to_git_root(path: Path) -> str:
    root = find_git_root(Path(path).parent)
    if root is None:
        return str(path)
    return str(Path(path).resolve().relative_to(root))


def _run(args: Sequence[str], cwd: Path, timeout: float) -> str:
    try:
        result = subprocess.run(
            ["git", *args],
            cwd=cwd,
            capture_output=True,
            text=True,
            check=True,
            timeout=timeout,
        )
    except subprocess.CalledProcessError as exc:
        message = (exc.stderr or exc.stdout or "").strip() or f"git {args[0]} failed"
        raise GitError(message) from exc
    except subprocess.TimeoutExpired as exc:
        raise GitError(f"git {args[0]} timed out after {timeout:g}s") from exc
    except OSError as exc:
        raise GitError(str(exc)) from exc
    return result.stdout


def _require_root(path: Path) -> Path:
    root = find_git_root(path)
    if root is None:
        raise GitError(f"no git repository found above {path}")
    return root


def git_commit(path: Path, message: str, *, timeout: float = DEFAULT_TIMEOUT) -> GitCommitResult:
    """Stage ``path`` and commit it. Failures are returned, not raised."""
    try:
        root = _require_root(Path(path).parent)
        _run(["add", "--", relative_to_git_root(path)], root, timeout)
        _run(["commit", "-m", message], root, timeout)
        commit_hash = _run(["rev-parse", "HEAD"], root, timeout).strip()
    except GitError as exc:
        logger.warning("git commit of %s failed: %s", path, exc)
        return GitCommitResult(success=False, error=str(exc))
    logger.info("Committed %s as %s", path, commit_hash[:7])
    return GitCommitResult(success=True, commit_hash=commit_hash)


def git_push(path: Path, *, timeout: float = DEFAULT_TIMEOUT) -> GitPushResult:
    try:
        root = _require_root(Path(path))
        _run(["push"], root, timeout)
    except GitError as exc:
        logger.warning("git push from %s failed: %s", path, exc)
        return GitPushResult(success=False, error=str(exc))
    logger.info("Pushed %s", path)
    return GitPushResult(success=True)


def _parse_porcelain(output: str) -> List[GitFileStatus]:
    files: List[GitFileStatus] = []
    for line in output.splitlines():
        if len(line) < 4:
            continue
        code = line[:2]
        status = code.strip() or "M"
        files.append(GitFileStatus(path=line[3:], status="??" if code == "??" else status[0]))
    return files


def _log(root: Path, revision_args: Sequence[str], timeout: float) -> List[GitCommitInfo]:
    output = _run(["log", "--format=%H%x1f%s%x1f%cI", *revision_args], root, timeout)
    commits: List[GitCommitInfo] = []
    for line in output.splitlines():
        parts = line.split("\x1f")
        if len(parts) != 3:
            continue
        commits.append(GitCommitInfo(hash=parts[0][:7], message=parts[1], date=parts[2]))
    return commits


def _unpushed(root: Path, branch: str, timeout: float) -> List[GitCommitInfo]:
    upstream = f"origin/{branch}"
    try:
        _run(["rev-parse", "--verify", "--quiet", upstream], root, timeout)
    except GitError:
        return []
    commits = _log(root, [f"{upstream}..HEAD"], timeout)
    for commit in commits:
        try:
            names = _run(["diff-tree", "--no-commit-id", "--name-only", "-r", commit.hash], root, timeout)
        except GitError:
            continue
        commit.files = [name for name in names.splitlines() if name]
    return commits


def git_status(path: Path, *, timeout: float = DEFAULT_TIMEOUT) -> GitStatus:
    root = find_git_root(Path(path))
    if root is None:
        return GitStatus()
    try:
        branch = _run(["rev-parse", "--abbrev-ref", "HEAD"], root, timeout).strip() or "unknown"
        uncommitted = _parse_porcelain(_run(["status", "--porcelain"], root, timeout))
    except GitError as exc:
        logger.warning("git status in %s failed: %s", root, exc)
        return GitStatus(is_repository=True)

    try:
        latest = _log(root, ["-1"], timeout)
    except GitError:
        # Fresh repository without commits.
        latest = []
    return GitStatus(
        is_repository=True,
        branch=branch,
        uncommitted=uncommitted,
        unpushed=_unpushed(root, branch, timeout) if latest else [],
        last_commit=latest[0] if latest else None,
    )
