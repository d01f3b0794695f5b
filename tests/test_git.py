"""
Tests for the git command line backend.

Feature: bbpublish
"""

import subprocess
import sys
import threading
import time
from collections.abc import Callable
from pathlib import Path
from typing import Any
from unittest.mock import patch

import pytest

from bbpublish.auth import resolve_auth
from bbpublish.config import IntegrationConfig
from bbpublish.deadline import Deadline
from bbpublish.exceptions import Cancelled
from bbpublish.git import POLL_INTERVAL, GitHelper
from bbpublish.types.publish import CommitAuthor

AUTHOR = CommitAuthor(name="Scaffolder", email="scaffolder@backstage.io")


class FakeProcess:
    """Finished git process with canned output."""

    def __init__(self, returncode: int, stdout: str) -> None:
        self.returncode = returncode
        self.stdout = stdout
        self.killed = False

    def communicate(self, timeout: float | None = None) -> tuple[str, str]:
        return self.stdout, "fatal" if self.returncode else ""

    def kill(self) -> None:
        self.killed = True


class FakeGit:
    """Stands in for subprocess.Popen, answering per git subcommand."""

    def __init__(self, returncodes: dict[tuple[str, ...], int] | None = None, head: str = "abc123") -> None:
        self.returncodes = returncodes or {}
        self.head = head
        self.commands: list[list[str]] = []
        self.envs: list[dict[str, str]] = []

    def __call__(self, cmd: list[str], **kwargs: Any) -> FakeProcess:
        self.commands.append(cmd)
        self.envs.append(kwargs["env"])

        args = tuple(cmd[1:])
        returncode = 0
        for prefix, code in self.returncodes.items():
            if args[: len(prefix)] == prefix:
                returncode = code
        stdout = f"{self.head}\n" if args == ("rev-parse", "HEAD") else ""
        return FakeProcess(returncode, stdout)

    def subcommands(self) -> list[str]:
        return [cmd[1] for cmd in self.commands]


@pytest.fixture
def auth():
    return resolve_auth(IntegrationConfig(host="bitbucket.example.com", token="test-token"))


def test_init_repo_and_push_fresh_directory(tmp_path: Path, auth) -> None:
    fake = FakeGit(returncodes={("rev-parse", "--verify"): 1, ("diff", "--cached"): 1})

    with patch("bbpublish.git.subprocess.Popen", fake):
        commit_hash = GitHelper(auth).init_repo_and_push(
            tmp_path, "https://bitbucket.example.com/scm/team/svc.git", "main", "commit by backstage", AUTHOR
        )

    assert commit_hash == "abc123"
    assert fake.subcommands() == ["init", "rev-parse", "symbolic-ref", "add", "diff", "commit", "rev-parse", "push"]
    assert fake.commands[2][1:] == ["symbolic-ref", "HEAD", "refs/heads/main"]
    assert fake.commands[5][1:] == ["commit", "--quiet", "-m", "commit by backstage"]
    assert fake.commands[-1][1:] == [
        "push",
        "https://bitbucket.example.com/scm/team/svc.git",
        "HEAD:refs/heads/main",
    ]

    commit_env = fake.envs[5]
    assert commit_env["GIT_AUTHOR_NAME"] == "Scaffolder"
    assert commit_env["GIT_COMMITTER_EMAIL"] == "scaffolder@backstage.io"


def test_credentials_travel_as_extra_header(tmp_path: Path, auth) -> None:
    fake = FakeGit(returncodes={("diff", "--cached"): 1})

    with patch("bbpublish.git.subprocess.Popen", fake):
        GitHelper(auth).init_repo_and_push(tmp_path, "https://host/scm/p/r.git", "main", "msg", AUTHOR)

    push_env = fake.envs[-1]
    assert push_env["GIT_TERMINAL_PROMPT"] == "0"
    assert push_env["GIT_CONFIG_KEY_0"] == "http.extraHeader"
    assert push_env["GIT_CONFIG_VALUE_0"] == "Authorization: Bearer test-token"
    assert all("test-token" not in part for cmd in fake.commands for part in cmd)


def test_nothing_to_commit_on_existing_history_still_pushes(tmp_path: Path, auth) -> None:
    fake = FakeGit()

    with patch("bbpublish.git.subprocess.Popen", fake):
        commit_hash = GitHelper(auth).init_repo_and_push(tmp_path, "https://host/scm/p/r.git", "main", "msg", AUTHOR)

    assert commit_hash is None
    assert "commit" not in fake.subcommands()
    assert fake.subcommands()[-1] == "push"


def test_empty_workspace_is_not_pushed(tmp_path: Path, auth) -> None:
    fake = FakeGit(returncodes={("rev-parse", "--verify"): 1})

    with patch("bbpublish.git.subprocess.Popen", fake):
        commit_hash = GitHelper(auth).init_repo_and_push(tmp_path, "https://host/scm/p/r.git", "main", "msg", AUTHOR)

    assert commit_hash is None
    assert "push" not in fake.subcommands()


def test_push_failure_propagates(tmp_path: Path, auth) -> None:
    fake = FakeGit(returncodes={("diff", "--cached"): 1, ("push",): 128})

    with patch("bbpublish.git.subprocess.Popen", fake):
        with pytest.raises(subprocess.CalledProcessError):
            GitHelper(auth).init_repo_and_push(tmp_path, "https://host/scm/p/r.git", "main", "msg", AUTHOR)


def test_clone_branch_checkout(tmp_path: Path, auth) -> None:
    fake = FakeGit()
    git = GitHelper(auth)

    with patch("bbpublish.git.subprocess.Popen", fake):
        git.clone("https://host/scm/p/r.git", tmp_path, ref="master")
        git.branch(tmp_path, "feature/update")
        git.checkout(tmp_path, "feature/update")

    assert fake.commands == [
        ["git", "clone", "--branch", "master", "https://host/scm/p/r.git", str(tmp_path)],
        ["git", "branch", "feature/update"],
        ["git", "checkout", "feature/update"],
    ]


def test_clone_into_workspace_with_files(tmp_path: Path, auth) -> None:
    (tmp_path / "catalog-info.yaml").write_text("kind: Component\n")
    fake = FakeGit(returncodes={("remote", "get-url"): 2})

    with patch("bbpublish.git.subprocess.Popen", fake):
        GitHelper(auth).clone("https://host/scm/p/r.git", tmp_path, ref="master")

    assert [cmd[1:] for cmd in fake.commands] == [
        ["init", "--quiet"],
        ["remote", "get-url", "origin"],
        ["remote", "add", "origin", "https://host/scm/p/r.git"],
        ["fetch", "--quiet", "origin", "master"],
        ["checkout", "--quiet", "--force", "-B", "master", "FETCH_HEAD"],
    ]
    assert "clone" not in fake.subcommands()


def test_clone_into_existing_checkout_updates_origin(tmp_path: Path, auth) -> None:
    (tmp_path / "README.md").write_text("# svc\n")
    fake = FakeGit()

    with patch("bbpublish.git.subprocess.Popen", fake):
        GitHelper(auth).clone("https://host/scm/p/r.git", tmp_path)

    assert fake.commands[2][1:] == ["remote", "set-url", "origin", "https://host/scm/p/r.git"]
    assert fake.commands[3][1:] == ["fetch", "--quiet", "origin"]
    assert fake.commands[4][1:] == ["checkout", "--quiet", "--force", "--detach", "FETCH_HEAD"]


class RunningProcess:
    """Git process that never finishes on its own."""

    def __init__(self, on_poll: Callable[[], None] | None = None) -> None:
        self.on_poll = on_poll
        self.returncode: int | None = None
        self.killed = False
        self.poll_timeouts: list[float | None] = []

    def communicate(self, timeout: float | None = None) -> tuple[str, str]:
        if self.killed:
            return "", ""
        self.poll_timeouts.append(timeout)
        if self.on_poll is not None:
            self.on_poll()
        time.sleep(timeout or 0)
        raise subprocess.TimeoutExpired("git", timeout or 0)

    def kill(self) -> None:
        self.killed = True
        self.returncode = -9


def test_cancel_while_command_runs_kills_it(tmp_path: Path, auth) -> None:
    deadline = Deadline()
    proc = RunningProcess()
    proc.on_poll = lambda: len(proc.poll_timeouts) == 3 and deadline.cancel()

    with patch("bbpublish.git.subprocess.Popen", return_value=proc):
        with pytest.raises(Cancelled, match="Cancelled during git push"):
            GitHelper(auth, deadline=deadline)._run(["push", "https://host/scm/p/r.git"], cwd=tmp_path)

    assert proc.killed
    assert len(proc.poll_timeouts) == 3
    assert all(timeout == POLL_INTERVAL for timeout in proc.poll_timeouts)


def test_deadline_expiry_while_command_runs(tmp_path: Path, auth) -> None:
    proc = RunningProcess()

    with patch("bbpublish.git.subprocess.Popen", return_value=proc):
        with pytest.raises(Cancelled, match="Deadline exceeded during git clone"):
            GitHelper(auth, deadline=Deadline(seconds=0.3)).clone("https://host/scm/p/r.git", tmp_path / "svc")

    assert proc.killed
    assert all(timeout is not None and timeout <= POLL_INTERVAL for timeout in proc.poll_timeouts)


def test_cancelled_deadline_runs_nothing(tmp_path: Path, auth) -> None:
    fake = FakeGit()
    deadline = Deadline()
    deadline.cancel()

    with patch("bbpublish.git.subprocess.Popen", fake):
        with pytest.raises(Cancelled):
            GitHelper(auth, deadline=deadline).clone("https://host/scm/p/r.git", tmp_path)

    assert fake.commands == []


@pytest.mark.skipif(sys.platform == "win32", reason="uses a POSIX shell script as the git executable")
def test_cancel_stops_real_process(tmp_path: Path, auth) -> None:
    slow_git = tmp_path / "slow-git"
    slow_git.write_text("#!/bin/sh\nexec sleep 5\n")
    slow_git.chmod(0o755)

    deadline = Deadline()
    timer = threading.Timer(0.3, deadline.cancel)
    timer.start()
    started = time.monotonic()
    try:
        with pytest.raises(Cancelled):
            GitHelper(auth, deadline=deadline, executable=str(slow_git)).clone(
                "https://host/scm/p/r.git", tmp_path / "svc"
            )
    finally:
        timer.cancel()

    assert time.monotonic() - started < 4
