"""
Git capability used by the publish flows.

``GitBackend`` is the interface the publisher depends on; ``GitHelper``
implements it with the ``git`` command line. Failures of git commands
propagate as ``subprocess.CalledProcessError``.
"""

import os
import subprocess
from abc import ABC, abstractmethod
from pathlib import Path

from bbpublish.auth import AuthContext
from bbpublish.deadline import Deadline
from bbpublish.exceptions import Cancelled
from bbpublish.logging import log_git_command
from bbpublish.types.publish import CommitAuthor

# Seconds between cancellation checks while a git command runs
POLL_INTERVAL = 0.1


class GitBackend(ABC):
    """Abstract base class for the git operations the publisher needs."""

    @abstractmethod
    def clone(self, url: str, dir: str | Path, ref: str | None = None) -> None:
        """Clone ``url`` into ``dir``, checking out ``ref`` when given."""
        pass

    @abstractmethod
    def branch(self, dir: str | Path, ref: str) -> None:
        """Create local branch ``ref`` at HEAD."""
        pass

    @abstractmethod
    def checkout(self, dir: str | Path, ref: str) -> None:
        """Check out ``ref``."""
        pass

    @abstractmethod
    def init_repo_and_push(
        self,
        dir: str | Path,
        remote_url: str,
        branch: str,
        commit_message: str,
        author: CommitAuthor,
    ) -> str | None:
        """
        Commit everything in ``dir`` and push it to ``branch`` of ``remote_url``.

        Returns:
            The new commit hash, or None if there was nothing to commit
        """
        pass


class GitHelper(GitBackend):
    """
    Git operations through the ``git`` executable.

    Credentials are handed to git as an ``http.extraHeader`` through
    ``GIT_CONFIG_*`` environment variables, so they never appear in remote
    URLs, on the command line, or in the cloned repository's config.

    Example:
        ```python
        from bbpublish.auth import resolve_auth
        from bbpublish.git import GitHelper

        git = GitHelper(resolve_auth(config))
        git.clone(record.remote_url, "./svc", ref="master")
        git.branch("./svc", "feature/update")
        git.checkout("./svc", "feature/update")
        ```
    """

    def __init__(
        self,
        auth: AuthContext | None = None,
        deadline: Deadline | None = None,
        executable: str = "git",
    ) -> None:
        """
        Initialize GitHelper.

        Args:
            auth: Authorization sent with HTTP(S) git traffic
            deadline: Optional deadline bounding every git command
            executable: Git executable (default: "git")
        """
        self.auth = auth
        self.deadline = deadline or Deadline()
        self.executable = executable

    def clone(self, url: str, dir: str | Path, ref: str | None = None) -> None:
        """
        Clone a repository.

        A directory that already holds files (a staged workspace, typically)
        is turned into a checkout in place: the remote is fetched into it and
        tracked files are overwritten, other files are left alone.

        Raises:
            subprocess.CalledProcessError: If a git command fails
        """
        dir = Path(dir)
        if dir.is_dir() and any(dir.iterdir()):
            self._clone_in_place(url, dir, ref)
            return

        args = ["clone"]
        if ref is not None:
            args.extend(["--branch", ref])
        args.extend([url, str(dir)])
        self._run(args)

    def _clone_in_place(self, url: str, dir: Path, ref: str | None) -> None:
        self._run(["init", "--quiet"], cwd=dir)
        has_origin = self._run(["remote", "get-url", "origin"], cwd=dir, check=False).returncode == 0
        self._run(["remote", "set-url" if has_origin else "add", "origin", url], cwd=dir)

        fetch = ["fetch", "--quiet", "origin"]
        if ref is not None:
            fetch.append(ref)
        self._run(fetch, cwd=dir)

        if ref is not None:
            self._run(["checkout", "--quiet", "--force", "-B", ref, "FETCH_HEAD"], cwd=dir)
        else:
            self._run(["checkout", "--quiet", "--force", "--detach", "FETCH_HEAD"], cwd=dir)

    def branch(self, dir: str | Path, ref: str) -> None:
        self._run(["branch", ref], cwd=dir)

    def checkout(self, dir: str | Path, ref: str) -> None:
        self._run(["checkout", ref], cwd=dir)

    def init_repo_and_push(
        self,
        dir: str | Path,
        remote_url: str,
        branch: str,
        commit_message: str,
        author: CommitAuthor,
    ) -> str | None:
        """
        Initialize ``dir`` as a repository, commit its content, and push.

        The push targets ``refs/heads/<branch>`` directly, which creates the
        branch on the remote if it does not exist yet.

        Returns:
            Hash of the new commit, or None when the working tree had no changes

        Raises:
            subprocess.CalledProcessError: If any git command fails
        """
        dir = Path(dir)

        self._run(["init", "--quiet"], cwd=dir)
        has_head = self._run(["rev-parse", "--verify", "--quiet", "HEAD"], cwd=dir, check=False).returncode == 0
        if not has_head:
            self._run(["symbolic-ref", "HEAD", f"refs/heads/{branch}"], cwd=dir)

        self._run(["add", "--all"], cwd=dir)
        staged = self._run(["diff", "--cached", "--quiet"], cwd=dir, check=False).returncode != 0

        commit_hash: str | None = None
        if staged:
            self._run(
                ["commit", "--quiet", "-m", commit_message],
                cwd=dir,
                extra_env={
                    "GIT_AUTHOR_NAME": author.name,
                    "GIT_AUTHOR_EMAIL": author.email,
                    "GIT_COMMITTER_NAME": author.name,
                    "GIT_COMMITTER_EMAIL": author.email,
                },
            )
            commit_hash = self._run(["rev-parse", "HEAD"], cwd=dir).stdout.strip()
        elif not has_head:
            # empty workspace and no history: nothing to push
            return None

        self._run(["push", remote_url, f"HEAD:refs/heads/{branch}"], cwd=dir)
        return commit_hash

    def _run(
        self,
        args: list[str],
        cwd: str | Path | None = None,
        check: bool = True,
        extra_env: dict[str, str] | None = None,
    ) -> subprocess.CompletedProcess:
        """
        Run one git command under the deadline.

        The process is polled while it runs; expiry of the deadline or a
        cancellation request kills it and raises ``Cancelled``.
        """
        step = f"git {args[0]}"
        self.deadline.check(step)

        cmd = [self.executable, *args]
        log_git_command(cmd, str(cwd) if cwd is not None else None)

        env = self._get_git_env()
        if extra_env:
            env.update(extra_env)

        proc = subprocess.Popen(
            cmd,
            cwd=cwd,
            stdout=subprocess.PIPE,
            stderr=subprocess.PIPE,
            text=True,
            env=env,
        )
        try:
            stdout, stderr = self._wait(proc, step)
        except BaseException:
            proc.kill()
            proc.communicate()
            raise

        if check and proc.returncode != 0:
            raise subprocess.CalledProcessError(proc.returncode, cmd, stdout, stderr)
        return subprocess.CompletedProcess(cmd, proc.returncode, stdout, stderr)

    def _wait(self, proc: subprocess.Popen, step: str) -> tuple[str, str]:
        while True:
            try:
                return proc.communicate(timeout=self.deadline.timeout_for(POLL_INTERVAL))
            except subprocess.TimeoutExpired:
                if self.deadline.cancelled:
                    raise Cancelled(f"Cancelled during {step}") from None
                if self.deadline.expired:
                    raise Cancelled(f"Deadline exceeded during {step}") from None

    def _get_git_env(self) -> dict[str, str]:
        """Environment for git commands, carrying the Authorization header."""
        env = os.environ.copy()
        env["GIT_TERMINAL_PROMPT"] = "0"
        if self.auth is not None:
            env["GIT_CONFIG_COUNT"] = "1"
            env["GIT_CONFIG_KEY_0"] = "http.extraHeader"
            env["GIT_CONFIG_VALUE_0"] = f"Authorization: {self.auth.authorization}"
        return env
