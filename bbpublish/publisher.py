"""
Publish orchestration.

``Publisher`` runs the operations a scaffolding pipeline needs against a
Bitbucket Server: create (or reuse) a repository, push workspace content,
clone and branch an existing repository, and open a pull request. Each call
is one linear invocation: the location is resolved, credentials are
checked, and a fresh REST client is built, so concurrent invocations share
nothing but the remote server. Failures halt the invocation; server-side
resources created before the failure are left in place.
"""

from collections.abc import Callable
from pathlib import Path

import httpx

from bbpublish.auth import AuthContext, resolve_auth
from bbpublish.client import BitbucketServerClient
from bbpublish.config import IntegrationConfig, IntegrationRegistry, PublishDefaults
from bbpublish.deadline import Deadline
from bbpublish.git import GitBackend, GitHelper
from bbpublish.locator import parse_repo_url
from bbpublish.logging import get_logger
from bbpublish.transport import RetryConfig
from bbpublish.types.publish import (
    CloneResult,
    CommitAuthor,
    PublishResult,
    PublishWithPullRequestResult,
)
from bbpublish.types.pulls import PullRequestResult, PullRequestSpec
from bbpublish.types.repos import RepositoryIdentity, RepositoryRecord

logger = get_logger()

GitFactory = Callable[[AuthContext, Deadline], GitBackend]


def _default_git_factory(auth: AuthContext, deadline: Deadline) -> GitBackend:
    return GitHelper(auth=auth, deadline=deadline)


def resolve_source_directory(workspace_path: str | Path, source_path: str | None = None) -> Path:
    """
    Directory to publish: the workspace, or ``source_path`` inside it.

    Raises:
        ValueError: If ``source_path`` points outside the workspace
    """
    workspace = Path(workspace_path).resolve()
    if not source_path:
        return workspace

    directory = (workspace / source_path).resolve()
    if directory != workspace and workspace not in directory.parents:
        raise ValueError(f"Relative path is not allowed to refer to a directory outside its parent: {source_path}")
    return directory


class Publisher:
    """
    Publishes workspace content to Bitbucket Server.

    Example:
        ```python
        from bbpublish import IntegrationRegistry, Publisher, PullRequestSpec

        publisher = Publisher(IntegrationRegistry.from_env(), workspace_path="./out")
        result = publisher.publish(
            "bitbucket.example.com?project=TEAM&repo=svc",
            branch="main",
            pull_request=PullRequestSpec(
                title="Scaffold service",
                source_ref="feature/update",
                target_ref="main",
                reviewers=["alice"],
            ),
        )
        print(result.pull_request.pull_request_url)
        ```
    """

    def __init__(
        self,
        registry: IntegrationRegistry,
        workspace_path: str | Path,
        defaults: PublishDefaults | None = None,
        git_factory: GitFactory | None = None,
        timeout: float = BitbucketServerClient.DEFAULT_TIMEOUT,
        retry_config: RetryConfig | None = None,
        http_transport: httpx.BaseTransport | None = None,
    ) -> None:
        """
        Initialize the publisher.

        Args:
            registry: Known Bitbucket Server integrations
            workspace_path: Root of the staged workspace
            defaults: Commit message/author fallbacks (default: PublishDefaults())
            git_factory: Builds the git backend for an invocation (default: GitHelper)
            timeout: HTTP request timeout in seconds
            retry_config: HTTP retry behavior (default: no retries)
            http_transport: Optional httpx transport (test seam)
        """
        self.registry = registry
        self.workspace_path = Path(workspace_path)
        self.defaults = defaults or PublishDefaults()
        self.git_factory = git_factory or _default_git_factory
        self.timeout = timeout
        self.retry_config = retry_config
        self.http_transport = http_transport

    def create_repository(
        self,
        repo_url: str,
        description: str | None = None,
        default_branch: str = "master",
        repo_visibility: str = "private",
        enable_lfs: bool = False,
        token: str | None = None,
        deadline: Deadline | None = None,
    ) -> RepositoryRecord:
        """
        Create a repository, or reuse it when the name is already taken.

        Args:
            repo_url: Repository location
            description: Optional repository description
            default_branch: Default branch of a new repository (default: "master")
            repo_visibility: "private" or "public" (default: "private")
            enable_lfs: Enable Git LFS after creation (default: False)
            token: Optional token overriding the configured credentials
            deadline: Optional deadline for the whole invocation

        Returns:
            RepositoryRecord; ``created`` is False when an existing repository was reused

        Raises:
            InvalidLocation, ConfigurationError, MissingCredentials,
            RepositoryCreateFailed, RepositoryLookupFailed, LfsEnableFailed, Cancelled
        """
        identity, config, auth = self._prepare(repo_url, token)
        deadline = deadline or Deadline()

        with self._client(config, auth, deadline) as client:
            return self._ensure_repository(
                client, identity, description, default_branch, repo_visibility, enable_lfs
            )

    def push(
        self,
        repo_url: str,
        branch: str = "backstage/update",
        source_path: str | None = None,
        token: str | None = None,
        commit_message: str | None = None,
        author_name: str | None = None,
        author_email: str | None = None,
        deadline: Deadline | None = None,
    ) -> PublishResult:
        """
        Push workspace content to a branch of an existing repository.

        Args:
            repo_url: Repository location
            branch: Branch to push to; created on the remote if missing
            source_path: Sub-path of the workspace to publish
            token: Optional token overriding the configured credentials
            commit_message: Commit message (default: PublishDefaults.commit_message)
            author_name: Commit author name (default: PublishDefaults.author_name)
            author_email: Commit author email (default: PublishDefaults.author_email)
            deadline: Optional deadline for the whole invocation

        Returns:
            PublishResult with the remote URL and the commit hash (None if nothing changed)

        Raises:
            InvalidLocation, ConfigurationError, MissingCredentials,
            RepositoryLookupFailed, LinkNotFound, Cancelled,
            subprocess.CalledProcessError
        """
        identity, config, auth = self._prepare(repo_url, token)
        deadline = deadline or Deadline()
        directory = resolve_source_directory(self.workspace_path, source_path)

        with self._client(config, auth, deadline) as client:
            record = client.repos.get(identity.project, identity.repo)

        return self._push_directory(
            auth, deadline, directory, record.remote_url, branch,
            commit_message, author_name, author_email,
        )

    def clone_and_branch(
        self,
        repo_url: str,
        checkout_branch: str,
        base_branch: str = "master",
        clone_path: str | Path | None = None,
        token: str | None = None,
        deadline: Deadline | None = None,
    ) -> CloneResult:
        """
        Clone a repository at ``base_branch`` and check out a new local branch.

        Args:
            repo_url: Repository location
            checkout_branch: Branch created locally and checked out
            base_branch: Branch to clone (default: "master")
            clone_path: Target directory (default: the workspace)
            token: Optional token overriding the configured credentials
            deadline: Optional deadline for the whole invocation

        Raises:
            InvalidLocation, ConfigurationError, MissingCredentials,
            RepositoryLookupFailed, LinkNotFound, Cancelled,
            subprocess.CalledProcessError
        """
        identity, config, auth = self._prepare(repo_url, token)
        deadline = deadline or Deadline()
        directory = Path(clone_path) if clone_path is not None else self.workspace_path

        with self._client(config, auth, deadline) as client:
            record = client.repos.get(identity.project, identity.repo)

        git = self.git_factory(auth, deadline)
        git.clone(record.remote_url, directory, ref=base_branch)
        git.branch(directory, checkout_branch)
        git.checkout(directory, checkout_branch)

        logger.info(f"Cloned {record.remote_url} into {directory} on branch {checkout_branch}")
        return CloneResult(
            remote_url=record.remote_url,
            repo_contents_url=record.repo_contents_url,
            clone_path=directory,
        )

    def open_pull_request(
        self,
        repo_url: str,
        title: str,
        source_branch: str,
        target_branch: str,
        description: str | None = None,
        reviewers: list[str] | None = None,
        token: str | None = None,
        deadline: Deadline | None = None,
    ) -> PullRequestResult:
        """
        Open a pull request; required reviewers are always included.

        Raises:
            InvalidLocation, ConfigurationError, MissingCredentials,
            RepositoryLookupFailed, ReviewerLookupFailed,
            PullRequestCreateFailed, PullRequestResponseMalformed, Cancelled
        """
        identity, config, auth = self._prepare(repo_url, token)
        deadline = deadline or Deadline()

        spec = PullRequestSpec(
            title=title,
            source_ref=source_branch,
            target_ref=target_branch,
            description=description,
            reviewers=list(reviewers or []),
        )
        with self._client(config, auth, deadline) as client:
            return self._create_pull_request(client, identity, spec, repo_url)

    def publish(
        self,
        repo_url: str,
        description: str | None = None,
        default_branch: str = "master",
        repo_visibility: str = "private",
        enable_lfs: bool = False,
        branch: str | None = None,
        source_path: str | None = None,
        commit_message: str | None = None,
        author_name: str | None = None,
        author_email: str | None = None,
        pull_request: PullRequestSpec | None = None,
        token: str | None = None,
        deadline: Deadline | None = None,
    ) -> PublishWithPullRequestResult:
        """
        Create or reuse a repository, push the workspace, and optionally open a PR.

        Runs ResolveIdentity, Authenticate, EnsureRepository, EnableLFS (when
        requested), Push, then ResolveReviewers and CreatePullRequest (when
        ``pull_request`` is given). The first failure ends the invocation.

        Args:
            branch: Branch to push to (default: ``default_branch``)
            pull_request: Pull request to open after the push

        Returns:
            PublishWithPullRequestResult with repository, push and PR outputs
        """
        identity, config, auth = self._prepare(repo_url, token)
        deadline = deadline or Deadline()
        directory = resolve_source_directory(self.workspace_path, source_path)

        with self._client(config, auth, deadline) as client:
            record = self._ensure_repository(
                client, identity, description, default_branch, repo_visibility, enable_lfs
            )

            published = self._push_directory(
                auth, deadline, directory, record.remote_url, branch or default_branch,
                commit_message, author_name, author_email,
            )

            created_pr = None
            if pull_request is not None:
                created_pr = self._create_pull_request(client, identity, pull_request, repo_url)

        return PublishWithPullRequestResult(
            repository=record,
            publish=published,
            pull_request=created_pr,
        )

    def _prepare(
        self, repo_url: str, token: str | None
    ) -> tuple[RepositoryIdentity, IntegrationConfig, AuthContext]:
        identity = parse_repo_url(repo_url, self.registry)
        config = self.registry.get(identity.host)
        return identity, config, resolve_auth(config, token)

    def _client(
        self, config: IntegrationConfig, auth: AuthContext, deadline: Deadline
    ) -> BitbucketServerClient:
        return BitbucketServerClient(
            config,
            auth,
            timeout=self.timeout,
            retry_config=self.retry_config,
            deadline=deadline,
            http_transport=self.http_transport,
        )

    def _ensure_repository(
        self,
        client: BitbucketServerClient,
        identity: RepositoryIdentity,
        description: str | None,
        default_branch: str,
        repo_visibility: str,
        enable_lfs: bool,
    ) -> RepositoryRecord:
        record = client.repos.create(
            identity.project,
            identity.repo,
            description=description,
            default_branch=default_branch,
            visibility=repo_visibility,
        )
        if enable_lfs:
            client.repos.enable_lfs(identity.project, identity.repo)

        verb = "Created" if record.created else "Reusing existing"
        logger.info(f"{verb} repository {record.repo_contents_url} (id {record.repository_id})")
        return record

    def _push_directory(
        self,
        auth: AuthContext,
        deadline: Deadline,
        directory: Path,
        remote_url: str,
        branch: str,
        commit_message: str | None,
        author_name: str | None,
        author_email: str | None,
    ) -> PublishResult:
        author = CommitAuthor(
            name=author_name or self.defaults.author_name,
            email=author_email or self.defaults.author_email,
        )
        git = self.git_factory(auth, deadline)
        commit_hash = git.init_repo_and_push(
            directory,
            remote_url,
            branch,
            commit_message or self.defaults.commit_message,
            author,
        )

        if commit_hash is None:
            logger.info(f"No changes to commit in {directory}")
        else:
            logger.info(f"Pushed {commit_hash} to {remote_url} branch {branch}")
        return PublishResult(remote_url=remote_url, commit_hash=commit_hash)

    def _create_pull_request(
        self,
        client: BitbucketServerClient,
        identity: RepositoryIdentity,
        spec: PullRequestSpec,
        repo_url: str,
    ) -> PullRequestResult:
        logger.info(
            f"Creating pull request {{repo: {repo_url}, sourceBranch: {spec.source_ref}, "
            f"targetBranch: {spec.target_ref}}}"
        )
        result = client.pulls.create(
            identity.project,
            identity.repo,
            title=spec.title,
            source_branch=spec.source_ref,
            target_branch=spec.target_ref,
            description=spec.description,
            reviewers=spec.reviewers,
        )
        logger.info(f"Created pull request: {result.pull_request_url}")
        return result
