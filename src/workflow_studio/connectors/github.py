"""GitHub connector.

``GitHubClient`` wraps PyGithub for issue creation and the REST contents API for
file commits. ``GitHubConnector`` turns a saved GitHub template config into one of
those calls.
"""

from __future__ import annotations

import base64
import logging
from collections.abc import Callable, Mapping
from dataclasses import dataclass
from typing import Any

import requests
from github import Auth, Github, GithubException
from github.Repository import Repository

from workflow_studio.connectors.base import ActionResult

logger = logging.getLogger(__name__)

CREATE_ISSUE = "create_issue"
COMMIT_FILE = "commit_file"


@dataclass(frozen=True, slots=True)
class CreatedIssue:
    repository: str
    number: int
    title: str
    url: str | None


@dataclass(frozen=True, slots=True)
class CommittedFile:
    repository: str
    path: str
    sha: str


class GitHubClient:
    """Small wrapper around PyGithub plus a requests session for the contents API."""

    def __init__(
        self,
        *,
        token: str,
        repository: str,
        base_url: str = "https://api.github.com",
        repo: Repository | None = None,
        github_api: Github | None = None,
        session: requests.Session | None = None,
    ) -> None:
        if not token:
            raise ValueError("GitHub token is required")
        if not repository or "/" not in repository:
            raise ValueError("GitHub repository must be in the form 'owner/repo'")

        self._repository_name = repository
        self._rest_base_url = base_url.rstrip("/")
        self._session = session or requests.Session()
        self._session.headers.update(
            {
                "Authorization": f"Bearer {token}",
                "Accept": "application/vnd.github+json",
                "X-GitHub-Api-Version": "2022-11-28",
                "User-Agent": "workflow-studio",
            }
        )

        if repo is not None:
            self._repo = repo
            return

        github = github_api or Github(auth=Auth.Token(token), base_url=base_url)
        self._repo = github.get_repo(repository)
        logger.info("Connected to GitHub repository", extra={"repo": repository})

    @property
    def repository(self) -> str:
        return self._repository_name

    def _contents_url(self, path: str) -> str:
        return f"{self._rest_base_url}/repos/{self._repository_name}/contents/{path.lstrip('/')}"

    def create_issue(self, *, title: str, body: str | None = None) -> CreatedIssue:
        if not title.strip():
            raise ValueError("Issue title is required")

        issue = self._repo.create_issue(title=title, body=body or "")
        return CreatedIssue(
            repository=self._repository_name,
            number=issue.number,
            title=issue.title,
            url=getattr(issue, "html_url", None),
        )

    def _existing_sha(self, path: str, branch: str) -> str | None:
        params = {"ref": branch} if branch.strip() else None
        resp = self._session.get(self._contents_url(path), params=params, timeout=30)
        if resp.status_code == 404:
            return None
        resp.raise_for_status()
        sha = resp.json().get("sha")
        return sha if isinstance(sha, str) and sha.strip() else None

    def commit_file(
        self, *, path: str, content: str, message: str, branch: str = ""
    ) -> CommittedFile:
        """Create or update a text file via the contents API."""

        if not path.strip():
            raise ValueError("File path is required")

        payload: dict[str, Any] = {
            "message": message or f"Update {path}",
            "content": base64.b64encode(content.encode("utf-8")).decode("utf-8"),
        }
        if branch.strip():
            payload["branch"] = branch
        sha = self._existing_sha(path, branch)
        if sha is not None:
            payload["sha"] = sha

        resp = self._session.put(self._contents_url(path), json=payload, timeout=30)
        resp.raise_for_status()
        content_info = resp.json().get("content")
        if isinstance(content_info, dict):
            new_sha = content_info.get("sha")
            if isinstance(new_sha, str) and new_sha.strip():
                return CommittedFile(repository=self._repository_name, path=path, sha=new_sha)
        raise ValueError("Unexpected contents response: missing content sha")


ClientFactory = Callable[..., GitHubClient]


def _repository_from_config(config: Mapping[str, Any]) -> str:
    repository = str(config.get("repository") or "").strip()
    if repository:
        return repository
    owner = str(config.get("owner") or "").strip()
    repo = str(config.get("repo") or "").strip()
    return f"{owner}/{repo}" if owner and repo else ""


class GitHubConnector:
    """Runs the action described by a saved GitHub template config.

    Config keys: ``access_token``, ``repository`` (or ``owner`` + ``repo``),
    ``action`` (``create_issue`` or ``commit_file``), then ``title``/``body`` for
    issues or ``path``/``content``/``message``/``branch`` for commits.
    """

    def __init__(
        self,
        *,
        base_url: str = "https://api.github.com",
        client_factory: ClientFactory | None = None,
    ) -> None:
        self._base_url = base_url
        self._client_factory = client_factory or GitHubClient

    def execute(self, config: Mapping[str, Any]) -> ActionResult:
        action = str(config.get("action") or CREATE_ISSUE)
        if action not in (CREATE_ISSUE, COMMIT_FILE):
            return ActionResult(ok=False, message=f"Unsupported GitHub action: {action}")

        repository = _repository_from_config(config)
        token = str(config.get("access_token") or "")
        if not repository or not token:
            return ActionResult(
                ok=False, message="GitHub config needs an access token and a repository"
            )

        try:
            client = self._client_factory(
                token=token, repository=repository, base_url=self._base_url
            )
            if action == CREATE_ISSUE:
                issue = client.create_issue(
                    title=str(config.get("title") or ""), body=config.get("body")
                )
                return ActionResult(
                    ok=True,
                    message=f"Created issue #{issue.number}",
                    details={"repository": repository, "number": issue.number, "url": issue.url},
                )

            committed = client.commit_file(
                path=str(config.get("path") or ""),
                content=str(config.get("content") or ""),
                message=str(config.get("message") or ""),
                branch=str(config.get("branch") or ""),
            )
            return ActionResult(
                ok=True,
                message=f"Committed {committed.path}",
                details={"repository": repository, "path": committed.path, "sha": committed.sha},
            )
        except (GithubException, requests.RequestException, ValueError) as e:
            logger.warning(
                "GitHub action failed",
                extra={"action": action, "repository": repository, "error": str(e)},
            )
            return ActionResult(ok=False, message=f"GitHub {action} failed: {e}")
