from __future__ import annotations

import json
import shutil
from collections.abc import Callable
from pathlib import Path
from time import sleep
from typing import Protocol
from urllib.parse import quote

from autorel.core.result import Err, Ok, Result
from autorel.core.structured import (
    as_str_dict,
    get_int,
    get_list,
    get_str,
    get_table,
    names_of,
)
from autorel.output.console import ConsoleProtocol
from autorel.platform.process import ProcessError
from autorel.platform.process import run as run_process
from autorel.release.errors import ReleaseError, ReleaseErrorKind
from autorel.release.model import (
    HostUser,
    LabelDefinition,
    LatestRelease,
    PullRequestCommit,
    PullRequestRef,
    SearchItem,
    SearchResult,
)
from autorel.release.timeouts import (
    GH_READ_RETRY_ATTEMPTS,
    GH_READ_RETRY_DELAY_SECONDS,
    GH_TIMEOUT_SECONDS,
)


class HostClient(Protocol):
    """Remote repository host as seen by the release engine.

    Implementations report failures as ``Err``. The engine also tolerates
    implementations that raise, treating the exception like an ``Err``.
    """

    owner: str
    repo: str

    def get_pull_request(self, number: int) -> Result[PullRequestRef, ReleaseError]: ...

    def get_commits_for_pull_request(
        self, number: int
    ) -> Result[list[PullRequestCommit], ReleaseError]: ...

    def search_pull_requests(self, query: str) -> Result[SearchResult, ReleaseError]: ...

    def get_latest_release(self) -> Result[LatestRelease, ReleaseError]: ...

    def get_user_by_username(self, username: str) -> Result[HostUser, ReleaseError]: ...

    def get_commit_detail(self, sha: str) -> Result[str | None, ReleaseError]:
        """Login of the platform account that authored ``sha``, if any."""
        ...

    def list_repository_labels(self) -> Result[list[str], ReleaseError]: ...

    def create_label(self, label: LabelDefinition) -> Result[None, ReleaseError]: ...

    def update_label(self, label: LabelDefinition) -> Result[None, ReleaseError]: ...

    def repository_url(self) -> Result[str, ReleaseError]: ...


def _is_transient_gh_error(error: ProcessError) -> bool:
    text = f"{error.stderr}\n{error.stdout}".lower()
    markers = (
        "timed out",
        "timeout",
        "connection reset",
        "connection refused",
        "temporarily unavailable",
        "service unavailable",
        "bad gateway",
        "gateway timeout",
        "network is unreachable",
        "http 429",
        "http 500",
        "http 502",
        "http 503",
        "http 504",
    )
    return any(marker in text for marker in markers)


def _error_kind(error: ProcessError) -> ReleaseErrorKind:
    text = f"{error.stderr}\n{error.stdout}".lower()
    if "http 404" in text or "not found" in text:
        return "not_found"
    return "remote_unavailable"


def run_gh_read(
    *,
    workspace_root: Path,
    cmd: list[str],
    message: str,
    hint: str | None = None,
    timeout: float = GH_TIMEOUT_SECONDS,
    retry_attempts: int = GH_READ_RETRY_ATTEMPTS,
) -> Result[str, ReleaseError]:
    attempts = max(1, retry_attempts)
    for attempt in range(attempts):
        result = run_process(cmd, cwd=workspace_root, timeout=timeout)
        if isinstance(result, Ok):
            return result

        error = result.error
        if attempt < attempts - 1 and _is_transient_gh_error(error):
            sleep(GH_READ_RETRY_DELAY_SECONDS * (attempt + 1))
            continue

        return Err(
            ReleaseError(
                kind=_error_kind(error),
                message=message,
                hint=error.stderr.strip() or hint,
            )
        )

    return Err(ReleaseError(kind="remote_unavailable", message=message, hint=hint))


def ensure_gh_available() -> Result[None, ReleaseError]:
    if shutil.which("gh") is None:
        return Err(
            ReleaseError(
                kind="gh_missing",
                message="gh: missing",
                hint="Install GitHub CLI: https://cli.github.com/",
            )
        )
    return Ok(None)


def gh_api_json(*, workspace_root: Path, endpoint: str) -> Result[object, ReleaseError]:
    result = run_gh_read(
        workspace_root=workspace_root,
        cmd=["gh", "api", endpoint],
        message=f"gh api failed: {endpoint}",
        hint=endpoint,
    )
    if isinstance(result, Err):
        return result

    try:
        obj: object = json.loads(result.value)
    except json.JSONDecodeError as e:
        return Err(
            ReleaseError(
                kind="invalid_payload",
                message=f"gh api returned invalid JSON: {e}",
                hint=endpoint,
            )
        )

    return Ok(obj)


def gh_api_json_list(*, workspace_root: Path, endpoint: str) -> Result[list[object], ReleaseError]:
    """Every element of a paginated array endpoint.

    ``--jq '.[]'`` prints one compact JSON value per line across all pages.
    """
    result = run_gh_read(
        workspace_root=workspace_root,
        cmd=["gh", "api", "--paginate", "--jq", ".[]", endpoint],
        message=f"gh api failed: {endpoint}",
        hint=endpoint,
    )
    if isinstance(result, Err):
        return result

    items: list[object] = []
    for line in result.value.splitlines():
        if not line.strip():
            continue
        try:
            items.append(json.loads(line))
        except json.JSONDecodeError as e:
            return Err(
                ReleaseError(
                    kind="invalid_payload",
                    message=f"gh api returned invalid JSON: {e}",
                    hint=endpoint,
                )
            )

    return Ok(items)


def _payload_error(what: str, endpoint: str) -> Err[ReleaseError]:
    return Err(
        ReleaseError(kind="invalid_payload", message=f"unexpected {what} payload", hint=endpoint)
    )


def parse_pull_request(data: dict[str, object]) -> PullRequestRef | None:
    number = get_int(data, "number")
    if number is None:
        return None
    user = get_table(data, "user") or {}
    return PullRequestRef(
        number=number,
        labels=tuple(names_of(get_list(data, "labels"))),
        merge_commit_sha=get_str(data, "merge_commit_sha"),
        submitter=get_str(user, "login"),
    )


def parse_pull_request_commits(raw: list[object]) -> list[PullRequestCommit]:
    out: list[PullRequestCommit] = []
    for item in raw:
        d = as_str_dict(item)
        if d is None:
            continue

        sha = get_str(d, "sha")
        if sha is None:
            continue

        account = get_table(d, "author") or {}
        commit_tbl = get_table(d, "commit") or {}
        git_author = get_table(commit_tbl, "author") or {}
        out.append(
            PullRequestCommit(
                sha=sha,
                author_login=get_str(account, "login"),
                author_name=get_str(git_author, "name"),
                author_email=get_str(git_author, "email"),
            )
        )
    return out


def parse_search_result(data: dict[str, object]) -> SearchResult:
    items: list[SearchItem] = []
    for item in get_list(data, "items") or []:
        d = as_str_dict(item)
        if d is None:
            continue
        number = get_int(d, "number")
        if number is None:
            continue
        items.append(SearchItem(number=number, labels=tuple(names_of(get_list(d, "labels")))))

    total = get_int(data, "total_count")
    return SearchResult(items=tuple(items), total_count=len(items) if total is None else total)


class GhHost:
    """``HostClient`` backed by the GitHub CLI (``gh api``)."""

    def __init__(self, *, workspace_root: Path, owner: str, repo: str) -> None:
        self.workspace_root = workspace_root
        self.owner = owner
        self.repo = repo

    @property
    def slug(self) -> str:
        return f"{self.owner}/{self.repo}"

    def _get(self, endpoint: str) -> Result[object, ReleaseError]:
        return gh_api_json(workspace_root=self.workspace_root, endpoint=endpoint)

    def _get_all(self, endpoint: str) -> Result[list[object], ReleaseError]:
        return gh_api_json_list(workspace_root=self.workspace_root, endpoint=endpoint)

    def get_pull_request(self, number: int) -> Result[PullRequestRef, ReleaseError]:
        endpoint = f"repos/{self.slug}/pulls/{number}"
        obj = self._get(endpoint)
        if isinstance(obj, Err):
            return obj

        data = as_str_dict(obj.value)
        pr = parse_pull_request(data) if data is not None else None
        if pr is None:
            return _payload_error("pull request", endpoint)
        return Ok(pr)

    def get_commits_for_pull_request(
        self, number: int
    ) -> Result[list[PullRequestCommit], ReleaseError]:
        endpoint = f"repos/{self.slug}/pulls/{number}/commits?per_page=100"
        raw = self._get_all(endpoint)
        if isinstance(raw, Err):
            return raw
        return Ok(parse_pull_request_commits(raw.value))

    def search_pull_requests(self, query: str) -> Result[SearchResult, ReleaseError]:
        endpoint = f"search/issues?q={quote(query, safe='')}&per_page=100"
        obj = self._get(endpoint)
        if isinstance(obj, Err):
            return obj

        data = as_str_dict(obj.value)
        if data is None:
            return _payload_error("search", endpoint)
        return Ok(parse_search_result(data))

    def get_latest_release(self) -> Result[LatestRelease, ReleaseError]:
        endpoint = f"repos/{self.slug}/releases/latest"
        obj = self._get(endpoint)
        if isinstance(obj, Err):
            return obj

        data = as_str_dict(obj.value)
        if data is None:
            return _payload_error("release", endpoint)
        return Ok(
            LatestRelease(
                tag_name=get_str(data, "tag_name"),
                published_at=get_str(data, "published_at"),
            )
        )

    def get_user_by_username(self, username: str) -> Result[HostUser, ReleaseError]:
        endpoint = f"users/{quote(username, safe='')}"
        obj = self._get(endpoint)
        if isinstance(obj, Err):
            return obj

        data = as_str_dict(obj.value)
        login = get_str(data, "login") if data is not None else None
        if data is None or login is None:
            return _payload_error("user", endpoint)
        return Ok(HostUser(login=login, name=get_str(data, "name")))

    def get_commit_detail(self, sha: str) -> Result[str | None, ReleaseError]:
        endpoint = f"repos/{self.slug}/commits/{sha}"
        obj = self._get(endpoint)
        if isinstance(obj, Err):
            return obj

        data = as_str_dict(obj.value)
        if data is None:
            return _payload_error("commit", endpoint)
        account = get_table(data, "author") or {}
        return Ok(get_str(account, "login"))

    def list_repository_labels(self) -> Result[list[str], ReleaseError]:
        endpoint = f"repos/{self.slug}/labels?per_page=100"
        raw = self._get_all(endpoint)
        if isinstance(raw, Err):
            return raw
        return Ok(names_of(raw.value))

    def create_label(self, label: LabelDefinition) -> Result[None, ReleaseError]:
        return self._write_label(["-X", "POST", f"repos/{self.slug}/labels"], label)

    def update_label(self, label: LabelDefinition) -> Result[None, ReleaseError]:
        name = quote(label.name, safe="")
        return self._write_label(["-X", "PATCH", f"repos/{self.slug}/labels/{name}"], label)

    def repository_url(self) -> Result[str, ReleaseError]:
        endpoint = f"repos/{self.slug}"
        obj = self._get(endpoint)
        if isinstance(obj, Err):
            return obj

        data = as_str_dict(obj.value)
        url = get_str(data, "html_url") if data is not None else None
        if url is None:
            return _payload_error("repository", endpoint)
        return Ok(url)

    def _write_label(self, args: list[str], label: LabelDefinition) -> Result[None, ReleaseError]:
        # Writes are not retried: a timed out POST may still have landed.
        cmd = ["gh", "api", *args, "-f", f"name={label.name}"]
        cmd += ["-f", f"description={label.description[:100]}"]
        if label.color:
            cmd += ["-f", f"color={label.color.lstrip('#')}"]

        result = run_process(cmd, cwd=self.workspace_root, timeout=GH_TIMEOUT_SECONDS)
        if isinstance(result, Err):
            return Err(
                ReleaseError(
                    kind="label_write_failed",
                    message=f"gh api failed: {args[-1]}",
                    hint=result.error.stderr.strip() or None,
                )
            )
        return Ok(None)


def call_host[T](
    call: Callable[[], Result[T, ReleaseError]],
    *,
    what: str,
    console: ConsoleProtocol,
) -> T | None:
    """Run one remote read; a failure only makes this one lookup unresolved."""
    try:
        result = call()
    except Exception as e:  # noqa: BLE001 - host implementations may raise anything
        console.verbose(f"{what} failed: {e}")
        return None

    if isinstance(result, Err):
        console.verbose(f"{what} failed: {result.error.pretty()}")
        return None
    return result.value
