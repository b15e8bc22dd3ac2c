from __future__ import annotations

import threading
from collections.abc import Callable, Hashable
from concurrent.futures import Future
from dataclasses import replace

from autorel.output.console import ConsoleProtocol
from autorel.release.host import HostClient, call_host
from autorel.release.model import Author, Commit, PullRequestCommit, merge_authors


class MemoCache[K: Hashable, V]:
    """Thread-safe memoization with one in-flight computation per key.

    The first caller for a key computes the value; concurrent callers for the
    same key block on the same future instead of computing it again.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._entries: dict[K, Future[V]] = {}

    def get(self, key: K, compute: Callable[[], V]) -> V:
        with self._lock:
            future = self._entries.get(key)
            owner = future is None
            if future is None:
                future = Future()
                self._entries[key] = future

        if owner:
            try:
                future.set_result(compute())
            except Exception as e:
                # Waiters re-raise the same error from result().
                future.set_exception(e)
        return future.result()

    def __contains__(self, key: object) -> bool:
        with self._lock:
            return key in self._entries

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)


def _login_by_email(pr_commits: list[PullRequestCommit], email: str | None) -> str | None:
    if not email:
        return None
    wanted = email.lower()
    for c in pr_commits:
        if c.author_login and c.author_email and c.author_email.lower() == wanted:
            return c.author_login
    return None


class AuthorResolver:
    """Maps git identities to platform accounts for one engine invocation.

    Lookups are cached per username, per pull request and per commit hash, so
    a username shared by many commits costs a single remote call.
    """

    def __init__(self, *, host: HostClient, console: ConsoleProtocol) -> None:
        self._host = host
        self._console = console
        self._users: MemoCache[str, Author | None] = MemoCache()
        self._pr_commits: MemoCache[int, list[PullRequestCommit] | None] = MemoCache()
        self._commit_logins: MemoCache[str, str | None] = MemoCache()

    def user(self, username: str) -> Author | None:
        return self._users.get(username, lambda: self._fetch_user(username))

    def pull_request_commits(self, number: int) -> list[PullRequestCommit] | None:
        return self._pr_commits.get(
            number,
            lambda: call_host(
                lambda: self._host.get_commits_for_pull_request(number),
                what=f"commits of #{number}",
                console=self._console,
            ),
        )

    def commit_login(self, sha: str) -> str | None:
        return self._commit_logins.get(
            sha,
            lambda: call_host(
                lambda: self._host.get_commit_detail(sha),
                what=f"commit {sha[:8]}",
                console=self._console,
            ),
        )

    def resolve(self, commit: Commit) -> Commit:
        """Attach platform identities to the authors of ``commit``.

        Unresolvable authors keep their git name/email.
        """
        pr = commit.pull_request
        pr_commits = self.pull_request_commits(pr.number) if pr is not None else None

        resolved: list[Author] = []
        for author in commit.authors:
            login = author.username
            if login is None and pr_commits:
                login = _login_by_email(pr_commits, author.email)
            if login is None and _is_git_author(commit, author):
                login = self.commit_login(commit.hash)
            resolved.append(self._with_login(author, login))

        if not resolved and pr is not None and pr.submitter:
            resolved.append(self._with_login(Author(), pr.submitter))

        return replace(commit, authors=merge_authors(resolved))

    def _with_login(self, author: Author, login: str | None) -> Author:
        if not login:
            return author
        user = self.user(login)
        name = user.name if user is not None and user.name else author.name
        return Author(username=login, name=name, email=author.email)

    def _fetch_user(self, username: str) -> Author | None:
        user = call_host(
            lambda: self._host.get_user_by_username(username),
            what=f"user {username}",
            console=self._console,
        )
        if user is None:
            return None
        return Author(username=user.login, name=user.name)


def _is_git_author(commit: Commit, author: Author) -> bool:
    if not author.email or not commit.author_email:
        return False
    return author.email.lower() == commit.author_email.lower()
