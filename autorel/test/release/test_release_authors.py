from __future__ import annotations

import threading
import time
from dataclasses import replace

import pytest

from autorel.output.console import MockConsole
from autorel.release.authors import AuthorResolver, MemoCache
from autorel.release.errors import ReleaseError
from autorel.release.log_parse import parse_raw_commit
from autorel.release.model import Author, HostUser, PullRequestCommit, PullRequestRef
from autorel.release.testing import FakeHost, raw_commit


class TestMemoCache:
    def test_computes_once_per_key(self) -> None:
        cache: MemoCache[str, int] = MemoCache()
        calls: list[str] = []

        def compute(key: str) -> int:
            calls.append(key)
            return len(key)

        assert cache.get("andrew", lambda: compute("andrew")) == 6
        assert cache.get("andrew", lambda: compute("andrew")) == 6
        assert cache.get("adam", lambda: compute("adam")) == 4
        assert calls == ["andrew", "adam"]
        assert "adam" in cache
        assert len(cache) == 2

    def test_concurrent_requests_are_coalesced(self) -> None:
        cache: MemoCache[str, str] = MemoCache()
        release = threading.Event()
        lock = threading.Lock()
        calls = 0

        def compute() -> str:
            nonlocal calls
            with lock:
                calls += 1
            release.wait(timeout=5)
            return "Andrew Lisowski"

        results: list[str] = []

        def worker() -> None:
            value = cache.get("andrew", compute)
            with lock:
                results.append(value)

        threads = [threading.Thread(target=worker) for _ in range(8)]
        for t in threads:
            t.start()
        time.sleep(0.05)
        release.set()
        for t in threads:
            t.join(timeout=5)

        assert calls == 1
        assert results == ["Andrew Lisowski"] * 8

    def test_errors_are_shared_with_waiters(self) -> None:
        cache: MemoCache[str, str] = MemoCache()

        def boom() -> str:
            raise RuntimeError("remote down")

        with pytest.raises(RuntimeError):
            cache.get("k", boom)
        with pytest.raises(RuntimeError):
            cache.get("k", lambda: "never computed")


def _pr_commit(number: int = 123, *, email: str, name: str = "Andrew Lisowski"):
    return parse_raw_commit(raw_commit(f"Second (#{number})", name=name, email=email))


class TestAuthorResolver:
    def test_login_from_pull_request_commits(self) -> None:
        host = FakeHost(
            pr_commits={
                123: [
                    PullRequestCommit(
                        sha="s1",
                        author_login="andrew",
                        author_email="andrew@users.noreply.github.com",
                    )
                ]
            },
            users={"andrew": HostUser(login="andrew", name="Andrew Lisowski")},
        )
        resolver = AuthorResolver(host=host, console=MockConsole())

        commit = resolver.resolve(_pr_commit(email="andrew@users.noreply.github.com"))

        assert commit.authors == (
            Author(
                username="andrew",
                name="Andrew Lisowski",
                email="andrew@users.noreply.github.com",
            ),
        )

    def test_falls_back_to_commit_detail(self) -> None:
        commit = _pr_commit(email="lisowski54@gmail.com")
        host = FakeHost(
            pr_commits={123: [PullRequestCommit(sha="s1", author_login="andrew")]},
            commit_logins={commit.hash: "adam"},
            users={"adam": HostUser(login="adam", name="Adam Dierkens")},
        )
        resolver = AuthorResolver(host=host, console=MockConsole())

        resolved = resolver.resolve(commit)

        assert resolved.authors[0].username == "adam"
        assert resolved.authors[0].name == "Adam Dierkens"

    def test_user_lookup_is_cached(self) -> None:
        host = FakeHost(
            pr_commits={
                123: [PullRequestCommit(sha="s1", author_login="andrew", author_email="a@x.com")]
            },
            users={"andrew": HostUser(login="andrew", name="Andrew")},
        )
        resolver = AuthorResolver(host=host, console=MockConsole())

        resolver.resolve(_pr_commit(email="a@x.com"))
        resolver.resolve(_pr_commit(email="a@x.com"))

        assert host.calls["user:andrew"] == 1
        assert host.calls["pr_commits:123"] == 1

    def test_remote_failures_keep_git_identity(self) -> None:
        commit = _pr_commit(email="lisowski54@gmail.com")
        host = FakeHost(
            pr_commits={123: RuntimeError("connection reset")},
            commit_logins={
                commit.hash: ReleaseError(kind="remote_unavailable", message="HTTP 503")
            },
        )
        console = MockConsole()
        resolver = AuthorResolver(host=host, console=console)

        resolved = resolver.resolve(commit)

        assert resolved.authors == (Author(name="Andrew Lisowski", email="lisowski54@gmail.com"),)
        assert console.find("commits of #123 failed")
        assert console.find("HTTP 503")

    def test_user_lookup_failure_keeps_login(self) -> None:
        commit = _pr_commit(email="a@x.com")
        host = FakeHost(
            pr_commits={123: [PullRequestCommit(sha="s", author_login="andrew", author_email="a@x.com")]},
            users={"andrew": RuntimeError("boom")},
        )

        resolved = AuthorResolver(host=host, console=MockConsole()).resolve(commit)

        assert resolved.authors[0].username == "andrew"
        assert resolved.authors[0].name == "Andrew Lisowski"

    def test_submitter_used_when_commit_has_no_authors(self) -> None:
        commit = replace(
            _pr_commit(email="a@x.com"),
            authors=(),
            pull_request=PullRequestRef(number=123, submitter="jane"),
        )
        host = FakeHost(users={"jane": HostUser(login="jane", name="Jane Doe")})

        resolved = AuthorResolver(host=host, console=MockConsole()).resolve(commit)

        assert resolved.authors == (Author(username="jane", name="Jane Doe"),)

    def test_commit_without_pull_request(self) -> None:
        commit = parse_raw_commit(raw_commit("Third"))
        host = FakeHost()

        resolved = AuthorResolver(host=host, console=MockConsole()).resolve(commit)

        assert resolved.authors == commit.authors
        assert host.calls[f"commit:{commit.hash}"] == 1
