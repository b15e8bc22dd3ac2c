from __future__ import annotations

from dataclasses import replace

from autorel.release.log_parse import Hook, LogParse, parse_raw_commit
from autorel.release.model import Author, Commit
from autorel.release.testing import raw_commit


class TestParseRawCommit:
    def test_plain_commit_has_no_pull_request(self) -> None:
        commit = parse_raw_commit(raw_commit("Fix typo\n\nin the readme"))
        assert commit.pull_request is None
        assert commit.subject == "Fix typo"
        assert commit.body == "in the readme"
        assert commit.authors == (Author(name="Adam Dierkens", email="adam@dierkens.com"),)

    def test_squash_reference_is_extracted(self) -> None:
        commit = parse_raw_commit(raw_commit("Second (#123)"))
        assert commit.pull_request is not None
        assert commit.pull_request.number == 123
        assert commit.subject == "Second"

    def test_reference_must_end_the_subject(self) -> None:
        commit = parse_raw_commit(raw_commit("Revert (#12) partially"))
        assert commit.pull_request is None

    def test_merge_commit_takes_title_from_body(self) -> None:
        commit = parse_raw_commit(
            raw_commit("Merge pull request #77 from someone/branch\n\nAdd dark mode")
        )
        assert commit.pull_request is not None
        assert commit.pull_request.number == 77
        assert commit.subject == "Add dark mode"

    def test_co_authors(self) -> None:
        commit = parse_raw_commit(
            raw_commit(
                "Pairing (#5)\n\n"
                "Co-authored-by: Andrew Lisowski <andrew@users.noreply.github.com>\n"
                "co-authored-by: Adam <ADAM@dierkens.com>"
            )
        )
        assert [a.email for a in commit.authors] == [
            "adam@dierkens.com",
            "andrew@users.noreply.github.com",
        ]
        assert commit.authors[1].name == "Andrew Lisowski"

    def test_first_line(self) -> None:
        commit = parse_raw_commit(raw_commit("Title\n\nbody"))
        assert commit.first_line == "Title"


class TestHook:
    def test_tap_order_and_names(self) -> None:
        hook: Hook[str] = Hook()
        hook.tap("a", "first")
        hook.tap("b", "second")
        assert hook.names == ["a", "b"]
        assert list(hook) == ["first", "second"]
        assert len(hook) == 2


class TestLogParse:
    def test_no_hooks(self) -> None:
        commits = LogParse().normalize_commits(
            [raw_commit("First"), raw_commit("Second (#123)"), raw_commit("Third")]
        )
        assert [c.subject for c in commits] == ["First", "Second", "Third"]

    def test_parse_commit_hooks_run_in_order(self) -> None:
        parser = LogParse()
        parser.hooks.parse_commit.tap("upper", lambda c: replace(c, subject=c.subject.upper()))
        parser.hooks.parse_commit.tap("suffix", lambda c: replace(c, subject=c.subject + "!"))

        commits = parser.normalize_commits([raw_commit("ship it")])

        assert commits[0].subject == "SHIP IT!"

    def test_omit_commit(self) -> None:
        parser = LogParse()
        parser.hooks.omit_commit.tap("bots", lambda c: c.author_name.endswith("[bot]"))

        commits = parser.normalize_commits(
            [raw_commit("Bump deps", name="renovate[bot]"), raw_commit("Real work")]
        )

        assert [c.subject for c in commits] == ["Real work"]

    def test_omit_author(self) -> None:
        parser = LogParse()
        parser.hooks.omit_author.tap("adam", lambda a: a.name == "Adam Dierkens")

        commits = parser.normalize_commits(
            [raw_commit("Pair (#1)\n\nCo-authored-by: Bo <bo@example.com>")]
        )

        assert [a.name for a in commits[0].authors] == ["Bo"]

    def test_accepts_parsed_commits(self) -> None:
        commit = Commit(hash="h", subject="Done", body="", author_name="A", author_email="a@x")
        assert LogParse().normalize_commit(commit) == commit
