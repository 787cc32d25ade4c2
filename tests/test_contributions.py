"""Tests for internal and external contribution aggregation."""

import pytest

from ghorg.contributions import ContributionAggregator
from ghorg.github.errors import RemoteError

from conftest import event_payload, slowed


@pytest.fixture
def aggregator(fake_github, progress):
    return ContributionAggregator(fake_github, progress, per_page=2, events_per_page=2)


CONTRIBUTORS = [
    {"login": "boneskull", "contributions": 42},
    {"login": "xdamman", "contributions": 55},
]


class TestInternal:
    def test_contributors_per_repo(self, fake_github, aggregator):
        fake_github.add_repo("quux/foo", stars=10)
        fake_github.add_repo("quux/bar", stars=3)
        fake_github.contributors["quux/foo"] = CONTRIBUTORS
        fake_github.contributors["quux/bar"] = CONTRIBUTORS

        result = aggregator.contributors_in_org(["quux"])

        assert result == {
            "quux": {
                "foo": {"stars": 10, "contributors": {"boneskull": 42, "xdamman": 55}},
                "bar": {"stars": 3, "contributors": {"boneskull": 42, "xdamman": 55}},
            }
        }

    def test_forks_are_not_the_orgs_work(self, fake_github, aggregator):
        fake_github.add_repo("quux/foo")
        fake_github.add_repo("quux/vendored", source="upstream/vendored")
        fake_github.contributors["quux/foo"] = CONTRIBUTORS

        result = aggregator.contributors_in_org(["quux"])

        assert list(result["quux"]) == ["foo"]
        assert fake_github.calls["list_contributors"] == 1

    def test_empty_repo_has_no_contributors(self, fake_github, aggregator):
        fake_github.add_repo("quux/empty", stars=1)
        fake_github.contributors["quux/empty"] = None

        result = aggregator.contributors_in_org(["quux"])

        assert result == {"quux": {"empty": {"stars": 1, "contributors": {}}}}

    def test_contributors_are_paginated(self, fake_github, aggregator):
        fake_github.add_repo("quux/foo")
        fake_github.contributors["quux/foo"] = [
            {"login": f"user{i}", "contributions": i} for i in range(5)
        ]

        result = aggregator.contributors_in_org(["quux"])

        assert len(result["quux"]["foo"]["contributors"]) == 5
        assert fake_github.calls["list_contributors"] == 3

    def test_vanished_repo_is_dropped(self, fake_github, aggregator):
        fake_github.add_repo("quux/foo")
        fake_github.add_repo("quux/gone")
        fake_github.contributors["quux/foo"] = CONTRIBUTORS
        del fake_github.repos["quux/gone"]

        result = aggregator.contributors_in_org(["quux"])

        assert list(result["quux"]) == ["foo"]

    def test_missing_org_is_dropped(self, fake_github, aggregator):
        fake_github.add_repo("quux/foo")
        fake_github.contributors["quux/foo"] = CONTRIBUTORS

        result = aggregator.contributors_in_org(["ghost", "quux"])

        assert list(result) == ["quux"]

    def test_remote_failure_aborts(self, fake_github, aggregator, monkeypatch):
        fake_github.add_repo("quux/foo")

        def broken(**kwargs):
            raise RemoteError("Bad credentials", status=401)

        monkeypatch.setattr(fake_github, "list_contributors", broken)

        with pytest.raises(RemoteError):
            aggregator.contributors_in_org(["quux"])

    def test_concurrent_fan_out_gives_same_result(self, fake_github, progress):
        for name in "abcdef":
            fake_github.add_repo(f"quux/{name}", stars=ord(name))
            fake_github.contributors[f"quux/{name}"] = [{"login": name, "contributions": 1}]
        sequential = ContributionAggregator(fake_github, progress).contributors_in_org(["quux"])
        parallel = ContributionAggregator(fake_github, progress, concurrency=4).contributors_in_org(["quux"])

        assert parallel == sequential
        assert len(parallel["quux"]) == 6


class TestExternal:
    def test_own_repos_are_excluded(self, fake_github, aggregator):
        fake_github.public_members["acme"] = ["alice"]
        fake_github.add_repo("acme/tool", listed=False)
        fake_github.add_repo("other/project", stars=5, listed=False)
        fake_github.events["alice"] = [
            event_payload("alice", "Acme/tool"),
            event_payload("alice", "other/project"),
        ]

        result = aggregator.org_member_contributions(["Acme"])

        assert "acme/tool" not in {name.lower() for name in result["Acme"]}
        assert result == {"Acme": {"other/project": {"stars": 5, "contributors": {"alice": 1}}}}

    def test_fork_activity_credited_to_root(self, fake_github, aggregator):
        fake_github.public_members["acme"] = ["alice"]
        fake_github.add_repo("other2/project", stars=99, listed=False)
        fake_github.add_repo("other/project", source="other2/project", listed=False)
        fake_github.events["alice"] = [
            event_payload("alice", "other/project"),
            event_payload("alice", "other/project", type="PullRequestEvent"),
        ]

        result = aggregator.org_member_contributions(["acme"])

        assert result == {"acme": {"other2/project": {"stars": 99, "contributors": {"alice": 2}}}}

    def test_forks_of_same_root_merge(self, fake_github, aggregator):
        fake_github.public_members["acme"] = ["alice", "bob"]
        fake_github.add_repo("up/lib", stars=12, listed=False)
        fake_github.add_repo("alice/lib", source="up/lib", listed=False)
        fake_github.add_repo("bob/lib", source="up/lib", listed=False)
        fake_github.events["alice"] = [event_payload("alice", "alice/lib")] * 3
        fake_github.events["bob"] = [event_payload("bob", "bob/lib"), event_payload("bob", "up/lib")]

        result = aggregator.org_member_contributions(["acme"])

        assert result == {"acme": {"up/lib": {"stars": 12, "contributors": {"alice": 3, "bob": 2}}}}

    def test_fork_of_org_project_is_not_external(self, fake_github, aggregator):
        fake_github.public_members["acme"] = ["alice"]
        fake_github.add_repo("acme/tool", listed=False)
        fake_github.add_repo("alice/tool", source="acme/tool", listed=False)
        fake_github.events["alice"] = [event_payload("alice", "alice/tool")]

        assert aggregator.org_member_contributions(["acme"]) == {"acme": {}}

    def test_only_allowed_event_types_count(self, fake_github, aggregator):
        fake_github.public_members["acme"] = ["alice"]
        fake_github.add_repo("other/project", listed=False)
        fake_github.events["alice"] = [
            event_payload("alice", "other/project", type="WatchEvent"),
            event_payload("alice", "other/project", type="IssueCommentEvent"),
        ]

        assert aggregator.org_member_contributions(["acme"]) == {"acme": {}}
        custom = aggregator.org_member_contributions(["acme"], event_types=["WatchEvent"])
        assert custom["acme"]["other/project"]["contributors"] == {"alice": 1}

    def test_deleted_repo_is_dropped(self, fake_github, aggregator):
        fake_github.public_members["acme"] = ["alice"]
        fake_github.add_repo("other/project", stars=1, listed=False)
        fake_github.events["alice"] = [
            event_payload("alice", "deleted/thing"),
            event_payload("alice", "other/project"),
        ]

        result = aggregator.org_member_contributions(["acme"])

        assert list(result["acme"]) == ["other/project"]

    def test_private_flag_lists_all_members(self, fake_github, aggregator):
        fake_github.public_members["acme"] = ["alice"]
        fake_github.private_members["acme"] = ["carol"]
        fake_github.add_repo("other/project", listed=False)
        fake_github.events["alice"] = []
        fake_github.events["carol"] = [event_payload("carol", "other/project")]

        public = aggregator.org_member_contributions(["acme"])
        everyone = aggregator.org_member_contributions(["acme"], private=True)

        assert public == {"acme": {}}
        assert everyone["acme"]["other/project"]["contributors"] == {"carol": 1}
        assert fake_github.calls["list_members"] == 1

    def test_event_pages_are_capped(self, fake_github, progress):
        aggregator = ContributionAggregator(fake_github, progress, events_per_page=2, max_event_pages=2)
        fake_github.add_repo("other/project", listed=False)
        fake_github.events["alice"] = [event_payload("alice", "other/project")] * 10

        counts = aggregator.events_for_user("alice")

        assert counts == {"other/project": 4}
        assert fake_github.calls["list_user_events"] == 2

    def test_members_by_repo_tallies_per_user(self, fake_github, aggregator):
        fake_github.events["alice"] = [event_payload("alice", "x/one"), event_payload("alice", "x/two")]
        fake_github.events["bob"] = [event_payload("bob", "x/one")]

        tally = aggregator.members_by_repo("acme", ["alice", "bob", "ghost"])

        assert tally == {"x/one": {"alice": 1, "bob": 1}, "x/two": {"alice": 1}}


def test_aggregate_contributions_dispatches_on_mode(fake_github, aggregator):
    fake_github.add_repo("quux/foo", stars=10)
    fake_github.contributors["quux/foo"] = CONTRIBUTORS
    fake_github.public_members["quux"] = ["boneskull"]
    fake_github.add_repo("else/where", stars=2, listed=False)
    fake_github.events["boneskull"] = [event_payload("boneskull", "else/where")]

    internal = aggregator.aggregate_contributions(["quux"])
    external = aggregator.aggregate_contributions(["quux"], external=True)

    assert internal["quux"]["foo"]["contributors"]["xdamman"] == 55
    assert external == {"quux": {"else/where": {"stars": 2, "contributors": {"boneskull": 1}}}}


def test_shared_fork_root_fetched_once_when_concurrent(fake_github, progress, monkeypatch):
    members = [f"m{i}" for i in range(6)]
    fake_github.public_members["acme"] = members
    fake_github.add_repo("up/lib", stars=9, listed=False)
    for login in members:
        fake_github.add_repo(f"{login}/lib", source="up/lib", listed=False)
        fake_github.events[login] = [event_payload(login, f"{login}/lib")]
    get_repo = slowed(fake_github.get_repo)
    monkeypatch.setattr(fake_github, "get_repo", get_repo)

    result = ContributionAggregator(fake_github, progress, concurrency=6).org_member_contributions(["acme"])

    assert result == {"acme": {"up/lib": {"stars": 9, "contributors": {login: 1 for login in members}}}}
    assert get_repo.calls == len(members) + 1
