"""
Tests for required reviewer lookup and reviewer merging.

Feature: bbpublish
"""

import pytest
from hypothesis import given, settings
from hypothesis import strategies as st

from bbpublish.auth import resolve_auth
from bbpublish.client import BitbucketServerClient
from bbpublish.clients.reviewers import merge_reviewers
from bbpublish.exceptions import ReviewerLookupFailed
from bbpublish.types.pulls import Reviewer

REVIEWERS_PATH = "/rest/default-reviewers/1.0/projects/TEAM/repos/svc/reviewers"

username_strategy = st.text(
    min_size=1,
    max_size=12,
    alphabet=st.characters(whitelist_categories=("Ll", "Nd"), whitelist_characters="._-"),
)


def test_merge_example() -> None:
    merged = merge_reviewers(["bob", "carol"], [Reviewer("alice"), Reviewer("bob")])

    assert merged == [Reviewer("alice"), Reviewer("bob"), Reviewer("carol")]


def test_merge_without_requested_returns_required() -> None:
    required = [Reviewer("alice"), Reviewer("bob")]

    assert merge_reviewers([], required) == required


def test_merge_deduplicates_requested() -> None:
    assert merge_reviewers(["carol", "carol", ""], []) == [Reviewer("carol")]


@given(
    requested=st.lists(username_strategy, max_size=10),
    required=st.lists(username_strategy, max_size=10),
)
@settings(max_examples=100)
def test_merge_is_duplicate_free_and_required_first(requested: list[str], required: list[str]) -> None:
    """
    Merged reviewers contain no repeated username, start with every required
    reviewer in server order, and keep requested reviewers in caller order.
    """
    required_set = [Reviewer(name) for name in required]
    merged = merge_reviewers(requested, required_set)
    names = [reviewer.username for reviewer in merged]

    assert len(names) == len(set(names))

    unique_required = list(dict.fromkeys(required))
    assert names[: len(unique_required)] == unique_required

    expected_tail = [name for name in dict.fromkeys(requested) if name not in set(required)]
    assert names[len(unique_required):] == expected_tail


def make_client(config, server) -> BitbucketServerClient:
    return BitbucketServerClient(config, resolve_auth(config), http_transport=server.transport)


def test_get_required_sends_ref_pair(integration_config, fake_server) -> None:
    fake_server.on_default_reviewers("TEAM", "svc", usernames=["alice", "bob"])

    with make_client(integration_config, fake_server) as client:
        reviewers = client.reviewers.get_required(
            project_key="TEAM",
            repo_slug="svc",
            source_repo_id="42",
            source_ref_id="refs/heads/feature/update",
            target_repo_id="42",
            target_ref_id="refs/heads/main",
        )

    assert reviewers == [Reviewer("alice"), Reviewer("bob")]
    params = fake_server.calls("GET", REVIEWERS_PATH)[0].url.params
    assert params["sourceRepoId"] == "42"
    assert params["sourceRefId"] == "refs/heads/feature/update"
    assert params["targetRepoId"] == "42"
    assert params["targetRefId"] == "refs/heads/main"


def test_get_required_collapses_duplicates(integration_config, fake_server) -> None:
    fake_server.on_default_reviewers("TEAM", "svc", usernames=["alice", "alice"])

    with make_client(integration_config, fake_server) as client:
        reviewers = client.reviewers.get_required("TEAM", "svc", "1", "refs/heads/a", "1", "refs/heads/b")

    assert reviewers == [Reviewer("alice")]


def test_get_required_non_200(integration_config, fake_server) -> None:
    fake_server.on_default_reviewers("TEAM", "svc", status=500, text="boom")

    with make_client(integration_config, fake_server) as client:
        with pytest.raises(ReviewerLookupFailed) as exc_info:
            client.reviewers.get_required("TEAM", "svc", "1", "refs/heads/a", "1", "refs/heads/b")

    assert exc_info.value.status_code == 500
    assert exc_info.value.body == "boom"


@pytest.mark.parametrize(
    "payload",
    [
        {"name": "alice"},
        [{"slug": "alice"}],
        [{"name": ""}],
        ["alice"],
    ],
)
def test_get_required_rejects_malformed_entries(integration_config, fake_server, payload) -> None:
    fake_server.on_default_reviewers("TEAM", "svc", json_body=payload)

    with make_client(integration_config, fake_server) as client:
        with pytest.raises(ReviewerLookupFailed, match="Unexpected default reviewers response"):
            client.reviewers.get_required("TEAM", "svc", "1", "refs/heads/a", "1", "refs/heads/b")
