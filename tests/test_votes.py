"""Tests for voting on questions and comments."""

import pytest

from conftest import create_question

VOTES_URL = "/api/votes"


@pytest.fixture()
def question(client, user_headers):
    return create_question(client, user_headers)


def _vote(client, headers, target_id, vote_type="upvote", target_type="question"):
    r = client.post(
        VOTES_URL,
        json={"target_type": target_type, "target_id": target_id, "vote_type": vote_type},
        headers=headers,
    )
    assert r.status_code == 200, r.text
    return r.json()


def test_vote_toggles(client, user_headers, question):
    qid = question["question_id"]

    data = _vote(client, user_headers, qid)
    assert data["action"] == "added"
    assert data["summary"]["upvotes"] == 1
    assert data["summary"]["user_vote"] == "upvote"

    data = _vote(client, user_headers, qid)
    assert data["action"] == "removed"
    assert data["vote"] is None
    assert data["summary"]["upvotes"] == 0
    assert data["summary"]["user_vote"] is None

    _vote(client, user_headers, qid)
    data = _vote(client, user_headers, qid, "downvote")
    assert data["action"] == "updated"
    assert data["vote"]["vote_type"] == "downvote"
    assert data["summary"]["upvotes"] == 0
    assert data["summary"]["downvotes"] == 1
    assert data["summary"]["score"] == -1

    r = client.get(f"/api/questions/{qid}", headers=user_headers)
    assert r.json()["downvote_count"] == 1
    assert r.json()["upvote_count"] == 0


def test_summary_counts_every_voter(client, user_headers, reviewer_headers, admin_headers, question):
    qid = question["question_id"]
    _vote(client, user_headers, qid)
    _vote(client, reviewer_headers, qid)
    _vote(client, admin_headers, qid, "downvote")

    r = client.get(f"{VOTES_URL}/summary/question/{qid}", headers=reviewer_headers)
    assert r.status_code == 200
    summary = r.json()
    assert summary["upvotes"] == 2
    assert summary["downvotes"] == 1
    assert summary["score"] == 1
    assert summary["user_vote"] == "upvote"

    r = client.get(f"{VOTES_URL}/target/question/{qid}", headers=user_headers)
    assert r.json()["pagination"]["total"] == 3


def test_vote_on_comment(client, user_headers, reviewer_headers, question):
    comment = client.post(
        f"/api/questions/{question['question_id']}/comments",
        json={"comment_text": "Good one"},
        headers=user_headers,
    ).json()
    data = _vote(client, reviewer_headers, comment["comment_id"], target_type="comment")
    assert data["summary"]["upvotes"] == 1

    comments = client.get(
        f"/api/questions/{question['question_id']}/comments", headers=user_headers
    ).json()
    assert comments[0]["upvote_count"] == 1


def test_missing_target(client, user_headers):
    r = client.post(
        VOTES_URL,
        json={"target_type": "question", "target_id": 999, "vote_type": "upvote"},
        headers=user_headers,
    )
    assert r.status_code == 404
    assert client.get(f"{VOTES_URL}/summary/comment/999", headers=user_headers).status_code == 404


def test_invalid_target_type(client, user_headers):
    r = client.post(
        VOTES_URL,
        json={"target_type": "employee", "target_id": 1, "vote_type": "upvote"},
        headers=user_headers,
    )
    assert r.status_code == 400
    assert r.json()["errors"][0]["field"] == "target_type"


def test_deleted_question_cannot_be_voted_on(client, user_headers, question):
    client.delete(f"/api/questions/{question['question_id']}", headers=user_headers)
    r = client.post(
        VOTES_URL,
        json={"target_type": "question", "target_id": question["question_id"], "vote_type": "upvote"},
        headers=user_headers,
    )
    assert r.status_code == 404


def test_my_votes_and_delete(client, user_headers, reviewer_headers, question):
    qid = question["question_id"]
    vote = _vote(client, user_headers, qid)["vote"]

    r = client.get(f"{VOTES_URL}/my-votes", headers=user_headers)
    assert [v["vote_id"] for v in r.json()["votes"]] == [vote["vote_id"]]
    r = client.get(f"{VOTES_URL}/my-votes", params={"target_type": "comment"}, headers=user_headers)
    assert r.json()["votes"] == []

    assert client.delete(f"{VOTES_URL}/{vote['vote_id']}", headers=reviewer_headers).status_code == 403
    assert client.delete(f"{VOTES_URL}/{vote['vote_id']}", headers=user_headers).status_code == 200
    assert client.delete(f"{VOTES_URL}/{vote['vote_id']}", headers=user_headers).status_code == 404

    summary = client.get(f"{VOTES_URL}/summary/question/{qid}", headers=user_headers).json()
    assert summary["upvotes"] == 0


def test_votes_require_login(client, question):
    r = client.post(
        VOTES_URL,
        json={"target_type": "question", "target_id": question["question_id"], "vote_type": "upvote"},
    )
    assert r.status_code == 401


def test_deleting_a_voter_reverses_their_votes(client, admin_headers, make_user, question):
    qid = question["question_id"]
    voter, voter_headers = make_user("voter@example.com", roles=["User"])
    _, other_headers = make_user("other@example.com", roles=["User"])
    _vote(client, voter_headers, qid)
    _vote(client, other_headers, qid, "downvote")

    r = client.delete(f"/api/user_management/users/{voter['user_id']}", headers=admin_headers)
    assert r.status_code == 200

    summary = client.get(f"{VOTES_URL}/summary/question/{qid}", headers=other_headers).json()
    assert summary["upvotes"] == 0
    assert summary["downvotes"] == 1
    assert summary["score"] == -1

    r = client.get(f"{VOTES_URL}/target/question/{qid}", headers=other_headers)
    assert r.json()["pagination"]["total"] == 1
