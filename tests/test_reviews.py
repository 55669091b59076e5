"""Tests for question reviews: lifecycle, visibility, comments and assignment."""

import pytest

from conftest import create_question

REVIEWS_URL = "/api/reviews"


@pytest.fixture()
def statuses(client, admin_headers):
    r = client.get(f"{REVIEWS_URL}/statuses", headers=admin_headers)
    assert r.status_code == 200
    return {s["name"]: s["status_id"] for s in r.json()}


@pytest.fixture()
def second_reviewer(make_user):
    return make_user("second.reviewer@example.com", roles=["Reviewer"])


def _open_review(client, headers, question_id, **extra):
    r = client.post(REVIEWS_URL, json={"question_id": question_id, **extra}, headers=headers)
    assert r.status_code == 201, r.text
    return r.json()


def test_seeded_statuses(client, reviewer_headers):
    r = client.get(f"{REVIEWS_URL}/statuses", headers=reviewer_headers)
    assert [(s["name"], s["is_closing"]) for s in r.json()] == [
        ("pending", False),
        ("in_progress", False),
        ("approved", True),
        ("rejected", True),
    ]


class TestCreateReview:
    def test_create(self, client, user_headers, reviewer_headers, second_reviewer):
        assignee, _ = second_reviewer
        question = create_question(client, user_headers)
        review = _open_review(
            client,
            reviewer_headers,
            question["question_id"],
            assigned_to=assignee["user_id"],
            notes="Check the distractors",
            priority=3,
            due_date="2030-01-31T12:00:00+00:00",
        )
        assert review["status_name"] == "pending"
        assert review["question_text"] == question["question_text"]
        assert review["created_by_email"] == "reviewer@example.com"
        assert review["assigned_to_email"] == "second.reviewer@example.com"
        assert review["priority"] == 3
        assert review["due_date"].startswith("2030-01-31T12:00:00")
        assert review["is_active"] is True
        assert [h["comments"] for h in review["history"]] == ["Review created"]
        assert [a["user_id"] for a in review["assignments"]] == [assignee["user_id"]]

    def test_one_active_review_per_question(self, client, user_headers, reviewer_headers):
        question = create_question(client, user_headers)
        _open_review(client, reviewer_headers, question["question_id"])
        r = client.post(
            REVIEWS_URL, json={"question_id": question["question_id"]}, headers=reviewer_headers
        )
        assert r.status_code == 409

    def test_rejects_missing_question_and_assignee(self, client, user_headers, reviewer_headers):
        r = client.post(REVIEWS_URL, json={"question_id": 999}, headers=reviewer_headers)
        assert r.status_code == 404

        question = create_question(client, user_headers)
        r = client.post(
            REVIEWS_URL,
            json={"question_id": question["question_id"], "assigned_to": 999},
            headers=reviewer_headers,
        )
        assert r.status_code == 400
        assert r.json()["detail"]["errors"][0]["field"] == "assigned_to"

        r = client.post(
            REVIEWS_URL,
            json={"question_id": question["question_id"], "priority": 5},
            headers=reviewer_headers,
        )
        assert r.status_code == 400

    def test_deleted_question_cannot_be_reviewed(self, client, user_headers, reviewer_headers):
        question = create_question(client, user_headers)
        client.delete(f"/api/questions/{question['question_id']}", headers=user_headers)
        r = client.post(
            REVIEWS_URL, json={"question_id": question["question_id"]}, headers=reviewer_headers
        )
        assert r.status_code == 404

    def test_users_cannot_open_reviews(self, client, user_headers):
        question = create_question(client, user_headers)
        r = client.post(
            REVIEWS_URL, json={"question_id": question["question_id"]}, headers=user_headers
        )
        assert r.status_code == 403


class TestReviewLifecycle:
    def test_status_changes_until_closed(self, client, user_headers, reviewer_headers, statuses):
        question = create_question(client, user_headers)
        review = _open_review(client, reviewer_headers, question["question_id"])
        url = f"{REVIEWS_URL}/{review['review_id']}/status"

        r = client.put(url, json={"status_id": 999}, headers=reviewer_headers)
        assert r.status_code == 400

        r = client.put(
            url,
            json={"status_id": statuses["in_progress"], "comment": "Looking now"},
            headers=reviewer_headers,
        )
        assert r.status_code == 200
        assert r.json()["is_active"] is True

        r = client.put(url, json={"status_id": statuses["approved"]}, headers=reviewer_headers)
        data = r.json()
        assert data["status_name"] == "approved"
        assert data["is_active"] is False
        assert [h["status_name"] for h in data["history"]] == ["pending", "in_progress", "approved"]
        assert data["history"][1]["comments"] == "Looking now"

        r = client.put(url, json={"status_id": statuses["rejected"]}, headers=reviewer_headers)
        assert r.status_code == 409

        # Closing frees the question for a new review
        _open_review(client, reviewer_headers, question["question_id"])

    def test_visibility(self, client, user_headers, reviewer_headers, second_reviewer, admin_headers):
        _, outsider_headers = second_reviewer
        question = create_question(client, user_headers)
        review = _open_review(client, reviewer_headers, question["question_id"])
        url = f"{REVIEWS_URL}/{review['review_id']}"

        assert client.get(url, headers=reviewer_headers).status_code == 200
        assert client.get(url, headers=admin_headers).status_code == 200
        assert client.get(url, headers=outsider_headers).status_code == 404
        r = client.post(f"{url}/comments", json={"comment": "Drive-by"}, headers=outsider_headers)
        assert r.status_code == 404
        assert client.get(f"{REVIEWS_URL}/999", headers=admin_headers).status_code == 404

    def test_comments(self, client, user_headers, reviewer_headers):
        question = create_question(client, user_headers)
        review = _open_review(client, reviewer_headers, question["question_id"])
        url = f"{REVIEWS_URL}/{review['review_id']}"

        r = client.post(f"{url}/comments", json={"comment": "Option B is ambiguous"}, headers=reviewer_headers)
        assert r.status_code == 201
        comment = r.json()
        assert comment["user_email"] == "reviewer@example.com"
        assert comment["author_name"] == "Test User"

        r = client.post(f"{url}/comments", json={"comment": ""}, headers=reviewer_headers)
        assert r.status_code == 400

        r = client.get(url, headers=reviewer_headers)
        assert [c["comment_text"] for c in r.json()["comments"]] == ["Option B is ambiguous"]

    def test_assign(self, client, user_headers, reviewer_headers, second_reviewer, admin_headers):
        assignee, assignee_headers = second_reviewer
        question = create_question(client, user_headers)
        review = _open_review(client, reviewer_headers, question["question_id"])
        url = f"{REVIEWS_URL}/{review['review_id']}"

        # Reviewers lack review_assign
        r = client.post(f"{url}/assign", json={"user_id": assignee["user_id"]}, headers=reviewer_headers)
        assert r.status_code == 403

        r = client.post(f"{url}/assign", json={"user_id": 999}, headers=admin_headers)
        assert r.status_code == 400

        r = client.post(f"{url}/assign", json={"user_id": assignee["user_id"]}, headers=admin_headers)
        assert r.status_code == 200
        data = r.json()
        assert data["assigned_to"] == assignee["user_id"]
        assert data["history"][-1]["status_id"] is None
        assert data["history"][-1]["comments"] == f"Assigned to user {assignee['user_id']}"

        r = client.post(f"{url}/assign", json={"user_id": review["created_by"]}, headers=admin_headers)
        assignments = r.json()["assignments"]
        assert [(a["user_id"], a["is_active"]) for a in assignments] == [
            (review["created_by"], True),
            (assignee["user_id"], False),
        ]

        # The earlier assignee no longer sees the review
        assert client.get(url, headers=assignee_headers).status_code == 404


class TestListingAndStatistics:
    def test_list_filters(self, client, user_headers, reviewer_headers, second_reviewer, statuses):
        assignee, _ = second_reviewer
        first = create_question(client, user_headers)
        second = create_question(client, user_headers, text="What is the boiling point of water?")
        third = create_question(client, user_headers, text="Name the longest river in Africa.")
        _open_review(client, reviewer_headers, first["question_id"], assigned_to=assignee["user_id"])
        _open_review(client, reviewer_headers, second["question_id"], notes="urgent wording fix")
        closed = _open_review(client, reviewer_headers, third["question_id"])
        client.put(
            f"{REVIEWS_URL}/{closed['review_id']}/status",
            json={"status_id": statuses["rejected"]},
            headers=reviewer_headers,
        )

        r = client.get(REVIEWS_URL, headers=reviewer_headers)
        assert r.status_code == 200
        assert r.json()["pagination"]["total"] == 2

        r = client.get(REVIEWS_URL, params={"includeClosed": True}, headers=reviewer_headers)
        assert r.json()["pagination"]["total"] == 3

        r = client.get(REVIEWS_URL, params={"assigned_to": assignee["user_id"]}, headers=reviewer_headers)
        assert [rv["question_id"] for rv in r.json()["reviews"]] == [first["question_id"]]

        r = client.get(REVIEWS_URL, params={"search": "urgent"}, headers=reviewer_headers)
        assert [rv["question_id"] for rv in r.json()["reviews"]] == [second["question_id"]]

        r = client.get(REVIEWS_URL, params={"search": "boiling"}, headers=reviewer_headers)
        assert r.json()["pagination"]["total"] == 1

        r = client.get(REVIEWS_URL, params={"status_id": statuses["in_progress"]}, headers=reviewer_headers)
        assert r.json()["reviews"] == []

        r = client.get(REVIEWS_URL, params={"limit": 1}, headers=reviewer_headers)
        assert r.json()["pagination"]["total_pages"] == 2

    def test_reviews_of_deleted_questions_are_hidden(self, client, user_headers, reviewer_headers):
        question = create_question(client, user_headers)
        _open_review(client, reviewer_headers, question["question_id"])
        client.delete(f"/api/questions/{question['question_id']}", headers=user_headers)
        r = client.get(REVIEWS_URL, headers=reviewer_headers)
        assert r.json()["pagination"]["total"] == 0

    def test_statistics(self, client, user_headers, reviewer_headers, second_reviewer, statuses):
        assignee, _ = second_reviewer
        first = create_question(client, user_headers)
        second = create_question(client, user_headers, text="What is the boiling point of water?")
        _open_review(client, reviewer_headers, first["question_id"], assigned_to=assignee["user_id"])
        done = _open_review(client, reviewer_headers, second["question_id"])
        client.put(
            f"{REVIEWS_URL}/{done['review_id']}/status",
            json={"status_id": statuses["approved"]},
            headers=reviewer_headers,
        )

        r = client.get(f"{REVIEWS_URL}/statistics", headers=reviewer_headers)
        assert r.status_code == 200
        data = r.json()
        assert data["total_reviews"] == 2
        assert data["pending_reviews"] == 1
        assert data["approved_reviews"] == 1
        assert data["rejected_reviews"] == 0
        assert data["reviewers_count"] == 1
        assert 0 <= data["avg_days_to_resolution"] < 1

    def test_statistics_without_closed_reviews(self, client, reviewer_headers):
        data = client.get(f"{REVIEWS_URL}/statistics", headers=reviewer_headers).json()
        assert data["total_reviews"] == 0
        assert data["avg_days_to_resolution"] is None
