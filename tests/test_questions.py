"""Tests for the question bank: questions, versions, statistics and comments."""

from conftest import create_question

QUESTIONS_URL = "/api/questions"


class TestQuestions:
    def test_create_starts_in_draft(self, client, user_headers):
        question = create_question(client, user_headers)
        assert question["status_name"] == "draft"
        assert question["version_count"] == 0
        assert [o["text"] for o in question["options"]] == ["Venus", "Mars", "Jupiter"]
        assert [o["order"] for o in question["options"]] == [1, 2, 3]
        assert question["options"][1]["is_correct"] is True
        assert question["upvote_count"] == 0

    def test_validation(self, client, user_headers):
        r = client.post(
            QUESTIONS_URL,
            json={"question_text": "Too short", "question_type": "riddle", "difficulty_level": "easy"},
            headers=user_headers,
        )
        assert r.status_code == 400
        fields = {e["field"] for e in r.json()["errors"]}
        assert {"question_text", "question_type"} <= fields

    def test_create_requires_permission(self, client, make_user, admin_headers, role_ids):
        # A role without question_create
        r = client.post(
            "/api/role_management/roles", json={"role_name": "Observer"}, headers=admin_headers
        )
        assert r.status_code == 201
        role_ids["Observer"] = r.json()["role_id"]
        _, headers = make_user("observer@example.com", roles=["Observer"])
        r = client.post(
            QUESTIONS_URL,
            json={
                "question_text": "Can observers write questions?",
                "question_type": "true_false",
                "difficulty_level": "easy",
            },
            headers=headers,
        )
        assert r.status_code == 403

    def test_list_filters(self, client, user_headers):
        create_question(client, user_headers)
        create_question(
            client,
            user_headers,
            text="Describe the water cycle in detail.",
            question_type="essay",
            difficulty_level="hard",
            options=[],
        )

        r = client.get(QUESTIONS_URL, headers=user_headers)
        assert r.status_code == 200
        assert r.json()["pagination"]["total"] == 2

        r = client.get(QUESTIONS_URL, params={"type": "essay"}, headers=user_headers)
        assert [q["question_type"] for q in r.json()["questions"]] == ["essay"]

        r = client.get(QUESTIONS_URL, params={"difficulty": "easy"}, headers=user_headers)
        assert r.json()["pagination"]["total"] == 1

        r = client.get(QUESTIONS_URL, params={"search": "water"}, headers=user_headers)
        assert r.json()["pagination"]["total"] == 1

        r = client.get(QUESTIONS_URL, params={"status": "approved"}, headers=user_headers)
        assert r.json()["pagination"]["total"] == 0

        r = client.get(QUESTIONS_URL, params={"limit": 1, "page": 2}, headers=user_headers)
        data = r.json()
        assert len(data["questions"]) == 1
        assert data["pagination"]["total_pages"] == 2

    def test_update_creates_version(self, client, user_headers):
        question = create_question(client, user_headers)
        url = f"{QUESTIONS_URL}/{question['question_id']}"

        r = client.put(
            url,
            json={"difficulty_level": "medium", "change_summary": "Harder"},
            headers=user_headers,
        )
        assert r.status_code == 200
        assert r.json()["difficulty_level"] == "medium"
        assert r.json()["version_count"] == 1

        r = client.put(url, json={"options": [{"text": "Mars", "is_correct": True}]}, headers=user_headers)
        assert r.json()["version_count"] == 2
        assert [o["text"] for o in r.json()["options"]] == ["Mars"]

        versions = client.get(f"{url}/versions", headers=user_headers).json()
        assert [v["version_number"] for v in versions] == [2, 1]

        first = client.get(f"{url}/versions/1", headers=user_headers).json()
        assert first["change_summary"] == "Harder"
        assert first["snapshot"]["difficulty_level"] == "easy"
        assert len(first["snapshot"]["options"]) == 3

        assert client.get(f"{url}/versions/9", headers=user_headers).status_code == 404

    def test_only_owner_or_editor_can_update(self, client, user_headers, make_user, reviewer_headers):
        question = create_question(client, user_headers)
        url = f"{QUESTIONS_URL}/{question['question_id']}"

        _, other_headers = make_user("other@example.com", roles=["User"])
        r = client.put(url, json={"difficulty_level": "hard"}, headers=other_headers)
        assert r.status_code == 403

        # Reviewers hold question_edit
        r = client.put(url, json={"difficulty_level": "hard"}, headers=reviewer_headers)
        assert r.status_code == 200

    def test_soft_delete(self, client, user_headers, make_user, reviewer_headers):
        question = create_question(client, user_headers)
        url = f"{QUESTIONS_URL}/{question['question_id']}"

        # question_edit does not grant delete
        assert client.delete(url, headers=reviewer_headers).status_code == 403

        assert client.delete(url, headers=user_headers).status_code == 200
        assert client.get(url, headers=user_headers).status_code == 404
        assert client.get(QUESTIONS_URL, headers=user_headers).json()["pagination"]["total"] == 0
        assert client.delete(url, headers=user_headers).status_code == 404

    def test_admin_can_delete_any_question(self, client, user_headers, admin_headers):
        question = create_question(client, user_headers)
        r = client.delete(f"{QUESTIONS_URL}/{question['question_id']}", headers=admin_headers)
        assert r.status_code == 200

    def test_statistics(self, client, user_headers):
        create_question(client, user_headers)
        create_question(
            client,
            user_headers,
            text="Is the earth round or flat?",
            question_type="true_false",
            options=[],
        )
        deleted = create_question(client, user_headers, text="This one will be deleted soon.")
        client.delete(f"{QUESTIONS_URL}/{deleted['question_id']}", headers=user_headers)

        r = client.get(f"{QUESTIONS_URL}/statistics", headers=user_headers)
        assert r.status_code == 200
        stats = r.json()
        assert stats["total"] == 2
        assert stats["by_status"] == {"draft": 2}
        assert stats["by_type"] == {"multiple_choice": 1, "true_false": 1}
        assert stats["by_difficulty"] == {"easy": 2}


class TestComments:
    def test_add_and_list(self, client, user_headers):
        question = create_question(client, user_headers)
        url = f"{QUESTIONS_URL}/{question['question_id']}/comments"

        r = client.post(url, json={"comment_text": "  Nice question  "}, headers=user_headers)
        assert r.status_code == 201
        comment = r.json()
        assert comment["comment_text"] == "Nice question"
        assert comment["author_name"] == "Test User"

        comments = client.get(url, headers=user_headers).json()
        assert [c["comment_id"] for c in comments] == [comment["comment_id"]]

    def test_comment_on_missing_question(self, client, user_headers):
        r = client.post(
            f"{QUESTIONS_URL}/999/comments", json={"comment_text": "Hello"}, headers=user_headers
        )
        assert r.status_code == 404

    def test_delete_rules(self, client, user_headers, make_user, reviewer_headers):
        question = create_question(client, user_headers)
        url = f"{QUESTIONS_URL}/{question['question_id']}/comments"
        first = client.post(url, json={"comment_text": "First"}, headers=user_headers).json()
        second = client.post(url, json={"comment_text": "Second"}, headers=user_headers).json()

        _, other_headers = make_user("other@example.com", roles=["User"])
        assert client.delete(f"{url}/{first['comment_id']}", headers=other_headers).status_code == 403

        assert client.delete(f"{url}/{first['comment_id']}", headers=user_headers).status_code == 200
        assert client.delete(f"{url}/{second['comment_id']}", headers=reviewer_headers).status_code == 200
        assert client.get(url, headers=user_headers).json() == []

    def test_comment_must_belong_to_question(self, client, user_headers):
        q1 = create_question(client, user_headers)
        q2 = create_question(client, user_headers, text="Another question about planets?")
        comment = client.post(
            f"{QUESTIONS_URL}/{q1['question_id']}/comments",
            json={"comment_text": "On the first"},
            headers=user_headers,
        ).json()
        r = client.delete(
            f"{QUESTIONS_URL}/{q2['question_id']}/comments/{comment['comment_id']}",
            headers=user_headers,
        )
        assert r.status_code == 404


def _make_category(client, headers, name, parent_id=None):
    r = client.post(
        "/api/question-categories", json={"name": name, "parent_id": parent_id}, headers=headers
    )
    assert r.status_code == 201, r.text
    return r.json()["category_id"]


def _make_tag(client, headers, name):
    r = client.post("/api/question-tags", json={"name": name}, headers=headers)
    assert r.status_code == 201, r.text
    return r.json()["tag_id"]


class TestCategoriesAndTags:
    def test_create_with_category_and_tags(self, client, admin_headers, user_headers):
        category_id = _make_category(client, admin_headers, "Astronomy")
        tag_id = _make_tag(client, user_headers, "  Planets ")
        question = create_question(client, user_headers, category_id=category_id, tag_ids=[tag_id])
        assert question["category_id"] == category_id
        assert question["category_name"] == "Astronomy"
        assert question["tags"] == [{"tag_id": tag_id, "name": "planets"}]

    def test_unknown_category_or_tag_is_rejected(self, client, admin_headers, user_headers):
        category_id = _make_category(client, admin_headers, "Retired")
        r = client.delete(f"/api/question-categories/{category_id}", headers=admin_headers)
        assert r.status_code == 200

        payload = {
            "question_text": "Which gas do plants absorb?",
            "question_type": "short_answer",
            "difficulty_level": "easy",
        }
        r = client.post(
            QUESTIONS_URL, json={**payload, "category_id": category_id}, headers=user_headers
        )
        assert r.status_code == 400
        assert r.json()["detail"]["errors"][0]["field"] == "category_id"

        r = client.post(QUESTIONS_URL, json={**payload, "tag_ids": [404]}, headers=user_headers)
        assert r.status_code == 400
        assert r.json()["detail"]["errors"][0]["field"] == "tag_ids"

    def test_list_filters_by_category_and_tag(self, client, admin_headers, user_headers):
        science = _make_category(client, admin_headers, "Science")
        space = _make_tag(client, user_headers, "space")
        water = _make_tag(client, user_headers, "water")
        create_question(client, user_headers, category_id=science, tag_ids=[space])
        create_question(
            client,
            user_headers,
            text="Describe the water cycle in detail.",
            question_type="essay",
            options=[],
            tag_ids=[water],
        )

        r = client.get(QUESTIONS_URL, params={"categoryId": science}, headers=user_headers)
        assert r.json()["pagination"]["total"] == 1

        r = client.get(QUESTIONS_URL, params={"tagIds": [water]}, headers=user_headers)
        assert [q["question_type"] for q in r.json()["questions"]] == ["essay"]

        r = client.get(QUESTIONS_URL, params={"tagIds": [space, water]}, headers=user_headers)
        assert r.json()["pagination"]["total"] == 2

    def test_update_replaces_tags_and_clears_category(self, client, admin_headers, user_headers):
        category_id = _make_category(client, admin_headers, "Geography")
        old = _make_tag(client, user_headers, "old")
        new = _make_tag(client, user_headers, "new")
        question = create_question(client, user_headers, category_id=category_id, tag_ids=[old])

        r = client.put(
            f"{QUESTIONS_URL}/{question['question_id']}",
            json={"category_id": None, "tag_ids": [new]},
            headers=user_headers,
        )
        assert r.status_code == 200
        data = r.json()
        assert data["category_id"] is None
        assert [t["name"] for t in data["tags"]] == ["new"]
        assert data["version_count"] == 1

    def test_tag_usage_and_delete(self, client, user_headers, admin_headers):
        tag_id = _make_tag(client, user_headers, "history")
        question = create_question(client, user_headers, tag_ids=[tag_id])

        r = client.post("/api/question-tags", json={"name": "HISTORY"}, headers=user_headers)
        assert r.status_code == 409

        r = client.get("/api/question-tags", headers=user_headers)
        assert [(t["name"], t["question_count"]) for t in r.json()] == [("history", 1)]

        # Deleting tags takes question_delete
        assert client.delete(f"/api/question-tags/{tag_id}", headers=user_headers).status_code == 403
        assert client.delete(f"/api/question-tags/{tag_id}", headers=admin_headers).status_code == 204
        assert client.delete(f"/api/question-tags/{tag_id}", headers=admin_headers).status_code == 404

        r = client.get(f"{QUESTIONS_URL}/{question['question_id']}", headers=user_headers)
        assert r.json()["tags"] == []
