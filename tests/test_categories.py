"""Tests for question categories: the tree, moves, deletion and statistics."""

from conftest import create_question

CATEGORIES_URL = "/api/question-categories"


def _create(client, headers, name, parent_id=None):
    r = client.post(CATEGORIES_URL, json={"name": name, "parent_id": parent_id}, headers=headers)
    assert r.status_code == 201, r.text
    return r.json()


class TestCategoryTree:
    def test_create_and_list_levels(self, client, admin_headers, user_headers):
        science = _create(client, admin_headers, "Science")
        physics = _create(client, admin_headers, "Physics", parent_id=science["category_id"])
        _create(client, admin_headers, "Arts")
        assert physics["parent_name"] == "Science"
        create_question(client, user_headers, category_id=physics["category_id"])

        r = client.get(CATEGORIES_URL, headers=user_headers)
        assert r.status_code == 200
        data = r.json()
        assert [c["name"] for c in data["categories"]] == ["Arts", "Science"]
        assert data["categories"][1]["children_count"] == 1

        r = client.get(CATEGORIES_URL, params={"parentId": science["category_id"]}, headers=user_headers)
        [child] = r.json()["categories"]
        assert child["name"] == "Physics"
        assert child["questions_count"] == 1

    def test_tree(self, client, admin_headers):
        root = _create(client, admin_headers, "Languages")
        _create(client, admin_headers, "Python", parent_id=root["category_id"])
        _create(client, admin_headers, "Go", parent_id=root["category_id"])

        r = client.get(CATEGORIES_URL, params={"asTree": True}, headers=admin_headers)
        data = r.json()
        assert data["count"] == 3
        [languages] = data["categories"]
        assert [c["name"] for c in languages["children"]] == ["Go", "Python"]
        assert languages["children"][0]["children"] == []

    def test_validation_and_conflicts(self, client, admin_headers, user_headers):
        r = client.post(CATEGORIES_URL, json={"name": "Orphan", "parent_id": 999}, headers=admin_headers)
        assert r.status_code == 400
        assert r.json()["detail"]["errors"][0]["field"] == "parent_id"

        r = client.post(CATEGORIES_URL, json={"name": " x "}, headers=admin_headers)
        assert r.status_code == 400

        science = _create(client, admin_headers, "Science")
        r = client.post(CATEGORIES_URL, json={"name": "science"}, headers=admin_headers)
        assert r.status_code == 409
        # The same name is fine one level down
        _create(client, admin_headers, "Science", parent_id=science["category_id"])

        # Users may browse but not create
        r = client.post(CATEGORIES_URL, json={"name": "Mine"}, headers=user_headers)
        assert r.status_code == 403

    def test_get_missing(self, client, admin_headers):
        assert client.get(f"{CATEGORIES_URL}/999", headers=admin_headers).status_code == 404


class TestCategoryUpdates:
    def test_update_fields_and_reparent(self, client, admin_headers):
        a = _create(client, admin_headers, "Alpha")
        b = _create(client, admin_headers, "Beta")
        url = f"{CATEGORIES_URL}/{b['category_id']}"

        r = client.put(url, json={"parent_id": a["category_id"], "description": "Second"}, headers=admin_headers)
        assert r.status_code == 200
        assert r.json()["parent_name"] == "Alpha"
        assert r.json()["description"] == "Second"

        r = client.put(url, json={"parent_id": None}, headers=admin_headers)
        assert r.status_code == 200
        assert r.json()["parent_id"] is None

    def test_rejects_empty_self_parent_and_cycles(self, client, admin_headers):
        a = _create(client, admin_headers, "Alpha")
        b = _create(client, admin_headers, "Beta", parent_id=a["category_id"])
        a_url = f"{CATEGORIES_URL}/{a['category_id']}"

        assert client.put(a_url, json={}, headers=admin_headers).status_code == 400

        r = client.put(a_url, json={"parent_id": a["category_id"]}, headers=admin_headers)
        assert r.status_code == 400

        r = client.put(a_url, json={"parent_id": b["category_id"]}, headers=admin_headers)
        assert r.status_code == 400
        assert r.json()["detail"]["message"] == "Circular category reference"

    def test_rename_clash_among_siblings(self, client, admin_headers):
        _create(client, admin_headers, "Alpha")
        b = _create(client, admin_headers, "Beta")
        r = client.put(f"{CATEGORIES_URL}/{b['category_id']}", json={"name": "ALPHA"}, headers=admin_headers)
        assert r.status_code == 409


class TestMovesAndDeletion:
    def test_move_questions(self, client, admin_headers, user_headers):
        source = _create(client, admin_headers, "Source")
        target = _create(client, admin_headers, "Target")
        create_question(client, user_headers, category_id=source["category_id"])
        create_question(client, user_headers, text="Second question in source?", category_id=source["category_id"])
        url = f"{CATEGORIES_URL}/{source['category_id']}/move-questions"

        r = client.post(url, json={"target_category_id": source["category_id"]}, headers=admin_headers)
        assert r.status_code == 400
        r = client.post(url, json={"target_category_id": 999}, headers=admin_headers)
        assert r.status_code == 400
        r = client.post(f"{CATEGORIES_URL}/999/move-questions", json={}, headers=admin_headers)
        assert r.status_code == 404

        r = client.post(url, json={"target_category_id": target["category_id"]}, headers=admin_headers)
        assert r.status_code == 200
        assert r.json()["moved"] == 2
        r = client.get(
            "/api/questions", params={"categoryId": target["category_id"]}, headers=user_headers
        )
        assert r.json()["pagination"]["total"] == 2

        # A null target uncategorizes them
        r = client.post(
            f"{CATEGORIES_URL}/{target['category_id']}/move-questions",
            json={"target_category_id": None},
            headers=admin_headers,
        )
        assert r.json()["moved"] == 2

    def test_delete_blocked_by_children_and_questions(self, client, admin_headers, user_headers):
        parent = _create(client, admin_headers, "Parent")
        child = _create(client, admin_headers, "Child", parent_id=parent["category_id"])
        question = create_question(client, user_headers, category_id=child["category_id"])

        r = client.delete(f"{CATEGORIES_URL}/{parent['category_id']}", headers=admin_headers)
        assert r.status_code == 409
        r = client.delete(f"{CATEGORIES_URL}/{child['category_id']}", headers=admin_headers)
        assert r.status_code == 409

        r = client.delete(
            f"{CATEGORIES_URL}/{child['category_id']}",
            params={"moveToCategoryId": "null"},
            headers=admin_headers,
        )
        assert r.status_code == 200
        assert "1 question(s) moved" in r.json()["message"]
        r = client.get(f"/api/questions/{question['question_id']}", headers=user_headers)
        assert r.json()["category_id"] is None

        # Soft delete: still readable, hidden from the default list
        r = client.get(f"{CATEGORIES_URL}/{child['category_id']}", headers=admin_headers)
        assert r.json()["is_active"] is False
        assert client.delete(f"{CATEGORIES_URL}/{parent['category_id']}", headers=admin_headers).status_code == 200
        assert client.get(CATEGORIES_URL, headers=admin_headers).json()["count"] == 0

    def test_delete_moving_to_another_category(self, client, admin_headers, user_headers):
        old = _create(client, admin_headers, "Old")
        new = _create(client, admin_headers, "New")
        create_question(client, user_headers, category_id=old["category_id"])

        r = client.delete(
            f"{CATEGORIES_URL}/{old['category_id']}",
            params={"moveToCategoryId": "somewhere"},
            headers=admin_headers,
        )
        assert r.status_code == 400

        r = client.delete(
            f"{CATEGORIES_URL}/{old['category_id']}",
            params={"moveToCategoryId": new["category_id"]},
            headers=admin_headers,
        )
        assert r.status_code == 200
        r = client.get(f"{CATEGORIES_URL}/{new['category_id']}", headers=admin_headers)
        assert r.json()["questions_count"] == 1

    def test_deleted_question_does_not_block_deletion(self, client, admin_headers, user_headers):
        category = _create(client, admin_headers, "Temporary")
        question = create_question(client, user_headers, category_id=category["category_id"])
        r = client.delete(f"/api/questions/{question['question_id']}", headers=user_headers)
        assert r.status_code == 200
        r = client.delete(f"{CATEGORIES_URL}/{category['category_id']}", headers=admin_headers)
        assert r.status_code == 200


def test_statistics(client, admin_headers, user_headers):
    science = _create(client, admin_headers, "Science")
    physics = _create(client, admin_headers, "Physics", parent_id=science["category_id"])
    create_question(client, user_headers, category_id=physics["category_id"])
    create_question(client, user_headers, text="Second physics question?", category_id=physics["category_id"])
    create_question(client, user_headers, text="A question with no category?")

    r = client.get(f"{CATEGORIES_URL}/statistics", headers=user_headers)
    assert r.status_code == 200
    assert r.json() == {
        "total_categories": 2,
        "root_categories": 1,
        "subcategories": 1,
        "questions_with_category": 2,
        "questions_without_category": 1,
        "top_category": {
            "category_id": physics["category_id"],
            "name": "Physics",
            "question_count": 2,
        },
    }
