"""API tests for course categories."""

URL = "/api/courseCategories"


class TestCreate:
    def test_create_then_case_variant_is_rejected(self, client, admin_headers):
        first = client.post(URL, json={"name": "Engineering"}, headers=admin_headers)
        assert first.status_code == 201
        assert first.json()["message"] == "Course category created successfully"
        assert first.json()["data"]["createdBy"]["firstName"] == "Test"

        second = client.post(URL, json={"name": "ENGINEERING"}, headers=admin_headers)
        assert second.status_code == 400
        assert second.json()["message"] == "Course category with this name already exists"

    def test_name_is_required(self, client, admin_headers):
        response = client.post(URL, json={"description": "no name"}, headers=admin_headers)
        assert response.status_code == 400
        assert response.json()["message"] == "Validation failed"

    def test_regex_characters_in_name_are_literal(self, client, admin_headers):
        client.post(URL, json={"name": "B.Tech"}, headers=admin_headers)
        response = client.post(URL, json={"name": "BxTech"}, headers=admin_headers)
        assert response.status_code == 201


class TestList:
    def test_search_and_pagination(self, client, admin_headers):
        for name in ("Engineering", "Management", "Engineering Diploma"):
            client.post(URL, json={"name": name}, headers=admin_headers)

        response = client.get(URL, params={"search": "engin", "limit": 1}, headers=admin_headers)
        data = response.json()["data"]
        assert len(data["courseCategories"]) == 1
        assert data["pagination"] == {
            "currentPage": 1,
            "totalPages": 2,
            "totalCategories": 2,
            "hasNextPage": True,
            "hasPrevPage": False,
        }

    def test_is_active_filter(self, client, admin_headers):
        client.post(URL, json={"name": "Active"}, headers=admin_headers)
        client.post(URL, json={"name": "Dormant", "isActive": False}, headers=admin_headers)
        response = client.get(URL, params={"isActive": "false"}, headers=admin_headers)
        names = [c["name"] for c in response.json()["data"]["courseCategories"]]
        assert names == ["Dormant"]


class TestUpdateAndDelete:
    def test_update_and_rename_conflict(self, client, admin_headers):
        a = client.post(URL, json={"name": "Arts"}, headers=admin_headers).json()["data"]
        client.post(URL, json={"name": "Science"}, headers=admin_headers)

        renamed = client.put(f"{URL}/{a['id']}", json={"description": "Humanities"}, headers=admin_headers)
        assert renamed.json()["data"]["description"] == "Humanities"
        assert renamed.json()["data"]["updatedBy"]["email"]

        clash = client.put(f"{URL}/{a['id']}", json={"name": "science"}, headers=admin_headers)
        assert clash.status_code == 400

    def test_toggle_twice_restores_state(self, client, admin_headers):
        category = client.post(URL, json={"name": "Law"}, headers=admin_headers).json()["data"]

        off = client.patch(f"{URL}/{category['id']}/toggle-status", headers=admin_headers).json()
        assert off["message"] == "Course category deactivated successfully"
        assert off["data"]["isActive"] is False

        on = client.patch(f"{URL}/{category['id']}/toggle-status", headers=admin_headers).json()
        assert on["message"] == "Course category activated successfully"
        assert on["data"]["isActive"] is True

    def test_delete_then_not_found(self, client, admin_headers):
        category = client.post(URL, json={"name": "Pharmacy"}, headers=admin_headers).json()["data"]
        assert client.delete(f"{URL}/{category['id']}", headers=admin_headers).status_code == 200

        missing = client.get(f"{URL}/{category['id']}", headers=admin_headers)
        assert missing.status_code == 404
        assert missing.json()["message"] == "Course category not found"

    def test_malformed_id_is_not_found(self, client, admin_headers):
        assert client.get(f"{URL}/not-an-id", headers=admin_headers).status_code == 404
