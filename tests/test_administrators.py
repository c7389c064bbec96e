"""API tests for administrator profiles."""

URL = "/api/administrators"

NEW_PROFILE = {
    "employeeId": "adm101",
    "name": {"firstName": "Meera", "lastName": "Iyer"},
    "email": "Meera.Iyer@college.edu",
    "mobileNumber": "9876543210",
    "role": "director",
    "department": "CSE",
    "designation": "Placement Director",
    "accessLevel": "admin",
    "officeLocation": "Admin Block",
    "dateOfJoining": "2020-06-01T00:00:00",
}


class TestOwnProfile:
    def test_missing_profile(self, client, admin_headers):
        response = client.get(f"{URL}/profile", headers=admin_headers)
        assert response.status_code == 404
        assert response.json()["message"] == "Administrator profile not found"

    def test_create_requires_fields(self, client, admin_headers):
        response = client.put(f"{URL}/profile", json={"designation": "Dean"}, headers=admin_headers)
        assert response.status_code == 400
        assert response.json()["message"] == "Employee ID is required for new profile creation"

    def test_create_then_patch_merges_name(self, client, admin_headers):
        created = client.put(f"{URL}/profile", json=NEW_PROFILE, headers=admin_headers)
        assert created.status_code == 200
        data = created.json()["data"]
        assert data["employeeId"] == "ADM101"
        assert data["email"] == "meera.iyer@college.edu"
        assert data["contact"]["address"]["country"] == "India"

        patched = client.put(f"{URL}/profile", json={"name": {"lastName": "Nair"}}, headers=admin_headers)
        name = patched.json()["data"]["name"]
        assert name == {"firstName": "Meera", "lastName": "Nair"}

    def test_department_required_for_director(self, client, admin_headers):
        body = dict(NEW_PROFILE)
        del body["department"]
        response = client.put(f"{URL}/profile", json=body, headers=admin_headers)
        assert response.status_code == 400
        assert response.json()["errors"][0]["field"] == "department"

    def test_email_taken_by_another_profile(self, client, admin_headers, make_user, make_admin_profile):
        other = make_user()
        make_admin_profile(other, email="meera.iyer@college.edu")
        response = client.put(f"{URL}/profile", json=NEW_PROFILE, headers=admin_headers)
        assert response.status_code == 400

    def test_invalid_mobile_number(self, client, admin_headers):
        response = client.put(f"{URL}/profile", json={"mobileNumber": "123"}, headers=admin_headers)
        assert response.status_code == 400
        assert response.json()["errors"][0]["message"].endswith("Mobile number must be exactly 10 digits")

    def test_student_cannot_have_profile(self, client, make_user, headers_for):
        response = client.get(f"{URL}/profile", headers=headers_for(make_user("student")))
        assert response.status_code == 403


class TestProfileImage:
    def test_upload_replaces_previous_image(self, client, admin_user, admin_headers, make_admin_profile, storage, db):
        make_admin_profile(admin_user)
        files = {"profileImage": ("me.png", b"\x89PNG fake", "image/png")}

        first = client.post(f"{URL}/profile-image", files=files, headers=admin_headers)
        assert first.status_code == 200
        first_url = first.json()["data"]["profilePhotoUrl"]

        second = client.post(f"{URL}/profile-image", files=files, headers=admin_headers)
        assert second.status_code == 200
        assert storage.deleted == ["/".join(first_url.split("/")[-2:])]
        stored = db.administrators.find_one({"userId": admin_user["_id"]})
        assert stored["profilePhotoUrl"] == second.json()["data"]["profilePhotoUrl"]

    def test_rejects_non_images(self, client, admin_user, admin_headers, make_admin_profile):
        make_admin_profile(admin_user)
        files = {"profileImage": ("cv.pdf", b"%PDF", "application/pdf")}
        response = client.post(f"{URL}/profile-image", files=files, headers=admin_headers)
        assert response.status_code == 400
        assert response.json()["message"] == "Only JPEG, PNG, and WebP images are allowed"

    def test_storage_failure(self, client, admin_user, admin_headers, make_admin_profile, storage):
        make_admin_profile(admin_user)
        storage.fail_uploads = True
        files = {"profileImage": ("me.jpg", b"jpeg", "image/jpeg")}
        response = client.post(f"{URL}/profile-image", files=files, headers=admin_headers)
        assert response.status_code == 500
        assert response.json()["message"] == "Failed to upload image to storage"


class TestAdministration:
    def test_list_needs_admin_access_level(self, client, admin_user, admin_headers, make_admin_profile):
        assert client.get(URL, headers=admin_headers).status_code == 403

        make_admin_profile(admin_user, "limited")
        response = client.get(URL, headers=admin_headers)
        assert response.status_code == 403
        assert response.json()["message"] == "Access denied. Admin access required."

    def test_list_filters_and_search(self, client, super_admin_headers, make_user, make_admin_profile):
        make_admin_profile(make_user(), "admin", role="hod", department="ECE", designation="HOD ECE")
        make_admin_profile(make_user(), "limited", role="staff", department="CSE")

        response = client.get(URL, params={"department": "ECE"}, headers=super_admin_headers)
        data = response.json()["data"]
        assert [a["department"] for a in data["administrators"]] == ["ECE"]
        assert data["pagination"] == {"current": 1, "pages": 1, "total": 1, "limit": 10}

        searched = client.get(URL, params={"search": "hod e"}, headers=super_admin_headers)
        assert len(searched.json()["data"]["administrators"]) == 1

    def test_stats_need_super_admin(self, client, admin_user, admin_headers, make_admin_profile):
        make_admin_profile(admin_user, "admin")
        response = client.get(f"{URL}/stats", headers=admin_headers)
        assert response.status_code == 403
        assert response.json()["message"] == "Access denied. Super Admin access required."

    def test_stats(self, client, super_admin_headers, make_user, make_admin_profile):
        make_admin_profile(make_user(), "limited", status="inactive")
        data = client.get(f"{URL}/stats", headers=super_admin_headers).json()["data"]
        assert data["total"] == 2
        statuses = {row["_id"]: row["count"] for row in data["status"]}
        assert statuses == {"active": 1, "inactive": 1}

    def test_update_status(self, client, super_admin_headers, make_user, make_admin_profile):
        target = make_admin_profile(make_user(), "limited")
        response = client.put(
            f"{URL}/{target['_id']}/status", json={"status": "inactive"}, headers=super_admin_headers,
        )
        assert response.status_code == 200
        assert response.json()["data"]["status"] == "inactive"

    def test_delete_removes_stored_image(self, client, super_admin_headers, make_user, make_admin_profile, storage, db):
        url = f"{storage.base_url}/profile-images/x.png"
        target = make_admin_profile(make_user(), "limited", profilePhotoUrl=url)
        response = client.delete(f"{URL}/{target['_id']}", headers=super_admin_headers)
        assert response.status_code == 200
        assert storage.deleted == ["profile-images/x.png"]
        assert db.administrators.find_one({"_id": target["_id"]}) is None

    def test_get_unknown(self, client, super_admin_headers):
        response = client.get(f"{URL}/64b7f0c2a1b2c3d4e5f60718", headers=super_admin_headers)
        assert response.status_code == 404
        assert response.json()["message"] == "Administrator not found"
