"""API tests for roster preview and bulk staff/student creation."""

import inspect
import io

import pandas as pd
import pytest

from pms.api.routes.roster_routes import bulk_create_staff, bulk_create_students
from pms.core.auth import verify_password
from pms.services.mongo_service import utcnow

STAFF_URL = "/api/users/staff/bulk"
STUDENT_URL = "/api/student-management/students/bulk"
PREVIEW_URL = "/api/roster/preview"


@pytest.fixture
def departments(make_department):
    make_department("CSE", "Computer Science")
    make_department("ECE", "Electronics")


def staff_rows(count=3):
    return [
        {
            "firstName": f"Staff{i}",
            "lastName": "Member",
            "email": f"staff{i}@college.edu",
            "role": "Placement Staff",
            "department": "CSE",
            "employeeId": f"EMP{i:03d}",
        }
        for i in range(count)
    ]


class TestPreview:
    def test_csv_preview(self, client, admin_headers, departments, db):
        csv = (
            "First Name,Last Name,Email,Role,Department,Phone\n"
            "Asha,Rao,asha@college.edu,Department HOD,Computer Science,98765\n"
            "Ravi,Kumar,ravi@college.edu,Other Staff,BIO,12\n"
        )
        files = {"file": ("staff.csv", csv.encode(), "text/csv")}

        response = client.post(PREVIEW_URL, params={"kind": "staff"}, files=files, headers=admin_headers)

        assert response.status_code == 200
        data = response.json()["data"]
        assert data["validCount"] == 1
        assert data["errorCount"] == 1
        assert data["warningCount"] == 1
        assert data["validRows"][0]["department"] == "CSE"
        assert data["results"][1]["rowNumber"] == 3
        assert db.users.count_documents({}) == 1

    def test_xlsx_student_preview(self, client, make_user, headers_for):
        staff = make_user("placement_staff", department="CSE")
        frame = pd.DataFrame([{"First Name": "Neha", "Last Name": "Das", "Email": "neha@college.edu"}])
        buffer = io.BytesIO()
        frame.to_excel(buffer, index=False, engine="openpyxl")
        files = {"file": ("students.xlsx", buffer.getvalue(),
                          "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet")}

        response = client.post(PREVIEW_URL, params={"kind": "student"}, files=files, headers=headers_for(staff))

        assert response.json()["data"]["validRows"] == [
            {"firstName": "Neha", "lastName": "Das", "email": "neha@college.edu"}
        ]

    def test_unsupported_file_type(self, client, admin_headers):
        files = {"file": ("staff.txt", b"hello", "text/plain")}
        response = client.post(PREVIEW_URL, files=files, headers=admin_headers)
        assert response.status_code == 400
        assert response.json()["message"].startswith("Unsupported file type")

    def test_header_only_sheet(self, client, admin_headers):
        files = {"file": ("staff.csv", b"First Name,Last Name,Email\n", "text/csv")}
        response = client.post(PREVIEW_URL, files=files, headers=admin_headers)
        assert response.json()["message"] == "The uploaded file contains no data rows"


class TestStaffBulk:
    def test_creates_accounts_with_temporary_passwords(self, client, admin_user, admin_headers, departments, db):
        response = client.post(STAFF_URL, json={"staffData": staff_rows(), "importId": "b1"}, headers=admin_headers)

        assert response.status_code == 201
        results = response.json()["results"]
        assert results["totalSuccessful"] == 3
        created = results["successful"][0]
        user = db.users.find_one({"email": "staff0@college.edu"})
        assert user["role"] == "placement_staff"
        assert user["createdBy"] == admin_user["_id"]
        assert verify_password(created["temporaryPassword"], user["password"])

    def test_duplicate_employee_id_fails_only_that_row(self, client, admin_headers, departments):
        rows = staff_rows(4)
        rows[2]["employeeId"] = "EMP000"

        results = client.post(STAFF_URL, json={"staffData": rows}, headers=admin_headers).json()["results"]

        assert results["totalSuccessful"] == 3
        assert [(f["index"], f["error"]) for f in results["failed"]] == [(2, "Employee ID already exists")]

    def test_invalid_rows_are_reported_with_row_numbers(self, client, admin_headers, departments):
        rows = staff_rows(2)
        rows[1]["department"] = "BIO"

        results = client.post(STAFF_URL, json={"staffData": rows}, headers=admin_headers).json()["results"]

        failure = results["failed"][0]
        assert failure["index"] == 1
        assert failure["rowNumber"] == 3
        assert failure["errors"] == ["Invalid department code. Valid codes: CSE, ECE"]

    def test_replay_creates_nothing_new(self, client, admin_headers, departments, db):
        body = {"staffData": staff_rows(), "importId": "batch-7"}
        client.post(STAFF_URL, json=body, headers=admin_headers)

        replay = client.post(STAFF_URL, json=body, headers=admin_headers)

        assert replay.status_code == 201
        results = replay.json()["results"]
        assert results["totalSuccessful"] == 0
        assert results["totalReplayed"] == 3
        assert results["totalFailed"] == 0
        assert db.users.count_documents({"role": "placement_staff"}) == 3

    def test_new_batch_id_reports_existing_emails_as_failures(self, client, admin_headers, departments):
        client.post(STAFF_URL, json={"staffData": staff_rows(1), "importId": "a"}, headers=admin_headers)
        response = client.post(STAFF_URL, json={"staffData": staff_rows(1), "importId": "b"}, headers=admin_headers)
        assert response.status_code == 400
        assert response.json()["results"]["failed"][0]["error"] == "User with this email already exists"

    def test_reupload_without_import_id_fails_existing_email(self, client, admin_headers, departments, db):
        client.post(STAFF_URL, json={"staffData": staff_rows(1)}, headers=admin_headers)
        rows = staff_rows(1)
        rows[0]["role"] = "Department HOD"

        response = client.post(STAFF_URL, json={"staffData": rows}, headers=admin_headers)

        assert response.status_code == 400
        results = response.json()["results"]
        assert results["totalFailed"] == 1
        assert results["totalReplayed"] == 0
        assert results["failed"][0]["error"] == "User with this email already exists"
        assert db.users.find_one({"email": "staff0@college.edu"})["role"] == "placement_staff"
        assert "importKey" not in db.users.find_one({"email": "staff0@college.edu"})

    def test_repeated_email_in_one_batch_fails(self, client, admin_headers, departments):
        rows = staff_rows(2)
        rows[1]["email"] = rows[0]["email"]
        results = client.post(STAFF_URL, json={"staffData": rows}, headers=admin_headers).json()["results"]
        assert results["totalSuccessful"] == 1
        assert results["totalReplayed"] == 0
        assert results["failed"][0]["index"] == 1

    def test_placement_staff_cannot_import_staff(self, client, make_user, headers_for, departments):
        staff = make_user("placement_staff", department="CSE")
        response = client.post(STAFF_URL, json={"staffData": staff_rows(1)}, headers=headers_for(staff))
        assert response.status_code == 403

    def test_empty_batch_is_rejected(self, client, admin_headers):
        response = client.post(STAFF_URL, json={"staffData": []}, headers=admin_headers)
        assert response.status_code == 400


class TestStudentBulk:
    def students(self, count=2):
        return [
            {"firstName": f"Student{i}", "lastName": "Kumar", "email": f"student{i}@college.edu"}
            for i in range(count)
        ]

    def test_creates_users_and_profiles_in_own_department(self, client, make_user, headers_for, db, notifications):
        staff = make_user("placement_staff", department="cse")

        response = client.post(STUDENT_URL, json={"studentData": self.students()}, headers=headers_for(staff))

        assert response.status_code == 201
        successful = response.json()["results"]["successful"]
        ids = [entry["studentId"] for entry in successful]
        assert ids[1] == ids[0][:-3] + "002"
        user = db.users.find_one({"email": "student0@college.edu"})
        assert user["department"] == "CSE"
        profile = db.students.find_one({"userId": user["_id"]})
        assert user["studentProfile"] == profile["_id"]
        assert profile["academic"]["department"] == "CSE"
        assert [s["email"] for s in notifications.batches[0]] == ["student0@college.edu", "student1@college.edu"]

    def test_numbering_continues_from_existing_ids(self, client, make_user, headers_for):
        staff = make_user("placement_staff", department="CSE")
        first = client.post(STUDENT_URL, json={"studentData": self.students(1)}, headers=headers_for(staff))
        second = client.post(
            STUDENT_URL,
            json={"studentData": [{"firstName": "Late", "lastName": "Joiner", "email": "late@college.edu"}]},
            headers=headers_for(staff),
        )
        first_id = first.json()["results"]["successful"][0]["studentId"]
        second_id = second.json()["results"]["successful"][0]["studentId"]
        assert int(second_id[-3:]) == int(first_id[-3:]) + 1

    def test_numbering_compares_ids_numerically(self, client, make_user, headers_for):
        prefix = f"{utcnow().year}STU"
        make_user("student", studentId=f"{prefix}999")
        make_user("student", studentId=f"{prefix}1000")
        staff = make_user("placement_staff", department="CSE")

        response = client.post(STUDENT_URL, json={"studentData": self.students(1)}, headers=headers_for(staff))

        assert response.json()["results"]["successful"][0]["studentId"] == f"{prefix}1001"

    def test_replay_sends_no_second_email(self, client, make_user, headers_for, notifications, db):
        staff = make_user("placement_staff", department="CSE")
        body = {"studentData": self.students(), "importId": "s-1"}
        client.post(STUDENT_URL, json=body, headers=headers_for(staff))

        replay = client.post(STUDENT_URL, json=body, headers=headers_for(staff)).json()["results"]

        assert replay["totalReplayed"] == 2
        assert all(entry["studentId"] for entry in replay["replayed"])
        assert len(notifications.batches) == 1
        assert db.students.count_documents({}) == 2

    def test_staff_without_department(self, client, make_user, headers_for):
        staff = make_user("placement_staff")
        response = client.post(STUDENT_URL, json={"studentData": self.students(1)}, headers=headers_for(staff))
        assert response.status_code == 400

    def test_admin_cannot_import_students(self, client, admin_headers):
        response = client.post(STUDENT_URL, json={"studentData": self.students(1)}, headers=admin_headers)
        assert response.status_code == 403


def test_bulk_handlers_run_in_threadpool():
    assert not inspect.iscoroutinefunction(bulk_create_staff)
    assert not inspect.iscoroutinefunction(bulk_create_students)
