from sqlalchemy.exc import IntegrityError

from src.utils.stages import ADMISSION_STAGES

SEAT_ALLOTMENT = "Seat Allotment"
DOCUMENT_VERIFICATION = "Document Verification at Facilitation Centre"


def test_create_student_rejects_duplicates(client, admin_headers, create_student) -> None:
    create_student("FE-010", email="one@futureedge.in")

    same_number = client.post("/api/admin/students", headers=admin_headers, json={
        "full_name": "Other", "registration_number": "FE-010",
        "email": "two@futureedge.in", "temp_password": "Welcome@123",
    })
    same_email = client.post("/api/admin/students", headers=admin_headers, json={
        "full_name": "Other", "registration_number": "FE-011",
        "email": "ONE@futureedge.in", "temp_password": "Welcome@123",
    })

    assert same_number.status_code == 400
    assert same_number.json()["detail"] == "Registration number already exists"
    assert same_email.status_code == 400
    assert same_email.json()["detail"] == "Email address already exists"


def test_student_cannot_use_admin_endpoints(client, create_student, login_student) -> None:
    student_id = create_student("FE-010")
    headers = login_student("FE-010")

    response = client.put(
        f"/api/admin/students/{student_id}",
        json={"admission_stage": SEAT_ALLOTMENT},
        headers=headers,
    )
    assert response.status_code == 403

    # Invalid payload is still forbidden, not a validation error
    response = client.put(f"/api/admin/students/{student_id}", json={"admission_stage": "bogus"}, headers=headers)
    assert response.status_code == 403

    assert client.post("/api/admin/students", json={}, headers=headers).status_code == 403


def test_new_student_starts_at_first_stage(client, admin_headers, create_student) -> None:
    student_id = create_student("FE-010")

    response = client.get(f"/api/admin/students/{student_id}", headers=admin_headers)

    assert response.status_code == 200
    assert response.json()["student"]["admission_stage"] is None
    assert response.json()["current_stage_index"] == 0


def test_admin_sets_stage_and_dashboard_reflects_it(client, admin_headers, create_student, login_student) -> None:
    student_id = create_student("FE-010")

    update = client.put(
        f"/api/admin/students/{student_id}",
        json={"admission_stage": SEAT_ALLOTMENT},
        headers=admin_headers,
    )
    assert update.status_code == 200
    assert update.json()["admission_stage"] == SEAT_ALLOTMENT

    dashboard = client.get(f"/api/students/{student_id}/dashboard", headers=login_student("FE-010"))

    assert dashboard.status_code == 200
    body = dashboard.json()
    assert body["progress"]["current_stage_index"] == 4
    assert body["progress"]["stages"] == ADMISSION_STAGES
    assert body["student"]["admission_stage"] == SEAT_ALLOTMENT
    assert body["whats_next"] == "Await seat allotment results"


def test_stage_may_move_backwards(client, admin_headers, create_student) -> None:
    student_id = create_student("FE-010")
    url = f"/api/admin/students/{student_id}"

    client.put(url, json={"admission_stage": "Commencement of Course"}, headers=admin_headers)
    response = client.put(url, json={"admission_stage": ADMISSION_STAGES[1]}, headers=admin_headers)

    assert response.status_code == 200
    assert client.get(url, headers=admin_headers).json()["current_stage_index"] == 1


def test_unknown_stage_is_rejected(client, admin_headers, create_student) -> None:
    student_id = create_student("FE-010")

    response = client.put(
        f"/api/admin/students/{student_id}",
        json={"admission_stage": "Account Created"},
        headers=admin_headers,
    )
    assert response.status_code == 400


def test_set_stage_for_missing_student(client, admin_headers) -> None:
    response = client.put(
        "/api/admin/students/missing",
        json={"admission_stage": SEAT_ALLOTMENT},
        headers=admin_headers,
    )
    assert response.status_code == 404


def test_bulk_stage_update_counts_updated_rows(client, admin_headers, create_student) -> None:
    ids = [create_student(number) for number in ("FE-001", "FE-002", "FE-003")]

    response = client.put(
        "/api/admin/students",
        json={"student_ids": ids + ["not-a-student"], "admission_stage": DOCUMENT_VERIFICATION},
        headers=admin_headers,
    )

    assert response.status_code == 200
    assert response.json()["updated_count"] == 3
    students = client.get("/api/admin/students", headers=admin_headers).json()
    assert {s["admission_stage"] for s in students} == {DOCUMENT_VERIFICATION}


def test_bulk_stage_update_requires_ids(client, admin_headers) -> None:
    response = client.put(
        "/api/admin/students",
        json={"student_ids": [], "admission_stage": DOCUMENT_VERIFICATION},
        headers=admin_headers,
    )
    assert response.status_code == 400


def test_csv_import_skips_existing_and_duplicate_rows(client, admin_headers, create_student) -> None:
    create_student("FE-001")
    csv_content = (
        "full_name,registration_number,email,temp_password,exam_types,category\n"
        "Asha Patil,FE-100,asha@futureedge.in,Welcome@123,MHT-CET;JEE,OBC\n"
        "Existing,FE-001,someone@futureedge.in,Welcome@123,,\n"
        "Repeat,FE-100,repeat@futureedge.in,Welcome@123,,\n"
        "No Password,FE-101,nopass@futureedge.in,,,\n"
    )

    response = client.post(
        "/api/admin/students/upload-csv",
        files={"file": ("students.csv", csv_content.encode("utf-8"), "text/csv")},
        headers=admin_headers,
    )

    assert response.status_code == 200, response.text
    body = response.json()
    assert body["total_processed"] == 4
    assert body["newly_added"] == 1
    assert body["skipped"] == 3
    added = body["newly_added_students"][0]
    assert added["registration_number"] == "FE-100"
    assert added["exam_types"] == ["MHT-CET", "JEE"]
    assert added["category"] == "OBC"

    login = client.post("/api/auth/login", json={"registration_number": "FE-100", "password": "Welcome@123"})
    assert login.status_code == 200


def test_csv_import_requires_columns(client, admin_headers) -> None:
    response = client.post(
        "/api/admin/students/upload-csv",
        files={"file": ("students.csv", b"full_name,email\nA,a@futureedge.in\n", "text/csv")},
        headers=admin_headers,
    )
    assert response.status_code == 400
    assert "registration_number" in response.json()["detail"]


def test_alerts_show_on_dashboard_until_resolved(client, admin_headers, create_student, login_student) -> None:
    student_id = create_student("FE-010")
    headers = login_student("FE-010")

    created = client.post(
        f"/api/admin/students/{student_id}/alerts",
        json={"title": "Upload Aadhaar", "message": "Your Aadhaar scan is missing"},
        headers=admin_headers,
    )
    assert created.status_code == 201

    alerts = client.get(f"/api/students/{student_id}/dashboard", headers=headers).json()["alerts"]
    assert [a["title"] for a in alerts] == ["Upload Aadhaar"]

    client.patch(f"/api/admin/alerts/{created.json()['id']}", headers=admin_headers)
    alerts = client.get(f"/api/students/{student_id}/dashboard", headers=headers).json()["alerts"]
    assert alerts == []


def test_student_cannot_read_another_dashboard(client, create_student, login_student) -> None:
    create_student("FE-010")
    other_id = create_student("FE-011")

    response = client.get(f"/api/students/{other_id}/dashboard", headers=login_student("FE-010"))
    assert response.status_code == 403


def test_profile_update_and_completion(client, create_student, login_student) -> None:
    student_id = create_student("FE-010", exam_types=["MHT-CET"])
    headers = login_student("FE-010")
    url = f"/api/students/{student_id}/profile"

    dashboard = client.get(f"/api/students/{student_id}/dashboard", headers=headers).json()
    assert dashboard["progress"]["is_profile_complete"] is False

    response = client.put(
        url,
        json={"mobile_number": "9876543210", "home_state": "Maharashtra", "alternate_contact_number": ""},
        headers=headers,
    )
    assert response.status_code == 200
    assert response.json()["mobile_number"] == "9876543210"
    assert response.json()["alternate_contact_number"] is None

    dashboard = client.get(f"/api/students/{student_id}/dashboard", headers=headers).json()
    assert dashboard["progress"]["is_profile_complete"] is True


def test_profile_rejects_bad_mobile_number(client, create_student, login_student) -> None:
    student_id = create_student("FE-010")

    response = client.put(
        f"/api/students/{student_id}/profile",
        json={"mobile_number": "12345"},
        headers=login_student("FE-010"),
    )
    assert response.status_code == 400


def test_create_student_rejects_password_over_72_bytes(client, admin_headers) -> None:
    response = client.post("/api/admin/students", headers=admin_headers, json={
        "full_name": "Asha Patil", "registration_number": "FE-010",
        "email": "asha@futureedge.in", "temp_password": "é" * 40,
    })
    assert response.status_code == 400


def test_create_student_losing_insert_race_is_a_duplicate(client, admin_headers, monkeypatch) -> None:
    def conflicting_flush(self, objects=None):
        raise IntegrityError("INSERT INTO students", {}, Exception("UNIQUE constraint failed: students.email"))

    monkeypatch.setattr("sqlalchemy.orm.Session.flush", conflicting_flush)
    response = client.post("/api/admin/students", headers=admin_headers, json={
        "full_name": "Asha Patil", "registration_number": "FE-010",
        "email": "asha@futureedge.in", "temp_password": "Welcome@123",
    })

    assert response.status_code == 400
    assert response.json()["detail"] == "Registration number or email address already exists"


def test_csv_import_skips_rows_failing_validation(client, admin_headers) -> None:
    csv_content = (
        "full_name,registration_number,email,temp_password\n"
        "Bad Email,FE-200,not-an-email,Welcome@123\n"
        "Short Password,FE-201,short@futureedge.in,x\n"
        "Wide Password,FE-202,wide@futureedge.in," + "é" * 40 + "\n"
        "Valid Row,FE-203,valid@futureedge.in,Welcome@123\n"
    )

    response = client.post(
        "/api/admin/students/upload-csv",
        files={"file": ("students.csv", csv_content.encode("utf-8"), "text/csv")},
        headers=admin_headers,
    )

    assert response.status_code == 200, response.text
    body = response.json()
    assert body["total_processed"] == 4
    assert body["newly_added"] == 1
    assert body["skipped"] == 3
    assert [s["registration_number"] for s in body["newly_added_students"]] == ["FE-203"]
