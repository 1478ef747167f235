def create_notice(client, headers, title, status="published", is_important=False):
    response = client.post(
        "/api/admin/notices",
        json={"title": title, "content": f"{title} details", "status": status, "is_important": is_important},
        headers=headers,
    )
    assert response.status_code == 201, response.text
    return response.json()


def test_feed_shows_latest_five_published(client, admin_headers, create_student, login_student) -> None:
    for number in range(6):
        create_notice(client, admin_headers, f"Notice {number}")
    create_notice(client, admin_headers, "Draft notice", status="draft")
    create_student("FE-010")

    response = client.get("/api/notices", headers=login_student("FE-010"))

    assert response.status_code == 200
    titles = [n["title"] for n in response.json()]
    assert titles == ["Notice 5", "Notice 4", "Notice 3", "Notice 2", "Notice 1"]


def test_dashboard_includes_published_notices(client, admin_headers, create_student, login_student) -> None:
    create_notice(client, admin_headers, "CAP Round 1 schedule", is_important=True)
    create_notice(client, admin_headers, "Unreleased", status="draft")
    student_id = create_student("FE-010")

    dashboard = client.get(f"/api/students/{student_id}/dashboard", headers=login_student("FE-010")).json()

    assert [n["title"] for n in dashboard["notices"]] == ["CAP Round 1 schedule"]
    assert dashboard["notices"][0]["is_important"] is True


def test_admin_sees_drafts_and_can_publish(client, admin_headers) -> None:
    draft = create_notice(client, admin_headers, "Merit list", status="draft")

    listed = client.get("/api/admin/notices", headers=admin_headers).json()
    assert [n["status"] for n in listed] == ["draft"]

    published = client.put(f"/api/admin/notices/{draft['id']}", json={"status": "published"}, headers=admin_headers)
    assert published.status_code == 200
    assert published.json()["status"] == "published"
    assert published.json()["title"] == "Merit list"


def test_delete_notice(client, admin_headers) -> None:
    notice = create_notice(client, admin_headers, "Old news")

    assert client.delete(f"/api/admin/notices/{notice['id']}", headers=admin_headers).status_code == 200
    assert client.delete(f"/api/admin/notices/{notice['id']}", headers=admin_headers).status_code == 404


def test_students_cannot_write_notices(client, create_student, login_student) -> None:
    create_student("FE-010")

    response = client.post("/api/admin/notices", json={"title": "Hi"}, headers=login_student("FE-010"))
    assert response.status_code == 403
