"""End-to-end tests through the HTTP layer."""

from datetime import datetime, timedelta, timezone


def _register(client, email="bob@example.com"):
    return client.post(
        "/auth/register-student",
        json={
            "name": "Bob Builder",
            "email": email,
            "password": "secret123",
            "phone": "9876543210",
            "skills": ["Python", "SQL"],
        },
    )


def test_health(client):
    response = client.get("/health")
    assert response.status_code == 200
    assert response.json() == {"status": "ok"}


class TestAuth:
    def test_register_logs_in(self, client):
        response = _register(client)
        assert response.status_code == 201
        body = response.json()
        assert body["role"] == "student"
        assert body["student_id"] is not None

        me = client.get("/auth/me")
        assert me.status_code == 200
        assert me.json()["email"] == "bob@example.com"

    def test_duplicate_registration(self, client, student):
        response = _register(client, email="alice@example.com")
        assert response.status_code == 400

    def test_invalid_phone(self, client):
        response = client.post(
            "/auth/register-student",
            json={"name": "X", "email": "x@example.com", "password": "secret123", "phone": "12"},
        )
        assert response.status_code == 400

    def test_wrong_password(self, client, student):
        response = client.post("/auth/login", json={"email": "alice@example.com", "password": "nope"})
        assert response.status_code == 401

    def test_logout(self, client, student):
        client.login("alice@example.com", "testpass123")
        client.post("/auth/logout")
        assert client.get("/auth/me").status_code == 401


class TestAccessControl:
    def test_anonymous_cannot_create_submission(self, client, project):
        response = client.post("/submissions", json={"project_id": project.id, "title": "x", "hours_worked": 1})
        assert response.status_code == 401

    def test_student_cannot_approve(self, client, student, draft_submission):
        client.login("alice@example.com", "testpass123")
        response = client.post(f"/submissions/{draft_submission.id}/approve")
        assert response.status_code == 403

    def test_admin_cannot_clock_in(self, client, admin_user):
        client.login("admin@example.com", "admin123")
        assert client.post("/timesheets/clock-in").status_code == 403

    def test_other_student_cannot_submit(self, client, draft_submission):
        _register(client)
        response = client.post(f"/submissions/{draft_submission.id}/submit")
        assert response.status_code == 403


class TestSubmissionFlow:
    def test_create_submit_and_approve(self, client, student, project, admin_user):
        client.login("alice@example.com", "testpass123")
        created = client.post(
            "/submissions",
            json={
                "project_id": project.id,
                "title": "Hero section",
                "hours_worked": 10,
                "files": [
                    {
                        "filename": "hero-1.png",
                        "original_name": "hero.png",
                        "path": "uploads/hero-1.png",
                        "size": 512,
                        "mimetype": "image/png",
                    }
                ],
            },
        )
        assert created.status_code == 201, created.text
        submission_id = created.json()["id"]
        assert created.json()["status"] == "draft"

        submitted = client.post(f"/submissions/{submission_id}/submit")
        assert submitted.status_code == 200
        assert submitted.json()["status"] == "submitted"

        # Submitting again is a state conflict
        again = client.post(f"/submissions/{submission_id}/submit")
        assert again.status_code == 409
        assert again.json()["error"]["code"] == "INVALID_STATE"

        client.login("admin@example.com", "admin123")
        queue = client.get("/submissions", params={"status": "submitted"})
        assert [s["id"] for s in queue.json()] == [submission_id]

        approved = client.post(
            f"/submissions/{submission_id}/approve",
            json={"feedback": "Clean work", "grade": 95, "quality_score": 5},
        )
        assert approved.status_code == 200, approved.text
        body = approved.json()
        assert body["status"] == "approved"
        assert body["earnings"] == 150
        assert body["reviewed_by"] == admin_user.id

    def test_revision_round_trip(self, client, student, draft_submission, admin_user):
        client.login("alice@example.com", "testpass123")
        client.post(f"/submissions/{draft_submission.id}/submit")

        client.login("admin@example.com", "admin123")
        revision = client.post(
            f"/submissions/{draft_submission.id}/request-revision", json={"feedback": "Add mobile layout"}
        )
        assert revision.json()["status"] == "revision_required"

        client.login("alice@example.com", "testpass123")
        updated = client.put(f"/submissions/{draft_submission.id}", json={"hours_worked": 14})
        assert updated.status_code == 200
        assert updated.json()["hours_worked"] == 14

        resubmitted = client.post(f"/submissions/{draft_submission.id}/resubmit")
        assert resubmitted.status_code == 200
        body = resubmitted.json()
        assert body["status"] == "submitted"
        assert body["current_version"] == 2
        assert body["feedback"] == "Add mobile layout"
        assert body["revision_history"][0]["version"] == 1

    def test_resubmit_from_draft_conflicts(self, client, student, draft_submission):
        client.login("alice@example.com", "testpass123")
        response = client.post(f"/submissions/{draft_submission.id}/resubmit")
        assert response.status_code == 409

    def test_unknown_project(self, client, student):
        client.login("alice@example.com", "testpass123")
        response = client.post("/submissions", json={"project_id": 9999, "title": "x", "hours_worked": 1})
        assert response.status_code == 404
        assert response.json()["error"]["code"] == "PROJECT_NOT_FOUND"

    def test_unknown_status_filter(self, client, admin_user):
        client.login("admin@example.com", "admin123")
        assert client.get("/submissions", params={"status": "bogus"}).status_code == 400


class TestTimesheetFlow:
    def test_clock_in_break_out_and_approve(self, client, student, project, admin_user):
        client.login("alice@example.com", "testpass123")
        started = client.post("/timesheets/clock-in", json={"project_id": project.id})
        assert started.status_code == 201
        timesheet_id = started.json()["id"]

        assert client.post("/timesheets/clock-in").status_code == 409
        assert client.get("/timesheets/active").json()["id"] == timesheet_id

        on_break = client.post(f"/timesheets/{timesheet_id}/break/start")
        assert on_break.json()["on_break"] is True
        assert client.post(f"/timesheets/{timesheet_id}/break/start").status_code == 409
        off_break = client.post(f"/timesheets/{timesheet_id}/break/end")
        assert off_break.json()["on_break"] is False

        done = client.post(f"/timesheets/{timesheet_id}/clock-out", json={"description": "Styling"})
        assert done.status_code == 200
        assert done.json()["status"] == "completed"
        assert done.json()["break_minutes"] >= 0
        assert client.get("/timesheets/active").status_code == 404

        client.login("admin@example.com", "admin123")
        approved = client.post(f"/timesheets/{timesheet_id}/approve")
        assert approved.status_code == 200
        assert approved.json()["status"] == "approved"
        assert client.post(f"/timesheets/{timesheet_id}/reject").status_code == 409

    def test_unknown_timesheet(self, client, admin_user):
        client.login("admin@example.com", "admin123")
        assert client.post("/timesheets/9999/approve").status_code == 404


class TestProjects:
    def test_admin_creates_and_publishes(self, client, admin_user):
        client.login("admin@example.com", "admin123")
        created = client.post(
            "/projects",
            json={"title": "API docs", "description": "Write the docs", "estimated_hours": 8, "hourly_rate": 10},
        )
        assert created.status_code == 201, created.text
        project_id = created.json()["id"]
        assert created.json()["total_budget"] == 80

        assert client.post(f"/projects/{project_id}/publish").json()["status"] == "published"
        assert client.post(f"/projects/{project_id}/publish").status_code == 409

    def test_student_cannot_create_project(self, client, student):
        client.login("alice@example.com", "testpass123")
        response = client.post(
            "/projects",
            json={"title": "x", "description": "y", "estimated_hours": 1, "hourly_rate": 1},
        )
        assert response.status_code == 403

    def test_assign_and_progress(self, client, project, student, admin_user):
        client.login("admin@example.com", "admin123")
        assigned = client.post(f"/projects/{project.id}/assign", json={"student_id": student.id})
        assert assigned.status_code == 200
        assert assigned.json()["assigned_to"][0]["student_id"] == student.id
        assert client.get(f"/projects/{project.id}/progress").json()["progress"] == 0

    def test_public_listing(self, client, project):
        response = client.get("/projects", params={"status": "published"})
        assert [p["id"] for p in response.json()] == [project.id]
        assert client.get("/projects/9999").status_code == 404

    def test_deadline_with_offset_is_stored_as_utc(self, client, student, admin_user):
        """A deadline two hours ago, sent in +05:30, must make a submission late."""
        ist = timezone(timedelta(hours=5, minutes=30))
        deadline = datetime.now(ist) - timedelta(hours=2)

        client.login("admin@example.com", "admin123")
        created = client.post(
            "/projects",
            json={
                "title": "Offset deadline",
                "description": "Due in another timezone",
                "estimated_hours": 4,
                "hourly_rate": 10,
                "deadline": deadline.isoformat(),
            },
        )
        assert created.status_code == 201, created.text
        stored = datetime.fromisoformat(created.json()["deadline"])
        assert stored == deadline.astimezone(timezone.utc).replace(tzinfo=None)
        assert created.json()["is_overdue"] is True
        project_id = created.json()["id"]

        client.login("alice@example.com", "testpass123")
        sub = client.post("/submissions", json={"project_id": project_id, "title": "Late work", "hours_worked": 1})
        submitted = client.post(f"/submissions/{sub.json()['id']}/submit").json()
        assert submitted["is_late"] is True
        assert submitted["is_overdue"] is True

    def test_unknown_status_filter(self, client):
        assert client.get("/projects", params={"status": "bogus"}).status_code == 400


class TestProfileAndPassword:
    def test_student_updates_profile(self, client, student):
        client.login("alice@example.com", "testpass123")
        response = client.put("/auth/profile", json={"name": "Alice Smith", "skills": ["Vue"], "bio": "Hi"})
        assert response.status_code == 200, response.text
        body = response.json()
        assert body["name"] == "Alice Smith"
        assert body["skills"] == ["Vue"]
        assert body["bio"] == "Hi"
        assert client.get("/auth/me").json()["name"] == "Alice Smith"

    def test_invalid_phone_rejected(self, client, student):
        client.login("alice@example.com", "testpass123")
        assert client.put("/auth/profile", json={"phone": "12"}).status_code == 400

    def test_admin_updates_name(self, client, admin_user):
        client.login("admin@example.com", "admin123")
        response = client.put("/auth/profile", json={"name": "Head Admin"})
        assert response.status_code == 200
        assert response.json()["name"] == "Head Admin"

    def test_change_password(self, client, student):
        client.login("alice@example.com", "testpass123")
        response = client.put(
            "/auth/change-password", json={"current_password": "testpass123", "new_password": "newpass456"}
        )
        assert response.status_code == 200

        client.post("/auth/logout")
        assert client.post(
            "/auth/login", json={"email": "alice@example.com", "password": "testpass123"}
        ).status_code == 401
        client.login("alice@example.com", "newpass456")

    def test_change_password_wrong_current(self, client, student):
        client.login("alice@example.com", "testpass123")
        response = client.put(
            "/auth/change-password", json={"current_password": "wrong", "new_password": "newpass456"}
        )
        assert response.status_code == 400

    def test_change_password_requires_login(self, client):
        response = client.put("/auth/change-password", json={"current_password": "a", "new_password": "bcdefgh"})
        assert response.status_code == 401


class TestAdmin:
    def test_admin_registers_admin(self, client, admin_user):
        client.login("admin@example.com", "admin123")
        response = client.post(
            "/auth/register-admin", json={"name": "Second Admin", "email": "ops@example.com", "password": "opspass1"}
        )
        assert response.status_code == 201, response.text
        assert response.json()["role"] == "admin"

        client.login("ops@example.com", "opspass1")
        assert client.get("/admin/dashboard").status_code == 200

    def test_student_cannot_register_admin(self, client, student):
        client.login("alice@example.com", "testpass123")
        response = client.post(
            "/auth/register-admin", json={"name": "Sneaky", "email": "sneaky@example.com", "password": "secret1"}
        )
        assert response.status_code == 403

    def test_dashboard(self, client, admin_user, draft_submission):
        client.login("admin@example.com", "admin123")
        body = client.get("/admin/dashboard").json()
        assert body["stats"]["total_students"] == 1
        assert body["stats"]["total_projects"] == 1
        assert body["stats"]["pending_submissions"] == 0
        assert body["project_stats"] == {"published": 1}

    def test_list_and_deactivate_students(self, client, admin_user, student):
        client.login("admin@example.com", "admin123")
        listing = client.get("/admin/students", params={"search": "alice"}).json()
        assert [s["id"] for s in listing["students"]] == [student.id]
        assert listing["pagination"]["total"] == 1

        detail = client.get(f"/admin/students/{student.id}").json()
        assert detail["completion_rate"] == 0
        assert detail["active_projects"] == []

        assert client.post(f"/admin/students/{student.id}/deactivate").json()["is_active"] is False
        assert client.post("/auth/login", json={"email": "alice@example.com", "password": "testpass123"}).status_code == 403
        assert client.get("/admin/students/9999").status_code == 404

    def test_timesheet_status_filter_validated(self, client, admin_user):
        client.login("admin@example.com", "admin123")
        assert client.get("/timesheets", params={"status": "bogus"}).status_code == 400


class TestStudentDashboard:
    def test_dashboard(self, client, student, project, admin_user):
        client.login("admin@example.com", "admin123")
        client.post(f"/projects/{project.id}/assign", json={"student_id": student.id})

        client.login("alice@example.com", "testpass123")
        body = client.get("/students/dashboard").json()
        assert body["stats"]["total_projects"] == 1
        assert body["stats"]["active_projects"] == 1
        assert body["stats"]["completion_rate"] == 0
        assert [p["id"] for p in body["projects"]] == [project.id]
        assert [p["id"] for p in client.get("/students/projects/active").json()] == [project.id]

    def test_admin_has_no_student_dashboard(self, client, admin_user):
        client.login("admin@example.com", "admin123")
        assert client.get("/students/dashboard").status_code == 403
