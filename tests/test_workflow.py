import pytest

import models
import workflow
from config import Settings
from database import Database
from errors import ConflictError


def set_status(client, report_id, status, assigned_to=None, headers=None):
    body = {"status": status}
    if assigned_to:
        body["assignedTo"] = assigned_to
    return client.patch(f"/reports/{report_id}/status", json=body, headers=headers)


def eco_points(client, volunteer_id):
    return client.get(f"/volunteers/{volunteer_id}/stats").json()["ecoPoints"]


def test_reserve_start_resolve(client, make_report, make_user):
    volunteer = make_user("volunteer")
    report = make_report()
    before = eco_points(client, volunteer["id"])

    resp = set_status(client, report["id"], "Pending", volunteer["id"])
    assert resp.status_code == 200
    reserved = resp.json()["report"]
    assert reserved["status"] == "Pending"
    assert reserved["assignedTo"] == volunteer["id"]

    resp = set_status(client, report["id"], "In Progress", volunteer["id"])
    assert resp.status_code == 200
    assert resp.json()["report"]["status"] == "In Progress"
    assert eco_points(client, volunteer["id"]) == before + 5

    resp = client.patch(f"/reports/{report['id']}/resolve", json={
        "userId": volunteer["id"],
        "image": "YWZ0ZXI=",
        "notes": "Cleared the waste",
    })
    assert resp.status_code == 200

    stored = client.get(f"/reports/{report['id']}").json()
    assert stored["status"] == "Resolved"
    assert stored["resolvedBy"] == volunteer["id"]
    assert stored["resolvedImage"] == "YWZ0ZXI="
    assert stored["resolutionNotes"] == "Cleared the waste"
    assert stored["resolvedAt"] is not None
    assert eco_points(client, volunteer["id"]) == before + 10

    stats = client.get(f"/volunteers/{volunteer['id']}/stats").json()
    assert stats == {"tasksCompleted": 1, "inProgress": 0, "ecoPoints": 10}


def test_version_bumps_on_each_transition(client, make_report, make_user):
    volunteer = make_user("volunteer")
    report = make_report()
    assert report["version"] == 1

    v2 = set_status(client, report["id"], "Pending", volunteer["id"]).json()["report"]["version"]
    v3 = set_status(client, report["id"], "In Progress").json()["report"]["version"]
    assert (v2, v3) == (2, 3)


def test_start_keeps_existing_assignee(client, make_report, make_user):
    volunteer = make_user("volunteer")
    report = make_report()
    set_status(client, report["id"], "Pending", volunteer["id"])

    resp = set_status(client, report["id"], "In Progress")
    assert resp.status_code == 200
    assert resp.json()["report"]["assignedTo"] == volunteer["id"]


def test_second_volunteer_cannot_reserve(client, make_report, make_user):
    first = make_user("volunteer")
    second = make_user("volunteer")
    report = make_report()

    assert set_status(client, report["id"], "Pending", first["id"]).status_code == 200
    resp = set_status(client, report["id"], "Pending", second["id"])
    assert resp.status_code == 409

    resp = set_status(client, report["id"], "In Progress", second["id"])
    assert resp.status_code == 409

    stored = client.get(f"/reports/{report['id']}").json()
    assert stored["assignedTo"] == first["id"]
    assert stored["status"] == "Pending"


def test_only_volunteers_can_be_assigned(client, make_report, make_user):
    citizen = make_user("citizen")
    report = make_report()
    assert set_status(client, report["id"], "Pending", citizen["id"]).status_code == 403


def test_assignee_must_exist(client, make_report):
    report = make_report()
    assert set_status(client, report["id"], "Pending", "0" * 24).status_code == 404


def test_in_progress_needs_a_volunteer(client, make_report):
    report = make_report()
    resp = set_status(client, report["id"], "In Progress")
    assert resp.status_code == 400
    assert client.get(f"/reports/{report['id']}").json()["status"] == "Pending"


def test_invalid_status(client, make_report):
    report = make_report()
    resp = set_status(client, report["id"], "Done")
    assert resp.status_code == 400
    assert resp.json()["detail"] == "Invalid status"


def test_unknown_report(client):
    assert set_status(client, "0" * 24, "Pending").status_code == 404


def test_generic_resolve_stamps_only_resolved_at(client, make_report, make_user):
    volunteer = make_user("volunteer")
    report = make_report()
    set_status(client, report["id"], "In Progress", volunteer["id"])

    resp = set_status(client, report["id"], "Resolved")
    assert resp.status_code == 200

    stored = client.get(f"/reports/{report['id']}").json()
    assert stored["status"] == "Resolved"
    assert stored["resolvedAt"] is not None
    assert stored["resolvedBy"] is None
    assert stored["resolutionNotes"] is None
    assert stored["resolvedImage"] is None
    assert eco_points(client, volunteer["id"]) == 10


def test_status_resolved_iff_resolved_at(client, make_report, make_user):
    volunteer = make_user("volunteer")
    generic, dedicated, open_report = make_report(), make_report(), make_report()
    set_status(client, generic["id"], "Resolved")
    client.patch(f"/reports/{dedicated['id']}/resolve", json={"userId": volunteer["id"]})
    set_status(client, open_report["id"], "In Progress", volunteer["id"])

    for report in client.get("/reports").json()["reports"]:
        assert (report["status"] == "Resolved") == (report["resolvedAt"] is not None)


def test_terminal_reports_reject_status_updates(client, make_report, make_user):
    volunteer = make_user("volunteer")
    report = make_report()
    client.patch(f"/reports/{report['id']}/resolve", json={"userId": volunteer["id"]})

    resp = set_status(client, report["id"], "Pending", volunteer["id"])
    assert resp.status_code == 409
    assert resp.json()["detail"] == "Report is already resolved"
    assert set_status(client, report["id"], "In Progress").status_code == 409


def test_terminal_check_runs_before_assignee_checks(client, make_report, make_user, admin_headers):
    citizen = make_user("citizen")
    report = make_report()
    assert set_status(client, report["id"], "Rejected", headers=admin_headers).status_code == 200

    resp = set_status(client, report["id"], "In Progress")
    assert resp.status_code == 409
    assert resp.json()["detail"] == "Report is already rejected"
    assert set_status(client, report["id"], "Pending", citizen["id"]).status_code == 409


def test_reject_requires_admin(client, make_report, make_user):
    citizen = make_user()
    report = make_report(user=citizen)
    assert set_status(client, report["id"], "Rejected").status_code == 403

    token = client.post("/auth/signin", json={"email": citizen["email"], "password": "secret123"}).json()["accessToken"]
    resp = set_status(client, report["id"], "Rejected", headers={"Authorization": f"Bearer {token}"})
    assert resp.status_code == 403
    assert client.get(f"/reports/{report['id']}").json()["status"] == "Pending"


def test_admin_rejects_reserved_report(client, make_report, make_user, admin_headers):
    volunteer = make_user("volunteer")
    report = make_report()
    set_status(client, report["id"], "In Progress", volunteer["id"])

    resp = set_status(client, report["id"], "Rejected", headers=admin_headers)
    assert resp.status_code == 200
    assert resp.json()["report"]["status"] == "Rejected"
    assert eco_points(client, volunteer["id"]) == 0

    resp = set_status(client, report["id"], "Pending", headers=admin_headers)
    assert resp.status_code == 409


def test_resolve_unknown_report_or_user(client, make_report, make_user):
    volunteer = make_user("volunteer")
    report = make_report()
    assert client.patch(f"/reports/{'0' * 24}/resolve", json={"userId": volunteer["id"]}).status_code == 404
    assert client.patch(f"/reports/{report['id']}/resolve", json={"userId": "0" * 24}).status_code == 404
    assert client.patch(f"/reports/{report['id']}/resolve", json={}).status_code == 400


def test_volunteer_stats_unknown_user(client):
    assert client.get(f"/volunteers/{'0' * 24}/stats").status_code == 404


def test_eco_points_formula():
    assert workflow.eco_points(0, 0) == 0
    assert workflow.eco_points(3, 2) == 40
    # Completing one task moves it from in-progress to resolved: +5 net
    assert workflow.eco_points(1, 0) - workflow.eco_points(0, 1) == 5


class TestRestrictedGenericTargets:
    @pytest.fixture
    def settings(self):
        return Settings(
            database_url="sqlite:///:memory:",
            generic_status_targets=["Pending", "In Progress", "Rejected"],
        )

    def test_resolved_only_through_resolve(self, client, make_report, make_user):
        volunteer = make_user("volunteer")
        report = make_report()
        set_status(client, report["id"], "In Progress", volunteer["id"])

        resp = set_status(client, report["id"], "Resolved")
        assert resp.status_code == 400
        assert "cannot be set" in resp.json()["detail"]

        resp = client.patch(f"/reports/{report['id']}/resolve", json={"userId": volunteer["id"], "notes": "done"})
        assert resp.status_code == 200
        assert resp.json()["report"]["resolvedBy"] == volunteer["id"]


def test_settings_reject_unknown_generic_targets():
    with pytest.raises(ValueError):
        Settings(generic_status_targets=["Pending", "Closed"])


def test_reservation_race_has_one_winner(tmp_path):
    """A volunteer acting on a stale read loses to the one who committed first."""
    database = Database(f"sqlite:///{tmp_path / 'race.db'}")
    database.open()
    try:
        setup = database.session()
        owner = models.User(name="Owner", email="owner@example.com", password="x", role="citizen")
        first = models.User(name="First", email="first@example.com", password="x", role="volunteer")
        second = models.User(name="Second", email="second@example.com", password="x", role="volunteer")
        setup.add_all([owner, first, second])
        setup.flush()
        report = models.Report(
            user_id=owner.id, category="Garbage", description="Waste", location="Road",
            latitude=1.0, longitude=2.0,
        )
        setup.add(report)
        setup.commit()
        report_id, first_id, second_id = report.id, first.id, second.id
        setup.close()

        slow = database.session()
        fast = database.session()

        stale = slow.get(models.Report, report_id)
        assert stale.assigned_to is None

        workflow.reserve(fast, report_id, first_id)

        with pytest.raises(ConflictError):
            workflow.reserve(slow, report_id, second_id)

        started = workflow.start(fast, report_id, first_id)
        assert started.status == "In Progress"

        slow.close()
        fast.close()

        check = database.session()
        stored = check.get(models.Report, report_id)
        assert stored.assigned_to == first_id
        assert stored.version == 3
        check.close()
    finally:
        database.close()
