from __future__ import annotations

from dataclasses import replace

from fastapi.testclient import TestClient

from app import create_app
from backend.utils.config import get_settings


JOHN = "S1234567A"
DANIEL = "T2109876H"
JESSICA = "S5678901G"


def _build_test_settings(tmp_path, filename: str):
    get_settings.cache_clear()
    return replace(get_settings(), database_path=tmp_path / filename, seed_demo_data=True)


def _login(client: TestClient, user_id: str) -> dict[str, str]:
    response = client.post("/sessions", json={"user_id": user_id})
    assert response.status_code == 201
    return {"Authorization": f"Bearer {response.json()['access_token']}"}


def _project_units(client: TestClient, headers: dict[str, str]) -> dict[str, int]:
    response = client.get("/manager/projects", params={"mine": True}, headers=headers)
    assert response.status_code == 200
    return response.json()[0]["units"]


def test_apply_approve_book_withdraw_round_trip(tmp_path) -> None:
    app = create_app(_build_test_settings(tmp_path, "api_flow.db"))

    with TestClient(app) as client:
        applicant = _login(client, JOHN.lower())
        officer = _login(client, DANIEL)
        manager = _login(client, JESSICA)

        listed = client.get("/applicant/projects", headers=applicant)
        assert listed.status_code == 200
        project = listed.json()[0]
        assert project["eligible_flat_type"] == "TWO_ROOM"
        assert set(project["units"]) == {"TWO_ROOM"}
        project_id = project["project_id"]

        applied = client.post(
            "/applicant/applications",
            json={"project_id": project_id, "flat_type": "TWO_ROOM"},
            headers=applicant,
        )
        assert applied.status_code == 201
        application_id = applied.json()["request_id"]

        again = client.post(
            "/applicant/applications",
            json={"project_id": project_id, "flat_type": "TWO_ROOM"},
            headers=applicant,
        )
        assert again.status_code == 409
        assert again.json()["detail"]["error"] == "AlreadyAppliedError"

        decided = client.post(
            f"/manager/requests/{application_id}/decision",
            json={"decision": "SUCCESSFUL"},
            headers=manager,
        )
        assert decided.status_code == 200
        assert decided.json()["overall_status"] == "DONE"
        assert _project_units(client, manager)["TWO_ROOM"] == 2

        booked = client.post("/officer/bookings", json={"applicant_id": JOHN}, headers=officer)
        assert booked.status_code == 201
        assert booked.json()["flat_type"] == "TWO_ROOM"
        assert booked.json()["price"] == 350000
        assert _project_units(client, manager)["TWO_ROOM"] == 1

        report = client.get("/manager/reports/bookings", headers=manager)
        assert report.status_code == 200
        assert [row["applicant_id"] for row in report.json()] == [JOHN]

        status_view = client.get("/applicant/application", headers=applicant)
        assert status_view.json()["status"] == "BOOKED"

        withdrawn = client.post(
            "/applicant/withdrawals",
            json={"project_id": project_id},
            headers=applicant,
        )
        assert withdrawn.status_code == 201
        assert withdrawn.json()["status_at_submission"] == "BOOKED"

        pending = client.get(
            "/manager/requests",
            params={"pending_only": True},
            headers=manager,
        )
        assert [item["request_id"] for item in pending.json()] == [withdrawn.json()["request_id"]]

        settled = client.post(
            f"/manager/requests/{withdrawn.json()['request_id']}/decision",
            json={"decision": "SUCCESSFUL"},
            headers=manager,
        )
        assert settled.status_code == 200
        assert _project_units(client, manager)["TWO_ROOM"] == 2

        history = client.get("/applicant/requests", headers=applicant).json()
        assert history["pending"] == []
        assert len(history["history"]) == 2


def test_enquiry_round_trip(tmp_path) -> None:
    app = create_app(_build_test_settings(tmp_path, "api_enquiry.db"))

    with TestClient(app) as client:
        applicant = _login(client, JOHN)
        officer = _login(client, DANIEL)
        project_id = client.get("/applicant/projects", headers=applicant).json()[0]["project_id"]

        created = client.post(
            "/enquiries",
            json={"project_id": project_id, "text": "Is there a carpark?"},
            headers=applicant,
        )
        assert created.status_code == 201
        enquiry_id = created.json()["request_id"]

        answered = client.post(
            f"/enquiries/{enquiry_id}/answer",
            json={"text": "Yes."},
            headers=officer,
        )
        assert answered.status_code == 200
        assert answered.json()["answered_by"] == DANIEL

        locked = client.put(f"/enquiries/{enquiry_id}", json={"text": "Edit"}, headers=applicant)
        assert locked.status_code == 409

        mine = client.get("/enquiries/mine", headers=applicant).json()
        assert [item["answer"] for item in mine] == ["Yes."]


def test_error_mapping(tmp_path) -> None:
    app = create_app(_build_test_settings(tmp_path, "api_errors.db"))

    with TestClient(app) as client:
        assert client.get("/sessions/me").status_code == 401
        assert client.get(
            "/sessions/me",
            headers={"Authorization": "Bearer not-a-token"},
        ).status_code == 401
        assert client.post("/sessions", json={"user_id": "S0000000Z"}).status_code == 404

        applicant = _login(client, JOHN)
        manager = _login(client, JESSICA)

        forbidden = client.get("/manager/projects", headers=applicant)
        assert forbidden.status_code == 403
        assert forbidden.json()["detail"]["kind"] == "IneligibleOperation"

        missing = client.post(
            "/applicant/applications",
            json={"project_id": "P9999", "flat_type": "TWO_ROOM"},
            headers=applicant,
        )
        assert missing.status_code == 404
        assert missing.json()["detail"]["kind"] == "NotFound"

        ineligible = client.post(
            "/applicant/applications",
            json={"project_id": "P0001", "flat_type": "THREE_ROOM"},
            headers=applicant,
        )
        assert ineligible.status_code == 400
        assert ineligible.json()["detail"]["error"] == "NotEligibleError"

        bad_report = client.get(
            "/manager/reports/bookings",
            params={"min_age": 50, "max_age": 30},
            headers=manager,
        )
        assert bad_report.status_code == 400

        invalid_payload = client.post(
            "/manager/projects",
            json={"name": "X", "neighborhoods": [], "units": {}, "prices": {}},
            headers=manager,
        )
        assert invalid_payload.status_code == 422


def test_logout_invalidates_token(tmp_path) -> None:
    app = create_app(_build_test_settings(tmp_path, "api_logout.db"))

    with TestClient(app) as client:
        headers = _login(client, JOHN)
        me = client.get("/sessions/me", headers=headers)
        assert me.json() == {"user_id": JOHN, "role": "APPLICANT"}

        assert client.delete("/sessions", headers=headers).status_code == 204
        assert client.get("/sessions/me", headers=headers).status_code == 401
        assert client.delete("/sessions", headers=headers).status_code == 401


def test_signing_in_again_revokes_the_previous_token(tmp_path) -> None:
    app = create_app(_build_test_settings(tmp_path, "api_relogin.db"))

    with TestClient(app) as client:
        first = _login(client, JOHN)
        second = _login(client, JOHN)
        manager = _login(client, JESSICA)

        assert client.get("/sessions/me", headers=first).status_code == 401
        assert client.get("/sessions/me", headers=second).status_code == 200
        assert client.get("/sessions/me", headers=manager).status_code == 200
