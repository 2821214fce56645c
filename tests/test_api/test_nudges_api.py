"""
Tests for nudge and report endpoints
"""
import pytest
from datetime import date, datetime, timezone
from fastapi.testclient import TestClient

from flowtrack.main import app
from flowtrack.api.deps import get_db, get_current_user
from flowtrack.application.acknowledgements import build_ack_token
from flowtrack.config import get_settings
from flowtrack.domain.statuses import NudgeStatus, ReportStatus, Role
from flowtrack.infrastructure.db.models import ManagerReportModel, NudgeModel


@pytest.fixture
def client(db_session):
    """Anonymous client bound to the in-memory test database"""
    def _get_db():
        yield db_session

    app.dependency_overrides[get_db] = _get_db
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def login(client):
    """login(user) -> client acting as that user"""
    def _login(user):
        app.dependency_overrides[get_current_user] = lambda: user
        return client
    return _login


def _nudge(db, user_id, status=NudgeStatus.SENT, hour=9):
    n = NudgeModel(
        user_id=user_id,
        scheduled_at=datetime(2024, 6, 10, hour, 0, tzinfo=timezone.utc),
        sent_at=datetime(2024, 6, 10, hour, 0, tzinfo=timezone.utc),
        status=status,
    )
    db.add(n)
    db.commit()
    return n


class TestAckLink:
    def test_valid(self, client, db_session, make_user):
        make_user(1)
        nudge = _nudge(db_session, 1)
        token = build_ack_token(nudge.id, get_settings().ACK_SECRET)

        response = client.get(f"/api/nudges/ack?i={nudge.id}&t={token}")

        assert response.status_code == 200
        assert "Thanks!" in response.text
        db_session.refresh(nudge)
        assert nudge.status == NudgeStatus.ACKNOWLEDGED

    def test_repeat_still_ok(self, client, db_session, make_user):
        make_user(1)
        nudge = _nudge(db_session, 1)
        url = f"/api/nudges/ack?i={nudge.id}&t={build_ack_token(nudge.id, get_settings().ACK_SECRET)}"

        assert client.get(url).status_code == 200
        assert client.get(url).status_code == 200

    def test_bad_token(self, client, db_session, make_user):
        make_user(1)
        nudge = _nudge(db_session, 1)

        response = client.get(f"/api/nudges/ack?i={nudge.id}&t=deadbeef")

        assert response.status_code == 400
        assert "Invalid or expired link" in response.text
        db_session.refresh(nudge)
        assert nudge.status == NudgeStatus.SENT

    def test_missing_params(self, client):
        response = client.get("/api/nudges/ack")
        assert response.status_code == 400


class TestAuthRequired:
    def test_config_anonymous(self, client):
        assert client.get("/api/nudges/config").status_code == 401

    def test_history_anonymous(self, client):
        assert client.get("/api/nudges").status_code == 401


class TestNudgeConfigApi:
    def test_default_then_saved(self, login, make_user):
        client = login(make_user(1))

        default = client.get("/api/nudges/config").json()
        assert default["is_default"] is True
        assert default["times"] == get_settings().default_nudge_times()

        saved = client.put("/api/nudges/config", json={"times": ["8:30", "17:00"], "timezone": "Europe/Berlin"})
        assert saved.status_code == 200
        assert saved.json()["times"] == ["08:30", "17:00"]

        current = client.get("/api/nudges/config").json()
        assert current == {"times": ["08:30", "17:00"], "timezone": "Europe/Berlin", "enabled": True, "is_default": False}

    def test_invalid(self, login, make_user):
        client = login(make_user(1))

        response = client.put("/api/nudges/config", json={"times": ["09:00", "10:00", "11:00", "12:00"]})
        assert response.status_code == 400

        response = client.put("/api/nudges/config", json={"times": ["09:00"], "timezone": "Nowhere/Land"})
        assert response.status_code == 400

    def test_zone_directory_rejected(self, login, make_user):
        client = login(make_user(1))

        response = client.put("/api/nudges/config", json={"times": ["09:00"], "timezone": "America"})

        assert response.status_code == 400
        assert client.get("/api/nudges/config").json()["is_default"] is True


class TestNudgeHistoryApi:
    def test_list_and_stats(self, login, db_session, make_user):
        client = login(make_user(1))
        make_user(2)
        _nudge(db_session, 1, NudgeStatus.SENT, hour=9)
        _nudge(db_session, 1, NudgeStatus.ACKNOWLEDGED, hour=13)
        _nudge(db_session, 2, NudgeStatus.SENT, hour=9)

        items = client.get("/api/nudges").json()
        assert [i["status"] for i in items] == ["acknowledged", "sent"]

        assert client.get("/api/nudges/stats").json() == {"sent": 1, "acknowledged": 1}

    def test_ack_own(self, login, db_session, make_user):
        client = login(make_user(1))
        nudge = _nudge(db_session, 1)

        response = client.post(f"/api/nudges/{nudge.id}/ack")

        assert response.status_code == 200
        assert response.json()["status"] == "acknowledged"
        assert response.json()["acknowledged_at"] is not None

    def test_ack_other_users_nudge(self, login, db_session, make_user):
        client = login(make_user(1))
        make_user(2)
        nudge = _nudge(db_session, 2)

        assert client.post(f"/api/nudges/{nudge.id}/ack").status_code == 404


class TestReportsApi:
    def test_plain_user_forbidden(self, login, make_user):
        client = login(make_user(1))
        assert client.get("/api/reports").status_code == 403

    def test_manager_history(self, login, db_session, make_user):
        client = login(make_user(1, role=Role.MANAGER))
        db_session.add(ManagerReportModel(
            manager_id=1,
            report_date=date(2024, 6, 10),
            status=ReportStatus.SENT,
            summary={"date": "2024-06-10", "perUser": {}},
        ))
        db_session.commit()

        data = client.get("/api/reports").json()

        assert len(data) == 1
        assert data[0]["report_date"] == "2024-06-10"
        assert data[0]["status"] == "sent"
        assert data[0]["summary"] == {"date": "2024-06-10", "perUser": {}}
