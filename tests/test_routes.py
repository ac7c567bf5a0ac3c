import json
from datetime import datetime, timedelta, timezone

import pytest
from sqlmodel import select

from app.models.campaign_models import AdCampaign, CampaignStatus
from app.models.connection_models import OAuthState, PlatformConnection
from conftest import ACCOUNT_ID, EXTERNAL_IMAGE, USER_ID, campaign_request_data


@pytest.fixture
def published_record(session):
    record = AdCampaign(
        user_id=USER_ID,
        name="Spring launch",
        campaign_config_json=json.dumps(campaign_request_data()),
        status=CampaignStatus.ACTIVE,
        external_id="cmp-1",
        platform_data_json=json.dumps(
            {"ad_set_id": "set-1", "ads": [{"ad_id": "ad-1", "creative_id": "creative-1"}]}
        ),
    )
    session.add(record)
    session.commit()
    session.refresh(record)
    return record


def test_health(client):
    assert client.get("/health").json()["status"] == "healthy"


def test_missing_identity_is_rejected(client):
    response = client.get("/facebook/campaigns", headers={"X-User-Id": ""})
    assert response.status_code == 401


class TestPublish:
    def test_publish(self, client, connected_user, publish_routes):
        response = client.post("/facebook/campaigns", json=campaign_request_data())
        assert response.status_code == 200
        body = response.json()
        assert body["status"] == "success"
        assert body["result"]["external_id"] == "cmp-1"
        assert body["result"]["ads"] == ["ad-1", "ad-2"]

        record = client.get(f"/facebook/campaigns/{body['result']['campaign_id']}").json()
        assert record["status"] == "active"
        assert record["ad_set_id"] == "set-1"
        assert record["campaign_config"]["budget"] == 12.7

    def test_not_connected(self, client, publish_routes):
        response = client.post("/facebook/campaigns", json=campaign_request_data())
        assert response.status_code == 400
        assert "connect your Facebook account" in response.json()["detail"]
        assert publish_routes.calls == []

    def test_unreachable_image(self, client, connected_user, publish_routes):
        publish_routes.head_status[EXTERNAL_IMAGE] = 404
        response = client.post("/facebook/campaigns", json=campaign_request_data())
        assert response.status_code == 422
        assert EXTERNAL_IMAGE in response.json()["detail"]
        assert publish_routes.remote_calls() == []
        assert client.get("/facebook/campaigns").json() == []

    def test_remote_failure_keeps_failed_record(self, client, connected_user, graph):
        graph.ok("POST", f"act_{ACCOUNT_ID}/campaigns", {"id": "cmp-1"})
        graph.fail("POST", f"act_{ACCOUNT_ID}/adsets", "Invalid targeting spec")

        response = client.post("/facebook/campaigns", json=campaign_request_data())
        assert response.status_code == 502
        assert response.json()["detail"] == "Invalid targeting spec"

        [record] = client.get("/facebook/campaigns").json()
        assert record["status"] == "failed"
        assert record["error_message"] == "Invalid targeting spec"
        assert record["external_id"] == "cmp-1"

    def test_check_images(self, client, publish_routes):
        publish_routes.head_status[EXTERNAL_IMAGE] = 404
        ads = campaign_request_data()["ads"]
        response = client.post("/facebook/campaigns/check-images", json={"ads": ads})
        assert response.status_code == 200
        assert response.json()["valid"] is False

        response = client.post("/facebook/campaigns/check-images", json={"ads": ads[:1]})
        assert response.json() == {"valid": True, "message": None}


class TestRecords:
    def test_list_is_scoped_to_user(self, client, session, published_record):
        session.add(
            AdCampaign(user_id="other", name="Theirs", campaign_config_json="{}")
        )
        session.commit()
        names = [r["name"] for r in client.get("/facebook/campaigns").json()]
        assert names == ["Spring launch"]

    def test_unknown_record(self, client):
        assert client.get("/facebook/campaigns/nope").status_code == 404

    def test_activate_updates_remote_status_only(
        self, client, connected_user, published_record, graph
    ):
        graph.ok("POST", "cmp-1", {"success": True})
        graph.ok("POST", "set-1", {"success": True})

        response = client.post(f"/facebook/campaigns/{published_record.id}/activate")
        assert response.status_code == 200
        body = response.json()
        assert body["remote_status"] == "ACTIVE"
        assert body["status"] == "active"
        assert [c.body for c in graph.remote_calls()] == [
            {"status": "ACTIVE"},
            {"status": "ACTIVE"},
        ]

    def test_deactivate(self, client, connected_user, published_record, graph):
        graph.ok("POST", "cmp-1", {"success": True})
        graph.ok("POST", "set-1", {"success": True})

        body = client.post(f"/facebook/campaigns/{published_record.id}/deactivate").json()
        assert body["remote_status"] == "PAUSED"
        assert body["status"] == "active"

    def test_insights(self, client, connected_user, published_record, graph):
        graph.ok(
            "GET",
            "cmp-1/insights",
            {"data": [{"impressions": "10", "clicks": "1", "spend": "0.5", "ctr": "10", "cpc": "0.5"}]},
        )
        response = client.get(
            f"/facebook/campaigns/{published_record.id}/insights",
            params={"since": "2024-03-01", "until": "2024-03-31"},
        )
        assert response.status_code == 200
        assert response.json()["impressions"] == 10
        assert response.json()["date_start"] == "2024-03-01"

    def test_insights_need_a_remote_campaign(self, client, session, connected_user):
        record = AdCampaign(user_id=USER_ID, name="Draft", campaign_config_json="{}")
        session.add(record)
        session.commit()
        response = client.get(f"/facebook/campaigns/{record.id}/insights")
        assert response.status_code == 400


class TestRemoteCampaigns:
    def test_sync(self, client, connected_user, graph):
        graph.ok(
            "GET",
            f"act_{ACCOUNT_ID}/campaigns",
            {"data": [{"id": "cmp-1", "name": "Spring launch", "status": "PAUSED"}]},
        )
        body = client.get("/facebook/remote-campaigns").json()
        assert [c["id"] for c in body["campaigns"]] == ["cmp-1"]

    def test_update_requires_fields(self, client, connected_user, graph):
        response = client.patch("/facebook/remote-campaigns/cmp-1", json={})
        assert response.status_code == 422
        assert graph.calls == []

    def test_update(self, client, connected_user, graph):
        graph.ok("POST", "cmp-1", {"success": True})
        response = client.patch("/facebook/remote-campaigns/cmp-1", json={"name": "Renamed"})
        assert response.status_code == 200
        assert graph.calls[0].body == {"name": "Renamed"}

    def test_delete_marks_local_records(self, client, connected_user, published_record, graph):
        graph.ok("DELETE", "cmp-1", {"success": True})
        response = client.delete("/facebook/remote-campaigns/cmp-1")
        assert response.status_code == 200

        record = client.get(f"/facebook/campaigns/{published_record.id}").json()
        assert record["remote_status"] == "DELETED"
        assert record["status"] == "active"


class TestConnection:
    def oauth_routes(self, graph):
        graph.ok("GET", "oauth/access_token", {"access_token": "fresh-token", "expires_in": 3600})
        graph.ok("GET", "me", {"id": "fb-1", "name": "Dana"})
        graph.ok("GET", "me/adaccounts", {"data": [{"id": "act_999", "account_id": "999"}]})
        graph.ok("GET", "me/accounts", {"data": [{"id": "page-7", "name": "Shop"}]})

    def authorize(self, client) -> str:
        return client.get("/facebook/oauth/authorize").json()["state"]

    def test_authorize_url(self, client, session):
        body = client.get("/facebook/oauth/authorize").json()
        assert "/dialog/oauth?" in body["url"]
        assert f"state={body['state']}" in body["url"]
        issued = session.get(OAuthState, body["state"])
        assert issued.user_id == USER_ID

    def test_callback_creates_connection(self, client, session, graph):
        self.oauth_routes(graph)
        response = client.get(
            "/facebook/oauth/callback", params={"code": "abc", "state": self.authorize(client)}
        )
        assert response.status_code == 200
        body = response.json()
        assert body["account_id"] == "999"
        assert body["pages"] == [{"id": "page-7", "name": "Shop"}]

        exchange = graph.calls[0]
        assert exchange.params["code"] == "abc"
        assert "access_token" not in exchange.params

        connection = session.exec(select(PlatformConnection)).one()
        assert connection.access_token == "fresh-token"
        assert connection.expires_at is not None

    def test_callback_replaces_token_and_keeps_selection(self, client, session, connected_user, graph):
        self.oauth_routes(graph)
        response = client.get(
            "/facebook/oauth/callback", params={"code": "abc", "state": self.authorize(client)}
        )
        assert response.json()["account_id"] == ACCOUNT_ID

        connections = session.exec(select(PlatformConnection)).all()
        assert len(connections) == 1
        assert connections[0].access_token == "fresh-token"

    def test_callback_error(self, client, graph):
        response = client.get(
            "/facebook/oauth/callback",
            params={"error": "access_denied", "error_description": "Permissions error"},
        )
        assert response.status_code == 400
        assert response.json()["detail"] == "Permissions error"
        assert graph.calls == []

    def test_callback_with_forged_state(self, client, session, connected_user, graph):
        self.oauth_routes(graph)
        self.authorize(client)
        response = client.get(
            "/facebook/oauth/callback", params={"code": "abc", "state": "forged"}
        )
        assert response.status_code == 400
        assert response.json()["detail"] == "Invalid state parameter"
        assert graph.calls == []
        connection = session.exec(select(PlatformConnection)).one()
        assert connection.access_token == connected_user.access_token

    def test_callback_without_state(self, client, session, graph):
        self.oauth_routes(graph)
        self.authorize(client)
        response = client.get("/facebook/oauth/callback", params={"code": "abc"})
        assert response.status_code == 400
        assert graph.calls == []
        assert session.exec(select(PlatformConnection)).all() == []

    def test_state_issued_to_another_user(self, client, session, graph):
        self.oauth_routes(graph)
        state = client.get(
            "/facebook/oauth/authorize", headers={"X-User-Id": "someone-else"}
        ).json()["state"]
        response = client.get(
            "/facebook/oauth/callback", params={"code": "abc", "state": state}
        )
        assert response.status_code == 400
        assert graph.calls == []

    def test_state_is_single_use(self, client, graph):
        self.oauth_routes(graph)
        state = self.authorize(client)
        params = {"code": "abc", "state": state}
        assert client.get("/facebook/oauth/callback", params=params).status_code == 200
        assert client.get("/facebook/oauth/callback", params=params).status_code == 400

    def test_expired_state(self, client, session, graph):
        self.oauth_routes(graph)
        state = self.authorize(client)
        issued = session.get(OAuthState, state)
        issued.expires_at = datetime.now(timezone.utc) - timedelta(seconds=1)
        session.add(issued)
        session.commit()
        response = client.get(
            "/facebook/oauth/callback", params={"code": "abc", "state": state}
        )
        assert response.status_code == 400
        assert graph.calls == []

    def test_connection_status(self, client, connected_user, graph):
        graph.ok("GET", "me/adaccounts", {"data": [{"id": "act_123", "account_id": "123"}]})
        body = client.get("/facebook/connection").json()
        assert body["connected"] is True
        assert body["page_id"] == "page-1"

    def test_connection_status_with_bad_token(self, client, connected_user, graph):
        graph.fail("GET", "me/adaccounts", "Error validating access token", status=400)
        body = client.get("/facebook/connection").json()
        assert body["connected"] is False
        assert body["message"] == "Error validating access token"

    def test_not_connected_status(self, client):
        assert client.get("/facebook/connection").json()["connected"] is False

    def test_select_account(self, client, connected_user):
        body = client.put(
            "/facebook/connection", json={"account_id": "act_555", "page_id": "page-3"}
        ).json()
        assert body == {"status": "success", "account_id": "555", "page_id": "page-3"}

    def test_disconnect(self, client, session, connected_user, graph):
        graph.ok("DELETE", "me/permissions", {"success": True})
        body = client.delete("/facebook/connection").json()
        assert body["disconnected"] is True
        assert session.exec(select(PlatformConnection)).all() == []
