import json
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional

import httpx
import pytest
from fastapi.testclient import TestClient
from sqlmodel import Session

from app.config import settings
from app.database import build_engine, init_db
from app.models.connection_models import PlatformConnection

USER_ID = "user-1"
ACCOUNT_ID = "123"
TOKEN = "test-token"
STORAGE_IMAGE = "https://xyz.supabase.co/storage/v1/object/public/ads/1.png"
EXTERNAL_IMAGE = "https://cdn.example.com/ads/2.png"

Route = Callable[[httpx.Request], httpx.Response]


def _respond(status: int, payload: Dict[str, Any]) -> Route:
    return lambda request: httpx.Response(status, json=payload)


def graph_path(path: str) -> str:
    return f"/{settings.facebook_api_version}/{path.lstrip('/')}"


@dataclass
class Call:
    method: str
    path: str
    params: Dict[str, str]
    body: Optional[Dict[str, Any]]


class GraphStub:
    """Records every outbound request and answers from registered routes."""

    def __init__(self):
        self.calls: List[Call] = []
        self.routes: Dict[tuple, List[Route]] = {}
        self.head_status: Dict[str, int] = {}

    def on(self, method: str, path: str, *responses: Route) -> None:
        self.routes[(method, graph_path(path))] = list(responses)

    def ok(self, method: str, path: str, *payloads: Dict[str, Any]) -> None:
        self.on(method, path, *(_respond(200, p) for p in payloads))

    def fail(self, method: str, path: str, message: str, status: int = 400) -> None:
        self.on(method, path, _respond(status, {"error": {"message": message, "code": 100}}))

    def handler(self, request: httpx.Request) -> httpx.Response:
        body = json.loads(request.content) if request.content else None
        self.calls.append(
            Call(request.method, request.url.path, dict(request.url.params), body)
        )
        if request.method == "HEAD":
            return httpx.Response(self.head_status.get(str(request.url), 200))

        queue = self.routes.get((request.method, request.url.path))
        if not queue:
            return httpx.Response(
                404,
                json={"error": {"message": f"No stub for {request.url.path}", "code": 803}},
            )
        route = queue.pop(0) if len(queue) > 1 else queue[0]
        return route(request)

    @property
    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self.handler)

    def remote_calls(self) -> List[Call]:
        return [c for c in self.calls if c.method != "HEAD"]

    def calls_to(self, method: str, path: str) -> List[Call]:
        return [c for c in self.calls if c.method == method and c.path == graph_path(path)]


@pytest.fixture
def engine():
    engine = build_engine("sqlite://")
    init_db(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session(engine):
    with Session(engine) as session:
        yield session


@pytest.fixture
def graph():
    return GraphStub()


@pytest.fixture
def connected_user(session):
    connection = PlatformConnection(
        user_id=USER_ID,
        platform="facebook",
        access_token=TOKEN,
        account_id=f"act_{ACCOUNT_ID}",
        metadata_json=json.dumps({"pages": [{"id": "page-1", "name": "Studio"}]}),
    )
    session.add(connection)
    session.commit()
    return connection


@pytest.fixture
def publish_routes(graph):
    """Happy-path Graph responses for a two-creative publish."""
    graph.ok("POST", f"act_{ACCOUNT_ID}/campaigns", {"id": "cmp-1"})
    graph.ok("POST", f"act_{ACCOUNT_ID}/adsets", {"id": "set-1"})
    graph.ok("POST", f"act_{ACCOUNT_ID}/adcreatives", {"id": "cr-1"}, {"id": "cr-2"})
    graph.ok("POST", f"act_{ACCOUNT_ID}/ads", {"id": "ad-1"}, {"id": "ad-2"})
    return graph


@pytest.fixture
def client(session, graph):
    from app.api.deps import get_transport
    from app.database import get_session
    from app.main import app

    def _session_override():
        yield session

    app.dependency_overrides[get_session] = _session_override
    app.dependency_overrides[get_transport] = lambda: graph.transport
    yield TestClient(app, headers={"X-User-Id": USER_ID})
    app.dependency_overrides.clear()


def campaign_request_data(**overrides) -> Dict[str, Any]:
    data = {
        "name": "Spring launch",
        "objective": "traffic",
        "budget": 12.7,
        "bid_strategy": "LOWEST_COST_WITHOUT_CAP",
        "start_date": "2024-03-05T14:30:00Z",
        "targeting": {"age_min": 25, "genders": ["female"], "interests": ["Yoga"]},
        "ads": [
            {
                "id": "creative-1",
                "headline": "Stretch smarter",
                "primary_text": "Classes for every level.",
                "storage_url": STORAGE_IMAGE,
            },
            {
                "id": "creative-2",
                "headline": "Find your flow",
                "primary_text": "First class free.",
                "imageUrl": EXTERNAL_IMAGE,
            },
        ],
    }
    data.update(overrides)
    return data
