"""Integration tests for promptcanvas.api.main — FastAPI REST API endpoints.

All tests use the FastAPI TestClient with a fake model client and a
temporary SQLite prompt store, so no AWS or Supabase access occurs.  Tests
cover every endpoint:

- ``POST /api/generate`` — Image generation and history recording.
- ``GET /api/prompts`` — Paginated prompt history.
- ``GET /api/config`` — Form options for the frontend.
- ``GET /api/health`` — Liveness check.
"""

from __future__ import annotations

import asyncio
import base64

import pytest
from fastapi.testclient import TestClient

from promptcanvas.api.main import create_app
from promptcanvas.core.errors import PersistenceError, UpstreamGenerationError


@pytest.fixture
def make_client(test_config, sqlite_store):
    """Build TestClients around custom collaborators.

    Clients are closed (and their lifespan shut down) after the test.
    """
    clients: list[TestClient] = []

    def _make(image_model, prompt_store=None) -> TestClient:
        app = create_app(
            test_config,
            image_model=image_model,
            prompt_store=prompt_store or sqlite_store,
        )
        client = TestClient(app)
        client.__enter__()
        clients.append(client)
        return client

    yield _make
    for client in clients:
        client.__exit__(None, None, None)


# ---------------------------------------------------------------------------
# Generation endpoint tests.
# ---------------------------------------------------------------------------


class TestGenerate:
    """Test POST /api/generate — image generation."""

    def _make_generate_payload(self, **overrides) -> dict:
        """Build a valid generate request payload with optional overrides.

        Args:
            **overrides: Fields to override in the default payload.

        Returns:
            Dict suitable for JSON-encoding as the request body.
        """
        payload = {
            "prompt": "A lighthouse on a cliff at sunset",
            "count": 1,
            "aspectRatio": "1:1",
            "style": "none",
        }
        payload.update(overrides)
        return payload

    def test_generate_single_image(self, test_client, fake_model):
        resp = test_client.post("/api/generate", json=self._make_generate_payload())
        assert resp.status_code == 200
        images = resp.json()["images"]
        assert len(images) == 1
        assert images[0] == f"image-{fake_model.bodies[0]['seed']}"

    def test_generate_batch_preserves_order(self, test_client, fake_model):
        resp = test_client.post("/api/generate", json=self._make_generate_payload(count=3))
        assert resp.status_code == 200
        images = resp.json()["images"]
        assert len(images) == 3
        assert sorted(images) == sorted(f"image-{body['seed']}" for body in fake_model.bodies)

    @pytest.mark.parametrize("count, expected", [(0, 1), (-4, 1), (2, 2), (10, 3)])
    def test_count_is_clamped(self, test_client, fake_model, count, expected):
        resp = test_client.post("/api/generate", json=self._make_generate_payload(count=count))
        assert resp.status_code == 200
        assert len(resp.json()["images"]) == expected
        assert len(fake_model.bodies) == expected

    def test_style_and_aspect_ratio_reach_the_model(self, test_client, fake_model):
        resp = test_client.post(
            "/api/generate",
            json=self._make_generate_payload(style="watercolor", aspectRatio="16:9"),
        )
        assert resp.status_code == 200
        body = fake_model.bodies[0]
        assert body["text_prompts"][0]["text"] == (
            "A lighthouse on a cliff at sunset, in the style of watercolor"
        )
        assert (body["width"], body["height"]) == (1024, 576)
        assert body["cfg_scale"] == 8
        assert body["steps"] == 50

    def test_unknown_aspect_ratio_falls_back_to_square(self, test_client, fake_model):
        resp = test_client.post("/api/generate", json=self._make_generate_payload(aspectRatio="21:9"))
        assert resp.status_code == 200
        assert (fake_model.bodies[0]["width"], fake_model.bodies[0]["height"]) == (1024, 1024)

    def test_reference_image_conditions_generation(self, test_client, fake_model, png_data_url):
        resp = test_client.post(
            "/api/generate",
            json=self._make_generate_payload(
                count=2, referenceImage=png_data_url, useReferenceContent=True
            ),
        )
        assert resp.status_code == 200
        for body in fake_model.bodies:
            assert body["image_strength"] == 0.7
            assert body["init_image"] == png_data_url.split(",", 1)[1]

    def test_reference_image_without_flags_is_ignored(self, test_client, fake_model, png_data_url):
        resp = test_client.post(
            "/api/generate", json=self._make_generate_payload(referenceImage=png_data_url)
        )
        assert resp.status_code == 200
        assert "init_image" not in fake_model.bodies[0]

    def test_short_prompt_rejected(self, test_client, fake_model):
        resp = test_client.post("/api/generate", json=self._make_generate_payload(prompt="short"))
        assert resp.status_code == 400
        assert resp.json() == {"error": "Prompt must be at least 10 characters."}
        assert fake_model.bodies == []

    def test_prompt_is_forwarded_as_typed(self, test_client, fake_model):
        resp = test_client.post(
            "/api/generate",
            json=self._make_generate_payload(prompt="  A lighthouse at dusk  ", style="anime"),
        )
        assert resp.status_code == 200
        assert fake_model.bodies[0]["text_prompts"][0]["text"] == (
            "  A lighthouse at dusk  , in the style of anime"
        )

    def test_padding_does_not_count_toward_length(self, test_client, fake_model):
        resp = test_client.post(
            "/api/generate", json=self._make_generate_payload(prompt="      short      ")
        )
        assert resp.status_code == 400
        assert resp.json() == {"error": "Prompt must be at least 10 characters."}
        assert fake_model.bodies == []

    def test_blank_prompt_rejected(self, test_client, fake_model):
        resp = test_client.post("/api/generate", json=self._make_generate_payload(prompt="    "))
        assert resp.status_code == 400
        assert resp.json() == {"error": "Prompt is required"}
        assert fake_model.bodies == []

    def test_missing_prompt_rejected(self, test_client):
        resp = test_client.post("/api/generate", json={"count": 1})
        assert resp.status_code == 400
        assert "prompt" in resp.json()["error"]

    def test_malformed_reference_image_rejected(self, test_client, fake_model):
        resp = test_client.post(
            "/api/generate",
            json=self._make_generate_payload(referenceImage="not-a-data-url", useReferenceStyle=True),
        )
        assert resp.status_code == 400
        assert "error" in resp.json()
        assert fake_model.bodies == []

    def test_unsupported_reference_type_rejected(self, test_client, fake_model):
        gif = "data:image/gif;base64," + base64.b64encode(b"GIF89a").decode()
        resp = test_client.post(
            "/api/generate",
            json=self._make_generate_payload(referenceImage=gif, useReferenceContent=True),
        )
        assert resp.status_code == 400
        assert resp.json()["error"].startswith("Reference image must be one of")
        assert fake_model.bodies == []

    def test_model_error_returns_502(self, make_client, make_model):
        model = make_model(error=UpstreamGenerationError("The security token is invalid"))
        client = make_client(model)
        resp = client.post("/api/generate", json=self._make_generate_payload(count=2))
        assert resp.status_code == 502
        assert resp.json() == {"error": "The security token is invalid"}

    def test_artifactless_response_returns_empty_slot(self, make_client, make_model):
        class NoArtifactModel(make_model):
            def invoke(self, body):
                super().invoke(body)
                return {"artifacts": []}

        client = make_client(NoArtifactModel())
        resp = client.post("/api/generate", json=self._make_generate_payload(count=2))
        assert resp.status_code == 200
        assert resp.json() == {"images": ["", ""]}


# ---------------------------------------------------------------------------
# History recording tests.
# ---------------------------------------------------------------------------


class TestHistoryRecording:
    """Test that successful generations are recorded."""

    def test_generation_is_recorded(self, test_client, drain_history, png_data_url):
        resp = test_client.post(
            "/api/generate",
            json={
                "prompt": "  A lighthouse on a cliff at sunset  ",
                "count": 2,
                "aspectRatio": "9:16",
                "style": "cinematic",
                "referenceImage": png_data_url,
                "useReferenceStyle": True,
            },
        )
        assert resp.status_code == 200
        drain_history(test_client)

        prompts = test_client.get("/api/prompts").json()["prompts"]
        assert len(prompts) == 1
        record = prompts[0]
        assert record["prompt_text"] == "  A lighthouse on a cliff at sunset  "
        assert record["style"] == "cinematic"
        assert record["aspect_ratio"] == "9:16"
        assert record["reference_image_used"] is True
        assert record["id"] is not None
        assert record["created_at"]

    def test_no_style_recorded_as_null(self, test_client, drain_history):
        test_client.post(
            "/api/generate", json={"prompt": "A lighthouse on a cliff at sunset", "style": "none"}
        )
        drain_history(test_client)
        record = test_client.get("/api/prompts").json()["prompts"][0]
        assert record["style"] is None
        assert record["reference_image_used"] is False

    def test_unused_reference_is_not_flagged(self, test_client, drain_history, png_data_url):
        test_client.post(
            "/api/generate",
            json={"prompt": "A lighthouse on a cliff at sunset", "referenceImage": png_data_url},
        )
        drain_history(test_client)
        record = test_client.get("/api/prompts").json()["prompts"][0]
        assert record["reference_image_used"] is False

    def test_failed_generation_is_not_recorded(self, make_client, make_model, sqlite_store):
        client = make_client(make_model(error=UpstreamGenerationError("throttled")))
        client.post("/api/generate", json={"prompt": "A lighthouse on a cliff at sunset"})
        client.portal.call(client.app.state.history_recorder.drain)
        assert sqlite_store.fetch_page(0, 10)[1] == 0

    def test_rejected_request_is_not_recorded(self, test_client, drain_history, sqlite_store):
        test_client.post("/api/generate", json={"prompt": "short"})
        drain_history(test_client)
        assert sqlite_store.fetch_page(0, 10)[1] == 0

    def test_store_failure_does_not_fail_generation(
        self, make_client, make_model, make_failing_store
    ):
        store = make_failing_store(PersistenceError("database is down"))
        client = make_client(make_model(), prompt_store=store)
        resp = client.post("/api/generate", json={"prompt": "A lighthouse on a cliff at sunset"})
        assert resp.status_code == 200
        assert len(resp.json()["images"]) == 1
        client.portal.call(client.app.state.history_recorder.drain)


# ---------------------------------------------------------------------------
# Prompt history endpoint tests.
# ---------------------------------------------------------------------------


class TestGetPrompts:
    """Test GET /api/prompts — paginated prompt history."""

    def test_empty_history(self, test_client):
        resp = test_client.get("/api/prompts")
        assert resp.status_code == 200
        assert resp.json() == {
            "prompts": [],
            "total": 0,
            "page": 1,
            "limit": 50,
            "totalPages": 0,
        }

    def test_default_page_holds_everything(self, test_client, sample_history):
        data = test_client.get("/api/prompts").json()
        assert data["total"] == 25
        assert data["totalPages"] == 1
        assert len(data["prompts"]) == 25

    def test_first_page_newest_first(self, test_client, sample_history):
        data = test_client.get("/api/prompts", params={"page": 1, "limit": 10}).json()
        assert [p["prompt_text"] for p in data["prompts"]] == [
            f"Prompt number {i:02d}" for i in range(25, 15, -1)
        ]
        assert data["totalPages"] == 3
        assert data["page"] == 1
        assert data["limit"] == 10

    def test_last_page_is_partial(self, test_client, sample_history):
        data = test_client.get("/api/prompts", params={"page": 3, "limit": 10}).json()
        assert [p["prompt_text"] for p in data["prompts"]] == [
            f"Prompt number {i:02d}" for i in range(5, 0, -1)
        ]

    def test_page_past_the_end_is_empty(self, test_client, sample_history):
        resp = test_client.get("/api/prompts", params={"page": 4, "limit": 10})
        assert resp.status_code == 200
        data = resp.json()
        assert data["prompts"] == []
        assert data["total"] == 25
        assert data["totalPages"] == 3

    def test_record_fields(self, test_client, sample_history):
        newest = test_client.get("/api/prompts", params={"limit": 1}).json()["prompts"][0]
        assert newest["prompt_text"] == "Prompt number 25"
        assert newest["style"] == "anime"
        assert newest["aspect_ratio"] == "1:1"
        assert newest["reference_image_used"] is True

    @pytest.mark.parametrize("params", [{"page": 0}, {"page": -1}, {"limit": 0}])
    def test_invalid_pagination_rejected(self, test_client, params):
        resp = test_client.get("/api/prompts", params=params)
        assert resp.status_code == 400
        assert "error" in resp.json()

    def test_non_integer_page_rejected(self, test_client):
        resp = test_client.get("/api/prompts", params={"page": "two"})
        assert resp.status_code == 400
        assert "page" in resp.json()["error"]

    def test_huge_page_number_is_empty(self, test_client, sample_history):
        resp = test_client.get("/api/prompts", params={"page": 10**19, "limit": 10})
        assert resp.status_code == 200
        data = resp.json()
        assert data["prompts"] == []
        assert data["total"] == 25
        assert data["totalPages"] == 3

    def test_huge_limit_is_clamped(self, test_client, sample_history):
        resp = test_client.get("/api/prompts", params={"limit": 10**19})
        assert resp.status_code == 200
        data = resp.json()
        assert data["limit"] == 500
        assert len(data["prompts"]) == 25
        assert data["totalPages"] == 1

    def test_store_is_read_off_the_event_loop(self, make_client, make_model, sqlite_store):
        loop_threads = []

        class RecordingStore:
            def insert(self, record):
                return sqlite_store.insert(record)

            def fetch_page(self, offset, limit):
                return sqlite_store.fetch_page(offset, limit)

            def count(self):
                try:
                    asyncio.get_running_loop()
                    loop_threads.append(True)
                except RuntimeError:
                    loop_threads.append(False)
                return sqlite_store.count()

        client = make_client(make_model(), prompt_store=RecordingStore())
        resp = client.get("/api/prompts")
        assert resp.status_code == 200
        assert loop_threads == [False]

    def test_store_failure_returns_500(self, make_client, make_model, make_failing_store):
        store = make_failing_store(PersistenceError("Failed to fetch prompts: timeout"))
        client = make_client(make_model(), prompt_store=store)
        resp = client.get("/api/prompts")
        assert resp.status_code == 500
        assert resp.json() == {"error": "Failed to fetch prompts: timeout"}


# ---------------------------------------------------------------------------
# Configuration endpoint tests.
# ---------------------------------------------------------------------------


class TestGetConfig:
    """Test GET /api/config — frontend form options."""

    def test_config_returns_version(self, test_client):
        data = test_client.get("/api/config").json()
        assert data["version"] == "0.1.0"

    def test_config_returns_styles(self, test_client):
        data = test_client.get("/api/config").json()
        assert len(data["styles"]) == 20
        values = {style["value"] for style in data["styles"]}
        assert {"photorealistic", "anime", "watercolor"} <= values
        assert set(data["styles"][0]) == {"value", "label", "description", "category"}

    def test_styles_grouped_by_category(self, test_client):
        data = test_client.get("/api/config").json()
        grouped = data["stylesByCategory"]
        assert sum(len(styles) for styles in grouped.values()) == 20
        for category, styles in grouped.items():
            assert all(style["category"] == category for style in styles)

    def test_config_returns_aspect_ratios(self, test_client):
        ratios = test_client.get("/api/config").json()["aspectRatios"]
        assert {"id": "16:9", "width": 1024, "height": 576} in ratios
        assert [r["id"] for r in ratios] == ["1:1", "16:9", "9:16", "4:3", "3:4"]

    def test_config_returns_limits(self, test_client):
        data = test_client.get("/api/config").json()
        assert data["maxImages"] == 3
        assert data["minPromptLength"] == 10


# ---------------------------------------------------------------------------
# Health endpoint tests.
# ---------------------------------------------------------------------------


class TestHealth:
    """Test GET /api/health."""

    def test_health(self, test_client):
        resp = test_client.get("/api/health")
        assert resp.status_code == 200
        assert resp.json()["status"] == "ok"
