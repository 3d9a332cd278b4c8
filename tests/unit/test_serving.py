"""Unit tests for the serving layer."""

import pytest
from fastapi.testclient import TestClient

from hybrid_rag.config import Settings
from hybrid_rag.errors import ParseError
from hybrid_rag.models import GraphData, VisEdge, VisNode
from hybrid_rag.providers.langchain_service import parse_extraction
from hybrid_rag.serving.app import AppServices, create_app

NEW_CONFIG = {
    "provider": "Groq",
    "model_name": "llama-3.1-70b",
    "embedding_model": "text-embedding-3-small",
    "api_key": "gsk-test",
    "embedding_dim": 8,
}


@pytest.fixture()
def services(fake_store, shared_ai, sample_contexts) -> AppServices:
    fake_store.contexts = sample_contexts
    return AppServices(
        store=fake_store,
        ai=shared_ai,
        settings=Settings(chunk_size=10, chunk_overlap=0, retrieval_k=5),
    )


@pytest.fixture()
def client(services):
    with TestClient(create_app(services)) as test_client:
        yield test_client


def _lines(response) -> list[str]:
    return response.text.splitlines()


# ── Health / graph ─────────────────────────────────────────────────────


def test_health_endpoint(client) -> None:
    """GET /health should return 200 with status ok."""
    response = client.get("/health")
    assert response.status_code == 200
    assert response.json() == {"status": "ok", "database": "up"}


def test_graph_uses_vis_network_keys(client, fake_store) -> None:
    fake_store.graph = GraphData(
        nodes=[VisNode(id="Ada", label="Ada", group="Person")],
        edges=[VisEdge(from_="Ada", to="Engine", label="WROTE_ABOUT")],
    )
    response = client.get("/graph")
    assert response.status_code == 200
    assert response.json()["edges"] == [{"from": "Ada", "to": "Engine", "label": "WROTE_ABOUT"}]
    assert response.json()["nodes"][0]["group"] == "Person"


# ── Chat ───────────────────────────────────────────────────────────────


def test_chat_returns_answer_with_sources(client, fake_ai) -> None:
    response = client.post("/chat", json={"message": "Who wrote the first algorithm?"})

    assert response.status_code == 200
    body = response.json()
    assert body["response"] == fake_ai.answer
    assert [s["index"] for s in body["sources"]] == [1, 2, 3]
    assert body["sources"][1]["short_content"].endswith("...")


def test_chat_rejects_empty_message(client) -> None:
    response = client.post("/chat", json={"message": ""})
    assert response.status_code == 400
    assert response.json()["error"] == "Validation error"


def test_chat_rejects_blank_message(client) -> None:
    response = client.post("/chat", json={"message": "   "})
    assert response.status_code == 400
    assert response.json() == {"error": "Message must not be empty"}


def test_chat_hides_internal_errors(client, fake_store) -> None:
    fake_store.fail_on.add("find_hybrid_context")
    response = client.post("/chat", json={"message": "Who?"})
    assert response.status_code == 500
    assert response.json() == {"error": "Internal error"}


# ── Admin ──────────────────────────────────────────────────────────────


def test_admin_requires_force_flag(client, fake_store) -> None:
    response = client.post("/admin/config", json={"config": NEW_CONFIG, "force_reset": False})
    assert response.status_code == 403
    assert response.json() == {"error": "Admin operation requires force flag"}
    assert fake_store.calls == []


def test_admin_force_flag_defaults_to_false(client) -> None:
    response = client.post("/admin/config", json={"config": NEW_CONFIG})
    assert response.status_code == 403


@pytest.mark.parametrize("config", [None, "garbage", [1, 2]])
def test_admin_without_force_is_403_for_any_config(client, fake_store, config) -> None:
    response = client.post("/admin/config", json={"config": config, "force_reset": False})
    assert response.status_code == 403
    assert response.json() == {"error": "Admin operation requires force flag"}
    assert fake_store.calls == []


def test_admin_without_config_key_is_403(client) -> None:
    response = client.post("/admin/config", json={"force_reset": False})
    assert response.status_code == 403


def test_admin_forced_non_object_config_is_400(client, fake_store) -> None:
    response = client.post("/admin/config", json={"config": "garbage", "force_reset": True})
    assert response.status_code == 400
    assert fake_store.calls == []


def test_admin_reconfigures(client, fake_store, shared_ai) -> None:
    response = client.post("/admin/config", json={"config": NEW_CONFIG, "force_reset": True})

    assert response.status_code == 200
    assert response.json() == {"status": "System reset and reconfigured successfully"}
    assert fake_store.calls == ["reset_database", "create_indexes"]
    assert fake_store.index_dim == 8
    assert shared_ai.get_config().model_name == "llama-3.1-70b"


def test_admin_invalid_config_is_400(client, fake_store) -> None:
    response = client.post(
        "/admin/config",
        json={"config": {**NEW_CONFIG, "embedding_dim": -1}, "force_reset": True},
    )
    assert response.status_code == 400
    assert "embedding_dim" in response.json()["error"]
    assert "gsk-test" not in response.text
    assert fake_store.calls == []


# ── Ingestion ──────────────────────────────────────────────────────────


def test_ingest_text_form_streams_progress(client, fake_store) -> None:
    response = client.post("/ingest", data={"content": "aaaaaaaaa bbbbbbbbb ccccccccc"})

    assert response.status_code == 200
    assert response.headers["content-type"].startswith("text/plain")
    lines = _lines(response)
    assert lines[0] == "Received direct text..."
    assert lines[1] == "Document split into 3 chunk(s)."
    assert "[2/3] Generating embedding..." in lines
    assert lines[-1] == "DONE"
    assert len(fake_store.chunks) == 3


def test_ingest_file_streams_progress(client, fake_store) -> None:
    response = client.post(
        "/ingest",
        files={"file": ("notes.txt", b"Ada Lovelace and the engine", "text/plain")},
    )

    lines = _lines(response)
    assert lines[0] == "Reading file: notes.txt..."
    assert lines[1] == "Parsing content..."
    assert lines[-1] == "DONE"
    assert fake_store.chunks


def test_ingest_warnings_do_not_stop_the_stream(client, fake_ai) -> None:
    fake_ai.fail_embedding_when = lambda text: "b" in text
    lines = _lines(client.post("/ingest", data={"content": "aaaaaaaaa bbbbbbbbb ccccccccc"}))

    assert [line for line in lines if line.startswith("WARNING:")] == [
        "WARNING: [2/3] Embedding failed: embedding backend down. Skipping chunk."
    ]
    assert lines[-1] == "DONE"


def test_ingest_multiline_error_stays_on_one_line(client, fake_ai) -> None:
    with pytest.raises(ParseError) as excinfo:
        parse_extraction('{"entities": "nope"}')
    assert "\n" in str(excinfo.value)
    fake_ai.extraction_failures = 1
    fake_ai.extraction_error = excinfo.value

    lines = _lines(client.post("/ingest", data={"content": "aaaaaaaaa bbbbbbbbb ccccccccc"}))

    prefixes = ("Received direct text", "Document split", "Document processed", "[", "WARNING: [", "DONE")
    assert all(line.startswith(prefixes) for line in lines)
    warnings = [line for line in lines if line.startswith("WARNING:")]
    assert len(warnings) == 1
    assert warnings[0].startswith("WARNING: [1/3] Entity extraction failed: ")
    assert lines[-1] == "DONE"


def test_ingest_unsupported_file_reports_error(client, fake_store) -> None:
    response = client.post(
        "/ingest",
        files={"file": ("virus.exe", b"MZ\x90\x00", "application/octet-stream")},
    )

    assert response.status_code == 200
    lines = _lines(response)
    assert lines[-1] == "ERROR: Unsupported format: virus.exe"
    assert "DONE" not in lines
    assert fake_store.calls == []


def test_ingest_short_content_reports_error(client) -> None:
    lines = _lines(client.post("/ingest", data={"content": "hi"}))
    assert lines[-1] == "ERROR: Content is empty or too short"


def test_ingest_store_failure_reports_error(client, fake_store) -> None:
    fake_store.fail_on.add("save_chunk")
    lines = _lines(client.post("/ingest", data={"content": "aaaaaaaaa bbbbbbbbb ccccccccc"}))
    assert lines[-1].startswith("ERROR:")
    assert "DONE" not in lines


def test_ingest_text_endpoint(client, fake_store) -> None:
    response = client.post("/ingest/text", json={"content": "Ada Lovelace wrote about the engine."})

    assert response.status_code == 200
    body = response.json()
    assert body["status"] == "ingested"
    assert [str(cid) for cid in fake_store.graphs] == [body["id"]]


def test_ingest_text_ignores_extra_keys(client, fake_store) -> None:
    response = client.post(
        "/ingest/text",
        json={"content": "Ada Lovelace wrote about the engine.", "metadata": {"source": "notes"}},
    )
    assert response.status_code == 200
    assert len(fake_store.chunks) == 1


def test_ingest_text_too_short(client) -> None:
    response = client.post("/ingest/text", json={"content": "short"})
    assert response.status_code == 400


def test_ingest_text_provider_failure_is_500(client, fake_ai) -> None:
    fake_ai.extraction_failures = 2
    response = client.post("/ingest/text", json={"content": "Ada Lovelace wrote about the engine."})
    assert response.status_code == 500
    assert response.json() == {"error": "Internal error"}
