"""HTTP tests for the upload, query and health endpoints."""
import io

from werkzeug.datastructures import FileStorage

from docqa import config
from docqa.errors import ProviderUnavailableError
from docqa.main import create_app
from docqa.rag.retriever import NO_DOCUMENTS_ANSWER


def _file(content: bytes, filename: str, content_type: str = "text/plain"):
    return FileStorage(io.BytesIO(content), filename=filename, content_type=content_type)


async def _upload(client, content: bytes, filename: str, content_type: str = "text/plain"):
    return await client.post(
        "/upload", files={"file": _file(content, filename, content_type)}
    )


async def test_upload_text_document(client, registry):
    response = await _upload(
        client, b"The termination clause requires thirty days notice.", "contract.txt"
    )

    assert response.status_code == 200
    body = await response.get_json()
    assert body["message"] == "Document uploaded and processed successfully."
    assert body["chunks"] == 1
    assert registry.get_document(body["namespace"])["file_name"] == "contract.txt"


async def test_upload_without_file(client):
    response = await client.post("/upload", form={"other": "value"})

    assert response.status_code == 400
    assert (await response.get_json())["error"] == "No file uploaded."


async def test_upload_blank_text_is_rejected(client, faiss_store):
    response = await _upload(client, b"   \n  ", "blank.txt")

    assert response.status_code == 400
    assert await faiss_store.list_namespaces() == []


async def test_upload_corrupt_pdf(client):
    response = await _upload(client, b"definitely not a pdf", "broken.pdf", "application/pdf")

    assert response.status_code == 400
    body = await response.get_json()
    assert "corrupted or invalid" in body["error"]
    assert "details" not in body


async def test_upload_invalid_utf8(client):
    response = await _upload(client, b"caf\xe9 menu", "menu.txt")

    assert response.status_code == 400


async def test_query_without_documents(client, generator):
    response = await client.post("/query", json={"question": "What is the termination clause?"})

    assert response.status_code == 200
    assert await response.get_json() == {"answer": NO_DOCUMENTS_ANSWER, "sources": []}
    assert generator.calls == []


async def test_query_after_upload_returns_sources(client, generator):
    await _upload(client, b"The termination clause requires thirty days notice.", "contract.txt")
    await _upload(client, b"The cat and the dog enjoy sunny weather.", "pets.txt")

    response = await client.post("/query", json={"question": "What is the termination clause?"})

    assert response.status_code == 200
    body = await response.get_json()
    assert body["answer"] == "generated answer"
    assert [s["fileName"] for s in body["sources"]] == ["contract.txt"]
    assert body["sources"][0]["text"] == "The termination clause requires thirty days notice."
    assert body["sources"][0]["score"] > 0.9
    assert generator.calls[0][1] == "The termination clause requires thirty days notice."


async def test_query_missing_question(client):
    for payload in ({}, {"question": ""}, {"question": 42}):
        response = await client.post("/query", json=payload)
        assert response.status_code == 400
        assert (await response.get_json())["error"] == "A question is required."

    response = await client.post("/query", data="not json")
    assert response.status_code == 400


async def test_query_provider_failure(client, generator):
    await _upload(client, b"The termination clause requires thirty days notice.", "contract.txt")

    async def failing_generate(question, context):
        raise ProviderUnavailableError()

    generator.generate = failing_generate

    response = await client.post("/query", json={"question": "termination clause?"})

    assert response.status_code == 500
    assert (await response.get_json())["error"] == ProviderUnavailableError.message


async def test_unexpected_error_includes_details_outside_production(client, generator):
    await _upload(client, b"The termination clause requires thirty days notice.", "contract.txt")

    async def broken_generate(question, context):
        raise RuntimeError("boom")

    generator.generate = broken_generate

    response = await client.post("/query", json={"question": "termination clause?"})

    assert response.status_code == 500
    body = await response.get_json()
    assert body["error"] == "Error querying documents."
    assert body["details"] == "RuntimeError: boom"


async def test_list_documents(client):
    await _upload(client, b"cat", "first.txt")
    await _upload(client, b"dog", "second.txt")

    response = await client.get("/documents")

    assert response.status_code == 200
    documents = (await response.get_json())["documents"]
    assert [d["fileName"] for d in documents] == ["second.txt", "first.txt"]
    assert documents[0]["mediaType"] == "text"
    assert documents[0]["chunkCount"] == 1


async def test_health_endpoints(client):
    live = await client.get("/health/live")
    assert live.status_code == 200
    assert (await live.get_json()) == {"status": "alive"}

    ready = await client.get("/health/ready")
    assert ready.status_code == 200
    body = await ready.get_json()
    assert body["provider"] is True
    assert body["vector_store"] is True


async def test_health_ready_reports_provider_failure(client, generator):
    async def unavailable():
        raise ProviderUnavailableError()

    generator.list_models = unavailable

    response = await client.get("/health/ready")

    assert response.status_code == 503
    assert (await response.get_json())["status"] == "unhealthy"


async def test_unknown_route(client):
    response = await client.get("/nope")

    assert response.status_code == 404


async def test_oversized_upload_is_rejected_with_413(services, monkeypatch):
    monkeypatch.setattr(config, "MAX_UPLOAD_MB", 1)
    app = create_app(services, expose_error_details=True)

    async with app.test_app() as test_app:
        response = await _upload(test_app.test_client(), b"x" * (2 * 1024 * 1024), "big.txt")

    assert response.status_code == 413
    assert (await response.get_json())["error"] == "File too large (max 1 MB)"
    assert await services.vector_store.list_namespaces() == []


async def test_preflight_from_allowed_origin(client):
    response = await client.options(
        "/query",
        headers={
            "Origin": "http://localhost:5173",
            "Access-Control-Request-Method": "POST",
            "Access-Control-Request-Headers": "Content-Type",
        },
    )

    assert response.headers.get("Access-Control-Allow-Origin") == "http://localhost:5173"
    assert response.headers.get("Access-Control-Allow-Credentials") == "true"


async def test_preflight_from_unknown_origin_is_not_allowed(client):
    response = await client.options(
        "/query",
        headers={
            "Origin": "https://evil.example",
            "Access-Control-Request-Method": "POST",
        },
    )

    assert "Access-Control-Allow-Origin" not in response.headers


async def test_simple_request_from_allowed_origin(client):
    response = await client.get("/health/live", headers={"Origin": "http://localhost:5173"})

    assert response.status_code == 200
    assert response.headers.get("Access-Control-Allow-Origin") == "http://localhost:5173"
