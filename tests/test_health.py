def test_health(client):
    response = client.get("/health")
    assert response.status_code == 200
    payload = response.json()
    assert payload["status"] == "ok"
    assert payload["trace_id"]


def test_health_echoes_trace_header(client):
    response = client.get("/health", headers={"X-Trace-ID": "trace-abc"})
    assert response.status_code == 200
    assert response.json()["trace_id"] == "trace-abc"
    assert response.headers["X-Trace-ID"] == "trace-abc"


def test_openapi_documents_checkout_errors(client):
    response = client.get("/openapi.json")
    assert response.status_code == 200
    checkout = response.json()["paths"]["/retailflow/pos/carts/{cart_id}/checkout"]["post"]
    assert {"200", "409", "422", "503"} <= set(checkout["responses"])
