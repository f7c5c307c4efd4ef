"""
tests/test_rate_limit.py -- Rate limiting on POST /api/v1/users/verify.

conftest.py pins VERIFY_RATE_LIMIT to 10/minute. The api_client fixture
resets the shared limiter at module start, so this module owns the budget.

Covers:
  - the first 10 verify attempts are processed (401 for bad credentials)
  - the 11th is rejected with 429, the rate_limited envelope and Retry-After
  - other routes keep working under the default limit
"""

from __future__ import annotations


def test_verify_is_rate_limited(api_client):
    client, _ = api_client
    body = {"email": "nobody@example.com", "password": "guess"}

    for attempt in range(10):
        resp = client.post("/api/v1/users/verify", json=body)
        assert resp.status_code == 401, f"attempt {attempt + 1}: {resp.status_code} {resp.text}"

    resp = client.post("/api/v1/users/verify", json=body)
    assert resp.status_code == 429, resp.text
    assert resp.json()["error"]["code"] == "rate_limited"
    assert "Retry-After" in resp.headers


def test_other_routes_unaffected(api_client):
    client, _ = api_client
    assert client.get("/api/v1/users").status_code == 200
    assert client.get("/api/v1/health").status_code == 200
