"""
Basic health check and API tests
"""
import pytest


@pytest.mark.unit
def test_health_check(client):
    """Test health check endpoint"""
    response = client.get("/health")
    assert response.status_code == 200
    assert response.json()["status"] == "healthy"
    assert response.json()["sla_scheduler"] is False


@pytest.mark.api
def test_api_root(client):
    response = client.get("/")
    assert response.status_code == 200
    assert response.json()["status"] == "operational"


@pytest.mark.api
def test_docs_available(client):
    """Test that API docs are available"""
    response = client.get("/api/docs")
    assert response.status_code == 200


@pytest.mark.api
def test_protected_endpoint_requires_token(client):
    response = client.get("/api/v1/complaints/history")
    assert response.status_code == 401
