"""Tests for the shared face client dependency."""

import threading

import pytest
from fastapi import HTTPException
from fastapi.testclient import TestClient

from facegate.api import dependencies
from facegate.core.config import Settings
from facegate.main import app
from facegate.services.verification_system.face_verification.face_client import BiometricClient


@pytest.fixture
def configured(monkeypatch):
    monkeypatch.setattr(dependencies, "_biometric_client", None)
    monkeypatch.setattr(dependencies, "settings", Settings(
        baidu_app_id="app-id",
        baidu_api_key="api-key",
        baidu_secret_key="secret-key",
        confidence_threshold=88.5,
    ))


def test_client_built_from_settings(configured):
    client = dependencies.get_biometric_client()

    assert isinstance(client, BiometricClient)
    assert client.default_threshold == 88.5
    assert client._connection().app_id == "app-id"


def test_client_built_once_across_threads(configured):
    seen = []
    threads = [threading.Thread(target=lambda: seen.append(dependencies.get_biometric_client())) for _ in range(8)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()

    assert len(seen) == 8
    assert all(client is seen[0] for client in seen)


@pytest.fixture
def unconfigured(monkeypatch):
    monkeypatch.setattr(dependencies, "_biometric_client", None)
    monkeypatch.setattr(dependencies, "settings", Settings(baidu_app_id="", baidu_api_key="", baidu_secret_key=""))


def test_missing_credentials_fail_fast(unconfigured):
    with pytest.raises(HTTPException) as exc_info:
        dependencies.get_biometric_client()

    assert exc_info.value.status_code == 500
    assert exc_info.value.detail["kind"] == "configuration_error"
    assert dependencies._biometric_client is None


def test_missing_credentials_return_error_response(unconfigured):
    response = TestClient(app).post(
        "/api/v1/face/login",
        files={"image": ("face.jpg", b"\xff\xd8\xff\xe0fake-jpeg-bytes", "image/jpeg")},
    )

    assert response.status_code == 500
    detail = response.json()["detail"]
    assert detail["status_code"] == 500
    assert "credentials not configured" in detail["detail"]
