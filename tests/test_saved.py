"""Tests for saved analyses, signed image URLs and bearer authentication."""
from urllib.parse import parse_qs, urlsplit

import pytest
from fastapi.testclient import TestClient

from packscan.core.security import build_signed_url, create_access_token
from packscan.services.storage import ImageStore


@pytest.fixture
def save_body(png_data_url, sample_materials):
    return {
        "imageBase64": png_data_url,
        "materials": sample_materials,
        "overallAnalysis": "Two plastics and a paper label",
    }


def save(client, headers, body):
    response = client.post("/api/v1/saved", json=body, headers=headers)
    assert response.status_code == 201, response.text
    return response.json()


class TestAuthentication:
    @pytest.mark.parametrize("method, path", [
        ("get", "/api/v1/saved"),
        ("get", "/api/v1/saved/some-id"),
        ("delete", "/api/v1/saved/some-id"),
        ("post", "/api/v1/saved"),
    ])
    def test_token_required(self, client, method, path):
        response = client.request(method.upper(), path)
        assert response.status_code == 401
        assert response.json() == {"error": "Authentication required"}
        assert response.headers["www-authenticate"] == "Bearer"

    def test_forged_token(self, client, settings):
        token = create_access_token("user-1", "some-other-secret", 60)
        response = client.get("/api/v1/saved", headers={"Authorization": f"Bearer {token}"})
        assert response.status_code == 401
        assert response.json() == {"error": "Invalid or expired token"}

    def test_expired_token(self, client, settings):
        token = create_access_token("user-1", settings.secret_key, 1, now=0)
        response = client.get("/api/v1/saved", headers={"Authorization": f"Bearer {token}"})
        assert response.status_code == 401

    def test_garbage_token(self, client):
        response = client.get("/api/v1/saved", headers={"Authorization": "Bearer nonsense"})
        assert response.status_code == 401

    def test_non_ascii_token(self, client):
        response = client.get("/api/v1/saved", headers={"Authorization": b"Bearer abc.\xe9t\xe9"})
        assert response.status_code == 401
        assert response.json() == {"error": "Invalid or expired token"}
        assert response.headers["www-authenticate"] == "Bearer"


class TestSavedAnalyses:
    def test_save_and_get(self, client, auth_headers, save_body, settings):
        saved = save(client, auth_headers, save_body)

        assert saved["id"]
        assert saved["imagePath"].startswith("user-1/")
        assert saved["imagePath"].endswith(".png")
        assert saved["overallAnalysis"] == "Two plastics and a paper label"
        assert "createdAt" in saved
        assert len(saved["materials"]) == 3
        assert saved["materials"][1]["bisLimits"] == ["IS 10910"]
        assert saved["materials"][1]["chemicalStructureImage"] is None

        stored = settings.bucket_path / saved["imagePath"]
        assert stored.is_file()

        fetched = client.get(f"/api/v1/saved/{saved['id']}", headers=auth_headers)
        assert fetched.status_code == 200
        assert fetched.json()["id"] == saved["id"]
        assert fetched.json()["materials"] == saved["materials"]

    def test_list_newest_first(self, client, auth_headers, save_body):
        first = save(client, auth_headers, save_body)
        second = save(client, auth_headers, {**save_body, "overallAnalysis": "second"})

        response = client.get("/api/v1/saved", headers=auth_headers)

        assert response.status_code == 200
        ids = [item["id"] for item in response.json()]
        assert ids == [second["id"], first["id"]]

    def test_owner_isolation(self, client, auth_headers, other_auth_headers, save_body):
        saved = save(client, auth_headers, save_body)

        assert client.get("/api/v1/saved", headers=other_auth_headers).json() == []
        assert client.get(f"/api/v1/saved/{saved['id']}", headers=other_auth_headers).status_code == 404
        assert client.delete(f"/api/v1/saved/{saved['id']}", headers=other_auth_headers).status_code == 404

        # Still there for the owner
        assert client.get(f"/api/v1/saved/{saved['id']}", headers=auth_headers).status_code == 200

    def test_delete_removes_row_and_image(self, client, auth_headers, save_body, settings):
        saved = save(client, auth_headers, save_body)
        stored = settings.bucket_path / saved["imagePath"]

        response = client.delete(f"/api/v1/saved/{saved['id']}", headers=auth_headers)

        assert response.status_code == 204
        assert not stored.exists()
        assert client.get(f"/api/v1/saved/{saved['id']}", headers=auth_headers).status_code == 404
        assert client.delete(f"/api/v1/saved/{saved['id']}", headers=auth_headers).status_code == 404

    def test_delete_survives_image_removal_failure(self, client, auth_headers, save_body, mocker):
        saved = save(client, auth_headers, save_body)
        mocker.patch.object(ImageStore, "delete", side_effect=OSError("read-only file system"))

        response = client.delete(f"/api/v1/saved/{saved['id']}", headers=auth_headers)

        assert response.status_code == 204
        assert client.get(f"/api/v1/saved/{saved['id']}", headers=auth_headers).status_code == 404

    def test_failed_row_delete_keeps_image(self, app, auth_headers, save_body, settings, mocker):
        with TestClient(app, raise_server_exceptions=False) as client:
            saved = save(client, auth_headers, save_body)
            mocker.patch("packscan.crud.delete_saved_analysis", side_effect=RuntimeError("database locked"))

            response = client.delete(f"/api/v1/saved/{saved['id']}", headers=auth_headers)

        assert response.status_code == 500
        assert (settings.bucket_path / saved["imagePath"]).is_file()

    def test_invalid_image_data(self, client, auth_headers, save_body):
        response = client.post(
            "/api/v1/saved",
            json={**save_body, "imageBase64": "data:image/png;base64,!!!not-base64!!!"},
            headers=auth_headers
        )
        assert response.status_code == 400
        assert response.json() == {"error": "Image data is not valid base64"}

    def test_material_without_type_rejected(self, client, auth_headers, save_body):
        response = client.post(
            "/api/v1/saved",
            json={**save_body, "materials": [{"chemicalFormula": "Al"}]},
            headers=auth_headers
        )
        assert response.status_code == 400

    def test_failed_insert_removes_image(self, client, auth_headers, save_body, settings, mocker):
        mocker.patch("packscan.crud.create_saved_analysis", side_effect=RuntimeError("disk full"))

        response = client.post("/api/v1/saved", json=save_body, headers=auth_headers)

        assert response.status_code == 500
        assert response.json() == {"error": "Failed to save analysis"}
        user_dir = settings.bucket_path / "user-1"
        assert not user_dir.exists() or list(user_dir.iterdir()) == []


class TestSignedImageUrls:
    def test_fetch_image(self, client, auth_headers, save_body):
        saved = save(client, auth_headers, save_body)

        response = client.get(saved["imageUrl"])

        assert response.status_code == 200
        assert response.headers["content-type"] == "image/png"
        assert response.content.startswith(b"\x89PNG")

    def test_tampered_signature(self, client, auth_headers, save_body):
        saved = save(client, auth_headers, save_body)
        parts = urlsplit(saved["imageUrl"])
        query = parse_qs(parts.query)

        response = client.get(parts.path, params={"expires": query["expires"][0], "signature": "forged"})

        assert response.status_code == 403

    def test_non_ascii_signature(self, client, auth_headers, save_body):
        saved = save(client, auth_headers, save_body)
        parts = urlsplit(saved["imageUrl"])
        query = parse_qs(parts.query)

        response = client.get(parts.path, params={"expires": query["expires"][0], "signature": "sign\xe9"})

        assert response.status_code == 403

    def test_signature_bound_to_path(self, client, auth_headers, other_auth_headers, save_body):
        mine = save(client, auth_headers, save_body)
        theirs = save(client, other_auth_headers, save_body)
        query = urlsplit(mine["imageUrl"]).query

        response = client.get(f"/api/v1/storage/{theirs['imagePath']}?{query}")

        assert response.status_code == 403

    def test_expired_url(self, client, auth_headers, save_body, settings):
        saved = save(client, auth_headers, save_body)
        expired = build_signed_url(saved["imagePath"], settings.secret_key, 60, now=0)

        assert client.get(expired).status_code == 403

    def test_missing_object(self, client, settings):
        url = build_signed_url("user-1/missing.png", settings.secret_key, 60)
        assert client.get(url).status_code == 404

    def test_deleted_image_no_longer_served(self, client, auth_headers, save_body):
        saved = save(client, auth_headers, save_body)
        client.delete(f"/api/v1/saved/{saved['id']}", headers=auth_headers)

        assert client.get(saved["imageUrl"]).status_code == 404
