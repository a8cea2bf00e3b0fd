import json
from typing import Any, Dict, List, Optional, Set

import httpx
import pytest
from fastapi.testclient import TestClient

from packscan.core.config import Settings
from packscan.core.security import create_access_token
from packscan.main import create_application
from packscan.services.ai_gateway import AIGatewayClient
from packscan.services.analysis import PackagingAnalyzer


ANALYSIS_MODEL = "test/analysis-model"
IMAGE_MODEL = "test/image-model"

# 1x1 transparent PNG
PNG_DATA_URL = (
    "data:image/png;base64,"
    "iVBORw0KGgoAAAANSUhEUgAAAAEAAAABCAYAAAAfFcSJAAAADUlEQVR42mNkYPhfDwAChwGA60e6kgAAAABJRU5ErkJggg=="
)

SAMPLE_MATERIALS: List[Dict[str, Any]] = [
    {
        "type": "PET bottle",
        "chemicalFormula": "(C10H8O4)n",
        "fssaiLimits": "Overall migration: 60 mg/kg",
        "bisLimits": ["IS 12252", "Density: 1.38 g/cm³"],
        "thickness": "250 microns",
        "gsm": "N/A",
        "foodApplications": ["Beverages", "Edible oils"],
    },
    {
        "type": "PP cap",
        "chemicalFormula": "(C3H6)n",
        "fssaiLimits": ["Overall migration: 10 mg/dm²"],
        "bisLimits": "IS 10910",
        "thickness": "1.5 mm",
        "gsm": "N/A",
        "foodApplications": "Bottle closures",
    },
    {
        "type": "Kraft paper label",
        "chemicalFormula": "(C6H10O5)n",
        "fssaiLimits": [],
        "bisLimits": [],
        "thickness": "80 microns",
        "gsm": "70",
        "foodApplications": ["Labels"],
    },
]


def structure_url(formula: str) -> str:
    return f"data:image/png;base64,{formula.encode('utf-8').hex()}"


class FakeGateway:
    """
    Stand-in for the AI gateway, served through ``httpx.MockTransport``.

    Analysis requests answer with ``analysis_status``/``analysis_content``;
    image requests answer with a data URL per formula unless the formula is
    listed in ``failing_formulas`` (HTTP 500) or ``imageless_formulas``
    (200 without an image).
    """

    def __init__(self):
        self.analysis_status = 200
        self.analysis_content: Optional[str] = json.dumps({"materials": SAMPLE_MATERIALS})
        self.failing_formulas: Set[str] = set()
        self.imageless_formulas: Set[str] = set()
        self.requests: List[Dict[str, Any]] = []

    @property
    def image_requests(self) -> List[Dict[str, Any]]:
        return [r for r in self.requests if r["model"] == IMAGE_MODEL]

    @property
    def analysis_requests(self) -> List[Dict[str, Any]]:
        return [r for r in self.requests if r["model"] == ANALYSIS_MODEL]

    def handle(self, request: httpx.Request) -> httpx.Response:
        payload = json.loads(request.content)
        payload["_headers"] = dict(request.headers)
        self.requests.append(payload)

        if payload["model"] == ANALYSIS_MODEL:
            if self.analysis_status != 200:
                return httpx.Response(self.analysis_status, text="upstream said no")
            return httpx.Response(200, json={"choices": [{"message": {"content": self.analysis_content}}]})

        prompt = payload["messages"][0]["content"]
        formula = next((f for f in self._known_formulas() if f in prompt), None)
        if formula in self.failing_formulas:
            return httpx.Response(500, text="image model crashed")
        if formula is None or formula in self.imageless_formulas:
            return httpx.Response(200, json={"choices": [{"message": {"content": "no image"}}]})
        return httpx.Response(200, json={
            "choices": [{
                "message": {
                    "content": "",
                    "images": [{"type": "image_url", "image_url": {"url": structure_url(formula)}}],
                }
            }]
        })

    structure_url = staticmethod(structure_url)

    def _known_formulas(self) -> List[str]:
        try:
            materials = json.loads(self.analysis_content or "{}").get("materials", [])
        except ValueError:
            return []
        return [m.get("chemicalFormula") for m in materials if isinstance(m, dict) and m.get("chemicalFormula")]


@pytest.fixture
def settings(tmp_path) -> Settings:
    return Settings(
        _env_file=None,
        ai_gateway_api_key="test-key",
        ai_gateway_url="https://gateway.test/v1",
        analysis_model=ANALYSIS_MODEL,
        image_model=IMAGE_MODEL,
        database_url=f"sqlite+aiosqlite:///{tmp_path / 'test.db'}",
        storage_dir=str(tmp_path / "storage"),
        secret_key="test-secret",
        log_json=False,
    )


@pytest.fixture
def png_data_url() -> str:
    return PNG_DATA_URL


@pytest.fixture
def sample_materials() -> List[Dict[str, Any]]:
    return json.loads(json.dumps(SAMPLE_MATERIALS))


@pytest.fixture
def fake_gateway() -> FakeGateway:
    return FakeGateway()


@pytest.fixture
def gateway_client(settings, fake_gateway) -> AIGatewayClient:
    return AIGatewayClient.from_settings(settings, transport=httpx.MockTransport(fake_gateway.handle))


@pytest.fixture
def app(settings, gateway_client):
    application = create_application(settings)
    application.state.analyzer = PackagingAnalyzer(
        gateway_client,
        generate_structure_images=settings.generate_structure_images
    )
    return application


@pytest.fixture
def client(app):
    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture
def auth_headers(settings) -> Dict[str, str]:
    token = create_access_token("user-1", settings.secret_key, settings.access_token_expire_minutes)
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def other_auth_headers(settings) -> Dict[str, str]:
    token = create_access_token("user-2", settings.secret_key, settings.access_token_expire_minutes)
    return {"Authorization": f"Bearer {token}"}
