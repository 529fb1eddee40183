"""Tests for the storage, geocoding and image classification collaborators."""

import json

import httpx
import pytest

from civicconnect.api.deps import get_geocoder, get_object_store, get_pipeline
from civicconnect.core.exceptions import ServiceUnavailableException, ValidationException
from civicconnect.main import app
from civicconnect.models.report import ReportCategory, ReportSeverity
from civicconnect.services.geocoding import Geocoder, NominatimGeocoder
from civicconnect.services.ingestion import FALLBACK_DESCRIPTION, IngestionPipeline
from civicconnect.services.repository import ReportRepository
from civicconnect.services.storage import LocalObjectStore, ObjectStore
from civicconnect.services.vision import GeminiImageClassifier, ImageAnalysis, ImageClassifier

JPEG_BYTES = b"\xff\xd8\xff\xe0" + b"\x00" * 64


class FakeClassifier(ImageClassifier):
    def __init__(self, analysis=None, error=None):
        self.analysis = analysis
        self.error = error
        self.calls = []

    async def classify(self, image_url):
        self.calls.append(image_url)
        if self.error:
            raise self.error
        return self.analysis


def test_incomplete_collaborators_cannot_be_built():
    class NoForward(Geocoder):
        async def reverse(self, lat, lng):
            return None

    with pytest.raises(TypeError):
        NoForward()
    with pytest.raises(TypeError):
        ObjectStore()
    with pytest.raises(TypeError):
        ImageClassifier()


# =============================================================================
# Object storage
# =============================================================================

class TestLocalObjectStore:
    @pytest.fixture
    def store(self, tmp_path):
        return LocalObjectStore(str(tmp_path), "http://testserver/media/", max_bytes=1024)

    @pytest.mark.asyncio
    async def test_upload_writes_file_and_returns_url(self, store, tmp_path):
        url = await store.upload(JPEG_BYTES, "image/jpeg", "pothole.jpg")

        assert url.startswith("http://testserver/media/")
        assert url.endswith(".jpg")
        stored = tmp_path / url.rsplit("/", 1)[1]
        assert stored.read_bytes() == JPEG_BYTES

    @pytest.mark.asyncio
    async def test_non_image_rejected(self, store):
        with pytest.raises(ValidationException, match="Only image files"):
            await store.upload(b"%PDF-1.4", "application/pdf", "doc.pdf")

    @pytest.mark.asyncio
    async def test_oversized_rejected(self, store):
        with pytest.raises(ValidationException, match="exceeds"):
            await store.upload(b"\x00" * 2048, "image/png", "big.png")


# =============================================================================
# Geocoding
# =============================================================================

def nominatim(handler) -> NominatimGeocoder:
    return NominatimGeocoder(
        base_url="https://nominatim.test",
        user_agent="CivicConnect-App/1.0",
        transport=httpx.MockTransport(handler),
    )


class TestNominatimGeocoder:
    @pytest.mark.asyncio
    async def test_reverse(self):
        seen = {}

        def handler(request):
            seen["path"] = request.url.path
            seen["agent"] = request.headers["User-Agent"]
            return httpx.Response(200, json={
                "display_name": "12, MG Road, Bengaluru, India",
                "address": {"house_number": "12", "road": "MG Road", "suburb": "Shanthala Nagar",
                            "city": "Bengaluru", "state": "Karnataka", "country": "India", "postcode": "560001"},
            })

        result = await nominatim(handler).reverse(12.97, 77.59)

        assert seen == {"path": "/reverse", "agent": "CivicConnect-App/1.0"}
        assert result.address == "12, MG Road, Bengaluru, India"
        assert result.details.components.street == "12 MG Road"
        assert result.details.components.locality == "Shanthala Nagar"
        assert result.details.components.postal_code == "560001"

    @pytest.mark.asyncio
    async def test_reverse_no_match(self):
        result = await nominatim(lambda request: httpx.Response(200, json={"error": "Unable to geocode"})).reverse(0, 0)
        assert result is None

    @pytest.mark.asyncio
    async def test_forward(self):
        def handler(request):
            assert request.url.params["q"] == "MG Road"
            return httpx.Response(200, json=[
                {"lat": "12.97", "lon": "77.59", "display_name": "MG Road, Bengaluru",
                 "boundingbox": ["12.9", "13.0", "77.5", "77.6"]},
            ])

        result = await nominatim(handler).forward("MG Road")

        assert (result.lat, result.lng) == (12.97, 77.59)
        assert result.formatted_address == "MG Road, Bengaluru"

    @pytest.mark.asyncio
    async def test_upstream_error_is_service_unavailable(self):
        geocoder = nominatim(lambda request: httpx.Response(500))

        with pytest.raises(ServiceUnavailableException) as exc_info:
            await geocoder.forward("anywhere")

        assert exc_info.value.status_code == 502


# =============================================================================
# Image classification
# =============================================================================

MODEL_OUTPUT = (
    "Description: Garbage bags dumped beside the road.\n"
    "Category: Sanitation & Waste Management\n"
    "Severity: High\n"
    "ActionRequired: Schedule a pickup.\n"
)


class TestGeminiImageClassifier:
    @pytest.mark.asyncio
    async def test_classify(self):
        requests = []

        def handler(request):
            requests.append(request)
            if request.url.host == "images.test":
                return httpx.Response(200, content=JPEG_BYTES, headers={"content-type": "image/jpeg"})
            return httpx.Response(200, json={"candidates": [{"content": {"parts": [{"text": MODEL_OUTPUT}]}}]})

        classifier = GeminiImageClassifier(
            api_key="test-key",
            model="gemini-2.5-flash",
            api_url="https://gemini.test/v1beta/models",
            transport=httpx.MockTransport(handler),
        )

        analysis = await classifier.classify("https://images.test/photo.jpg")

        assert analysis == ImageAnalysis(
            description="Garbage bags dumped beside the road.",
            category_label="Sanitation & Waste Management",
            severity_label="High",
            action_required="Schedule a pickup.",
        )
        generate = requests[1]
        assert generate.url.path == "/v1beta/models/gemini-2.5-flash:generateContent"
        assert generate.headers["x-goog-api-key"] == "test-key"
        parts = json.loads(generate.content)["contents"][0]["parts"]
        assert parts[1]["inline_data"]["mime_type"] == "image/jpeg"

    @pytest.mark.asyncio
    async def test_missing_api_key(self):
        classifier = GeminiImageClassifier(api_key="", model="m", api_url="https://gemini.test")

        with pytest.raises(ServiceUnavailableException):
            await classifier.classify("https://images.test/photo.jpg")

    @pytest.mark.asyncio
    async def test_oversized_image_not_sent(self):
        requests = []

        def handler(request):
            requests.append(request)
            return httpx.Response(200, content=b"\xff" * 4096, headers={"content-type": "image/jpeg"})

        classifier = GeminiImageClassifier(
            api_key="k",
            model="m",
            api_url="https://gemini.test",
            max_image_bytes=1024,
            transport=httpx.MockTransport(handler),
        )

        with pytest.raises(ValidationException, match="exceeds"):
            await classifier.classify("https://images.test/huge.jpg")

        assert [r.url.host for r in requests] == ["images.test"]

    @pytest.mark.asyncio
    async def test_empty_candidates(self):
        def handler(request):
            if request.url.host == "images.test":
                return httpx.Response(200, content=JPEG_BYTES)
            return httpx.Response(200, json={"candidates": []})

        classifier = GeminiImageClassifier(
            api_key="k", model="m", api_url="https://gemini.test", transport=httpx.MockTransport(handler)
        )

        with pytest.raises(ServiceUnavailableException):
            await classifier.classify("https://images.test/photo.jpg")


class TestDescribe:
    @pytest.mark.asyncio
    async def test_untrusted_fields_reconciled(self):
        classifier = FakeClassifier(ImageAnalysis(
            description="",
            category_label="waste collection",
            severity_label="critical",
        ))
        pipeline = IngestionPipeline(ReportRepository(), classifier)

        result = await pipeline.describe("https://images.test/photo.jpg")

        assert result.description == FALLBACK_DESCRIPTION
        assert result.category == ReportCategory.SANITATION
        assert result.severity == ReportSeverity.MEDIUM

    @pytest.mark.asyncio
    @pytest.mark.parametrize("url", ["", "not a url", "ftp://images.test/a.jpg"])
    async def test_bad_url_rejected_before_classifying(self, url):
        classifier = FakeClassifier()
        pipeline = IngestionPipeline(ReportRepository(), classifier)

        with pytest.raises(ValidationException):
            await pipeline.describe(url)

        assert classifier.calls == []


# =============================================================================
# HTTP surface with injected fakes
# =============================================================================

class TestCollaboratorEndpoints:
    def test_upload(self, client, citizen_headers, tmp_path):
        store = LocalObjectStore(str(tmp_path), "http://testserver/media", max_bytes=1024)
        app.dependency_overrides[get_object_store] = lambda: store

        response = client.post(
            "/upload",
            files={"image": ("pothole.jpg", JPEG_BYTES, "image/jpeg")},
            headers=citizen_headers,
        )

        assert response.status_code == 201
        assert response.json()["imageUrl"].startswith("http://testserver/media/")

    def test_upload_without_file(self, client, citizen_headers):
        response = client.post("/upload", headers=citizen_headers)
        assert response.status_code == 400

    def test_upload_requires_login(self, client):
        response = client.post("/upload", files={"image": ("a.jpg", JPEG_BYTES, "image/jpeg")})
        assert response.status_code == 401

    def test_describe(self, client, citizen_headers):
        classifier = FakeClassifier(ImageAnalysis(
            description="Exposed wires on a pole.",
            category_label="Electricity",
            severity_label="High",
        ))
        app.dependency_overrides[get_pipeline] = lambda: IngestionPipeline(ReportRepository(), classifier)

        response = client.post("/ai/describe", json={"imageUrl": "https://images.test/a.jpg"}, headers=citizen_headers)

        assert response.status_code == 200
        body = response.json()
        assert body["category"] == "Electricity"
        assert body["severity"] == "High"
        assert body["description"] == "Exposed wires on a pole."

    def test_describe_upstream_failure_is_503(self, client, citizen_headers):
        classifier = FakeClassifier(error=ServiceUnavailableException("AI service"))
        app.dependency_overrides[get_pipeline] = lambda: IngestionPipeline(ReportRepository(), classifier)

        response = client.post("/ai/describe", json={"imageUrl": "https://images.test/a.jpg"}, headers=citizen_headers)

        assert response.status_code == 503
        assert response.json()["error"]["code"] == "SERVICE_UNAVAILABLE"

    def test_reverse_geocode_validates_and_reports_no_match(self, client):
        app.dependency_overrides[get_geocoder] = lambda: nominatim(lambda request: httpx.Response(200, json={}))

        out_of_range = client.post("/location/reverse-geocode", json={"lat": 95, "lng": 0})
        no_match = client.post("/location/reverse-geocode", json={"lat": 10, "lng": 10})

        assert out_of_range.status_code == 400
        assert out_of_range.json()["error"]["message"] == "Latitude must be between -90 and 90"
        assert no_match.status_code == 404
