"""Collaborators shared by the route handlers.

They are built once in the application lifespan and kept on ``app.state``;
handlers reach them through the dependencies below so that tests can swap
in fakes with ``app.dependency_overrides``.
"""

from dataclasses import dataclass

from fastapi import Request

from civicconnect.config import Settings
from civicconnect.services.geocoding import Geocoder, NominatimGeocoder
from civicconnect.services.ingestion import IngestionPipeline
from civicconnect.services.repository import ReportRepository
from civicconnect.services.storage import LocalObjectStore, ObjectStore
from civicconnect.services.vision import GeminiImageClassifier, ImageClassifier


@dataclass
class Collaborators:
    repository: ReportRepository
    image_classifier: ImageClassifier
    pipeline: IngestionPipeline
    object_store: ObjectStore
    geocoder: Geocoder

    async def close(self) -> None:
        await self.image_classifier.close()
        await self.geocoder.close()


def build_collaborators(config: Settings) -> Collaborators:
    repository = ReportRepository()
    image_classifier = GeminiImageClassifier(
        api_key=config.gemini_api_key,
        model=config.gemini_model,
        api_url=config.gemini_api_url,
        timeout=config.ai_timeout_seconds,
        max_image_bytes=config.max_upload_bytes,
    )
    return Collaborators(
        repository=repository,
        image_classifier=image_classifier,
        pipeline=IngestionPipeline(repository=repository, image_classifier=image_classifier),
        object_store=LocalObjectStore(
            root=config.media_dir,
            base_url=config.media_base_url,
            max_bytes=config.max_upload_bytes,
            allowed_types=config.allowed_image_types,
        ),
        geocoder=NominatimGeocoder(
            base_url=config.geocoding_base_url,
            user_agent=config.geocoding_user_agent,
            timeout=config.geocoding_timeout_seconds,
        ),
    )


def _collaborators(request: Request) -> Collaborators:
    return request.app.state.collaborators


def get_repository(request: Request) -> ReportRepository:
    return _collaborators(request).repository


def get_pipeline(request: Request) -> IngestionPipeline:
    return _collaborators(request).pipeline


def get_object_store(request: Request) -> ObjectStore:
    return _collaborators(request).object_store


def get_geocoder(request: Request) -> Geocoder:
    return _collaborators(request).geocoder
