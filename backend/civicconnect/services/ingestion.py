"""Report ingestion: from client payload (or raw photo) to a stored report."""

import logging
from urllib.parse import urlparse

from sqlalchemy.ext.asyncio import AsyncSession

from civicconnect.core.exceptions import ValidationException
from civicconnect.models.base import utcnow
from civicconnect.models.user import User
from civicconnect.schemas.media import DescribeResponse
from civicconnect.schemas.report import ReportCreate, ReportOut
from civicconnect.services import lifecycle
from civicconnect.services.classifier import normalize_severity, resolve_category
from civicconnect.services.repository import ReportRepository
from civicconnect.services.vision import ImageClassifier

logger = logging.getLogger(__name__)

FALLBACK_DESCRIPTION = "Unable to analyze the image properly."


def check_image_url(image_url: str) -> str:
    image_url = (image_url or "").strip()
    if not image_url:
        raise ValidationException("Image URL is required", field="imageUrl")

    parsed = urlparse(image_url)
    if parsed.scheme not in ("http", "https") or not parsed.netloc:
        raise ValidationException("Invalid image URL format", field="imageUrl")
    return image_url


class IngestionPipeline:
    """
    Turns client input into stored reports.

    Built once at startup; the collaborators it holds are never swapped
    after construction.
    """

    def __init__(
        self,
        repository: ReportRepository,
        image_classifier: ImageClassifier,
    ):
        self.repository = repository
        self.image_classifier = image_classifier

    async def submit(self, db: AsyncSession, owner: User, payload: ReportCreate) -> ReportOut:
        """
        Validate, store and return the joined projection of a new report.

        Nothing is written when validation fails.
        """
        submission = lifecycle.validate_submission(payload)
        report = await lifecycle.submit(db, owner.id, submission)
        await lifecycle.commit(db, "Failed to submit report")

        stored = await self.repository.find_by_id(db, report.id)
        return ReportOut.from_report(stored)

    async def describe(self, image_url: str) -> DescribeResponse:
        """Ask the image classifier about a photo and reconcile its answer."""
        image_url = check_image_url(image_url)

        analysis = await self.image_classifier.classify(image_url)

        description = analysis.description.strip()
        category = resolve_category(analysis.category_label, description)
        severity = normalize_severity(analysis.severity_label)

        if analysis.category_label and category.value != analysis.category_label.strip():
            logger.info(f"Reconciled model category {analysis.category_label!r} to {category.value!r}")

        return DescribeResponse(
            description=description or FALLBACK_DESCRIPTION,
            category=category,
            severity=severity,
            action_required=analysis.action_required,
            timestamp=utcnow(),
        )
