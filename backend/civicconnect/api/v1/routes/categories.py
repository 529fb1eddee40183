"""Category listing and keyword suggestion."""

from fastapi import APIRouter

from civicconnect.schemas.report import CategoryListResponse, CategorySuggestion, CategorySuggestRequest
from civicconnect.services.classifier import categorize_description, valid_categories

router = APIRouter()


@router.get("", response_model=CategoryListResponse)
async def list_categories() -> CategoryListResponse:
    """All report categories, in their canonical order."""
    return CategoryListResponse(categories=valid_categories())


@router.post("/suggest", response_model=CategorySuggestion)
async def suggest_category(body: CategorySuggestRequest) -> CategorySuggestion:
    """Keyword-based category for a free-text description."""
    return CategorySuggestion(category=categorize_description(body.description))
