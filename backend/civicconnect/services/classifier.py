"""Category and severity classification for civic issue reports.

Everything here is a pure function over text. Classification output is
never allowed to fail a request: anything that cannot be resolved falls
back to ``ReportCategory.GENERAL`` / ``ReportSeverity.MEDIUM``.
"""

import re
from typing import Dict, List, Optional, Tuple

from civicconnect.models.report import ReportCategory, ReportSeverity

DEFAULT_CATEGORY = ReportCategory.GENERAL
DEFAULT_SEVERITY = ReportSeverity.MEDIUM

# Checked top to bottom; the first category with any matching keyword wins,
# regardless of how many keywords a later category would match.
CATEGORY_KEYWORDS: Dict[ReportCategory, Tuple[str, ...]] = {
    ReportCategory.WATER_SUPPLY: (
        "water", "pipe", "leak", "burst", "supply", "shortage", "contamination",
        "drinking water", "tap", "bore well", "water tank", "pipeline",
    ),
    ReportCategory.ELECTRICITY: (
        "power", "electricity", "cable", "wire", "transformer", "outage",
        "blackout", "street light", "electric pole", "power line", "voltage",
    ),
    ReportCategory.PUBLIC_HEALTH: (
        "health", "medical", "hospital", "clinic", "ambulance", "safety",
        "accident", "injury", "disease", "epidemic", "vaccination",
    ),
    ReportCategory.FIRE_EMERGENCY: (
        "fire", "emergency", "rescue", "disaster", "flood", "earthquake",
        "burning", "smoke", "evacuation", "hazard", "danger",
    ),
    ReportCategory.SANITATION: (
        "garbage", "waste", "trash", "dustbin", "cleaning", "sewage", "drain",
        "toilet", "sanitation", "hygiene", "overflow", "dump", "litter",
    ),
    ReportCategory.ROADS: (
        "road", "pothole", "street", "bridge", "footpath", "sidewalk",
        "traffic", "construction", "repair", "maintenance", "pavement",
    ),
    ReportCategory.PUBLIC_TRANSPORT: (
        "bus", "transport", "metro", "railway", "station", "traffic signal",
        "parking", "vehicle", "auto", "rickshaw",
    ),
    ReportCategory.PARKS: (
        "park", "tree", "garden", "environment", "pollution", "noise",
        "air quality", "green space", "plantation", "encroachment",
    ),
}

# Fallback rules for labels that are not an exact category name, in priority order.
LABEL_HEURISTICS: Tuple[Tuple[Tuple[str, ...], ReportCategory], ...] = (
    (("sanitation", "waste"), ReportCategory.SANITATION),
    (("road", "infrastructure"), ReportCategory.ROADS),
    (("water",), ReportCategory.WATER_SUPPLY),
    (("electric",), ReportCategory.ELECTRICITY),
)


def valid_categories() -> List[str]:
    """All category names, in declaration order."""
    return [category.value for category in ReportCategory]


def valid_severities() -> List[str]:
    return [severity.value for severity in ReportSeverity]


def parse_category(value: Optional[str]) -> Optional[ReportCategory]:
    """Strict lookup: the exact category name or nothing."""
    if value is None:
        return None
    try:
        return ReportCategory(value)
    except ValueError:
        return None


def categorize_description(text: Optional[str]) -> ReportCategory:
    """Keyword fallback over a free-text description."""
    if not text:
        return DEFAULT_CATEGORY

    lowered = text.lower()
    for category, keywords in CATEGORY_KEYWORDS.items():
        if any(keyword in lowered for keyword in keywords):
            return category

    return DEFAULT_CATEGORY


def _match_label(label: Optional[str]) -> Optional[ReportCategory]:
    if not label:
        return None

    cleaned = label.strip().lower()
    if not cleaned:
        return None

    for category in ReportCategory:
        if category.value.lower() == cleaned:
            return category

    for terms, category in LABEL_HEURISTICS:
        if any(term in cleaned for term in terms):
            return category

    return None


def reconcile_category(label: Optional[str]) -> ReportCategory:
    """
    Map an externally proposed label onto a category.

    Exact case-insensitive name match first, then the substring heuristics,
    otherwise the general category.
    """
    return _match_label(label) or DEFAULT_CATEGORY


def resolve_category(label: Optional[str], description: Optional[str] = None) -> ReportCategory:
    """
    Precedence policy when both an AI label and a description are available.

    1. the label, exactly or through the heuristics
    2. keyword classification of the description
    3. the general category
    """
    matched = _match_label(label)
    if matched is not None:
        return matched
    return categorize_description(description)


def normalize_severity(label: Optional[str]) -> ReportSeverity:
    """Exact, case-sensitive severity lookup; anything else is Medium."""
    if label is None:
        return DEFAULT_SEVERITY
    try:
        return ReportSeverity(label.strip())
    except ValueError:
        return DEFAULT_SEVERITY


def extract_field(text: str, field_name: str) -> str:
    """
    Pull the value of a ``Name: value`` line out of model output.

    Values may be decorated with markdown bold markers; those are dropped.
    Returns an empty string when the field is absent.
    """
    pattern = re.compile(
        rf"^[\s*\-]*{re.escape(field_name)}\**\s*:\s*\**\s*(.+?)\s*$",
        re.IGNORECASE | re.MULTILINE,
    )
    match = pattern.search(text or "")
    if not match:
        return ""
    return match.group(1).strip().strip("*").strip()
