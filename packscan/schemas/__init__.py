"""
Request and response schemas for the PackScan API.

Materials come back from a language model, so every field except ``type``
is treated as best-effort: scalar-or-list fields are coerced to lists and
out-of-range ratings are dropped rather than rejected.
"""

from datetime import datetime
from typing import Any, Dict, Iterable, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel


LIST_FIELDS = ("fssai_limits", "bis_limits", "food_applications")
TEXT_FIELDS = (
    "chemical_formula", "thickness", "gsm", "classification",
    "layer_composition", "recyclability", "common_uses", "environmental_impact",
)

RESIN_CODE_RANGE = (1, 7)
SUSTAINABILITY_RANGE = (1, 5)


def as_string_list(value: Any) -> List[str]:
    """
    Coerce a scalar-or-list value into a list of non-empty strings.

    ``None`` becomes ``[]``, a string becomes a one-element list and a list
    keeps its order with blank items removed. Applying it twice gives the
    same result as applying it once.
    """
    if value is None:
        return []
    if isinstance(value, (list, tuple)):
        items: Iterable[Any] = value
    else:
        items = [value]

    result = []
    for item in items:
        if item is None:
            continue
        text = str(item).strip()
        if text:
            result.append(text)
    return result


def _as_text(value: Any) -> Optional[str]:
    """Best-effort text for a free-form field; lists are joined, mappings dropped."""
    if value is None or isinstance(value, dict):
        return None
    if isinstance(value, (list, tuple)):
        return ", ".join(as_string_list(value)) or None
    return str(value).strip() or None


def _int_in_range(value: Any, bounds: tuple) -> Optional[int]:
    if value is None or isinstance(value, bool):
        return None
    try:
        number = int(str(value).strip())
    except (TypeError, ValueError):
        return None
    low, high = bounds
    return number if low <= number <= high else None


class CamelModel(BaseModel):
    """Base schema speaking camelCase on the wire."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
    )


class Material(CamelModel):
    """One packaging material identified in an image."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="allow",
    )

    type: str = Field(..., description="Material name, e.g. 'HDPE bottle'")
    chemical_formula: Optional[str] = None
    chemical_structure_image: Optional[str] = None
    fssai_limits: List[str] = Field(default_factory=list)
    bis_limits: List[str] = Field(default_factory=list)
    thickness: Optional[str] = None
    gsm: Optional[str] = None
    food_applications: List[str] = Field(default_factory=list)

    # Earlier sustainability-oriented schema
    classification: Optional[str] = None
    plastic_resin_code: Optional[int] = None
    layer_composition: Optional[str] = None
    recyclability: Optional[str] = None
    biodegradable: Optional[bool] = None
    common_uses: Optional[str] = None
    sustainability_rating: Optional[int] = None
    environmental_impact: Optional[str] = None

    @field_validator("type", mode="before")
    @classmethod
    def validate_type(cls, v):
        if not isinstance(v, str) or not v.strip():
            raise ValueError("Material type must be a non-empty string")
        return v.strip()

    @field_validator(*LIST_FIELDS, mode="before")
    @classmethod
    def normalize_lists(cls, v):
        return as_string_list(v)

    @field_validator(*TEXT_FIELDS, mode="before")
    @classmethod
    def stringify(cls, v):
        return _as_text(v)

    @field_validator("chemical_structure_image", mode="before")
    @classmethod
    def validate_structure_image(cls, v):
        if isinstance(v, str) and v.strip():
            return v.strip()
        return None

    @field_validator("plastic_resin_code", mode="before")
    @classmethod
    def validate_resin_code(cls, v):
        return _int_in_range(v, RESIN_CODE_RANGE)

    @field_validator("sustainability_rating", mode="before")
    @classmethod
    def validate_sustainability_rating(cls, v):
        return _int_in_range(v, SUSTAINABILITY_RANGE)

    @field_validator("biodegradable", mode="before")
    @classmethod
    def validate_biodegradable(cls, v):
        if isinstance(v, bool) or v is None:
            return v
        if isinstance(v, str) and v.strip().lower() in ("yes", "true"):
            return True
        if isinstance(v, str) and v.strip().lower() in ("no", "false"):
            return False
        return None

    def to_dict(self) -> Dict[str, Any]:
        """Wire representation; ``chemicalStructureImage`` is always present."""
        data = self.model_dump(by_alias=True, exclude_none=True)
        data["chemicalStructureImage"] = self.chemical_structure_image
        return data


class AnalysisResult(CamelModel):
    """Materials detected in one packaging image."""

    materials: List[Material] = Field(default_factory=list)
    overall_analysis: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {"materials": [m.to_dict() for m in self.materials]}
        if self.overall_analysis:
            data["overallAnalysis"] = self.overall_analysis
        return data


class AnalyzeRequest(CamelModel):
    """Body of an analysis request. Unknown keys are ignored."""

    image_base64: Optional[str] = Field(default=None, description="Image as data URL or base64")
    generate_structure_images: Optional[bool] = Field(
        default=None,
        description="Override the server default for structure diagrams"
    )


class SaveAnalysisRequest(CamelModel):
    """Body for persisting an analysis together with its source image."""

    image_base64: str = Field(..., min_length=1)
    materials: List[Material] = Field(default_factory=list)
    overall_analysis: Optional[str] = None


class SavedAnalysisResponse(CamelModel):
    """A saved analysis as returned to its owner."""

    id: str
    image_path: str
    image_url: str
    materials: List[Dict[str, Any]]
    overall_analysis: Optional[str] = None
    created_at: datetime


class ErrorResponse(BaseModel):
    error: str


class HealthCheckResponse(BaseModel):
    """Health check response schema."""

    status: str
    timestamp: datetime = Field(default_factory=datetime.utcnow)
    services: Dict[str, str] = Field(default_factory=dict)
    version: str = "1.0.0"


class GuideEntry(CamelModel):
    name: str
    recyclable: bool
    biodegradable: bool
    description: str
    tips: str


class ResinCode(CamelModel):
    code: int
    abbreviation: str
    name: str
    examples: str
