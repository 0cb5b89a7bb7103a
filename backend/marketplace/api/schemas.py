"""Pydantic response schemas. Field aliases are the camelCase keys the frontend expects."""
from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field


def _config_forbid(**kwargs):
    return ConfigDict(extra="forbid", populate_by_name=True, **kwargs)


# ----- Materials -----
class MaterialSeller(BaseModel):
    model_config = _config_forbid()
    id: UUID
    display_name: str | None
    is_verified_seller: bool


class CompetencyBadge(BaseModel):
    model_config = _config_forbid()
    id: UUID
    code: str
    description_de: str
    anforderungsstufe: str | None
    subject_code: str = Field(alias="subjectCode")
    subject_color: str | None = Field(alias="subjectColor")


class ThemeBadge(BaseModel):
    """Transversal competency or BNE theme."""
    model_config = _config_forbid()
    id: UUID
    code: str
    name_de: str
    icon: str | None
    color: str | None


class MaterialSummary(BaseModel):
    model_config = _config_forbid()
    id: UUID
    title: str
    description: str
    price: int
    price_formatted: str = Field(alias="priceFormatted")
    subject: str
    cycle: str
    subjects: list[str]
    cycles: list[str]
    preview_url: str | None = Field(alias="previewUrl")
    created_at: datetime = Field(alias="createdAt")
    dialect: str
    seller: MaterialSeller
    average_rating: float = Field(alias="averageRating")
    review_count: int = Field(alias="reviewCount")
    is_mi_integrated: bool = Field(alias="isMiIntegrated")
    competencies: list[CompetencyBadge]
    transversals: list[ThemeBadge]
    bne_themes: list[ThemeBadge] = Field(alias="bneThemes")


# ----- Pagination -----
class Pagination(BaseModel):
    model_config = _config_forbid()
    page: int
    limit: int
    total: int
    total_pages: int = Field(alias="totalPages")


class MaterialList(BaseModel):
    model_config = _config_forbid()
    materials: list[MaterialSummary]
    pagination: Pagination


# ----- Autocomplete -----
class Suggestion(BaseModel):
    model_config = _config_forbid()
    id: UUID
    title: str
    price: int
    subject: str | None


class AutocompleteResponse(BaseModel):
    model_config = _config_forbid()
    suggestions: list[Suggestion]


# ----- Errors -----
class ErrorBody(BaseModel):
    model_config = _config_forbid()
    error: str
    code: str
    retry_after: int | None = Field(default=None, alias="retryAfter")
