"""Structured filters for the materials listing.

Each filter is a small frozen value produced by the query normalizer. Filters
are applied one after another to a ``FilterSet`` (SQL predicates plus an
optional candidate-ID set). A filter that proves nothing can match returns an
``EmptyResult`` instead, and the pipeline stops there: the page query is never
run.
"""
import logging
import re
from dataclasses import dataclass, field
from typing import Any, Union
from uuid import UUID

from sqlalchemy import and_, func, not_, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from marketplace.db.models import (
    BneTheme,
    CurriculumCompetency,
    Resource,
    ResourceBne,
    ResourceCompetency,
    ResourceLehrmittel,
    ResourceTransversal,
    TransversalCompetency,
    User,
)

logger = logging.getLogger(__name__)

# User-facing format bucket -> file extensions (matched against file_url suffix)
FORMAT_EXTENSIONS: dict[str, tuple[str, ...]] = {
    "pdf": ("pdf",),
    "word": ("doc", "docx"),
    "ppt": ("ppt", "pptx"),
    "excel": ("xls", "xlsx"),
    "onenote": ("one", "onetoc2"),
}
OTHER_FORMAT = "other"
KNOWN_EXTENSIONS: tuple[str, ...] = tuple(ext for exts in FORMAT_EXTENSIONS.values() for ext in exts)


def visible_conditions() -> list[Any]:
    """Only published and public (verified) resources are ever listed."""
    return [Resource.is_published.is_(True), Resource.is_public.is_(True)]


@dataclass(frozen=True)
class EmptyResult:
    """No resource can match; `reason` names the filter that proved it."""
    reason: str


@dataclass
class FilterSet:
    conditions: list[Any] = field(default_factory=list)
    candidate_ids: set[UUID] | None = None
    # Search rank (ts_rank or trigram similarity) per resource id
    ranks: dict[UUID, float] | None = None

    def where(self, condition: Any) -> "FilterSet":
        self.conditions.append(condition)
        return self

    def narrow(self, ids, reason: str) -> "FilterSet | EmptyResult":
        """Intersect the candidate set with ids (logical AND); empty -> EmptyResult."""
        ids = set(ids)
        if self.candidate_ids is not None:
            ids &= self.candidate_ids
        if not ids:
            return EmptyResult(reason)
        self.candidate_ids = ids
        return self

    def where_clause(self) -> list[Any]:
        clause = visible_conditions() + list(self.conditions)
        if self.candidate_ids is not None:
            clause.append(Resource.id.in_(self.candidate_ids))
        return clause


async def _visible_ids(db: AsyncSession, condition: Any) -> list[UUID]:
    result = await db.execute(select(Resource.id).where(*visible_conditions(), condition))
    return list(result.scalars().all())


@dataclass(frozen=True)
class SubjectFilter:
    code: str

    async def apply(self, db: AsyncSession, fs: FilterSet) -> FilterSet | EmptyResult:
        # JSONB containment: subjects @> '["MA"]'
        ids = await _visible_ids(db, Resource.subjects.contains([self.code]))
        return fs.narrow(ids, "subject")


@dataclass(frozen=True)
class CycleFilter:
    cycle: str

    async def apply(self, db: AsyncSession, fs: FilterSet) -> FilterSet | EmptyResult:
        ids = await _visible_ids(db, Resource.cycles.contains([self.cycle]))
        return fs.narrow(ids, "cycle")


def normalize_code(code: str) -> str:
    """'ma.1.a 1' -> 'MA1A1'"""
    return re.sub(r"[\s.]", "", code).upper()


@dataclass(frozen=True)
class CompetencyFilter:
    """LP21 competency code; substring match, then a pass ignoring spaces and dots."""
    code: str

    async def apply(self, db: AsyncSession, fs: FilterSet) -> FilterSet | EmptyResult:
        result = await db.execute(
            select(CurriculumCompetency.id).where(
                CurriculumCompetency.code.contains(self.code.upper(), autoescape=True)
            )
        )
        ids = list(result.scalars().all())
        normalized = normalize_code(self.code)
        if not ids and len(normalized) >= 2:
            stripped_code = func.upper(func.replace(func.replace(CurriculumCompetency.code, " ", ""), ".", ""))
            result = await db.execute(
                select(CurriculumCompetency.id).where(stripped_code.contains(normalized, autoescape=True))
            )
            ids = list(result.scalars().all())
        if not ids:
            return EmptyResult("competency")
        return fs.where(Resource.competencies.any(ResourceCompetency.competency_id.in_(ids)))


@dataclass(frozen=True)
class TransversalFilter:
    code: str

    async def apply(self, db: AsyncSession, fs: FilterSet) -> FilterSet | EmptyResult:
        result = await db.execute(
            select(TransversalCompetency.id)
            .where(TransversalCompetency.code.contains(self.code.upper(), autoescape=True))
            .order_by(TransversalCompetency.code)
            .limit(1)
        )
        transversal_id = result.scalar_one_or_none()
        if transversal_id is None:
            return EmptyResult("transversal")
        return fs.where(Resource.transversals.any(ResourceTransversal.transversal_id == transversal_id))


@dataclass(frozen=True)
class BneFilter:
    code: str

    async def apply(self, db: AsyncSession, fs: FilterSet) -> FilterSet | EmptyResult:
        result = await db.execute(
            select(BneTheme.id)
            .where(BneTheme.code.contains(self.code.upper(), autoescape=True))
            .order_by(BneTheme.code)
            .limit(1)
        )
        bne_id = result.scalar_one_or_none()
        if bne_id is None:
            return EmptyResult("bne")
        return fs.where(Resource.bne_themes.any(ResourceBne.bne_id == bne_id))


@dataclass(frozen=True)
class MiIntegratedFilter:
    async def apply(self, db: AsyncSession, fs: FilterSet) -> FilterSet | EmptyResult:
        return fs.where(Resource.is_mi_integrated.is_(True))


@dataclass(frozen=True)
class LehrmittelFilter:
    lehrmittel_id: str

    async def apply(self, db: AsyncSession, fs: FilterSet) -> FilterSet | EmptyResult:
        try:
            lehrmittel_id = UUID(self.lehrmittel_id)
        except ValueError:
            # Not an id we could have issued
            return EmptyResult("lehrmittel")
        return fs.where(Resource.lehrmittel.any(ResourceLehrmittel.lehrmittel_id == lehrmittel_id))


@dataclass(frozen=True)
class DialectFilter:
    """SWISS shows SWISS + BOTH, STANDARD shows STANDARD + BOTH."""
    dialect: str

    async def apply(self, db: AsyncSession, fs: FilterSet) -> FilterSet | EmptyResult:
        return fs.where(Resource.dialect.in_([self.dialect, "BOTH"]))


# Bounds of the int4 price column
PRICE_MIN_RAPPEN = -(2**31)
PRICE_MAX_RAPPEN = 2**31 - 1


def _rappen(chf: int) -> int:
    return max(PRICE_MIN_RAPPEN, min(PRICE_MAX_RAPPEN, chf * 100))


@dataclass(frozen=True)
class PriceRange:
    """Bounds in whole CHF; prices are stored in Rappen."""
    min_chf: int | None = None
    max_chf: int | None = None

    async def apply(self, db: AsyncSession, fs: FilterSet) -> FilterSet | EmptyResult:
        if self.max_chf is not None:
            # maxPrice=0 means free resources only
            fs.where(Resource.price <= _rappen(self.max_chf))
        if self.min_chf is not None:
            fs.where(Resource.price >= _rappen(self.min_chf))
        return fs


def format_condition(formats) -> Any:
    """OR over the selected buckets; 'other' matches no known extension."""
    options = []
    for fmt in formats:
        if fmt == OTHER_FORMAT:
            options.append(and_(*[not_(Resource.file_url.endswith(f".{ext}")) for ext in KNOWN_EXTENSIONS]))
        else:
            options.extend(Resource.file_url.endswith(f".{ext}") for ext in FORMAT_EXTENSIONS[fmt])
    return or_(*options)


@dataclass(frozen=True)
class FormatFilter:
    formats: tuple[str, ...]

    async def apply(self, db: AsyncSession, fs: FilterSet) -> FilterSet | EmptyResult:
        return fs.where(format_condition(self.formats))


@dataclass(frozen=True)
class CantonFilter:
    """Restrict to sellers whose cantons list contains any of the given codes."""
    cantons: tuple[str, ...]

    async def apply(self, db: AsyncSession, fs: FilterSet) -> FilterSet | EmptyResult:
        result = await db.execute(
            select(User.id).where(or_(*[User.cantons.contains([c]) for c in self.cantons]))
        )
        seller_ids = list(result.scalars().all())
        if not seller_ids:
            return EmptyResult("canton")
        return fs.where(Resource.seller_id.in_(seller_ids))


MaterialFilter = Union[
    SubjectFilter,
    CycleFilter,
    CompetencyFilter,
    TransversalFilter,
    BneFilter,
    MiIntegratedFilter,
    LehrmittelFilter,
    DialectFilter,
    PriceRange,
    FormatFilter,
    CantonFilter,
]


async def resolve_filters(db: AsyncSession, filters) -> FilterSet | EmptyResult:
    """Apply filters in order (AND). Stops at the first filter that yields nothing."""
    outcome: FilterSet | EmptyResult = FilterSet()
    for material_filter in filters:
        outcome = await material_filter.apply(db, outcome)
        if isinstance(outcome, EmptyResult):
            logger.debug("Filter %s matched nothing; short-circuit", outcome.reason)
            break
    return outcome
