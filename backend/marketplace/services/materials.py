"""Materials listing: filters -> text search -> page + count -> response shape. Read-only."""
import math

from sqlalchemy import case, func, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from marketplace.api.schemas import (
    CompetencyBadge,
    MaterialList,
    MaterialSeller,
    MaterialSummary,
    Pagination,
    Suggestion,
    ThemeBadge,
)
from marketplace.core.metrics import record_short_circuit
from marketplace.db.models import (
    CurriculumCompetency,
    Resource,
    ResourceBne,
    ResourceCompetency,
    ResourceTransversal,
    Review,
)
from marketplace.services.filters import EmptyResult, FilterSet, resolve_filters, visible_conditions
from marketplace.services.pricing import format_price
from marketplace.services.query_params import MaterialQuery
from marketplace.services.search import apply_search_filter

DEFAULT_SUBJECT = "Allgemein"
RELEVANCE_SORTS = ("relevance", "newest")


def empty_page(query: MaterialQuery) -> MaterialList:
    return MaterialList(
        materials=[],
        pagination=Pagination(page=query.page, limit=query.limit, total=0, total_pages=0),
    )


def build_order_by(sort: str) -> list:
    if sort == "price-low":
        return [Resource.price.asc()]
    if sort == "price-high":
        return [Resource.price.desc()]
    # newest, and relevance (re-sorted in memory when a ranked search ran)
    return [Resource.created_at.desc()]


def sort_by_rank(resources: list, ranks: dict) -> list:
    """Best rank first; only reorders the fetched page, not the whole result set."""
    return sorted(resources, key=lambda r: ranks.get(r.id, 0.0), reverse=True)


def average_rating(ratings: list[int]) -> float:
    """Mean rounded half-up to one decimal; 0 without reviews."""
    if not ratings:
        return 0
    return math.floor(sum(ratings) / len(ratings) * 10 + 0.5) / 10


def _as_str_list(value) -> list[str]:
    if isinstance(value, list):
        return [str(v) for v in value]
    return []


def to_material_summary(resource: Resource) -> MaterialSummary:
    subjects = _as_str_list(resource.subjects)
    cycles = _as_str_list(resource.cycles)
    ratings = [r.rating for r in resource.reviews or []]
    seller = resource.seller
    return MaterialSummary(
        id=resource.id,
        title=resource.title,
        description=resource.description,
        price=resource.price,
        price_formatted=format_price(resource.price),
        subject=subjects[0] if subjects else DEFAULT_SUBJECT,
        cycle=cycles[0] if cycles else "",
        subjects=subjects,
        cycles=cycles,
        preview_url=resource.preview_url,
        created_at=resource.created_at,
        dialect=resource.dialect,
        seller=MaterialSeller(
            id=seller.id,
            display_name=seller.display_name,
            is_verified_seller=seller.is_verified_seller,
        ),
        average_rating=average_rating(ratings),
        review_count=len(ratings),
        is_mi_integrated=resource.is_mi_integrated,
        competencies=[
            CompetencyBadge(
                id=rc.competency.id,
                code=rc.competency.code,
                description_de=rc.competency.description_de,
                anforderungsstufe=rc.competency.anforderungsstufe,
                subject_code=rc.competency.subject.code,
                subject_color=rc.competency.subject.color,
            )
            for rc in resource.competencies or []
        ],
        transversals=[
            ThemeBadge(
                id=rt.transversal.id,
                code=rt.transversal.code,
                name_de=rt.transversal.name_de,
                icon=rt.transversal.icon,
                color=rt.transversal.color,
            )
            for rt in resource.transversals or []
        ],
        bne_themes=[
            ThemeBadge(id=rb.bne.id, code=rb.bne.code, name_de=rb.bne.name_de, icon=rb.bne.icon, color=rb.bne.color)
            for rb in resource.bne_themes or []
        ],
    )


def _page_options() -> list:
    return [
        selectinload(Resource.seller),
        selectinload(Resource.reviews).load_only(Review.rating),
        selectinload(Resource.competencies)
        .selectinload(ResourceCompetency.competency)
        .selectinload(CurriculumCompetency.subject),
        selectinload(Resource.transversals).selectinload(ResourceTransversal.transversal),
        selectinload(Resource.bne_themes).selectinload(ResourceBne.bne),
    ]


async def list_materials(db: AsyncSession, query: MaterialQuery) -> MaterialList:
    outcome = await resolve_filters(db, query.filters)
    if isinstance(outcome, FilterSet) and query.search:
        outcome = await apply_search_filter(db, outcome, query.search)
    if isinstance(outcome, EmptyResult):
        record_short_circuit(outcome.reason)
        return empty_page(query)

    where = outcome.where_clause()
    result = await db.execute(
        select(Resource)
        .options(*_page_options())
        .where(*where)
        .order_by(*build_order_by(query.sort))
        .offset(query.offset)
        .limit(query.limit)
    )
    resources = list(result.scalars().all())
    count_result = await db.execute(select(func.count()).select_from(Resource).where(*where))
    total = count_result.scalar_one()

    if outcome.ranks and query.sort in RELEVANCE_SORTS:
        resources = sort_by_rank(resources, outcome.ranks)

    return MaterialList(
        materials=[to_material_summary(r) for r in resources],
        pagination=Pagination(
            page=query.page,
            limit=query.limit,
            total=total,
            total_pages=math.ceil(total / query.limit),
        ),
    )


async def suggest_titles(db: AsyncSession, q: str, limit: int) -> list[Suggestion]:
    """Typeahead: titles containing q, prefix matches first, then alphabetical."""
    prefix_first = case((Resource.title.istartswith(q, autoescape=True), 0), else_=1)
    result = await db.execute(
        select(Resource.id, Resource.title, Resource.price, Resource.subjects)
        .where(*visible_conditions(), Resource.title.icontains(q, autoescape=True))
        .order_by(prefix_first, Resource.title)
        .limit(limit)
    )
    suggestions = []
    for row in result.all():
        subjects = _as_str_list(row.subjects)
        suggestions.append(
            Suggestion(id=row.id, title=row.title, price=row.price, subject=subjects[0] if subjects else None)
        )
    return suggestions
