"""Text search for the materials listing: LP21 code -> full-text (tsvector) -> trigram fallback -> empty."""
import logging

from sqlalchemy import cast, func, or_, select
from sqlalchemy.dialects.postgresql import REGCONFIG
from sqlalchemy.exc import DBAPIError
from sqlalchemy.ext.asyncio import AsyncSession

from marketplace.core.config import get_settings
from marketplace.core.metrics import record_search_tier
from marketplace.db.models import Resource
from marketplace.services.filters import EmptyResult, FilterSet, visible_conditions
from marketplace.services.query_params import is_lp21_code

logger = logging.getLogger(__name__)


async def full_text_ranks(db: AsyncSession, q: str) -> dict:
    """ts_rank per matching resource id, best first. Bind params avoid injection."""
    settings = get_settings()
    tsquery = func.plainto_tsquery(cast(settings.search_text_config, REGCONFIG), q)
    rank = func.ts_rank(Resource.search_vector, tsquery).label("rank")
    result = await db.execute(
        select(Resource.id, rank)
        .where(Resource.search_vector.op("@@")(tsquery), *visible_conditions())
        .order_by(rank.desc())
    )
    return {row.id: float(row.rank) for row in result.all()}


async def fuzzy_ranks(db: AsyncSession, q: str) -> dict:
    """pg_trgm similarity on title/description above threshold, capped. Raises DBAPIError without pg_trgm."""
    settings = get_settings()
    title_sim = func.similarity(Resource.title, q)
    description_sim = func.similarity(Resource.description, q)
    sim = func.greatest(title_sim, description_sim).label("sim")
    stmt = (
        select(Resource.id, sim)
        .where(
            *visible_conditions(),
            or_(title_sim > settings.fuzzy_match_threshold, description_sim > settings.fuzzy_match_threshold),
        )
        .order_by(sim.desc())
        .limit(settings.fuzzy_match_limit)
    )
    # Savepoint: a missing similarity() must not poison the request transaction
    async with db.begin_nested():
        result = await db.execute(stmt)
        rows = result.all()
    return {row.id: float(row.sim) for row in rows}


async def apply_search_filter(db: AsyncSession, fs: FilterSet, q: str) -> FilterSet | EmptyResult:
    """Narrow fs by search text q (already sanitized, non-empty)."""
    if is_lp21_code(q):
        # The competency filter does the real LP21 matching; keep a plain contains here
        record_search_tier("code")
        return fs.where(
            or_(
                Resource.title.icontains(q, autoescape=True),
                Resource.description.icontains(q, autoescape=True),
            )
        )

    ranks = await full_text_ranks(db, q)
    tier = "fulltext"
    if not ranks:
        try:
            ranks = await fuzzy_ranks(db, q)
        except DBAPIError:
            logger.warning("Trigram search unavailable (pg_trgm missing?); returning empty result", exc_info=True)
            record_search_tier("none")
            return EmptyResult("search_unavailable")
        tier = "fuzzy"
    if not ranks:
        record_search_tier("none")
        return EmptyResult("search")

    record_search_tier(tier)
    outcome = fs.narrow(ranks.keys(), "search")
    if isinstance(outcome, FilterSet):
        outcome.ranks = ranks
    return outcome
