"""Public materials catalogue: filtered/ranked listing and title typeahead. Published + public resources only."""
import logging

from fastapi import APIRouter, Depends, Query, Request, status
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from marketplace.api.schemas import AutocompleteResponse, ErrorBody, MaterialList
from marketplace.core.config import get_settings
from marketplace.core.deps import materials_rate_limit
from marketplace.db import get_db
from marketplace.services.materials import list_materials, suggest_titles
from marketplace.services.query_params import parse_material_query, sanitize_search_query

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/materials",
    tags=["materials"],
    dependencies=[Depends(materials_rate_limit)],
    responses={429: {"model": ErrorBody}},
)


def server_error() -> JSONResponse:
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"error": "Internal server error", "code": "INTERNAL_ERROR"},
    )


@router.get("", response_model=MaterialList, responses={500: {"model": ErrorBody}})
async def list_published_materials(
    request: Request,
    db: AsyncSession = Depends(get_db),
):
    """Query params: page, limit, subject, cycle, search, sort, competency, transversal, bne,
    mi_integrated, lehrmittel, dialect, maxPrice/minPrice (CHF), formats (csv), cantons (csv).
    Invalid values fall back to defaults; a filter that matches nothing yields an empty page."""
    try:
        query = parse_material_query(request.query_params)
        return await list_materials(db, query)
    except Exception:
        logger.exception("Error fetching materials")
        return server_error()


@router.get("/autocomplete", response_model=AutocompleteResponse)
async def autocomplete_titles(
    q: str = Query(""),
    db: AsyncSession = Depends(get_db),
):
    """Up to autocomplete_limit titles for typeahead; min 2 chars."""
    q = q.strip()
    if len(q) < 2:
        return AutocompleteResponse(suggestions=[])
    sanitized = sanitize_search_query(q)
    if not sanitized:
        return AutocompleteResponse(suggestions=[])
    try:
        suggestions = await suggest_titles(db, sanitized, get_settings().autocomplete_limit)
    except SQLAlchemyError:
        logger.exception("Autocomplete query failed")
        return AutocompleteResponse(suggestions=[])
    return AutocompleteResponse(suggestions=suggestions)
