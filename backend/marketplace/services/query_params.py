"""Normalize raw /api/materials query parameters. Lenient: bad values fall back to defaults, never 400."""
import re
from collections.abc import Mapping
from dataclasses import dataclass

from marketplace.services.filters import (
    FORMAT_EXTENSIONS,
    OTHER_FORMAT,
    BneFilter,
    CantonFilter,
    CompetencyFilter,
    CycleFilter,
    DialectFilter,
    FormatFilter,
    LehrmittelFilter,
    MaterialFilter,
    MiIntegratedFilter,
    PriceRange,
    SubjectFilter,
    TransversalFilter,
)

DEFAULT_PAGE_SIZE = 20
MAX_PAGE_SIZE = 100
SORT_OPTIONS = ("newest", "price-low", "price-high", "relevance")
DEFAULT_SORT = "newest"
DIALECTS = ("SWISS", "STANDARD")
FORMAT_IDS = frozenset(FORMAT_EXTENSIONS) | {OTHER_FORMAT}

# Keep word chars, whitespace, Latin-1 / Latin Extended-A letters, dot and hyphen
_UNSAFE_SEARCH_CHARS = re.compile(r"[^\w\s\u00C0-\u017F.-]")
# LP21 codes look like MA.1.A.1, D.2.B, NMG.3.4
_LP21_CODE = re.compile(r"^[A-Z]{1,3}\.\d", re.IGNORECASE)
_LEADING_INT = re.compile(r"^\s*([+-]?\d+)")


def safe_parse_int(value: str | None, default: int) -> int:
    """parseInt-style: leading integer of the string, else default ('12abc' -> 12)."""
    if not value:
        return default
    m = _LEADING_INT.match(value)
    return int(m.group(1)) if m else default


def _optional_int(value: str | None) -> int | None:
    if value is None:
        return None
    m = _LEADING_INT.match(value)
    return int(m.group(1)) if m else None


def sanitize_search_query(query: str | None) -> str | None:
    """Strip characters that break tsquery; None if nothing useful (< 2 chars) remains."""
    if not query or not isinstance(query, str):
        return None
    sanitized = re.sub(r"\s+", " ", query.strip())
    sanitized = _UNSAFE_SEARCH_CHARS.sub("", sanitized)
    if len(sanitized) < 2:
        return None
    return sanitized


def is_lp21_code(query: str | None) -> bool:
    if not query:
        return False
    return bool(_LP21_CODE.match(query.strip()))


def _text(params: Mapping[str, str], name: str) -> str | None:
    value = params.get(name)
    if value is None or not value.strip():
        return None
    return value.strip()


def _csv(value: str | None) -> list[str]:
    if not value:
        return []
    return [part.strip() for part in value.split(",") if part.strip()]


@dataclass(frozen=True)
class MaterialQuery:
    page: int = 1
    limit: int = DEFAULT_PAGE_SIZE
    sort: str = DEFAULT_SORT
    search: str | None = None
    filters: tuple[MaterialFilter, ...] = ()

    @property
    def offset(self) -> int:
        return (self.page - 1) * self.limit


def parse_material_query(params: Mapping[str, str]) -> MaterialQuery:
    page = max(1, safe_parse_int(params.get("page"), 1))
    limit = min(MAX_PAGE_SIZE, max(1, safe_parse_int(params.get("limit"), DEFAULT_PAGE_SIZE)))
    sort = params.get("sort") or DEFAULT_SORT
    if sort not in SORT_OPTIONS:
        sort = DEFAULT_SORT
    search = sanitize_search_query(params.get("search"))

    filters: list[MaterialFilter] = []
    for name, filter_cls in (
        ("subject", SubjectFilter),
        ("cycle", CycleFilter),
        ("competency", CompetencyFilter),
        ("transversal", TransversalFilter),
        ("bne", BneFilter),
    ):
        value = _text(params, name)
        if value:
            filters.append(filter_cls(value))
    if params.get("mi_integrated") == "true":
        filters.append(MiIntegratedFilter())
    lehrmittel = _text(params, "lehrmittel")
    if lehrmittel:
        filters.append(LehrmittelFilter(lehrmittel))
    dialect = params.get("dialect")
    if dialect in DIALECTS:
        filters.append(DialectFilter(dialect))
    max_price = _optional_int(params.get("maxPrice"))
    min_price = _optional_int(params.get("minPrice"))
    if max_price is not None or min_price is not None:
        filters.append(PriceRange(min_chf=min_price, max_chf=max_price))
    formats = tuple(dict.fromkeys(f.lower() for f in _csv(params.get("formats")) if f.lower() in FORMAT_IDS))
    if formats:
        filters.append(FormatFilter(formats))
    cantons = tuple(dict.fromkeys(_csv(params.get("cantons"))))
    if cantons:
        filters.append(CantonFilter(cantons))

    return MaterialQuery(page=page, limit=limit, sort=sort, search=search, filters=tuple(filters))
