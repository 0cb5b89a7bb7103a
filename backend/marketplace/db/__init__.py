from .models import (
    User,
    Resource,
    Review,
    CurriculumSubject,
    CurriculumCompetency,
    TransversalCompetency,
    BneTheme,
    Lehrmittel,
    ResourceCompetency,
    ResourceTransversal,
    ResourceBne,
    ResourceLehrmittel,
)
from .session import get_db, async_session_factory, engine, init_db

__all__ = [
    "User",
    "Resource",
    "Review",
    "CurriculumSubject",
    "CurriculumCompetency",
    "TransversalCompetency",
    "BneTheme",
    "Lehrmittel",
    "ResourceCompetency",
    "ResourceTransversal",
    "ResourceBne",
    "ResourceLehrmittel",
    "get_db",
    "async_session_factory",
    "engine",
    "init_db",
]
