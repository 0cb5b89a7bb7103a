"""SQLAlchemy models for the materials catalogue (read side)."""
import uuid
from datetime import datetime, timezone
from sqlalchemy import (
    Boolean,
    CheckConstraint,
    Computed,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    Text,
    UniqueConstraint,
)
from sqlalchemy.dialects.postgresql import JSONB, TSVECTOR, UUID
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship

# Generated column; must stay in sync with alembic/versions/002_search_vector.py
SEARCH_VECTOR_SQL = (
    "setweight(to_tsvector('german', coalesce(title, '')), 'A') || "
    "setweight(to_tsvector('german', coalesce(description, '')), 'B')"
)


def gen_uuid() -> uuid.UUID:
    return uuid.uuid4()


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Base(DeclarativeBase):
    pass


class User(Base):
    """Seller profile as seen by the catalogue."""
    __tablename__ = "users"

    id: Mapped[uuid.UUID] = mapped_column(UUID(as_uuid=True), primary_key=True, default=gen_uuid)
    display_name: Mapped[str | None] = mapped_column(Text, nullable=True)
    is_verified_seller: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    cantons: Mapped[list[str]] = mapped_column(JSONB, nullable=False, default=list)  # e.g. ["ZH", "BE"]
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow)

    resources: Mapped[list["Resource"]] = relationship("Resource", back_populates="seller")


class Resource(Base):
    __tablename__ = "resources"

    id: Mapped[uuid.UUID] = mapped_column(UUID(as_uuid=True), primary_key=True, default=gen_uuid)
    seller_id: Mapped[uuid.UUID] = mapped_column(UUID(as_uuid=True), ForeignKey("users.id"), nullable=False)
    title: Mapped[str] = mapped_column(Text, nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False, default="")
    price: Mapped[int] = mapped_column(Integer, nullable=False, default=0)  # Rappen (CHF cents)
    subjects: Mapped[list[str]] = mapped_column(JSONB, nullable=False, default=list)
    cycles: Mapped[list[str]] = mapped_column(JSONB, nullable=False, default=list)
    preview_url: Mapped[str | None] = mapped_column(Text, nullable=True)
    file_url: Mapped[str] = mapped_column(Text, nullable=False)
    dialect: Mapped[str] = mapped_column(Text, nullable=False, default="BOTH")  # SWISS, STANDARD, BOTH
    is_mi_integrated: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    is_published: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    is_public: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow)
    search_vector: Mapped[str | None] = mapped_column(
        TSVECTOR, Computed(SEARCH_VECTOR_SQL, persisted=True), nullable=True, deferred=True
    )

    seller: Mapped["User"] = relationship("User", back_populates="resources")
    reviews: Mapped[list["Review"]] = relationship("Review", back_populates="resource")
    competencies: Mapped[list["ResourceCompetency"]] = relationship("ResourceCompetency", back_populates="resource")
    transversals: Mapped[list["ResourceTransversal"]] = relationship("ResourceTransversal", back_populates="resource")
    bne_themes: Mapped[list["ResourceBne"]] = relationship("ResourceBne", back_populates="resource")
    lehrmittel: Mapped[list["ResourceLehrmittel"]] = relationship("ResourceLehrmittel", back_populates="resource")

    __table_args__ = (
        Index("ix_resources_visible_created", "is_published", "is_public", "created_at"),
        Index("ix_resources_seller", "seller_id"),
        Index("ix_resources_search_vector", "search_vector", postgresql_using="gin"),
    )


class Review(Base):
    __tablename__ = "reviews"

    id: Mapped[uuid.UUID] = mapped_column(UUID(as_uuid=True), primary_key=True, default=gen_uuid)
    resource_id: Mapped[uuid.UUID] = mapped_column(UUID(as_uuid=True), ForeignKey("resources.id"), nullable=False)
    user_id: Mapped[uuid.UUID] = mapped_column(UUID(as_uuid=True), ForeignKey("users.id"), nullable=False)
    rating: Mapped[int] = mapped_column(Integer, nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow)

    resource: Mapped["Resource"] = relationship("Resource", back_populates="reviews")

    __table_args__ = (
        CheckConstraint("rating BETWEEN 1 AND 5", name="ck_reviews_rating_range"),
        UniqueConstraint("resource_id", "user_id", name="uq_reviews_resource_user"),
    )


# ----- Lehrplan 21 taxonomy -----


class CurriculumSubject(Base):
    __tablename__ = "curriculum_subjects"

    id: Mapped[uuid.UUID] = mapped_column(UUID(as_uuid=True), primary_key=True, default=gen_uuid)
    code: Mapped[str] = mapped_column(Text, nullable=False, unique=True)  # MA, D, NMG
    name_de: Mapped[str] = mapped_column(Text, nullable=False)
    color: Mapped[str | None] = mapped_column(Text, nullable=True)

    competencies: Mapped[list["CurriculumCompetency"]] = relationship("CurriculumCompetency", back_populates="subject")


class CurriculumCompetency(Base):
    __tablename__ = "curriculum_competencies"

    id: Mapped[uuid.UUID] = mapped_column(UUID(as_uuid=True), primary_key=True, default=gen_uuid)
    subject_id: Mapped[uuid.UUID] = mapped_column(UUID(as_uuid=True), ForeignKey("curriculum_subjects.id"), nullable=False)
    code: Mapped[str] = mapped_column(Text, nullable=False, unique=True)  # MA.1.A.1
    description_de: Mapped[str] = mapped_column(Text, nullable=False)
    anforderungsstufe: Mapped[str | None] = mapped_column(Text, nullable=True)

    subject: Mapped["CurriculumSubject"] = relationship("CurriculumSubject", back_populates="competencies")


class TransversalCompetency(Base):
    __tablename__ = "transversal_competencies"

    id: Mapped[uuid.UUID] = mapped_column(UUID(as_uuid=True), primary_key=True, default=gen_uuid)
    code: Mapped[str] = mapped_column(Text, nullable=False, unique=True)  # PK, SK, MK
    name_de: Mapped[str] = mapped_column(Text, nullable=False)
    icon: Mapped[str | None] = mapped_column(Text, nullable=True)
    color: Mapped[str | None] = mapped_column(Text, nullable=True)


class BneTheme(Base):
    """Bildung für Nachhaltige Entwicklung theme tag."""
    __tablename__ = "bne_themes"

    id: Mapped[uuid.UUID] = mapped_column(UUID(as_uuid=True), primary_key=True, default=gen_uuid)
    code: Mapped[str] = mapped_column(Text, nullable=False, unique=True)
    name_de: Mapped[str] = mapped_column(Text, nullable=False)
    icon: Mapped[str | None] = mapped_column(Text, nullable=True)
    color: Mapped[str | None] = mapped_column(Text, nullable=True)


class Lehrmittel(Base):
    """Published teaching material (textbook series) a resource can accompany."""
    __tablename__ = "lehrmittel"

    id: Mapped[uuid.UUID] = mapped_column(UUID(as_uuid=True), primary_key=True, default=gen_uuid)
    name: Mapped[str] = mapped_column(Text, nullable=False)
    publisher: Mapped[str | None] = mapped_column(Text, nullable=True)


# ----- Resource <-> taxonomy links -----


class ResourceCompetency(Base):
    __tablename__ = "resource_competencies"

    resource_id: Mapped[uuid.UUID] = mapped_column(UUID(as_uuid=True), ForeignKey("resources.id"), primary_key=True)
    competency_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("curriculum_competencies.id"), primary_key=True
    )

    resource: Mapped["Resource"] = relationship("Resource", back_populates="competencies")
    competency: Mapped["CurriculumCompetency"] = relationship("CurriculumCompetency")


class ResourceTransversal(Base):
    __tablename__ = "resource_transversals"

    resource_id: Mapped[uuid.UUID] = mapped_column(UUID(as_uuid=True), ForeignKey("resources.id"), primary_key=True)
    transversal_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("transversal_competencies.id"), primary_key=True
    )

    resource: Mapped["Resource"] = relationship("Resource", back_populates="transversals")
    transversal: Mapped["TransversalCompetency"] = relationship("TransversalCompetency")


class ResourceBne(Base):
    __tablename__ = "resource_bne_themes"

    resource_id: Mapped[uuid.UUID] = mapped_column(UUID(as_uuid=True), ForeignKey("resources.id"), primary_key=True)
    bne_id: Mapped[uuid.UUID] = mapped_column(UUID(as_uuid=True), ForeignKey("bne_themes.id"), primary_key=True)

    resource: Mapped["Resource"] = relationship("Resource", back_populates="bne_themes")
    bne: Mapped["BneTheme"] = relationship("BneTheme")


class ResourceLehrmittel(Base):
    __tablename__ = "resource_lehrmittel"

    resource_id: Mapped[uuid.UUID] = mapped_column(UUID(as_uuid=True), ForeignKey("resources.id"), primary_key=True)
    lehrmittel_id: Mapped[uuid.UUID] = mapped_column(UUID(as_uuid=True), ForeignKey("lehrmittel.id"), primary_key=True)

    resource: Mapped["Resource"] = relationship("Resource", back_populates="lehrmittel")
    lehrmittel: Mapped["Lehrmittel"] = relationship("Lehrmittel")
