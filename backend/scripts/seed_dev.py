"""
Seed script for local dev: LP21 subjects and competencies, transversal and BNE
themes, one Lehrmittel, three sellers (cantons) and a dozen resources with
mixed prices, file formats, dialects and visibility, plus a few reviews.
Run from backend/: python scripts/seed_dev.py
"""
import asyncio
import os
import uuid
from datetime import datetime, timedelta, timezone

from sqlalchemy import select

# Add parent to path so marketplace is importable
import sys
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from marketplace.db.models import (
    BneTheme,
    CurriculumCompetency,
    CurriculumSubject,
    Lehrmittel,
    Resource,
    ResourceBne,
    ResourceCompetency,
    ResourceLehrmittel,
    ResourceTransversal,
    Review,
    TransversalCompetency,
    User,
)
from marketplace.db.session import async_session_factory, init_db

SUBJECTS = [
    ("MA", "Mathematik", "#3B82F6"),
    ("D", "Deutsch", "#EF4444"),
    ("NMG", "Natur, Mensch, Gesellschaft", "#10B981"),
]
COMPETENCIES = [
    ("MA", "MA.1.A.1", "Zahlen lesen und schreiben", "Grundanspruch"),
    ("MA", "MA.1.A.2", "Zahlen vergleichen und ordnen", None),
    ("MA", "MA.2.B.1", "Längen und Flächen messen", None),
    ("D", "D.2.B.1", "Texte lesen und verstehen", "Grundanspruch"),
    ("D", "D.4.A.1", "Schreibprozess planen", None),
    ("NMG", "NMG.2.1", "Tiere und Pflanzen in ihren Lebensräumen", None),
]
TRANSVERSALS = [
    ("PK", "Personale Kompetenzen", "user", "#8B5CF6"),
    ("SK", "Soziale Kompetenzen", "users", "#F59E0B"),
    ("MK", "Methodische Kompetenzen", "wrench", "#06B6D4"),
]
TRANSVERSAL_CODES = ("PK", "SK", "MK")
BNE_THEMES = [
    ("BNE_NATUR", "Natürliche Umwelt und Ressourcen", "leaf", "#22C55E"),
    ("BNE_GESUNDHEIT", "Gesundheit", "heart", "#EC4899"),
]

# title, description, price (Rappen), subjects, cycles, file ext, dialect, mi, published, public, competencies
RESOURCES = [
    ("Bruchrechnen Übungsblätter", "Übungen zu Brüchen mit Lösungen", 0, ["MA"], ["2"], "pdf", "BOTH", False, True, True, ["MA.1.A.2"]),
    ("Zahlenraum bis 100", "Einführung in den Zahlenraum bis hundert", 0, ["MA"], ["1"], "docx", "SWISS", False, True, True, ["MA.1.A.1"]),
    ("Geometrie Flächen messen", "Werkstatt zu Längen und Flächen", 1299, ["MA"], ["2"], "pptx", "STANDARD", True, True, True, ["MA.2.B.1"]),
    ("Leseverständnis Tiergeschichten", "Kurze Texte mit Fragen zum Leseverständnis", 450, ["D"], ["1", "2"], "pdf", "SWISS", False, True, True, ["D.2.B.1"]),
    ("Aufsatz planen Schritt für Schritt", "Schreibwerkstatt für die Mittelstufe", 800, ["D"], ["2"], "docx", "STANDARD", True, True, True, ["D.4.A.1"]),
    ("Lebensraum Wald", "Tiere und Pflanzen im Wald entdecken", 1500, ["NMG"], ["2"], "xlsx", "BOTH", False, True, True, ["NMG.2.1"]),
    ("Wasserkreislauf Poster", "Poster und Arbeitsblatt zum Wasserkreislauf", 300, ["NMG"], ["1"], "png", "BOTH", False, True, True, []),
    ("Einmaleins Training", "Kopfrechnen mit dem kleinen Einmaleins", 500, ["MA"], ["1"], "one", "SWISS", True, True, True, ["MA.1.A.1"]),
    ("Entwurf Dezimalzahlen", "Noch nicht veröffentlicht", 0, ["MA"], ["2"], "pdf", "BOTH", False, False, False, []),
    ("Prüfung ausstehend: Verben", "Veröffentlicht, aber noch nicht freigegeben", 200, ["D"], ["2"], "pdf", "BOTH", False, True, False, []),
    ("Allgemeine Klassenregeln", "Vorlage für Klassenregeln", 0, [], [], "pdf", "BOTH", False, True, True, []),
    ("Gesunde Znüni-Box", "Ernährung im Schulalltag", 650, ["NMG"], ["1", "2"], "pdf", "SWISS", False, True, True, []),
]


async def seed():
    await init_db()

    async with async_session_factory() as db:
        # Check if already seeded
        r = await db.execute(select(CurriculumSubject).limit(1))
        if r.scalar_one_or_none():
            print("Already seeded. Skip.")
            return

        subjects = {code: CurriculumSubject(code=code, name_de=name, color=color) for code, name, color in SUBJECTS}
        db.add_all(subjects.values())
        await db.flush()

        competencies = {
            code: CurriculumCompetency(
                subject_id=subjects[subject].id, code=code, description_de=desc, anforderungsstufe=stufe
            )
            for subject, code, desc, stufe in COMPETENCIES
        }
        transversals = {
            code: TransversalCompetency(code=code, name_de=name, icon=icon, color=color)
            for code, name, icon, color in TRANSVERSALS
        }
        bne_themes = {
            code: BneTheme(code=code, name_de=name, icon=icon, color=color)
            for code, name, icon, color in BNE_THEMES
        }
        lehrmittel = Lehrmittel(name="Schweizer Zahlenbuch", publisher="Klett und Balmer")
        db.add_all([*competencies.values(), *transversals.values(), *bne_themes.values(), lehrmittel])

        sellers = [
            User(display_name="Frau Keller", is_verified_seller=True, cantons=["ZH", "AG"]),
            User(display_name="Herr Berger", is_verified_seller=False, cantons=["BE"]),
            User(display_name="Lernwerkstatt Luzern", is_verified_seller=True, cantons=["LU", "ZG"]),
        ]
        reviewers = [User(display_name=f"Lehrperson {i}") for i in range(1, 4)]
        db.add_all([*sellers, *reviewers])
        await db.flush()

        now = datetime.now(timezone.utc)
        resources = []
        for i, (title, desc, price, subj, cycles, ext, dialect, mi, published, public, codes) in enumerate(RESOURCES):
            resource = Resource(
                id=uuid.uuid4(),
                seller_id=sellers[i % len(sellers)].id,
                title=title,
                description=desc,
                price=price,
                subjects=subj,
                cycles=cycles,
                preview_url=f"/previews/{i + 1}.png",
                file_url=f"/files/material_{i + 1}.{ext}",
                dialect=dialect,
                is_mi_integrated=mi,
                is_published=published,
                is_public=public,
                created_at=now - timedelta(days=i),
            )
            resources.append(resource)
            db.add(resource)
        await db.flush()

        for i, (resource, row) in enumerate(zip(resources, RESOURCES)):
            for code in row[-1]:
                db.add(ResourceCompetency(resource_id=resource.id, competency_id=competencies[code].id))
            db.add(ResourceTransversal(resource_id=resource.id, transversal_id=transversals[TRANSVERSAL_CODES[i % len(TRANSVERSAL_CODES)]].id))
            if i % 4 == 0:
                db.add(ResourceBne(resource_id=resource.id, bne_id=bne_themes["BNE_NATUR"].id))
        for resource in resources[:2] + resources[7:8]:
            db.add(ResourceLehrmittel(resource_id=resource.id, lehrmittel_id=lehrmittel.id))

        for resource, ratings in zip(resources, ([5, 4], [3], [4, 4, 5], [2, 5])):
            for reviewer, rating in zip(reviewers, ratings):
                db.add(Review(resource_id=resource.id, user_id=reviewer.id, rating=rating))
        await db.commit()
    print(f"Seed done. {len(RESOURCES)} resources, {len(sellers)} sellers. Lehrmittel id: {lehrmittel.id}")


if __name__ == "__main__":
    asyncio.run(seed())
