"""
Seed del esquema nacional de vacunación infantil.

Uso:
    python scripts/seed_schedule.py [catalog_version]

Hace upsert de las vacunas por código y de las dosis del esquema por
(vacuna, dosis, versión). Si la dosis ya existe, actualiza edades e intervalo.
"""

import asyncio
import sys
from pathlib import Path

from sqlalchemy import select

# Agregar el directorio raíz al path
sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

from app.config import get_settings  # noqa: E402
from app.database import async_session_factory  # noqa: E402
from app.models.vaccination import ScheduleEntry, Vaccine  # noqa: E402
from app.services.schedule_catalog import (  # noqa: E402
    NATIONAL_SCHEDULE,
    NATIONAL_VACCINES,
    national_schedule_entries,
    split_catalog,
)


async def seed_schedule(catalog_version: str) -> None:
    """Carga el catálogo de vacunas y el esquema nacional en la versión indicada."""
    async with async_session_factory() as db:
        vaccine_ids = {}
        for definition in NATIONAL_VACCINES:
            vaccine = await db.scalar(select(Vaccine).where(Vaccine.code == definition.code))
            if vaccine:
                vaccine.name = definition.name
                vaccine.description = definition.description
            else:
                vaccine = Vaccine(
                    code=definition.code,
                    name=definition.name,
                    description=definition.description,
                    is_active=True,
                )
                db.add(vaccine)
                await db.flush()
            vaccine_ids[definition.code] = vaccine.id

        # Verificar el esquema antes de escribir
        _, diagnostics = split_catalog(national_schedule_entries(vaccine_ids))
        if diagnostics:
            for d in diagnostics:
                print(f"ERROR: {d.kind.value} vacuna={d.vaccine_id} dosis={d.dose_number}: {d.detail}")
            sys.exit(1)

        created = 0
        updated = 0

        for row in NATIONAL_SCHEDULE:
            vaccine_id = vaccine_ids[row.vaccine_code]
            existing = await db.scalar(
                select(ScheduleEntry).where(
                    ScheduleEntry.vaccine_id == vaccine_id,
                    ScheduleEntry.dose_number == row.dose_number,
                    ScheduleEntry.catalog_version == catalog_version,
                )
            )

            if existing:
                existing.target_age_days = row.target_age_days
                existing.min_age_days = row.min_age_days
                existing.max_age_days = row.max_age_days
                existing.min_interval_days = row.min_interval_days
                existing.is_booster = row.is_booster
                existing.age_description = row.age_description
                existing.is_active = True
                updated += 1
            else:
                db.add(ScheduleEntry(
                    vaccine_id=vaccine_id,
                    dose_number=row.dose_number,
                    target_age_days=row.target_age_days,
                    min_age_days=row.min_age_days,
                    max_age_days=row.max_age_days,
                    min_interval_days=row.min_interval_days,
                    is_booster=row.is_booster,
                    age_description=row.age_description,
                    catalog_version=catalog_version,
                    is_active=True,
                ))
                created += 1

        await db.commit()
        print(
            f"Seed completado ({catalog_version}): {len(vaccine_ids)} vacunas, "
            f"{created} dosis creadas, {updated} actualizadas."
        )


def main():
    catalog_version = sys.argv[1] if len(sys.argv) > 1 else get_settings().CATALOG_VERSION
    asyncio.run(seed_schedule(catalog_version))


if __name__ == "__main__":
    main()
