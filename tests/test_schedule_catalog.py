"""
Tests del catálogo del esquema nacional.
"""

from uuid import uuid4

from app.schemas.eligibility import DiagnosticKind
from app.services.schedule_catalog import (
    NATIONAL_SCHEDULE,
    NATIONAL_VACCINES,
    group_by_vaccine,
    national_schedule_entries,
    split_catalog,
    validate_entry,
)


def _national_catalog():
    return national_schedule_entries({v.code: uuid4() for v in NATIONAL_VACCINES})


def test_national_schedule_is_consistent():
    valid, diagnostics = split_catalog(_national_catalog())

    assert diagnostics == []
    assert len(valid) == len(NATIONAL_SCHEDULE)


def test_national_series_have_consecutive_doses():
    for series in group_by_vaccine(_national_catalog()).values():
        assert [e.dose_number for e in series] == list(range(1, len(series) + 1))


def test_every_schedule_row_has_a_vaccine():
    codes = {v.code for v in NATIONAL_VACCINES}
    assert {row.vaccine_code for row in NATIONAL_SCHEDULE} <= codes


def test_validate_entry(make_entry):
    assert validate_entry(make_entry("BCG", 1, 0, min_age_days=0, max_age_days=364)) is None
    assert "mínima" in validate_entry(make_entry("SRP", 1, 365, min_age_days=400))
    assert "máxima" in validate_entry(make_entry("SRP", 1, 365, max_age_days=300))


def test_split_catalog_reports_duplicates(make_entry):
    first = make_entry("PENTA", 1, 60)
    duplicate = make_entry("PENTA", 1, 90)

    valid, diagnostics = split_catalog([first, duplicate])

    assert valid == [first]
    assert diagnostics[0].kind == DiagnosticKind.DUPLICATE_CATALOG_ENTRY


def test_group_by_vaccine_sorts_doses(make_entry, vaccine_ids):
    grouped = group_by_vaccine([
        make_entry("PENTA", 3, 180),
        make_entry("PENTA", 1, 60),
        make_entry("BCG", 1, 0),
        make_entry("PENTA", 2, 120),
    ])

    assert [e.dose_number for e in grouped[vaccine_ids["PENTA"]]] == [1, 2, 3]
    assert len(grouped[vaccine_ids["BCG"]]) == 1
