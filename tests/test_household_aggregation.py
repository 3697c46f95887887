"""
tests/test_household_aggregation.py

Specimen tallying and session selection for household bundles.
"""

from __future__ import annotations

from datetime import date, datetime, timezone

from app.domain.household import (
    CollectionSessionData,
    HouseholdBundle,
    SiteInfo,
    SpecimenObservation,
)
from app.services.household_aggregation import (
    abdomen_bucket,
    event_date_for,
    latest_session,
    month_window,
    species_group,
    tally_specimens,
)


def _site() -> SiteInfo:
    return SiteInfo(site_id=1, house_number="H-01", health_center="Kisumu HC")


class TestTallySpecimens:
    def test_unfed_is_not_counted_as_fed(self) -> None:
        counts = tally_specimens(
            [
                SpecimenObservation(species="Anopheles gambiae", sex="female", abdomen_status="Unfed"),
                SpecimenObservation(species="Anopheles gambiae", sex="female", abdomen_status="Fed"),
                SpecimenObservation(species="Anopheles gambiae", sex="female", abdomen_status="Half Gravid"),
                SpecimenObservation(species="Anopheles gambiae", sex="female", abdomen_status="Gravid"),
            ]
        )

        assert counts.an_gambiae_unfed == 1
        assert counts.an_gambiae_fed == 1
        assert counts.an_gambiae_half_gravid == 1
        assert counts.an_gambiae_gravid == 1
        assert counts.an_gambiae_present is True

    def test_anopheles_males_go_to_male_anopheles(self) -> None:
        counts = tally_specimens(
            [
                SpecimenObservation(species="An. funestus", sex="Male"),
                SpecimenObservation(species="Anopheles coustani", sex="male", abdomen_status="fed"),
            ]
        )

        assert counts.male_anopheles == 2
        assert counts.an_funestus_fed == 0
        assert counts.an_other_fed == 0
        assert counts.an_funestus_present is True
        assert counts.an_other_present is True

    def test_culicines_split_by_sex(self) -> None:
        counts = tally_specimens(
            [
                SpecimenObservation(species="Culex quinquefasciatus", sex="female"),
                SpecimenObservation(species="Aedes aegypti", sex="male"),
                SpecimenObservation(species="Mansonia", sex="F"),
                SpecimenObservation(species="Culex", sex=None),
            ]
        )

        assert counts.culex_female == 1
        assert counts.culex_present is True
        assert counts.aedes_male == 1
        assert counts.other_culicines_female == 1

    def test_observations_without_species_are_ignored(self) -> None:
        counts = tally_specimens([SpecimenObservation(species=None, sex="female", abdomen_status="fed")])

        assert counts.an_gambiae_present is False
        assert counts.an_other_fed == 0


def test_species_and_abdomen_classification() -> None:
    assert species_group("An. GAMBIAE s.l.") == "an_gambiae"
    assert species_group("unknown insect") is None
    assert abdomen_bucket("Blood fed") == "fed"
    assert abdomen_bucket("empty") == "unfed"
    assert abdomen_bucket(None) is None


def test_latest_session_prefers_most_recent_dated_session() -> None:
    sessions = (
        CollectionSessionData(session_id=1, collection_date="2026-03-02"),
        CollectionSessionData(session_id=2, collection_date=None),
        CollectionSessionData(session_id=3, collection_date=datetime(2026, 3, 20, 6, 0, tzinfo=timezone.utc)),
        CollectionSessionData(session_id=4, collection_date=date(2026, 3, 9)),
    )

    assert latest_session(sessions).session_id == 3
    assert latest_session(()) is None


def test_event_date_uses_latest_session_or_month_start() -> None:
    dated = HouseholdBundle(
        site=_site(),
        sessions=(
            CollectionSessionData(session_id=1, collection_date="2026-03-02T10:00:00Z"),
            CollectionSessionData(session_id=2, collection_date="2026-03-17T10:00:00Z"),
        ),
    )
    undated = HouseholdBundle(site=_site(), sessions=(CollectionSessionData(session_id=3, collection_date=None),))

    assert event_date_for(dated, 2026, 3) == "2026-03-17"
    assert event_date_for(undated, 2026, 3) == "2026-03-01"


def test_month_window_covers_whole_month() -> None:
    assert month_window(2024, 2) == ("2024-02-01", "2024-02-29")
    assert month_window(2026, 12) == ("2026-12-01", "2026-12-31")
