"""
app/services/household_aggregation.py

Pure helpers used when assembling household bundles for a sync month.

Classification rules
--------------------
Species names are matched case-insensitively by substring, in this order:

    gambiae              -> An. gambiae s.l.
    funestus             -> An. funestus s.l.
    culex                -> Culex
    aedes                -> Aedes
    mansonia / culicine  -> Other culicines
    anopheles            -> Other Anopheles

Anopheles males count toward ``male_anopheles`` only. Anopheles females are
bucketed by abdomen status; "unfed" is tested before "fed" so it is never
counted as fed. Culicines are split by sex.
"""

from __future__ import annotations

import calendar
from datetime import date, datetime, timezone
from typing import Iterable, Sequence

from app.domain.household import (
    CollectionSessionData,
    HouseholdBundle,
    SpecimenCounts,
    SpecimenObservation,
)

_ANOPHELES_GROUPS = ("an_gambiae", "an_funestus", "an_other")

_SPECIES_GROUPS: tuple[tuple[tuple[str, ...], str], ...] = (
    (("gambiae",), "an_gambiae"),
    (("funestus",), "an_funestus"),
    (("culex",), "culex"),
    (("aedes",), "aedes"),
    (("mansonia", "culicine"), "other_culicines"),
    (("anopheles",), "an_other"),
)


def species_group(species: str | None) -> str | None:
    """
    Return the SpecimenCounts field prefix for a species name, or None.
    """

    if not species:
        return None
    normalized = species.strip().lower()
    for needles, group in _SPECIES_GROUPS:
        if any(needle in normalized for needle in needles):
            return group
    return None


def abdomen_bucket(abdomen_status: str | None) -> str | None:
    if not abdomen_status:
        return None
    status = abdomen_status.strip().lower()
    if "half" in status and "gravid" in status:
        return "half_gravid"
    if "unfed" in status or "empty" in status:
        return "unfed"
    if "fed" in status or "blood" in status:
        return "fed"
    if "gravid" in status:
        return "gravid"
    return None


def _is_male(sex: str | None) -> bool:
    return bool(sex) and sex.strip().lower() in {"male", "m"}


def _is_female(sex: str | None) -> bool:
    return bool(sex) and sex.strip().lower() in {"female", "f"}


def tally_specimens(observations: Iterable[SpecimenObservation]) -> SpecimenCounts:
    """
    Count specimen observations into taxon / sex / abdomen-status buckets.
    """

    counts = SpecimenCounts()
    for observation in observations:
        group = species_group(observation.species)
        if group is None:
            continue

        setattr(counts, f"{group}_present", True)

        if group in _ANOPHELES_GROUPS:
            if _is_male(observation.sex):
                counts.male_anopheles += 1
                continue
            bucket = abdomen_bucket(observation.abdomen_status)
            if bucket is not None:
                field_name = f"{group}_{bucket}"
                setattr(counts, field_name, getattr(counts, field_name) + 1)
            continue

        if _is_female(observation.sex):
            counts_field = f"{group}_female"
        elif _is_male(observation.sex):
            counts_field = f"{group}_male"
        else:
            continue
        setattr(counts, counts_field, getattr(counts, counts_field) + 1)

    return counts


def _session_sort_key(session: CollectionSessionData) -> datetime | None:
    value = session.collection_date
    if value is None:
        return None
    if isinstance(value, datetime):
        return value if value.tzinfo is not None else value.replace(tzinfo=timezone.utc)
    if isinstance(value, date):
        return datetime(value.year, value.month, value.day, tzinfo=timezone.utc)

    text = value.strip()
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    try:
        parsed = datetime.fromisoformat(text)
    except ValueError:
        return None
    return parsed if parsed.tzinfo is not None else parsed.replace(tzinfo=timezone.utc)


def latest_session(sessions: Sequence[CollectionSessionData]) -> CollectionSessionData | None:
    """
    Most recent session by collection date. Undated sessions sort last.
    """

    if not sessions:
        return None
    latest: CollectionSessionData | None = None
    latest_key: datetime | None = None
    for session in sessions:
        key = _session_sort_key(session)
        if key is None:
            continue
        if latest_key is None or key > latest_key:
            latest, latest_key = session, key
    return latest if latest is not None else sessions[0]


def month_window(year: int, month: int) -> tuple[str, str]:
    """
    First and last day of a month as YYYY-MM-DD.
    """

    last_day = calendar.monthrange(year, month)[1]
    return date(year, month, 1).isoformat(), date(year, month, last_day).isoformat()


def event_date_for(bundle: HouseholdBundle, year: int, month: int) -> str:
    """
    Registry event date for a household-month: the latest session's date,
    else the first day of the month.
    """

    session = latest_session(bundle.sessions)
    key = _session_sort_key(session) if session is not None else None
    if key is None:
        return date(year, month, 1).isoformat()
    return key.astimezone(timezone.utc).date().isoformat()
