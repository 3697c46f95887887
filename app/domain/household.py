"""
app/domain/household.py

Per-household, per-month input bundles handed to the registry sync.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime


@dataclass(frozen=True)
class SiteInfo:
    """
    Household site identity. health_center and house_number are the registry lookup keys.
    """

    site_id: int
    house_number: str | None
    health_center: str | None
    district: str | None = None


@dataclass(frozen=True)
class CollectionSessionData:
    """
    One field collection session contributing to a household-month.
    """

    session_id: int
    collection_date: datetime | date | str | None
    collector_name: str | None = None
    collector_title: str | None = None
    collection_method: str | None = None


@dataclass(frozen=True)
class SurveillanceFormSnapshot:
    """
    Household surveillance answers captured with a session.
    """

    num_people_slept_in_house: int | None = None
    was_irs_conducted: bool | None = None
    months_since_irs: int | None = None
    num_llins_available: int | None = None
    num_people_slept_under_llin: int | None = None
    llin_type: str | None = None
    llin_brand: str | None = None


@dataclass(frozen=True)
class SpecimenObservation:
    """
    Classified specimen attributes used for tallying.
    """

    species: str | None
    sex: str | None = None
    abdomen_status: str | None = None


@dataclass
class SpecimenCounts:
    """
    Specimen tally by taxon group, sex and abdomen status.

    The *_present flags are set by any specimen of the group, including
    ones that do not fall into a sub-category.
    """

    an_gambiae_fed: int = 0
    an_gambiae_unfed: int = 0
    an_gambiae_gravid: int = 0
    an_gambiae_half_gravid: int = 0
    an_gambiae_present: bool = False

    an_funestus_fed: int = 0
    an_funestus_unfed: int = 0
    an_funestus_gravid: int = 0
    an_funestus_half_gravid: int = 0
    an_funestus_present: bool = False

    an_other_fed: int = 0
    an_other_unfed: int = 0
    an_other_gravid: int = 0
    an_other_half_gravid: int = 0
    an_other_present: bool = False

    culex_female: int = 0
    culex_male: int = 0
    culex_present: bool = False

    aedes_female: int = 0
    aedes_male: int = 0
    aedes_present: bool = False

    other_culicines_female: int = 0
    other_culicines_male: int = 0
    other_culicines_present: bool = False

    male_anopheles: int = 0


@dataclass(frozen=True)
class IrsOverride:
    """
    Caller-supplied IRS answers for one site. None means "not supplied".
    """

    site_id: int
    was_irs_sprayed: bool | None = None
    insecticide_sprayed: str | None = None
    date_last_sprayed: str | None = None


@dataclass(frozen=True)
class HouseholdBundle:
    """
    Aggregated view of one household for one month.
    """

    site: SiteInfo
    sessions: tuple[CollectionSessionData, ...] = ()
    surveillance_form: SurveillanceFormSnapshot | None = None
    specimen_counts: SpecimenCounts = field(default_factory=SpecimenCounts)
