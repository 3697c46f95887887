"""
app/mappers/registry_event_mapper.py

Translate a household bundle into registry event data values.

The registry identifies fields by generic data element ids; this module
works with display names and resolves them through a caller-supplied
display name -> id map. A name missing from the map is skipped silently
because deployments configure different element sets.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from datetime import date, datetime, timezone
from typing import Mapping, Sequence

from app.domain.household import (
    CollectionSessionData,
    IrsOverride,
    SpecimenCounts,
    SurveillanceFormSnapshot,
)
from app.domain.registry_sync import DataValue, DataValueType, EnrichedDataValue


class ElementName:
    """
    Registry data element display names.
    """

    # Session
    COLLECTION_DATE = "MAL 001-ER09. Date of Collection"
    COLLECTOR_TITLE = "MAL 001-ER12.Title of officer"
    COLLECTOR_NAME = "MAL 001-ER10.Name of officer"
    COLLECTION_METHOD = "MAL 001-ER29 - Mosquito collection method (PSC/LTC*)"

    # Site-level IRS
    SITE_SPRAYED_IN_PAST_12_MONTHS = "MAL 001-ER06. Has site sprayed in the past 12 months?"
    INSECTICIDE_SPRAYED = "MAL 001-ER07. Insecticide sprayed"
    DATE_LAST_SPRAYED = "MAL 001-ER08. Date Last Sprayed"

    # House-level survey
    NUM_PEOPLE_SLEPT = "MAL 001-ER13. No. of people who slept in the house"
    HOUSE_SPRAYED = "MAL 001-ER14. Has the house beeen sprayed before?"
    MONTHS_SINCE_IRS = "MAL 001-ER15. How many months ago?"
    NUM_LLINS = "MAL 001-ER16. Number of LLINs available"
    NUM_PEOPLE_UNDER_LLIN = "MAL 001-ER30. No. of people who slept under LLIN"

    # LLIN types
    LLIN_TYPE_ANY = "MAL 001-ER17. Type of LLIN"
    LLIN_TYPE_PYRETHROID = "MAL 001-ER17a. A - Pyrethroid-only"
    LLIN_TYPE_PBO = "MAL 001-ER17b.B - Pyrethroid + PBO"
    LLIN_TYPE_CHLORFENAPYR = "MAL 001-ER17c.C - Pyrethroid + chlorfenapyr"
    LLIN_TYPE_PYRIPROXYFEN = "MAL 001-ER17d.D - Pyrethroid + pyriproxyfen"
    LLIN_TYPE_OTHER = "MAL 001-ER17e.E – Other"

    # LLIN brands
    LLIN_BRAND_ANY = "MAL 001-ER28. Brand of LLIN"
    LLIN_BRAND_OLYSET = "MAL 001-ER28a.1 - OLYSET Net"
    LLIN_BRAND_OLYSET_PLUS = "MAL 001-ER28b.2 - OLYSET PLUS"
    LLIN_BRAND_INTERCEPTOR = "MAL 001-ER28c.3 - Interceptor"
    LLIN_BRAND_INTERCEPTOR_G2 = "MAL 001-ER28d.4 - Interceptor G2"
    LLIN_BRAND_ROYAL_SENTRY = "MAL 001-ER28e.5 - Royal Sentry"
    LLIN_BRAND_ROYAL_SENTRY_2 = "MAL 001-ER28f.6 - Royal Sentry 2.0"
    LLIN_BRAND_ROYAL_GUARD = "MAL 001-ER28g.7 - Royal Guard"
    LLIN_BRAND_PERMANET_2 = "MAL 001-ER28h.8 - PermaNet 2.0"
    LLIN_BRAND_PERMANET_3 = "MAL 001-ER28i.9 - PermaNet 3.0"
    LLIN_BRAND_DURANET = "MAL 001-ER28j.10 - Duranet LLIN"
    LLIN_BRAND_MIRANET = "MAL 001-ER28k.11 - MiraNet"
    LLIN_BRAND_MAGNET = "MAL 001-ER28l.12 - MAGNet"
    LLIN_BRAND_VEERALIN = "MAL 001-ER28m.13 - VEERALIN"
    LLIN_BRAND_YAHE = "MAL 001-ER28n.14 - Yahe LN"
    LLIN_BRAND_SAFENET = "MAL 001-ER28o.15 - SafeNet"
    LLIN_BRAND_YORKOOL = "MAL 001-ER28p.16 - Yorkool LN"
    LLIN_BRAND_PANDA_NET = "MAL 001-ER28q.17 - Panda Net 2.0"
    LLIN_BRAND_TSARA_BOOST = "MAL 001-ER28r.18 - Tsara Boost"
    LLIN_BRAND_TSARA_SOFT = "MAL 001-ER28s.19 - Tsara Soft"
    LLIN_BRAND_TSARA_PLUS = "MAL 001-ER28t.20 - Tsara Plus"
    LLIN_BRAND_OTHER = "MAL 001-ER28u.21 - Other"

    # An. gambiae s.l.
    AN_GAMBIAE_ANY = "MAL 001-ER18. An. gambiae s.l."
    AN_GAMBIAE_FED = "MAL 001-ER18a. An. gambiae s.l. - Fed"
    AN_GAMBIAE_UNFED = "MAL 001-ER18b. An. gambiae s.l. - Unfed"
    AN_GAMBIAE_GRAVID = "MAL 001-ER18c. An. gambiae s.l. - Gravid"
    AN_GAMBIAE_HALF_GRAVID = "MAL 001-ER18d. An. gambiae s.l. - Half gravid"

    # An. funestus s.l.
    AN_FUNESTUS_ANY = "MAL 001-ER19. An. funestus s.l."
    AN_FUNESTUS_FED = "MAL 001-ER19a. An. funestus s.l. - Fed"
    AN_FUNESTUS_UNFED = "MAL 001-ER19b. An. funestus s.l. - Unfed"
    AN_FUNESTUS_GRAVID = "MAL 001-ER19c. An. funestus s.l. - Gravid"
    AN_FUNESTUS_HALF_GRAVID = "MAL 001-ER19d. An. funestus s.l. - Half gravid"

    # Other Anopheles
    AN_OTHER_ANY = "MAL 001-ER21. Other Anopheles"
    AN_OTHER_FED = "MAL 001-ER21a. Other Anopheles - Fed"
    AN_OTHER_UNFED = "MAL 001-ER21b. Other Anopheles - Unfed"
    AN_OTHER_GRAVID = "MAL 001-ER21c. Other Anopheles - Gravid"
    AN_OTHER_HALF_GRAVID = "MAL 001-ER21d. Other Anopheles - Half gravid"

    MALE_ANOPHELES = "MAL 001-ER25. Male Anopheles"

    # Culicines
    CULEX_ANY = "MAL 001-ER22. Culex"
    CULEX_FEMALE = "MAL 001-ER22a. Culex - Female"
    CULEX_MALE = "MAL 001-ER22b. Culex - Male"
    AEDES_ANY = "MAL 001-ER23. Aedes"
    AEDES_FEMALE = "MAL 001-ER23a. Aedes- Female"
    AEDES_MALE = "MAL 001-ER23b. Aedes- Male"
    OTHER_CULICINES_ANY = "MAL 001-ER24. Other Culicines"
    OTHER_CULICINES_FEMALE = "MAL 001-ER24a. Other Culicines - Female"
    OTHER_CULICINES_MALE = "MAL 001-ER24b. Other Culicines - Male"


# Every pattern that matches is emitted.
LLIN_TYPE_PATTERNS: tuple[tuple[str, str], ...] = (
    ("pyrethroid-only", ElementName.LLIN_TYPE_PYRETHROID),
    ("pyrethroid only", ElementName.LLIN_TYPE_PYRETHROID),
    ("pyrethroid + pbo", ElementName.LLIN_TYPE_PBO),
    ("pyrethroid pbo", ElementName.LLIN_TYPE_PBO),
    ("pyrethroid + chlorfenapyr", ElementName.LLIN_TYPE_CHLORFENAPYR),
    ("pyrethroid chlorfenapyr", ElementName.LLIN_TYPE_CHLORFENAPYR),
    ("pyrethroid + pyriproxyfen", ElementName.LLIN_TYPE_PYRIPROXYFEN),
    ("pyrethroid pyriproxyfen", ElementName.LLIN_TYPE_PYRIPROXYFEN),
    ("other", ElementName.LLIN_TYPE_OTHER),
)

# Only the first (longest) match is emitted.
LLIN_BRAND_PATTERNS: tuple[tuple[str, str], ...] = (
    ("olyset plus", ElementName.LLIN_BRAND_OLYSET_PLUS),
    ("olyset", ElementName.LLIN_BRAND_OLYSET),
    ("interceptor g2", ElementName.LLIN_BRAND_INTERCEPTOR_G2),
    ("interceptor", ElementName.LLIN_BRAND_INTERCEPTOR),
    ("royal sentry 2.0", ElementName.LLIN_BRAND_ROYAL_SENTRY_2),
    ("royal sentry", ElementName.LLIN_BRAND_ROYAL_SENTRY),
    ("royal guard", ElementName.LLIN_BRAND_ROYAL_GUARD),
    ("permanet 3.0", ElementName.LLIN_BRAND_PERMANET_3),
    ("permanet 2.0", ElementName.LLIN_BRAND_PERMANET_2),
    ("duranet", ElementName.LLIN_BRAND_DURANET),
    ("miranet", ElementName.LLIN_BRAND_MIRANET),
    ("magnet", ElementName.LLIN_BRAND_MAGNET),
    ("veeralin", ElementName.LLIN_BRAND_VEERALIN),
    ("yahe", ElementName.LLIN_BRAND_YAHE),
    ("safenet", ElementName.LLIN_BRAND_SAFENET),
    ("yorkool", ElementName.LLIN_BRAND_YORKOOL),
    ("panda net", ElementName.LLIN_BRAND_PANDA_NET),
    ("tsara boost", ElementName.LLIN_BRAND_TSARA_BOOST),
    ("tsara soft", ElementName.LLIN_BRAND_TSARA_SOFT),
    ("tsara plus", ElementName.LLIN_BRAND_TSARA_PLUS),
    ("other", ElementName.LLIN_BRAND_OTHER),
)

COLLECTION_METHOD_CODES: dict[str, str] = {
    "hlc": "HLC",
    "human landing catch": "HLC",
    "psc": "PSC",
    "pyrethrum spray catch": "PSC",
    "ltc": "LTC",
    "light trap catch": "LTC",
    "cdc light trap": "LTC",
}

_PARENTHESIZED_CODE = re.compile(r"\(([^)]+)\)")


@dataclass(frozen=True)
class SpecimenElementGroup:
    """
    One taxon group: its presence flag and its per-subcategory counts.
    """

    present_field: str
    present_element: str
    count_fields: tuple[tuple[str, str], ...]


SPECIMEN_ELEMENT_GROUPS: tuple[SpecimenElementGroup, ...] = (
    SpecimenElementGroup(
        present_field="an_gambiae_present",
        present_element=ElementName.AN_GAMBIAE_ANY,
        count_fields=(
            ("an_gambiae_fed", ElementName.AN_GAMBIAE_FED),
            ("an_gambiae_unfed", ElementName.AN_GAMBIAE_UNFED),
            ("an_gambiae_gravid", ElementName.AN_GAMBIAE_GRAVID),
            ("an_gambiae_half_gravid", ElementName.AN_GAMBIAE_HALF_GRAVID),
        ),
    ),
    SpecimenElementGroup(
        present_field="an_funestus_present",
        present_element=ElementName.AN_FUNESTUS_ANY,
        count_fields=(
            ("an_funestus_fed", ElementName.AN_FUNESTUS_FED),
            ("an_funestus_unfed", ElementName.AN_FUNESTUS_UNFED),
            ("an_funestus_gravid", ElementName.AN_FUNESTUS_GRAVID),
            ("an_funestus_half_gravid", ElementName.AN_FUNESTUS_HALF_GRAVID),
        ),
    ),
    SpecimenElementGroup(
        present_field="an_other_present",
        present_element=ElementName.AN_OTHER_ANY,
        count_fields=(
            ("an_other_fed", ElementName.AN_OTHER_FED),
            ("an_other_unfed", ElementName.AN_OTHER_UNFED),
            ("an_other_gravid", ElementName.AN_OTHER_GRAVID),
            ("an_other_half_gravid", ElementName.AN_OTHER_HALF_GRAVID),
        ),
    ),
    SpecimenElementGroup(
        present_field="culex_present",
        present_element=ElementName.CULEX_ANY,
        count_fields=(
            ("culex_female", ElementName.CULEX_FEMALE),
            ("culex_male", ElementName.CULEX_MALE),
        ),
    ),
    SpecimenElementGroup(
        present_field="aedes_present",
        present_element=ElementName.AEDES_ANY,
        count_fields=(
            ("aedes_female", ElementName.AEDES_FEMALE),
            ("aedes_male", ElementName.AEDES_MALE),
        ),
    ),
    SpecimenElementGroup(
        present_field="other_culicines_present",
        present_element=ElementName.OTHER_CULICINES_ANY,
        count_fields=(
            ("other_culicines_female", ElementName.OTHER_CULICINES_FEMALE),
            ("other_culicines_male", ElementName.OTHER_CULICINES_MALE),
        ),
    ),
)


def _longest_first(patterns: Sequence[tuple[str, str]]) -> tuple[tuple[str, str], ...]:
    return tuple(sorted(patterns, key=lambda item: len(item[0]), reverse=True))


_SORTED_TYPE_PATTERNS = _longest_first(LLIN_TYPE_PATTERNS)
_SORTED_BRAND_PATTERNS = _longest_first(LLIN_BRAND_PATTERNS)


def format_registry_date(value: datetime | date | str | None) -> str | None:
    """
    Render a date as YYYY-MM-DD. Aware datetimes are converted to UTC first.
    """

    if value is None:
        return None
    if isinstance(value, datetime):
        if value.tzinfo is not None:
            value = value.astimezone(timezone.utc)
        return value.date().isoformat()
    if isinstance(value, date):
        return value.isoformat()

    text = value.strip()
    if not text:
        return None
    normalized = text[:-1] + "+00:00" if text.endswith("Z") else text
    try:
        return format_registry_date(datetime.fromisoformat(normalized))
    except ValueError:
        pass
    try:
        return date.fromisoformat(text[:10]).isoformat()
    except ValueError:
        return None


def collection_method_code(collection_method: str | None) -> str | None:
    """
    Map collection method text to a registry option code, e.g. "Human Landing Catch (HLC)" -> "HLC".
    """

    if not collection_method:
        return None
    method = collection_method.strip().lower()
    match = _PARENTHESIZED_CODE.search(method)
    if match and match.group(1).strip():
        return match.group(1).strip().upper()
    return COLLECTION_METHOD_CODES.get(method)


def site_sprayed_in_past_12_months(form: SurveillanceFormSnapshot | None) -> bool:
    if form is None or form.was_irs_conducted is None or form.months_since_irs is None:
        return False
    return bool(form.was_irs_conducted) and form.months_since_irs <= 12


class _DataValueCollector:
    """
    Accumulates data values, skipping names absent from the element map
    and elements already emitted.
    """

    def __init__(self, element_map: Mapping[str, str]) -> None:
        self._element_map = element_map
        self._seen: set[str] = set()
        self.values: list[DataValue] = []

    def add(self, display_name: str, value: DataValueType) -> None:
        element_id = self._element_map.get(display_name)
        if not element_id or element_id in self._seen:
            return
        self._seen.add(element_id)
        self.values.append(DataValue(data_element=element_id, value=value))


def map_to_data_values(
    session: CollectionSessionData | None,
    surveillance_form: SurveillanceFormSnapshot | None,
    specimen_counts: SpecimenCounts,
    element_map: Mapping[str, str],
    irs_override: IrsOverride | None = None,
) -> list[DataValue]:
    """
    Build the ordered data values for one household-month.

    Override fields that are set replace the form-derived value for the
    same element; unset override fields fall back to the form.
    """

    collector = _DataValueCollector(element_map)

    if session is not None:
        _map_session(collector, session)
    _map_site_irs(collector, surveillance_form, irs_override)
    if surveillance_form is not None:
        _map_surveillance_form(collector, surveillance_form)
    _map_specimen_counts(collector, specimen_counts)

    return collector.values


def _map_session(collector: _DataValueCollector, session: CollectionSessionData) -> None:
    collection_date = format_registry_date(session.collection_date)
    if collection_date:
        collector.add(ElementName.COLLECTION_DATE, collection_date)
    if session.collector_title:
        collector.add(ElementName.COLLECTOR_TITLE, session.collector_title)
    if session.collector_name:
        collector.add(ElementName.COLLECTOR_NAME, session.collector_name)
    method_code = collection_method_code(session.collection_method)
    if method_code:
        collector.add(ElementName.COLLECTION_METHOD, method_code)


def _map_site_irs(
    collector: _DataValueCollector,
    form: SurveillanceFormSnapshot | None,
    override: IrsOverride | None,
) -> None:
    if override is not None and override.was_irs_sprayed is not None:
        collector.add(ElementName.SITE_SPRAYED_IN_PAST_12_MONTHS, bool(override.was_irs_sprayed))
    else:
        collector.add(ElementName.SITE_SPRAYED_IN_PAST_12_MONTHS, site_sprayed_in_past_12_months(form))

    if override is None:
        return
    if override.insecticide_sprayed:
        collector.add(ElementName.INSECTICIDE_SPRAYED, override.insecticide_sprayed)
    last_sprayed = format_registry_date(override.date_last_sprayed)
    if last_sprayed:
        collector.add(ElementName.DATE_LAST_SPRAYED, last_sprayed)


def _map_surveillance_form(collector: _DataValueCollector, form: SurveillanceFormSnapshot) -> None:
    if form.num_people_slept_in_house is not None:
        collector.add(ElementName.NUM_PEOPLE_SLEPT, form.num_people_slept_in_house)
    if form.was_irs_conducted is not None:
        collector.add(ElementName.HOUSE_SPRAYED, bool(form.was_irs_conducted))
    if form.months_since_irs is not None:
        collector.add(ElementName.MONTHS_SINCE_IRS, form.months_since_irs)
    if form.num_llins_available is not None:
        collector.add(ElementName.NUM_LLINS, form.num_llins_available)
    if form.num_people_slept_under_llin is not None:
        collector.add(ElementName.NUM_PEOPLE_UNDER_LLIN, form.num_people_slept_under_llin)

    llin_type = (form.llin_type or "").strip().lower()
    if llin_type:
        collector.add(ElementName.LLIN_TYPE_ANY, True)
        for pattern, display_name in _SORTED_TYPE_PATTERNS:
            if pattern in llin_type:
                collector.add(display_name, True)

    llin_brand = (form.llin_brand or "").strip().lower()
    if llin_brand:
        collector.add(ElementName.LLIN_BRAND_ANY, True)
        for pattern, display_name in _SORTED_BRAND_PATTERNS:
            if pattern in llin_brand:
                collector.add(display_name, True)
                break


def _map_specimen_counts(collector: _DataValueCollector, counts: SpecimenCounts) -> None:
    for group in SPECIMEN_ELEMENT_GROUPS:
        group_total = sum(getattr(counts, field_name) for field_name, _ in group.count_fields)
        if getattr(counts, group.present_field) or group_total > 0:
            collector.add(group.present_element, True)
        for field_name, display_name in group.count_fields:
            count = getattr(counts, field_name)
            if count > 0:
                collector.add(display_name, count)

    if counts.male_anopheles > 0:
        collector.add(ElementName.MALE_ANOPHELES, counts.male_anopheles)


def enrich_data_values(
    data_values: Sequence[DataValue],
    element_map: Mapping[str, str],
) -> list[EnrichedDataValue]:
    """
    Attach display names to data values for audit output.
    """

    reverse_map = {element_id: display_name for display_name, element_id in element_map.items()}
    return [
        EnrichedDataValue(
            display_name=reverse_map.get(value.data_element, "Unknown"),
            data_element_id=value.data_element,
            value=value.value,
        )
        for value in data_values
    ]
