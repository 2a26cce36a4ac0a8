"""
Boundary parsing for case configurations.

The case configuration is a nested dictionary (see ``main.run_case``) whose
values usually come from a form or a JSON file, so numbers may arrive as
strings and dates in either ``MM/DD/YYYY`` or ISO ``YYYY-MM-DD`` form.  The
helpers here turn those raw values into ``Optional`` results; a missing or
unparseable number only becomes zero through ``number_or_default`` and the
named ``MISSING_NUMBER_DEFAULT`` policy.
"""

import logging
import math
import re
from datetime import date, datetime
from typing import Any, Dict, List, Mapping, Optional

from models import (
    Annual,
    CaseInfo,
    CaseType,
    CategoryTable,
    CpiCategory,
    CustomYears,
    DEFAULT_CPI_CATEGORIES,
    EarningsParams,
    Frequency,
    HhServices,
    LcpItem,
    OneTime,
    Recurring,
)

logger = logging.getLogger(__name__)

MISSING_NUMBER_DEFAULT = 0.0

_SLASH_DATE = re.compile(r"^(\d{1,2})/(\d{1,2})/(\d{4})$")


def parse_date(value: Any) -> Optional[date]:
    """Parse ``MM/DD/YYYY`` or an ISO date/datetime string.

    ``date`` and ``datetime`` objects pass through (a datetime is reduced to
    its date).  Anything else that cannot be read returns ``None``.
    """
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    text = str(value).strip()
    match = _SLASH_DATE.match(text)
    try:
        if match:
            month, day, year = (int(g) for g in match.groups())
            return date(year, month, day)
        if text.endswith("Z"):
            text = text[:-1] + "+00:00"
        return datetime.fromisoformat(text).date()
    except ValueError:
        logger.debug("Unparseable date %r", value)
        return None


def parse_number(value: Any) -> Optional[float]:
    """Parse a float from a number or a string such as ``"$42,500.00"``."""
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        number = float(value)
    else:
        text = str(value).strip().replace(",", "").replace("$", "")
        if not text:
            return None
        try:
            number = float(text)
        except ValueError:
            return None
    if math.isnan(number) or math.isinf(number):
        return None
    return number


def number_or_default(value: Any, default: float = MISSING_NUMBER_DEFAULT) -> float:
    number = parse_number(value)
    return default if number is None else number


def parse_bool(value: Any, default: bool = False) -> bool:
    """Read a flag; strings such as ``"false"`` or ``"no"`` are false."""
    if value is None:
        return default
    if isinstance(value, str):
        return value.strip().lower() in ("1", "true", "yes", "y", "on")
    return bool(value)


def _optional_int(value: Any) -> Optional[int]:
    number = parse_number(value)
    return None if number is None else int(number)


###############################################################################
# Section builders
###############################################################################

def case_info_from_config(section: Optional[Mapping[str, Any]]) -> CaseInfo:
    """Build ``CaseInfo`` from the ``case`` section; unknown case types are personal injury."""
    section = section or {}
    defaults = CaseInfo()
    case_type = section.get("case_type", defaults.case_type)
    try:
        case_type = CaseType(case_type)
    except ValueError:
        logger.debug("Unknown case type %r, using personal injury", case_type)
        case_type = CaseType.PERSONAL_INJURY
    return CaseInfo(
        plaintiff=section.get("plaintiff", ""),
        file_number=section.get("file_number", ""),
        attorney=section.get("attorney", ""),
        law_firm=section.get("law_firm", ""),
        report_date=parse_date(section.get("report_date")),
        gender=section.get("gender", ""),
        dob=parse_date(section.get("dob")),
        education=section.get("education", ""),
        marital_status=section.get("marital_status", ""),
        dependents=str(section.get("dependents", "")),
        city=section.get("city", ""),
        county=section.get("county", ""),
        state=section.get("state", defaults.state),
        date_of_injury=parse_date(section.get("date_of_injury")),
        date_of_trial=parse_date(section.get("date_of_trial")),
        retirement_age=number_or_default(section.get("retirement_age"), defaults.retirement_age),
        life_expectancy=number_or_default(section.get("life_expectancy")),
        wle_source=section.get("wle_source", defaults.wle_source),
        life_table_source=section.get("life_table_source", defaults.life_table_source),
        jurisdiction=section.get("jurisdiction", defaults.jurisdiction),
        case_type=case_type,
    )


def earnings_params_from_config(section: Optional[Mapping[str, Any]], case_type: CaseType = CaseType.PERSONAL_INJURY) -> EarningsParams:
    """Build ``EarningsParams``; rate fields default to the product defaults.

    ``is_wrongful_death`` follows the case type unless the section sets it.
    """
    section = section or {}
    d = EarningsParams()

    def num(key: str, default: float = MISSING_NUMBER_DEFAULT) -> float:
        return number_or_default(section.get(key), default)

    wage_growth = num("wage_growth", d.wage_growth)
    return EarningsParams(
        base_earnings=num("base_earnings"),
        residual_earnings=num("residual_earnings"),
        wle=num("wle"),
        wage_growth=wage_growth,
        discount_rate=num("discount_rate", d.discount_rate),
        fringe_rate=num("fringe_rate", d.fringe_rate),
        pension=num("pension"),
        health_welfare=num("health_welfare"),
        annuity=num("annuity"),
        clothing_allowance=num("clothing_allowance"),
        other_benefits=num("other_benefits"),
        unemployment_rate=num("unemployment_rate", d.unemployment_rate),
        ui_replacement_rate=num("ui_replacement_rate", d.ui_replacement_rate),
        fed_tax_rate=num("fed_tax_rate", d.fed_tax_rate),
        state_tax_rate=num("state_tax_rate", d.state_tax_rate),
        enable_fringe_benefits=parse_bool(section.get("enable_fringe_benefits"), True),
        enable_present_value=parse_bool(section.get("enable_present_value"), True),
        use_era_split=parse_bool(section.get("use_era_split")),
        era_split_year=_optional_int(section.get("era_split_year")),
        era1_wage_growth=num("era1_wage_growth", wage_growth),
        era2_wage_growth=num("era2_wage_growth", wage_growth),
        is_wrongful_death=parse_bool(
            section.get("is_wrongful_death"), case_type == CaseType.WRONGFUL_DEATH
        ),
        era1_personal_consumption=num("era1_personal_consumption"),
        era2_personal_consumption=num("era2_personal_consumption"),
        enable_pji=parse_bool(section.get("enable_pji")),
        pji_age=num("pji_age"),
    )


def hh_services_from_config(section: Optional[Mapping[str, Any]]) -> HhServices:
    """Build ``HhServices`` from the ``household`` section (inactive by default)."""
    section = section or {}
    d = HhServices()
    return HhServices(
        active=parse_bool(section.get("active")),
        hours_per_week=number_or_default(section.get("hours_per_week")),
        hourly_rate=number_or_default(section.get("hourly_rate"), d.hourly_rate),
        growth_rate=number_or_default(section.get("growth_rate"), d.growth_rate),
        discount_rate=number_or_default(section.get("discount_rate"), d.discount_rate),
    )


def frequency_from_config(entry: Mapping[str, Any]) -> Frequency:
    """Map the flat ``freq_type`` / ``custom_years`` fields to a variant.

    A non-empty ``custom_years`` list with ``use_custom_years`` set wins over
    ``freq_type``.  Unknown frequency strings fall back to ``Annual``.
    """
    custom = entry.get("custom_years") or []
    if parse_bool(entry.get("use_custom_years"), bool(custom)) and custom:
        years = [int(n) for n in (parse_number(y) for y in custom) if n is not None]
        return CustomYears(tuple(years))
    freq_type = str(entry.get("freq_type", "annual")).lower()
    if freq_type == "onetime":
        return OneTime()
    if freq_type == "recurring":
        interval = int(number_or_default(entry.get("recurrence_interval"), 1))
        return Recurring(max(1, interval))
    if freq_type != "annual":
        logger.debug("Unknown LCP frequency %r, treating as annual", freq_type)
    return Annual()


def lcp_items_from_config(entries: Optional[List[Mapping[str, Any]]]) -> List[LcpItem]:
    """Build one ``LcpItem`` per entry; ids and names default to the 1-based position."""
    items = []
    for index, entry in enumerate(entries or [], start=1):
        items.append(
            LcpItem(
                id=int(number_or_default(entry.get("id"), index)),
                name=entry.get("name", f"Item {index}"),
                category_id=entry.get("category_id", "custom"),
                base_cost=number_or_default(entry.get("base_cost")),
                frequency=frequency_from_config(entry),
                start_year=int(number_or_default(entry.get("start_year"), 1)),
                duration=int(number_or_default(entry.get("duration"), 1)),
                end_year=_optional_int(entry.get("end_year")),
                cpi=parse_number(entry.get("cpi")),
            )
        )
    return items


def past_actuals_from_config(section: Optional[Mapping[Any, Any]]) -> Dict[int, str]:
    """Normalize the sparse ``year -> amount`` map; values stay raw strings."""
    actuals: Dict[int, str] = {}
    for year, amount in (section or {}).items():
        year_number = parse_number(year)
        if year_number is None or amount is None:
            continue
        actuals[int(year_number)] = str(amount)
    return actuals


def category_table_from_config(entries: Optional[List[Mapping[str, Any]]], version: str = "custom") -> CategoryTable:
    """Return the configured CPI table, or the default table when none is given."""
    if not entries:
        return DEFAULT_CPI_CATEGORIES
    return CategoryTable(
        version=version,
        categories=tuple(
            CpiCategory(
                id=e["id"],
                label=e.get("label", e["id"]),
                rate=number_or_default(e.get("rate")),
            )
            for e in entries
        ),
    )
