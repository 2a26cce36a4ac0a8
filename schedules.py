"""
Detailed year-over-year schedules for reports and exports.

These generators expand the engine's formulas into one row per year with a
calendar year and a running cumulative present value.  They are computed on
demand and use the same helpers as ``calculations.py``, so their totals
agree with the aggregated figures.  ``rows_to_frame`` turns any schedule
into a pandas DataFrame for the report tables.
"""

import math
from dataclasses import asdict, is_dataclass
from typing import Dict, List, Optional, Sequence

import pandas as pd

from calculations import (
    compute_algebraic,
    era_aif,
    era_growth_path,
    household_annual_value,
    lcp_year_value,
    mid_year_discount,
    resolve_item_rate,
    resolve_item_years,
)
from models import (
    CaseInfo,
    CategoryTable,
    DateCalc,
    DEFAULT_CPI_CATEGORIES,
    DetailedHhsScheduleRow,
    DetailedLcpScheduleRow,
    DetailedScheduleRow,
    EarningsParams,
    HhServices,
    LcpItem,
    LcpYearItem,
)


def compute_detailed_scenario_schedule(
    case_info: CaseInfo,
    earnings_params: EarningsParams,
    retirement_age: float,
    age_at_injury: float,
    union_mode: bool,
    base_calendar_year: int,
) -> List[DetailedScheduleRow]:
    """Future earnings loss rows for one retirement age.

    Rows start at ``base_calendar_year`` and pick their era per calendar
    year exactly as ``compute_projection`` does, so with the trial year as
    the base the last ``cum_pv`` equals the scenario's future PV.
    """
    if case_info.date_of_injury is None or case_info.dob is None or age_at_injury <= 0:
        return []

    yfs = max(0.0, retirement_age - age_at_injury)
    algebraic = compute_algebraic(earnings_params, DateCalc(derived_yfs=yfs), union_mode)

    schedule = []
    cum_pv = 0.0
    path = era_growth_path(earnings_params, base_calendar_year, math.ceil(yfs), 2)
    for i, (era, growth) in enumerate(path):
        aif = era_aif(algebraic, era)
        gross_base = earnings_params.base_earnings * growth
        net_loss = gross_base * aif - earnings_params.residual_earnings * growth * aif
        if earnings_params.enable_present_value:
            pv = net_loss * mid_year_discount(i, earnings_params.discount_rate)
        else:
            pv = net_loss
        cum_pv += pv
        schedule.append(
            DetailedScheduleRow(
                year_num=i + 1,
                calendar_year=base_calendar_year + i,
                gross_earnings=gross_base,
                net_loss=net_loss,
                present_value=pv,
                cum_pv=cum_pv,
            )
        )
    return schedule


def compute_detailed_lcp_schedule(
    lcp_items: Sequence[LcpItem],
    discount_rate: float,
    base_calendar_year: int,
    max_years: Optional[int] = None,
    enable_present_value: bool = True,
    categories: CategoryTable = DEFAULT_CPI_CATEGORIES,
) -> List[DetailedLcpScheduleRow]:
    """Life care plan costs grouped by plan year across all items.

    Years beyond ``max_years`` are left out when a cap is given.
    """
    by_year: Dict[int, List[LcpYearItem]] = {}
    for item in lcp_items:
        rate = resolve_item_rate(item, categories)
        for year_num in resolve_item_years(item):
            if max_years is not None and year_num > max_years:
                continue
            inflated, pv = lcp_year_value(item.base_cost, rate, year_num, discount_rate, enable_present_value)
            by_year.setdefault(year_num, []).append(
                LcpYearItem(name=item.name, base_cost=item.base_cost, inflated_cost=inflated, pv=pv)
            )

    rows = []
    cum_pv = 0.0
    for year_num in sorted(by_year):
        entries = by_year[year_num]
        total_inflated = sum(e.inflated_cost for e in entries)
        total_pv = sum(e.pv for e in entries)
        cum_pv += total_pv
        rows.append(
            DetailedLcpScheduleRow(
                year_num=year_num,
                calendar_year=base_calendar_year + year_num - 1,
                items=tuple(entries),
                total_inflated=total_inflated,
                total_pv=total_pv,
                cum_pv=cum_pv,
            )
        )
    return rows


def compute_detailed_hhs_schedule(
    hh_services: HhServices,
    derived_yfs: float,
    base_calendar_year: int,
    enable_present_value: bool = True,
) -> List[DetailedHhsScheduleRow]:
    if not hh_services.active:
        return []

    schedule = []
    cum_pv = 0.0
    for i in range(math.ceil(derived_yfs)):
        annual_value = household_annual_value(hh_services, i)
        disc = mid_year_discount(i, hh_services.discount_rate) if enable_present_value else 1.0
        pv = annual_value * disc
        cum_pv += pv
        schedule.append(
            DetailedHhsScheduleRow(
                year_num=i + 1,
                calendar_year=base_calendar_year + i,
                annual_value=annual_value,
                present_value=pv,
                cum_pv=cum_pv,
            )
        )
    return schedule


###############################################################################
# DataFrame views
###############################################################################

_COLUMN_NAMES = {
    "year_num": "YearIndex",
    "pv": "PresentValue",
    "cum_pv": "CumulativePV",
    "cumulative_pv": "CumulativePV",
    "wlf_percent": "WLFPercent",
    "yfs": "YFS",
    "wlf": "WLF",
}


def _column_name(field_name: str) -> str:
    if field_name in _COLUMN_NAMES:
        return _COLUMN_NAMES[field_name]
    return "".join(part.capitalize() for part in field_name.split("_"))


def rows_to_frame(rows: Sequence) -> pd.DataFrame:
    """Build a DataFrame from schedule rows (dataclasses or dicts).

    Nested LCP year items are collapsed to a ``"; "``-joined list of names.
    """
    records = []
    for row in rows:
        record = asdict(row) if is_dataclass(row) else dict(row)
        if "items" in record:
            record["items"] = "; ".join(entry["name"] for entry in record["items"])
        records.append({_column_name(key): value for key, value in record.items()})
    return pd.DataFrame(records)
