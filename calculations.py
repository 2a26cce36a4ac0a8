"""
Forensic Economic Loss Calculations
===================================

This module implements the damages engine: date and age derivation, the
Tinari algebraic adjustment factors, the year-by-year earnings loss
projection (past and future), household services, life care plan
valuation, the retirement-age scenarios and the grand total.

Every function is a pure transformation of its arguments.  Nothing here
reads files, keeps state between calls or mutates its inputs, so the same
case parameters always give the same figures on screen, in the report
snapshot and in every export.

Method notes
------------

Adjusted Income Factor (AIF), all values as fractions of gross earnings::

    AIF = {[(GE x WLF) x (1 - UF)] x (1 + FB) - [(GE x WLF) x (1 - UF)] x TL} x (1 - PC)

Taxes (TL) are levied on the unemployment-adjusted base only and never on
the fringe portion.  The combined tax rate is multiplicative,
``1 - (1 - fed) x (1 - state)``.  Personal consumption (PC) applies to
wrongful-death cases only and may differ between era 1 and era 2.

Discounting uses the mid-year convention ``1 / (1 + r) ** (t + 0.5)``.
"""

import logging
import math
from dataclasses import replace
from datetime import date
from typing import Dict, List, Mapping, Optional, Sequence, Tuple

from models import (
    Algebraic,
    CaseInfo,
    CategoryTable,
    CustomYears,
    DateCalc,
    DEFAULT_CPI_CATEGORIES,
    EarningsParams,
    FutureScheduleRow,
    HhServices,
    HhsData,
    LcpData,
    LcpItem,
    LcpItemValue,
    OneTime,
    PastScheduleRow,
    Projection,
    Recurring,
    ScenarioProjection,
)
from parsing import parse_number

logger = logging.getLogger(__name__)

DAYS_PER_YEAR = 365.25
WEEKS_PER_YEAR = 52
STANDARD_RETIREMENT_AGES: Tuple[Tuple[str, str, float], ...] = (
    ("age65", "Age 65", 65.0),
    ("age67", "Age 67", 67.0),
    ("age70", "Age 70", 70.0),
)


###############################################################################
# Dates and ages
###############################################################################

def _years_between(start: date, end: date) -> float:
    return (end - start).days / DAYS_PER_YEAR


def compute_date_calc(case_info: CaseInfo, today: Optional[date] = None) -> DateCalc:
    """Derive ages and time spans for the case.

    Parameters
    ----------
    case_info : CaseInfo
        Supplies date of birth, injury and trial dates and the retirement age.
    today : date, optional
        Reference date for the current age.  Defaults to ``date.today()``.

    Returns
    -------
    DateCalc
        Ages at injury, trial and today (one decimal), past years (injury
        to trial) and the years to final separation (injury to retirement).
        All values are zero when any of the three dates is missing.
    """
    dob = case_info.dob
    doi = case_info.date_of_injury
    dot = case_info.date_of_trial
    if dob is None or doi is None or dot is None:
        logger.debug("Missing case dates, returning zeroed DateCalc")
        return DateCalc()
    if today is None:
        today = date.today()

    age_at_injury = _years_between(dob, doi)
    past_years = max(0.0, _years_between(doi, dot))
    # YFS is chronological, not probability weighted like WLE
    derived_yfs = max(0.0, case_info.retirement_age - age_at_injury)

    return DateCalc(
        age_injury=f"{age_at_injury:.1f}",
        age_trial=f"{_years_between(dob, dot):.1f}",
        current_age=f"{_years_between(dob, today):.1f}",
        past_years=past_years,
        derived_yfs=derived_yfs,
    )


def compute_age_at_injury(case_info: CaseInfo) -> float:
    """Unrounded age at injury in years, 0.0 when either date is missing."""
    if case_info.dob is None or case_info.date_of_injury is None:
        return 0.0
    return _years_between(case_info.dob, case_info.date_of_injury)


###############################################################################
# Tinari algebraic factors
###############################################################################

def combined_tax_rate(fed_tax_rate: float, state_tax_rate: float) -> float:
    """Combine federal and state rates as ``1 - (1 - fed)(1 - state)``."""
    return 1.0 - (1.0 - fed_tax_rate) * (1.0 - state_tax_rate)


def compute_work_life_factor(earnings_params: EarningsParams, derived_yfs: float) -> float:
    """Work-life factor ``WLE / YFS`` as a percentage (87.4 means 87.4%)."""
    if derived_yfs <= 0:
        return 0.0
    return earnings_params.wle / derived_yfs * 100


def _fringe_rate(earnings_params: EarningsParams, union_mode: bool) -> Tuple[float, float]:
    """Return ``(effective fringe rate, flat fringe dollars)``."""
    if not earnings_params.enable_fringe_benefits:
        return 0.0, 0.0
    if union_mode:
        flat = earnings_params.flat_fringe_total
        if earnings_params.base_earnings <= 0:
            return 0.0, flat
        return flat / earnings_params.base_earnings, flat
    return earnings_params.fringe_rate, 0.0


def compute_algebraic(earnings_params: EarningsParams, date_calc: DateCalc, union_mode: bool) -> Algebraic:
    """Compute the ordered Tinari factor chain for one set of assumptions.

    The steps are applied in this order and are not commutative:

    1. work-life factor ``WLF = WLE / YFS`` (0 when ``YFS <= 0``);
    2. unemployment factor ``UF = UR x (1 - UI)``, base ``WLF x (1 - UF)``;
    3. fringe benefits, ``x (1 + FB)``; union mode derives FB from the
       itemized flat amounts divided by base earnings;
    4. tax on the unemployment-adjusted base only;
    5. personal consumption per era (wrongful death only).
    """
    yfs = date_calc.derived_yfs
    wlf = earnings_params.wle / yfs if yfs > 0 else 0.0

    unemployment_factor = earnings_params.unemployment_rate * (1.0 - earnings_params.ui_replacement_rate)
    fringe_rate, flat_fringe_amount = _fringe_rate(earnings_params, union_mode)
    fringe_factor = 1.0 + fringe_rate
    tax_rate = combined_tax_rate(earnings_params.fed_tax_rate, earnings_params.state_tax_rate)
    after_tax_factor = 1.0 - tax_rate

    worklife_adjusted_base = wlf
    unemployment_adjusted_base = worklife_adjusted_base * (1.0 - unemployment_factor)
    gross_compensation_with_fringes = unemployment_adjusted_base * fringe_factor
    tax_on_base_earnings = unemployment_adjusted_base * tax_rate
    after_tax_compensation = gross_compensation_with_fringes - tax_on_base_earnings

    if earnings_params.is_wrongful_death:
        era1_pc = earnings_params.era1_personal_consumption
        era2_pc = earnings_params.era2_personal_consumption
    else:
        era1_pc = era2_pc = 0.0
    era1_aif = after_tax_compensation * (1.0 - era1_pc)
    era2_aif = after_tax_compensation * (1.0 - era2_pc)

    return Algebraic(
        wlf=wlf,
        unemployment_factor=unemployment_factor,
        fringe_factor=fringe_factor,
        flat_fringe_amount=flat_fringe_amount,
        combined_tax_rate=tax_rate,
        after_tax_factor=after_tax_factor,
        worklife_adjusted_base=worklife_adjusted_base,
        unemployment_adjusted_base=unemployment_adjusted_base,
        gross_compensation_with_fringes=gross_compensation_with_fringes,
        tax_on_base_earnings=tax_on_base_earnings,
        after_tax_compensation=after_tax_compensation,
        era1_personal_consumption=era1_pc,
        era2_personal_consumption=era2_pc,
        era1_aif=era1_aif,
        era2_aif=era2_aif,
        full_multiplier=era1_aif if earnings_params.is_wrongful_death else after_tax_compensation,
        # Actual earnings already reflect work-life and unemployment experience
        realized_multiplier=after_tax_factor * fringe_factor,
        yfs=yfs,
    )


def algebraic_steps(algebraic: Algebraic) -> List[Dict[str, float]]:
    """Step-by-step breakdown used by the report tables.

    ``factor`` is the multiplier applied at each step (for the tax step, the
    combined rate levied on the unemployment-adjusted base) and
    ``cumulative`` the running fraction of gross earnings.
    """
    return [
        {"step": "Gross earnings", "factor": 1.0, "cumulative": 1.0},
        {"step": "Work-life factor", "factor": algebraic.wlf, "cumulative": algebraic.worklife_adjusted_base},
        {
            "step": "Unemployment (1 - UF)",
            "factor": 1.0 - algebraic.unemployment_factor,
            "cumulative": algebraic.unemployment_adjusted_base,
        },
        {
            "step": "Fringe benefits (1 + FB)",
            "factor": algebraic.fringe_factor,
            "cumulative": algebraic.gross_compensation_with_fringes,
        },
        {
            "step": "Tax on base earnings",
            "factor": algebraic.combined_tax_rate,
            "cumulative": algebraic.after_tax_compensation,
        },
        {
            "step": "Personal consumption (1 - PC)",
            "factor": 1.0 - algebraic.era1_personal_consumption,
            "cumulative": algebraic.era1_aif,
        },
    ]


###############################################################################
# Earnings projection
###############################################################################

def mid_year_discount(year_index: int, rate: float) -> float:
    """Discount factor for a cash flow received mid-way through year ``year_index`` (0-based)."""
    return 1.0 / (1.0 + rate) ** (year_index + 0.5)


def _era_for_year(earnings_params: EarningsParams, calendar_year: int, default_era: int) -> int:
    if earnings_params.use_era_split and earnings_params.era_split_year is not None:
        return 1 if calendar_year < earnings_params.era_split_year else 2
    return default_era


def era_wage_growth(earnings_params: EarningsParams, era: int) -> float:
    """Annual wage growth rate for ``era`` (the single rate without a split)."""
    if not earnings_params.use_era_split:
        return earnings_params.wage_growth
    return earnings_params.era1_wage_growth if era == 1 else earnings_params.era2_wage_growth


def era_aif(algebraic: Algebraic, era: int) -> float:
    """Adjusted income factor applied to rows of ``era``."""
    return algebraic.era1_aif if era == 1 else algebraic.era2_aif



def era_growth_path(
    earnings_params: EarningsParams, first_calendar_year: int, years: int, default_era: int
) -> List[Tuple[int, float]]:
    """Era and cumulative wage growth for consecutive calendar years.

    Parameters
    ----------
    earnings_params : EarningsParams
        Supplies the growth rates and the optional era split.
    first_calendar_year : int
        Calendar year of the first row; its growth factor is 1.0.
    years : int
        Number of consecutive rows.
    default_era : int
        Era used for every row when no explicit split is configured.

    Returns
    -------
    list of (int, float)
        ``(era, growth)`` per row.  Each year compounds the previous level
        at its own era's rate, so a change of rate at the split year
        continues from the wage already reached.
    """
    path = []
    growth = 1.0
    for i in range(years):
        era = _era_for_year(earnings_params, first_calendar_year + i, default_era)
        if i > 0:
            growth *= 1.0 + era_wage_growth(earnings_params, era)
        path.append((era, growth))
    return path


def _manual_actual(past_actuals: Mapping[int, str], year: int) -> Optional[float]:
    raw = past_actuals.get(year)
    if raw is None or raw == "":
        return None
    amount = parse_number(raw)
    if amount is None:
        logger.debug("Ignoring unparseable actual earnings %r for %s", raw, year)
    return amount


def compute_projection(
    case_info: CaseInfo,
    earnings_params: EarningsParams,
    algebraic: Algebraic,
    past_actuals: Mapping[int, str],
    date_calc: DateCalc,
) -> Projection:
    """Project past and future earnings losses.

    Past years run from the injury year through the trial, the last year
    weighted by its fraction.  A manually entered actual for a calendar year
    replaces the residual-earnings path for that year and is netted with the
    realized multiplier.  Future years run for ``ceil(YFS)`` years from the
    trial year and are discounted mid-year unless present value is disabled.

    Without an explicit era split, past years use era 1 growth and AIF and
    future years era 2.  With ``use_era_split`` the era is chosen by
    comparing each row's calendar year with ``era_split_year``.
    """
    if case_info.date_of_injury is None:
        return Projection()

    start_year = case_info.date_of_injury.year
    full_past = int(math.floor(date_calc.past_years))
    partial_past = date_calc.past_years % 1
    trial_year = case_info.date_of_trial.year if case_info.date_of_trial else start_year + full_past

    past_schedule: List[PastScheduleRow] = []
    total_past_loss = 0.0
    past_path = era_growth_path(earnings_params, start_year, full_past + 1, 1)
    for i, (era, growth) in enumerate(past_path):
        fraction = 1.0 if i < full_past else partial_past
        if fraction <= 0:
            continue
        year = start_year + i
        aif = era_aif(algebraic, era)
        gross_base = earnings_params.base_earnings * growth * fraction
        net_but_for = gross_base * aif

        manual = _manual_actual(past_actuals, year)
        if manual is not None:
            gross_actual = manual
            net_actual = manual * algebraic.realized_multiplier
        else:
            gross_actual = earnings_params.residual_earnings * growth * fraction
            net_actual = gross_actual * aif

        net_loss = net_but_for - net_actual
        total_past_loss += net_loss
        past_schedule.append(
            PastScheduleRow(
                year=year,
                label=f"Past-{i + 1}",
                gross_base=gross_base,
                gross_actual=gross_actual,
                net_loss=net_loss,
                is_manual=manual is not None,
                fraction=fraction,
            )
        )

    future_schedule: List[FutureScheduleRow] = []
    total_future_nominal = 0.0
    total_future_pv = 0.0
    future_path = era_growth_path(earnings_params, trial_year, math.ceil(algebraic.yfs), 2)
    for i, (era, growth) in enumerate(future_path):
        calendar_year = trial_year + i
        aif = era_aif(algebraic, era)
        gross_base = earnings_params.base_earnings * growth
        net_loss = gross_base * aif - earnings_params.residual_earnings * growth * aif
        if earnings_params.enable_present_value:
            pv = net_loss * mid_year_discount(i, earnings_params.discount_rate)
        else:
            pv = net_loss
        total_future_nominal += net_loss
        total_future_pv += pv
        future_schedule.append(
            FutureScheduleRow(year=i + 1, calendar_year=calendar_year, gross=gross_base, net_loss=net_loss, pv=pv)
        )

    return Projection(
        past_schedule=tuple(past_schedule),
        future_schedule=tuple(future_schedule),
        total_past_loss=total_past_loss,
        total_future_nominal=total_future_nominal,
        total_future_pv=total_future_pv,
    )


###############################################################################
# Household services
###############################################################################

def household_annual_value(hh_services: HhServices, year_index: int) -> float:
    return (
        hh_services.hours_per_week
        * WEEKS_PER_YEAR
        * hh_services.hourly_rate
        * (1.0 + hh_services.growth_rate) ** year_index
    )


def compute_hhs_data(hh_services: HhServices, derived_yfs: float, enable_present_value: bool = True) -> HhsData:
    """Replacement value of lost household services over ``ceil(YFS)`` years."""
    if not hh_services.active:
        return HhsData()

    total_nom = 0.0
    total_pv = 0.0
    for i in range(math.ceil(derived_yfs)):
        annual_value = household_annual_value(hh_services, i)
        disc = mid_year_discount(i, hh_services.discount_rate) if enable_present_value else 1.0
        total_nom += annual_value
        total_pv += annual_value * disc
    return HhsData(total_nom=total_nom, total_pv=total_pv)


###############################################################################
# Life care plan
###############################################################################

def resolve_item_years(item: LcpItem) -> Tuple[int, ...]:
    """Plan years (1-based, absolute) in which the item is incurred."""
    frequency = item.frequency
    if isinstance(frequency, CustomYears):
        return frequency.normalized()

    start = max(1, item.start_year or 1)
    end = max(item.end_year or 0, start + item.duration - 1)
    duration = max(0, end - start + 1)
    if isinstance(frequency, OneTime):
        offsets: Sequence[int] = range(min(duration, 1))
    elif isinstance(frequency, Recurring):
        offsets = range(0, duration, max(1, frequency.interval))
    else:
        offsets = range(duration)
    return tuple(start + t for t in offsets)


def resolve_item_rate(item: LcpItem, categories: CategoryTable = DEFAULT_CPI_CATEGORIES) -> float:
    """Item inflation rate: the explicit ``cpi`` first, then the category table."""
    if item.cpi is not None:
        return item.cpi
    rate = categories.rate_for(item.category_id)
    if rate is None:
        logger.warning(
            "Unknown CPI category %r for LCP item %r (table %s), using 0%%",
            item.category_id,
            item.name,
            categories.version,
        )
        return 0.0
    return rate


def lcp_year_value(base_cost: float, rate: float, year_num: int, discount_rate: float, enable_present_value: bool = True) -> Tuple[float, float]:
    """Return ``(inflated cost, present value)`` for an absolute plan year.

    Inflation and discounting both run from plan year 1 (index 0), so an
    item that starts late is discounted for its full distance from today.
    """
    t = year_num - 1
    inflated = base_cost * (1.0 + rate) ** t
    discount = mid_year_discount(t, discount_rate) if enable_present_value else 1.0
    return inflated, inflated * discount


def compute_lcp_data(
    lcp_items: Sequence[LcpItem],
    discount_rate: float,
    enable_present_value: bool = True,
    categories: CategoryTable = DEFAULT_CPI_CATEGORIES,
) -> LcpData:
    """Value every life care plan item.

    Parameters
    ----------
    lcp_items : sequence of LcpItem
        The care items; each is inflated at its own rate from plan year 1.
    discount_rate : float
        Rate for the mid-year present value.
    enable_present_value : bool
        When false the present value equals the nominal total.
    categories : CategoryTable
        CPI rates looked up for items without an explicit ``cpi``.

    Returns
    -------
    LcpData
        Per-item values with their active years, plus nominal and present
        value totals.
    """
    total_nom = 0.0
    total_pv = 0.0
    processed = []
    for item in lcp_items:
        rate = resolve_item_rate(item, categories)
        years = resolve_item_years(item)
        item_nom = 0.0
        item_pv = 0.0
        for year_num in years:
            inflated, pv = lcp_year_value(item.base_cost, rate, year_num, discount_rate, enable_present_value)
            item_nom += inflated
            item_pv += pv
        total_nom += item_nom
        total_pv += item_pv
        processed.append(LcpItemValue(item=item, active_years=years, rate=rate, total_nom=item_nom, total_pv=item_pv))
    return LcpData(items=tuple(processed), total_nom=total_nom, total_pv=total_pv)


###############################################################################
# Scenarios and totals
###############################################################################

def compute_grand_total(projection: Projection, hh_services: HhServices, hhs_data: HhsData, lcp_data: LcpData) -> float:
    """Past loss plus future PV, household PV (only when active) and LCP PV."""
    return (
        projection.total_past_loss
        + projection.total_future_pv
        + (hhs_data.total_pv if hh_services.active else 0.0)
        + lcp_data.total_pv
    )


def compute_scenario_projections(
    case_info: CaseInfo,
    age_at_injury: float,
    earnings_params: EarningsParams,
    date_calc: DateCalc,
    past_actuals: Mapping[int, str],
    union_mode: bool,
    hh_services: HhServices,
    hhs_data: HhsData,
    lcp_data: LcpData,
) -> List[ScenarioProjection]:
    """Re-run the earnings loss for alternative retirement ages.

    Scenarios come back in a fixed order: the WLE-derived age first, then
    ages 65, 67 and 70, then the PJI age when it is enabled.  Each grand
    total adds the household (when active) and life care plan present
    values to that scenario's earnings loss.
    """
    if (
        case_info.date_of_injury is None
        or case_info.dob is None
        or age_at_injury <= 0
        or not earnings_params.wle
    ):
        return []

    def project(scenario_id: str, label: str, retirement_age: float) -> ScenarioProjection:
        yfs = max(0.0, retirement_age - age_at_injury)
        scenario_dates = replace(date_calc, derived_yfs=yfs)
        algebraic = compute_algebraic(earnings_params, scenario_dates, union_mode)
        projection = compute_projection(case_info, earnings_params, algebraic, past_actuals, scenario_dates)
        earnings_loss = projection.total_past_loss + projection.total_future_pv
        return ScenarioProjection(
            id=scenario_id,
            label=label,
            retirement_age=retirement_age,
            yfs=yfs,
            wlf=algebraic.wlf,
            wlf_percent=algebraic.wlf * 100,
            total_past_loss=projection.total_past_loss,
            total_future_pv=projection.total_future_pv,
            total_earnings_loss=earnings_loss,
            grand_total=compute_grand_total(projection, hh_services, hhs_data, lcp_data),
        )

    scenarios = []
    wle_retirement_age = age_at_injury + earnings_params.wle
    if wle_retirement_age > 0:
        scenarios.append(project("wle", f"WLE (Age {wle_retirement_age:.1f})", wle_retirement_age))
    for scenario_id, label, retirement_age in STANDARD_RETIREMENT_AGES:
        scenarios.append(project(scenario_id, label, retirement_age))
    if earnings_params.enable_pji:
        scenarios.append(project("pji", f"PJI (Age {earnings_params.pji_age:g})", earnings_params.pji_age))
    return scenarios
