"""
Report snapshot and report tables.

The snapshot is the single structure every export collaborator reads: the
assumptions that went in, the engine calculations, the scenario results,
a unified past-plus-future period table and summary metrics.  It is built
from plain dictionaries so a JSON, CSV, spreadsheet or word-processor
writer can serialize it without knowing the engine's types.

``build_report_tables`` lays the same results out as pandas DataFrames, one
per worksheet, in the order the workbook presents them.
"""

import re
import uuid
from dataclasses import is_dataclass
from datetime import date, datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Optional, Sequence

import pandas as pd

from calculations import algebraic_steps, mid_year_discount
from models import (
    Algebraic,
    Annual,
    CaseInfo,
    CategoryTable,
    CustomYears,
    DateCalc,
    DEFAULT_CPI_CATEGORIES,
    EarningsParams,
    HhServices,
    HhsData,
    LcpData,
    LcpItem,
    OneTime,
    PeriodRow,
    Projection,
    Recurring,
    ScenarioProjection,
    SummaryMetrics,
)
from schedules import (
    compute_detailed_hhs_schedule,
    compute_detailed_lcp_schedule,
    compute_detailed_scenario_schedule,
    rows_to_frame,
)

APP_VERSION = "1.0.0"
SCHEMA_VERSION = "v10"
CALCULATION_METHOD = "tinari-algebraic"


###############################################################################
# Formatting helpers
###############################################################################

def format_currency(value: float, decimals: int = 2) -> str:
    """Format ``-1234.5`` as ``-$1,234.50``."""
    sign = "-" if value < 0 else ""
    return f"{sign}${abs(value):,.{decimals}f}"


def format_percent(fraction: float, decimals: int = 2) -> str:
    """Format a decimal fraction, ``0.8741`` -> ``87.41%``."""
    return f"{fraction * 100:.{decimals}f}%"


def format_report_filename(
    report_type: str,
    plaintiff_name: str,
    scenario: Optional[str] = None,
    extension: str = "",
    today: Optional[date] = None,
) -> str:
    safe_name = re.sub(r"[^a-zA-Z0-9]", "-", plaintiff_name or "Report")
    date_str = (today or date.today()).isoformat()
    scenario_part = "_" + re.sub(r"\s+", "", scenario) if scenario else ""
    ext = f".{extension}" if extension else ""
    return f"{report_type}_{safe_name}_{date_str}{scenario_part}{ext}"


###############################################################################
# Period rows and summary
###############################################################################

def compute_period_rows(projection: Projection, discount_rate: float, enable_present_value: bool = True) -> List[PeriodRow]:
    """Merge the past and future schedules into one table.

    Past losses are carried at nominal value (discount factor 1); future
    rows carry the mid-year factor used for their present value.
    """
    rows = []
    cumulative_pv = 0.0
    for index, past in enumerate(projection.past_schedule, start=1):
        cumulative_pv += past.net_loss
        rows.append(
            PeriodRow(
                year_num=index,
                calendar_year=past.year,
                period_type="past",
                gross_income=past.gross_base,
                net_loss=past.net_loss,
                discount_factor=1.0,
                present_value=past.net_loss,
                cumulative_pv=cumulative_pv,
            )
        )
    for future in projection.future_schedule:
        factor = mid_year_discount(future.year - 1, discount_rate) if enable_present_value else 1.0
        cumulative_pv += future.pv
        rows.append(
            PeriodRow(
                year_num=future.year,
                calendar_year=future.calendar_year,
                period_type="future",
                gross_income=future.gross,
                net_loss=future.net_loss,
                discount_factor=factor,
                present_value=future.pv,
                cumulative_pv=cumulative_pv,
            )
        )
    return rows


def compute_summary_metrics(
    projection: Projection,
    hh_services: HhServices,
    hhs_data: HhsData,
    lcp_data: LcpData,
    grand_total: float,
) -> SummaryMetrics:
    return SummaryMetrics(
        total_past_loss=projection.total_past_loss,
        total_future_pv=projection.total_future_pv,
        total_earnings_loss=projection.total_past_loss + projection.total_future_pv,
        household_services_pv=hhs_data.total_pv if hh_services.active else 0.0,
        life_care_plan_pv=lcp_data.total_pv,
        grand_total=grand_total,
    )


###############################################################################
# Snapshot
###############################################################################

def _frequency_fields(item: LcpItem) -> Dict[str, Any]:
    frequency = item.frequency
    if isinstance(frequency, CustomYears):
        return {"freq_type": "custom", "custom_years": list(frequency.normalized())}
    if isinstance(frequency, OneTime):
        return {"freq_type": "onetime"}
    if isinstance(frequency, Recurring):
        return {"freq_type": "recurring", "recurrence_interval": frequency.interval}
    if isinstance(frequency, Annual):
        return {"freq_type": "annual"}
    raise TypeError(f"Unsupported LCP frequency: {frequency!r}")


def lcp_item_to_dict(item: LcpItem) -> Dict[str, Any]:
    record = {
        "id": item.id,
        "name": item.name,
        "category_id": item.category_id,
        "base_cost": item.base_cost,
        "start_year": item.start_year,
        "duration": item.duration,
        "end_year": item.end_year,
        "cpi": item.cpi,
    }
    record.update(_frequency_fields(item))
    return record


def to_plain(value: Any) -> Any:
    """Recursively convert engine objects to JSON-friendly values."""
    if isinstance(value, LcpItem):
        return lcp_item_to_dict(value)
    if is_dataclass(value) and not isinstance(value, type):
        return {name: to_plain(getattr(value, name)) for name in value.__dataclass_fields__}
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, (date, datetime)):
        return value.isoformat()
    if isinstance(value, dict):
        return {str(k): to_plain(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [to_plain(v) for v in value]
    return value


def generate_report_snapshot(
    case_info: CaseInfo,
    earnings_params: EarningsParams,
    hh_services: HhServices,
    lcp_items: Sequence[LcpItem],
    union_mode: bool,
    date_calc: DateCalc,
    algebraic: Algebraic,
    projection: Projection,
    hhs_data: HhsData,
    lcp_data: LcpData,
    grand_total: float,
    scenario_projections: Sequence[ScenarioProjection],
    selected_scenario: str,
    case_id: Optional[str] = None,
    user_id: Optional[str] = None,
    categories: CategoryTable = DEFAULT_CPI_CATEGORIES,
) -> Dict[str, Any]:
    metadata = {
        "report_id": str(uuid.uuid4()),
        "generated_at": datetime.now(timezone.utc).isoformat(),
        "app_version": APP_VERSION,
        "schema_version": SCHEMA_VERSION,
        "user_id": user_id,
        "case_id": case_id,
        "calculation_method": CALCULATION_METHOD,
        "active_scenario": selected_scenario,
        "included_scenarios": [s.id for s in scenario_projections if s.included],
    }
    periods = compute_period_rows(projection, earnings_params.discount_rate, earnings_params.enable_present_value)
    summary_metrics = compute_summary_metrics(projection, hh_services, hhs_data, lcp_data, grand_total)
    work_life_factor = algebraic.wlf * 100

    return {
        "metadata": metadata,
        "assumptions": to_plain(
            {
                "case_info": case_info,
                "earnings_params": earnings_params,
                "hh_services": hh_services,
                "lcp_items": list(lcp_items),
                "is_union_mode": union_mode,
                "cpi_categories": {"version": categories.version, "rates": categories.as_dict()},
            }
        ),
        "calculations": to_plain(
            {
                "date_calc": date_calc,
                "algebraic": algebraic,
                "projection": projection,
                "hhs_data": hhs_data,
                "lcp_data": lcp_data,
                "work_life_factor": work_life_factor,
            }
        ),
        "results": to_plain(
            {
                "scenario_projections": list(scenario_projections),
                "grand_total": grand_total,
                "summary_metrics": summary_metrics,
            }
        ),
        "periods": to_plain(periods),
    }


###############################################################################
# DataFrame tables
###############################################################################

def build_report_tables(
    case_id: str,
    case_info: CaseInfo,
    earnings_params: EarningsParams,
    hh_services: HhServices,
    lcp_items: Sequence[LcpItem],
    union_mode: bool,
    date_calc: DateCalc,
    algebraic: Algebraic,
    projection: Projection,
    scenario_projections: Sequence[ScenarioProjection],
    summary_metrics: SummaryMetrics,
    age_at_injury: float,
    base_calendar_year: int,
    audit_log: Sequence[str],
    categories: CategoryTable = DEFAULT_CPI_CATEGORIES,
) -> Dict[str, pd.DataFrame]:
    """Assemble one DataFrame per report worksheet.

    Returns
    -------
    dict
        ``dashboard``, ``algebraic``, ``past_schedule``, ``future_schedule``,
        ``periods``, ``scenarios``, ``earnings_detail``, ``lcp_detail``,
        ``household_detail``, ``cpi_categories`` and ``audit_log``.
    """
    dashboard_df = pd.DataFrame({
        "Case ID": [case_id],
        "Plaintiff": [case_info.plaintiff],
        "Case Type": [case_info.case_type.value],
        "Jurisdiction": [case_info.jurisdiction],
        "Age at Injury": [date_calc.age_injury],
        "Age at Trial": [date_calc.age_trial],
        "Past Years": [date_calc.past_years],
        "YFS": [date_calc.derived_yfs],
        "WLE": [earnings_params.wle],
        "AIF (%)": [algebraic.full_multiplier * 100],
        "Past Loss (USD)": [summary_metrics.total_past_loss],
        "Future Loss PV (USD)": [summary_metrics.total_future_pv],
        "Household Services PV (USD)": [summary_metrics.household_services_pv],
        "Life Care Plan PV (USD)": [summary_metrics.life_care_plan_pv],
        "Grand Total (USD)": [summary_metrics.grand_total],
    })

    earnings_frames = []
    for scenario in scenario_projections:
        if not scenario.included:
            continue
        schedule = compute_detailed_scenario_schedule(
            case_info, earnings_params, scenario.retirement_age, age_at_injury, union_mode, base_calendar_year
        )
        frame = rows_to_frame(schedule)
        frame.insert(0, "Scenario", scenario.label)
        earnings_frames.append(frame)
    earnings_detail = pd.concat(earnings_frames, ignore_index=True) if earnings_frames else pd.DataFrame()

    return {
        "dashboard": dashboard_df,
        "algebraic": pd.DataFrame(algebraic_steps(algebraic)),
        "past_schedule": rows_to_frame(projection.past_schedule),
        "future_schedule": rows_to_frame(projection.future_schedule),
        "periods": rows_to_frame(
            compute_period_rows(projection, earnings_params.discount_rate, earnings_params.enable_present_value)
        ),
        "scenarios": rows_to_frame(scenario_projections),
        "earnings_detail": earnings_detail,
        "lcp_detail": rows_to_frame(
            compute_detailed_lcp_schedule(
                lcp_items,
                earnings_params.discount_rate,
                base_calendar_year,
                enable_present_value=earnings_params.enable_present_value,
                categories=categories,
            )
        ),
        "household_detail": rows_to_frame(
            compute_detailed_hhs_schedule(
                hh_services, date_calc.derived_yfs, base_calendar_year, earnings_params.enable_present_value
            )
        ),
        "cpi_categories": pd.DataFrame(
            [{"Category": c.id, "Label": c.label, "Rate": c.rate, "Version": categories.version} for c in categories]
        ),
        "audit_log": pd.DataFrame({"AuditLog": list(audit_log)}),
    }
