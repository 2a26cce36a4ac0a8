"""
Forensic Economic Loss Calculator
================================

This module ties the damages engine together.  ``run_case`` reads a case
configuration dictionary, derives the case dates, the Tinari adjustment
factors, the past and future earnings loss, household services and life
care plan values and the retirement-age scenarios, and returns a summary
dictionary, the report snapshot and the report tables.

Nothing is written to disk: export collaborators (spreadsheet, word
processor, CSV or JSON writers) consume the returned ``snapshot`` and
``tables``.

Configuration
-------------

Rates are decimal fractions.  Every section is optional::

    {
        "case_id": "case_001",
        "case": {"plaintiff": "John Doe", "dob": "1985-01-15",
                 "date_of_injury": "2020-03-10", "date_of_trial": "2023-06-15",
                 "retirement_age": 67, "case_type": "Personal Injury"},
        "earnings": {"base_earnings": 75000, "residual_earnings": 30000,
                     "wle": 25, "wage_growth": 0.035, "discount_rate": 0.0425},
        "household": {"active": true, "hours_per_week": 15, "hourly_rate": 25},
        "life_care_plan": [{"name": "Pain Meds", "category_id": "rx",
                            "base_cost": 2400, "freq_type": "annual",
                            "duration": 30}],
        "past_actuals": {"2021": "15000"},
        "union_mode": false,
        "selected_scenario": "wle",
        "base_calendar_year": 2024
    }

Usage example:

```python
from main import run_case
import json

config = json.loads(open("case_config.json").read())
results = run_case(config)
print(results["summary"])  # prints the past loss, future PV, grand total, etc.
```

or from the command line::

    python main.py case_config.json
"""

import argparse
import json
import logging
import sys
from datetime import date
from typing import Any, Dict, List, Mapping, Optional

from calculations import (
    compute_age_at_injury,
    compute_algebraic,
    compute_date_calc,
    compute_grand_total,
    compute_hhs_data,
    compute_lcp_data,
    compute_projection,
    compute_scenario_projections,
)
from parsing import (
    case_info_from_config,
    category_table_from_config,
    earnings_params_from_config,
    hh_services_from_config,
    lcp_items_from_config,
    past_actuals_from_config,
    parse_bool,
    parse_date,
)
from report import (
    CALCULATION_METHOD,
    build_report_tables,
    compute_summary_metrics,
    format_currency,
    generate_report_snapshot,
    to_plain,
)

logger = logging.getLogger(__name__)

DEFAULT_SELECTED_SCENARIO = "wle"


def _base_calendar_year(config: Mapping[str, Any], trial_date: Optional[date]) -> int:
    configured = config.get("base_calendar_year")
    if configured is not None:
        return int(configured)
    if trial_date is not None:
        return trial_date.year
    return date.today().year


###############################################################################
# Main orchestration function
###############################################################################

def run_case(config: Mapping[str, Any], today: Optional[date] = None) -> Dict[str, Any]:
    """Process a single case configuration.

    Parameters
    ----------
    config : dict
        A case configuration (see the module docstring).
    today : date, optional
        Reference date for the current age; defaults to today.

    Returns
    -------
    dict
        ``case_id``, ``summary`` (headline figures), ``scenarios`` (one dict
        per retirement-age scenario), ``snapshot`` (the report snapshot),
        ``tables`` (DataFrames keyed by worksheet name) and ``audit``.
    """
    if not isinstance(config, Mapping):
        raise ValueError("Case configuration must be a mapping")
    if not config.get("case_id"):
        raise ValueError("Missing required field: case_id")
    case_id = str(config["case_id"])

    case_info = case_info_from_config(config.get("case"))
    earnings_params = earnings_params_from_config(config.get("earnings"), case_info.case_type)
    hh_services = hh_services_from_config(config.get("household"))
    lcp_items = lcp_items_from_config(config.get("life_care_plan"))
    past_actuals = past_actuals_from_config(config.get("past_actuals"))
    categories = category_table_from_config(config.get("cpi_categories"))
    union_mode = parse_bool(config.get("union_mode"))
    selected_scenario = config.get("selected_scenario", DEFAULT_SELECTED_SCENARIO)
    base_calendar_year = _base_calendar_year(config, case_info.date_of_trial)
    if "today" in config:
        today = parse_date(config["today"]) or today

    audit_log: List[str] = [
        f"Calculation method: {CALCULATION_METHOD}",
        "Combined tax rate: 1 - (1 - federal) x (1 - state), levied on base earnings only",
        "Discounting: mid-year convention 1 / (1 + r)^(t + 0.5)",
        f"CPI category table: {categories.version}",
        f"Work-life expectancy source: {case_info.wle_source}",
        f"Life table source: {case_info.life_table_source}",
    ]

    date_calc = compute_date_calc(case_info, today)
    if date_calc.derived_yfs == 0:
        audit_log.append("Years to final separation is zero; earnings loss collapses to zero")
    algebraic = compute_algebraic(earnings_params, date_calc, union_mode)
    projection = compute_projection(case_info, earnings_params, algebraic, past_actuals, date_calc)
    manual_years = [row.year for row in projection.past_schedule if row.is_manual]
    if manual_years:
        audit_log.append(f"Manual actual earnings used for: {', '.join(map(str, manual_years))}")

    hhs_data = compute_hhs_data(hh_services, date_calc.derived_yfs, earnings_params.enable_present_value)
    lcp_data = compute_lcp_data(
        lcp_items, earnings_params.discount_rate, earnings_params.enable_present_value, categories
    )
    grand_total = compute_grand_total(projection, hh_services, hhs_data, lcp_data)

    age_at_injury = compute_age_at_injury(case_info)
    scenarios = compute_scenario_projections(
        case_info,
        age_at_injury,
        earnings_params,
        date_calc,
        past_actuals,
        union_mode,
        hh_services,
        hhs_data,
        lcp_data,
    )
    scenario_ids = [s.id for s in scenarios]
    if scenarios and selected_scenario not in scenario_ids:
        audit_log.append(f"Selected scenario {selected_scenario!r} not available; using {scenario_ids[0]!r}")
        selected_scenario = scenario_ids[0]

    summary_metrics = compute_summary_metrics(projection, hh_services, hhs_data, lcp_data, grand_total)
    logger.info("Case %s grand total %s", case_id, format_currency(grand_total))

    summary = {
        "age_at_injury": date_calc.age_injury,
        "age_at_trial": date_calc.age_trial,
        "current_age": date_calc.current_age,
        "past_years": date_calc.past_years,
        "years_to_final_separation": date_calc.derived_yfs,
        "work_life_factor_pct": algebraic.wlf * 100,
        "adjusted_income_factor_pct": algebraic.full_multiplier * 100,
        "total_past_loss_usd": summary_metrics.total_past_loss,
        "total_future_pv_usd": summary_metrics.total_future_pv,
        "total_earnings_loss_usd": summary_metrics.total_earnings_loss,
        "household_services_pv_usd": summary_metrics.household_services_pv,
        "life_care_plan_pv_usd": summary_metrics.life_care_plan_pv,
        "grand_total_usd": grand_total,
        "selected_scenario": selected_scenario,
    }

    snapshot = generate_report_snapshot(
        case_info,
        earnings_params,
        hh_services,
        lcp_items,
        union_mode,
        date_calc,
        algebraic,
        projection,
        hhs_data,
        lcp_data,
        grand_total,
        scenarios,
        selected_scenario,
        case_id=case_id,
        categories=categories,
    )
    tables = build_report_tables(
        case_id,
        case_info,
        earnings_params,
        hh_services,
        lcp_items,
        union_mode,
        date_calc,
        algebraic,
        projection,
        scenarios,
        summary_metrics,
        age_at_injury,
        base_calendar_year,
        audit_log,
        categories,
    )
    return {
        "case_id": case_id,
        "summary": summary,
        "scenarios": to_plain(scenarios),
        "snapshot": snapshot,
        "tables": tables,
        "audit": {
            "sources": [case_info.wle_source, case_info.life_table_source],
            "notes": audit_log,
        },
    }


def main(argv: Optional[List[str]] = None) -> int:
    parser = argparse.ArgumentParser(description="Forensic economic loss calculator")
    parser.add_argument("config", help="Path to a JSON case configuration")
    parser.add_argument("--snapshot", action="store_true", help="Print the full report snapshot")
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging")
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    with open(args.config) as f:
        config = json.load(f)
    try:
        result = run_case(config)
    except ValueError as exc:
        logger.error("Invalid case configuration: %s", exc)
        return 1

    output = result["snapshot"] if args.snapshot else {
        "case_id": result["case_id"],
        "summary": result["summary"],
        "scenarios": result["scenarios"],
        "audit": result["audit"],
    }
    json.dump(output, sys.stdout, indent=2)
    sys.stdout.write("\n")
    return 0


if __name__ == "__main__":
    sys.exit(main())
