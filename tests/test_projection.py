from dataclasses import replace
from datetime import date

import pytest

from calculations import compute_algebraic, compute_projection, mid_year_discount
from models import CaseInfo, DateCalc, Projection

DATES = DateCalc(past_years=2.5, derived_yfs=10)


@pytest.fixture
def injury_only():
    return CaseInfo(date_of_injury=date(2020, 1, 1))


def test_mid_year_discount():
    assert mid_year_discount(0, 0.03) == pytest.approx(1 / 1.03 ** 0.5)
    assert mid_year_discount(4, 0.05) == pytest.approx(1.05 ** -4.5)
    factors = [mid_year_discount(i, 0.04) for i in range(30)]
    assert all(a > b for a, b in zip(factors, factors[1:]))


def test_partial_past_years_manual_actuals_and_future_pv(injury_only, earnings_params):
    algebraic = compute_algebraic(earnings_params, DATES, union_mode=False)
    assert algebraic.wlf == pytest.approx(1.5)
    assert algebraic.full_multiplier == pytest.approx(1.3966875)
    assert algebraic.realized_multiplier == pytest.approx(0.9405)

    projection = compute_projection(injury_only, earnings_params, algebraic, {2021: "15000"}, DATES)

    assert [row.year for row in projection.past_schedule] == [2020, 2021, 2022]
    manual = projection.past_schedule[1]
    assert manual.is_manual
    assert manual.gross_actual == 15000
    assert manual.net_loss == pytest.approx(102000 * 1.3966875 - 15000 * 0.9405)
    assert projection.past_schedule[2].fraction == pytest.approx(0.5)
    assert projection.total_past_loss == pytest.approx(287597.9503125)

    assert len(projection.future_schedule) == 10
    first = projection.future_schedule[0]
    assert first.calendar_year == 2022
    assert first.net_loss == pytest.approx(75000 * 1.3966875)
    assert first.pv == pytest.approx(first.net_loss / 1.03 ** 0.5)


def test_totals_equal_schedule_sums(case_info, earnings_params):
    dates = DateCalc(past_years=3.7, derived_yfs=21.3)
    algebraic = compute_algebraic(earnings_params, dates, union_mode=False)
    projection = compute_projection(case_info, earnings_params, algebraic, {}, dates)

    assert len(projection.past_schedule) == 4
    assert len(projection.future_schedule) == 22
    assert projection.total_past_loss == pytest.approx(sum(r.net_loss for r in projection.past_schedule))
    assert projection.total_future_pv == pytest.approx(sum(r.pv for r in projection.future_schedule))
    assert projection.total_future_nominal == pytest.approx(sum(r.net_loss for r in projection.future_schedule))


def test_whole_past_years_have_no_zero_fraction_row(case_info, earnings_params):
    dates = DateCalc(past_years=4.0, derived_yfs=33)
    algebraic = compute_algebraic(earnings_params, dates, union_mode=False)
    projection = compute_projection(case_info, earnings_params, algebraic, {}, dates)
    assert [r.fraction for r in projection.past_schedule] == [1.0, 1.0, 1.0, 1.0]
    assert projection.future_schedule[0].calendar_year == 2024


def test_unparseable_manual_actual_falls_back_to_residual(injury_only, earnings_params):
    algebraic = compute_algebraic(earnings_params, DATES, union_mode=False)
    with_garbage = compute_projection(injury_only, earnings_params, algebraic, {2021: "n/a", 2020: ""}, DATES)
    without = compute_projection(injury_only, earnings_params, algebraic, {}, DATES)

    assert not any(row.is_manual for row in with_garbage.past_schedule)
    assert with_garbage == without


def test_no_injury_date_gives_empty_projection(earnings_params):
    algebraic = compute_algebraic(earnings_params, DATES, union_mode=False)
    assert compute_projection(CaseInfo(), earnings_params, algebraic, {}, DATES) == Projection()


def test_present_value_can_be_disabled(injury_only, earnings_params):
    params = replace(earnings_params, enable_present_value=False)
    algebraic = compute_algebraic(params, DATES, union_mode=False)
    projection = compute_projection(injury_only, params, algebraic, {}, DATES)

    assert all(row.pv == row.net_loss for row in projection.future_schedule)
    assert projection.total_future_pv == projection.total_future_nominal


def test_discounting_lowers_future_value(injury_only, earnings_params):
    algebraic = compute_algebraic(earnings_params, DATES, union_mode=False)
    projection = compute_projection(injury_only, earnings_params, algebraic, {}, DATES)
    assert projection.total_future_pv < projection.total_future_nominal


def test_wrongful_death_uses_era1_past_and_era2_future(injury_only, earnings_params):
    params = replace(
        earnings_params, is_wrongful_death=True, era1_personal_consumption=0.2, era2_personal_consumption=0.4
    )
    algebraic = compute_algebraic(params, DATES, union_mode=False)
    projection = compute_projection(injury_only, params, algebraic, {}, DATES)

    assert projection.past_schedule[0].net_loss == pytest.approx(75000 * algebraic.era1_aif)
    assert projection.future_schedule[0].net_loss == pytest.approx(75000 * algebraic.era2_aif)


def test_explicit_era_split_changes_growth_and_multiplier(injury_only, earnings_params):
    params = replace(
        earnings_params,
        use_era_split=True,
        era_split_year=2021,
        era1_wage_growth=0.0,
        era2_wage_growth=0.05,
        is_wrongful_death=True,
        era1_personal_consumption=0.2,
        era2_personal_consumption=0.4,
    )
    algebraic = compute_algebraic(params, DATES, union_mode=False)
    projection = compute_projection(injury_only, params, algebraic, {}, DATES)

    first, second, _ = projection.past_schedule
    assert first.net_loss == pytest.approx(75000 * algebraic.era1_aif)
    assert second.gross_base == pytest.approx(100000 * 1.05)
    assert second.net_loss == pytest.approx(75000 * 1.05 * algebraic.era2_aif)
    # Future years all fall on or after the split year
    assert projection.future_schedule[1].gross == pytest.approx(100000 * 1.05)


def test_projection_is_idempotent(case_info, earnings_params):
    dates = DateCalc(past_years=2.25, derived_yfs=12.5)
    actuals = {2021: "40000"}
    algebraic = compute_algebraic(earnings_params, dates, union_mode=True)
    first = compute_projection(case_info, earnings_params, algebraic, actuals, dates)
    second = compute_projection(case_info, earnings_params, algebraic, actuals, dates)
    assert first == second
    assert actuals == {2021: "40000"}


def test_slower_era_two_growth_continues_from_reached_wage(earnings_params):
    case = CaseInfo(date_of_injury=date(2020, 1, 1), date_of_trial=date(2022, 1, 1))
    params = replace(
        earnings_params,
        use_era_split=True,
        era_split_year=2030,
        era1_wage_growth=0.05,
        era2_wage_growth=0.0,
    )
    dates = DateCalc(past_years=2, derived_yfs=12)
    algebraic = compute_algebraic(params, dates, union_mode=False)
    projection = compute_projection(case, params, algebraic, {}, dates)

    gross = {row.calendar_year: row.gross for row in projection.future_schedule}
    assert gross[2029] == pytest.approx(100000 * 1.05 ** 7)
    assert gross[2030] == pytest.approx(gross[2029])
    assert gross[2033] == pytest.approx(gross[2029])
    rows = projection.future_schedule
    assert all(b.gross >= a.gross for a, b in zip(rows, rows[1:]))


def test_past_rows_compound_across_split_year(injury_only, earnings_params):
    params = replace(
        earnings_params,
        use_era_split=True,
        era_split_year=2022,
        era1_wage_growth=0.05,
        era2_wage_growth=0.01,
    )
    dates = DateCalc(past_years=3, derived_yfs=10)
    algebraic = compute_algebraic(params, dates, union_mode=False)
    projection = compute_projection(injury_only, params, algebraic, {}, dates)

    assert [row.gross_base for row in projection.past_schedule] == pytest.approx(
        [100000, 105000, 105000 * 1.01]
    )
