from dataclasses import replace

import pytest

from calculations import algebraic_steps, combined_tax_rate, compute_algebraic, compute_work_life_factor
from models import DateCalc, EarningsParams

DATES = DateCalc(derived_yfs=25)

PARAMS = EarningsParams(
    base_earnings=100000,
    wle=20,
    fringe_rate=0,
    unemployment_rate=0.05,
    ui_replacement_rate=0.30,
    fed_tax_rate=0.20,
    state_tax_rate=0.05,
    pension=10000,
    health_welfare=5000,
    annuity=4000,
    clothing_allowance=1000,
    other_benefits=0,
)


def test_combined_tax_is_multiplicative():
    assert combined_tax_rate(0.20, 0.05) == pytest.approx(0.24)
    assert combined_tax_rate(0.15, 0.045) == pytest.approx(0.18825)
    assert combined_tax_rate(0, 0) == 0


def test_non_union_factors():
    algebraic = compute_algebraic(PARAMS, DATES, union_mode=False)

    assert algebraic.wlf == pytest.approx(0.8)
    assert algebraic.fringe_factor == pytest.approx(1.0)
    assert algebraic.flat_fringe_amount == 0
    assert algebraic.unemployment_factor == pytest.approx(0.035)
    assert algebraic.unemployment_adjusted_base == pytest.approx(0.772)
    assert algebraic.combined_tax_rate == pytest.approx(0.24)
    assert algebraic.full_multiplier == pytest.approx(0.58672)
    assert algebraic.realized_multiplier == pytest.approx(0.76)
    assert algebraic.yfs == 25


def test_union_mode_taxes_base_only():
    algebraic = compute_algebraic(PARAMS, DATES, union_mode=True)

    assert algebraic.flat_fringe_amount == 20000
    assert algebraic.fringe_factor == pytest.approx(1.2)
    assert algebraic.gross_compensation_with_fringes == pytest.approx(0.9264)
    # 24% of the 0.772 base, none of the fringe portion
    assert algebraic.tax_on_base_earnings == pytest.approx(0.18528)
    assert algebraic.full_multiplier == pytest.approx(0.74112)
    assert algebraic.realized_multiplier == pytest.approx(0.912)


def test_union_mode_without_base_earnings_has_no_fringe_rate():
    algebraic = compute_algebraic(replace(PARAMS, base_earnings=0), DATES, union_mode=True)
    assert algebraic.fringe_factor == 1.0
    assert algebraic.flat_fringe_amount == 20000


def test_disabled_fringe_benefits():
    params = replace(PARAMS, fringe_rate=0.215, enable_fringe_benefits=False)
    assert compute_algebraic(params, DATES, union_mode=False).fringe_factor == 1.0
    assert compute_algebraic(params, DATES, union_mode=True).fringe_factor == 1.0


@pytest.mark.parametrize("yfs", [-3.0, 0.0, 0.5, 25.0])
def test_wlf_is_zero_exactly_when_yfs_is_not_positive(yfs):
    algebraic = compute_algebraic(PARAMS, DateCalc(derived_yfs=yfs), union_mode=False)
    assert (yfs <= 0) == (algebraic.wlf == 0)


def test_zero_yfs_collapses_multiplier():
    algebraic = compute_algebraic(PARAMS, DateCalc(), union_mode=True)
    assert algebraic.full_multiplier == 0
    assert algebraic.era1_aif == 0
    assert algebraic.era2_aif == 0


def test_wrongful_death_consumption_per_era():
    params = replace(
        PARAMS, is_wrongful_death=True, era1_personal_consumption=0.25, era2_personal_consumption=0.30
    )
    algebraic = compute_algebraic(params, DATES, union_mode=False)

    assert algebraic.era1_aif == pytest.approx(0.58672 * 0.75)
    assert algebraic.era2_aif == pytest.approx(0.58672 * 0.70)
    assert algebraic.full_multiplier == algebraic.era1_aif


def test_personal_injury_ignores_consumption_rates():
    params = replace(PARAMS, era1_personal_consumption=0.25, era2_personal_consumption=0.30)
    algebraic = compute_algebraic(params, DATES, union_mode=False)

    assert algebraic.era1_personal_consumption == 0
    assert algebraic.era1_aif == algebraic.era2_aif == algebraic.after_tax_compensation


def test_work_life_factor_percentage():
    assert compute_work_life_factor(replace(PARAMS, wle=15), 0) == 0
    assert compute_work_life_factor(PARAMS, 25) == pytest.approx(80.0)


def test_steps_reproduce_cumulative_fractions():
    params = replace(PARAMS, is_wrongful_death=True, era1_personal_consumption=0.25)
    algebraic = compute_algebraic(params, DATES, union_mode=True)
    steps = algebraic_steps(algebraic)

    assert len(steps) == 6
    gross, worklife, unemployment, fringe, tax, consumption = steps
    assert worklife["cumulative"] == pytest.approx(gross["cumulative"] * worklife["factor"])
    assert unemployment["cumulative"] == pytest.approx(worklife["cumulative"] * unemployment["factor"])
    assert fringe["cumulative"] == pytest.approx(unemployment["cumulative"] * fringe["factor"])
    assert tax["cumulative"] == pytest.approx(fringe["cumulative"] - unemployment["cumulative"] * tax["factor"])
    assert consumption["cumulative"] == pytest.approx(tax["cumulative"] * consumption["factor"])

    base = params.base_earnings
    assert unemployment["cumulative"] * base == pytest.approx(77200)
    assert fringe["cumulative"] * base == pytest.approx(92640)
