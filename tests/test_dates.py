from dataclasses import replace
from datetime import date

import pytest

from calculations import compute_age_at_injury, compute_date_calc
from models import CaseInfo, DateCalc
from parsing import case_info_from_config


def test_missing_dates_return_zeroed_date_calc():
    assert compute_date_calc(CaseInfo()) == DateCalc(
        age_injury="0", age_trial="0", current_age="0", past_years=0, derived_yfs=0
    )


def test_missing_trial_date_zeroes_everything(case_info):
    assert compute_date_calc(replace(case_info, date_of_trial=None)) == DateCalc()


def test_ages_past_years_and_yfs(case_info):
    result = compute_date_calc(case_info, today=date(2025, 1, 1))

    assert result.age_injury == "30.0"
    assert result.age_trial == "34.0"
    assert result.current_age == "35.0"
    assert result.past_years == pytest.approx(4.0)
    assert result.derived_yfs == pytest.approx(33.0, abs=0.01)


def test_trial_before_injury_clamps_past_years(case_info):
    result = compute_date_calc(replace(case_info, date_of_trial=date(2019, 1, 1)), today=date(2025, 1, 1))
    assert result.past_years == 0


def test_retirement_before_injury_clamps_yfs(case_info):
    result = compute_date_calc(replace(case_info, retirement_age=25), today=date(2025, 1, 1))
    assert result.derived_yfs == 0


def test_unparseable_dates_from_config_are_zeroed():
    info = case_info_from_config({
        "dob": "not a date",
        "date_of_injury": "2020-01-01",
        "date_of_trial": "2024-01-01",
    })
    assert info.dob is None
    assert compute_date_calc(info) == DateCalc()


def test_slash_dates_from_config_match_iso():
    slash = case_info_from_config({"dob": "1/1/1990", "date_of_injury": "1/1/2020", "date_of_trial": "1/1/2024"})
    iso = case_info_from_config({"dob": "1990-01-01", "date_of_injury": "2020-01-01", "date_of_trial": "2024-01-01"})
    today = date(2025, 1, 1)
    assert compute_date_calc(slash, today) == compute_date_calc(iso, today)


def test_age_at_injury(case_info):
    assert compute_age_at_injury(case_info) == pytest.approx(30.0, abs=0.01)
    assert compute_age_at_injury(replace(case_info, dob=None)) == 0
