from datetime import date

import pytest

from models import CaseInfo, EarningsParams, HhServices


@pytest.fixture
def case_info():
    return CaseInfo(
        plaintiff="Jane Roe",
        dob=date(1990, 1, 1),
        date_of_injury=date(2020, 1, 1),
        date_of_trial=date(2024, 1, 1),
        retirement_age=67,
    )


@pytest.fixture
def earnings_params():
    return EarningsParams(
        base_earnings=100000,
        residual_earnings=25000,
        wle=15,
        wage_growth=0.02,
        discount_rate=0.03,
        fringe_rate=0.10,
        unemployment_rate=0.05,
        ui_replacement_rate=0.50,
        fed_tax_rate=0.10,
        state_tax_rate=0.05,
    )


@pytest.fixture
def hh_services():
    return HhServices(active=True, hours_per_week=10, hourly_rate=20, growth_rate=0.03, discount_rate=0.05)
