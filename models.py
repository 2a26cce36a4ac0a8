"""
Data model for the forensic economic loss engine
================================================

Every input and output of the calculation engine is described here as a
frozen dataclass.  Parameter objects are built once at the boundary (see
``parsing.py``) and are never mutated by the engine, so the same objects
can be shared between the on-screen summary, the report snapshot and any
export collaborator.

All rates are expressed as decimal fractions (``0.0425`` for 4.25 percent),
matching the ``discount_rate_override`` / ``annual_growth_rate_override``
convention of the case configuration.
"""

from dataclasses import dataclass, field
from datetime import date
from enum import Enum
from typing import Dict, Iterator, Optional, Tuple, Union


###############################################################################
# Case and parameter inputs
###############################################################################

class CaseType(str, Enum):
    PERSONAL_INJURY = "Personal Injury"
    WRONGFUL_DEATH = "Wrongful Death"


@dataclass(frozen=True)
class CaseInfo:
    """Identity, dates and jurisdiction metadata for one plaintiff."""

    plaintiff: str = ""
    file_number: str = ""
    attorney: str = ""
    law_firm: str = ""
    report_date: Optional[date] = None
    gender: str = ""
    dob: Optional[date] = None
    education: str = ""
    marital_status: str = ""
    dependents: str = ""
    city: str = ""
    county: str = ""
    state: str = "New Jersey"
    date_of_injury: Optional[date] = None
    date_of_trial: Optional[date] = None
    retirement_age: float = 67.0
    life_expectancy: float = 0.0
    wle_source: str = "Skoog-Ciecka Work Life Expectancy Tables (2017)"
    life_table_source: str = "CDC National Vital Statistics Reports (2021)"
    jurisdiction: str = "New Jersey"
    case_type: CaseType = CaseType.PERSONAL_INJURY


@dataclass(frozen=True)
class EarningsParams:
    """Earnings, benefit, tax and era assumptions for the loss projection."""

    base_earnings: float = 0.0
    residual_earnings: float = 0.0
    wle: float = 0.0
    wage_growth: float = 0.035
    discount_rate: float = 0.0425
    fringe_rate: float = 0.215
    # Union mode: itemized flat-dollar fringes
    pension: float = 0.0
    health_welfare: float = 0.0
    annuity: float = 0.0
    clothing_allowance: float = 0.0
    other_benefits: float = 0.0
    unemployment_rate: float = 0.042
    ui_replacement_rate: float = 0.40
    fed_tax_rate: float = 0.15
    state_tax_rate: float = 0.045
    enable_fringe_benefits: bool = True
    enable_present_value: bool = True
    # Era split
    use_era_split: bool = False
    era_split_year: Optional[int] = None
    era1_wage_growth: float = 0.035
    era2_wage_growth: float = 0.035
    # Wrongful death
    is_wrongful_death: bool = False
    era1_personal_consumption: float = 0.0
    era2_personal_consumption: float = 0.0
    # Permanent job incapacity
    enable_pji: bool = False
    pji_age: float = 0.0

    @property
    def flat_fringe_total(self) -> float:
        return (
            self.pension
            + self.health_welfare
            + self.annuity
            + self.clothing_allowance
            + self.other_benefits
        )


@dataclass(frozen=True)
class HhServices:
    active: bool = False
    hours_per_week: float = 0.0
    hourly_rate: float = 25.0
    growth_rate: float = 0.03
    discount_rate: float = 0.0425


###############################################################################
# Life care plan items
###############################################################################

@dataclass(frozen=True)
class Annual:
    """Occurs every year of the item's range."""


@dataclass(frozen=True)
class OneTime:
    """Occurs once, in the item's start year."""


@dataclass(frozen=True)
class Recurring:
    """Occurs every ``interval`` years counted from the start year."""

    interval: int = 1


@dataclass(frozen=True)
class CustomYears:
    """Occurs in an explicit set of plan years; start, duration and end are ignored."""

    years: Tuple[int, ...] = ()

    def normalized(self) -> Tuple[int, ...]:
        return tuple(sorted({int(y) for y in self.years if int(y) > 0}))


Frequency = Union[Annual, OneTime, Recurring, CustomYears]


@dataclass(frozen=True)
class LcpItem:
    """One care item of a life care plan.

    ``cpi`` is an explicit inflation rate.  When it is ``None`` the rate is
    looked up from the category table by ``category_id``.
    """

    id: int
    name: str
    category_id: str
    base_cost: float
    frequency: Frequency = field(default_factory=Annual)
    start_year: int = 1
    duration: int = 1
    end_year: Optional[int] = None
    cpi: Optional[float] = None


@dataclass(frozen=True)
class CpiCategory:
    id: str
    label: str
    rate: float


@dataclass(frozen=True)
class CategoryTable:
    """Versioned, read-only mapping of care category id to CPI rate."""

    version: str
    categories: Tuple[CpiCategory, ...]

    def rate_for(self, category_id: str) -> Optional[float]:
        for category in self.categories:
            if category.id == category_id:
                return category.rate
        return None

    def as_dict(self) -> Dict[str, float]:
        return {c.id: c.rate for c in self.categories}

    def __iter__(self) -> Iterator[CpiCategory]:
        return iter(self.categories)


DEFAULT_CPI_CATEGORIES = CategoryTable(
    version="2024.1",
    categories=(
        CpiCategory("evals", "Physician Evals & Home Care", 0.0288),
        CpiCategory("rx", "Rx / Medical Commodities", 0.0165),
        CpiCategory("surgery", "Hospital/Surgical Services", 0.0407),
        CpiCategory("therapy", "Therapy & Treatments", 0.0162),
        CpiCategory("transport", "Transportation", 0.0432),
        CpiCategory("home", "Home Modifications", 0.0416),
        CpiCategory("educ", "Education/Training", 0.0261),
        CpiCategory("custom", "Custom Rate", 0.0),
    ),
)


###############################################################################
# Engine outputs
###############################################################################

@dataclass(frozen=True)
class DateCalc:
    age_injury: str = "0"
    age_trial: str = "0"
    current_age: str = "0"
    past_years: float = 0.0
    derived_yfs: float = 0.0


@dataclass(frozen=True)
class Algebraic:
    """Ordered Tinari factor breakdown.

    Every ``*_base`` / ``*_compensation`` value is a fraction of gross
    earnings, so multiplying by base earnings gives the dollar amount of
    that step.
    """

    wlf: float
    unemployment_factor: float
    fringe_factor: float
    flat_fringe_amount: float
    combined_tax_rate: float
    after_tax_factor: float
    worklife_adjusted_base: float
    unemployment_adjusted_base: float
    gross_compensation_with_fringes: float
    tax_on_base_earnings: float
    after_tax_compensation: float
    era1_personal_consumption: float
    era2_personal_consumption: float
    era1_aif: float
    era2_aif: float
    full_multiplier: float
    realized_multiplier: float
    yfs: float


@dataclass(frozen=True)
class PastScheduleRow:
    year: int
    label: str
    gross_base: float
    gross_actual: float
    net_loss: float
    is_manual: bool
    fraction: float


@dataclass(frozen=True)
class FutureScheduleRow:
    year: int
    calendar_year: int
    gross: float
    net_loss: float
    pv: float


@dataclass(frozen=True)
class Projection:
    past_schedule: Tuple[PastScheduleRow, ...] = ()
    future_schedule: Tuple[FutureScheduleRow, ...] = ()
    total_past_loss: float = 0.0
    total_future_nominal: float = 0.0
    total_future_pv: float = 0.0


@dataclass(frozen=True)
class HhsData:
    total_nom: float = 0.0
    total_pv: float = 0.0


@dataclass(frozen=True)
class LcpItemValue:
    item: LcpItem
    active_years: Tuple[int, ...]
    rate: float
    total_nom: float
    total_pv: float


@dataclass(frozen=True)
class LcpData:
    items: Tuple[LcpItemValue, ...] = ()
    total_nom: float = 0.0
    total_pv: float = 0.0


@dataclass(frozen=True)
class ScenarioProjection:
    id: str
    label: str
    retirement_age: float
    yfs: float
    wlf: float
    wlf_percent: float
    total_past_loss: float
    total_future_pv: float
    total_earnings_loss: float
    grand_total: float
    included: bool = True


###############################################################################
# Detailed (report) schedules
###############################################################################

@dataclass(frozen=True)
class DetailedScheduleRow:
    year_num: int
    calendar_year: int
    gross_earnings: float
    net_loss: float
    present_value: float
    cum_pv: float
    is_past: bool = False


@dataclass(frozen=True)
class LcpYearItem:
    name: str
    base_cost: float
    inflated_cost: float
    pv: float


@dataclass(frozen=True)
class DetailedLcpScheduleRow:
    year_num: int
    calendar_year: int
    items: Tuple[LcpYearItem, ...]
    total_inflated: float
    total_pv: float
    cum_pv: float


@dataclass(frozen=True)
class DetailedHhsScheduleRow:
    year_num: int
    calendar_year: int
    annual_value: float
    present_value: float
    cum_pv: float


@dataclass(frozen=True)
class PeriodRow:
    year_num: int
    calendar_year: int
    period_type: str
    gross_income: float
    net_loss: float
    discount_factor: float
    present_value: float
    cumulative_pv: float


@dataclass(frozen=True)
class SummaryMetrics:
    total_past_loss: float
    total_future_pv: float
    total_earnings_loss: float
    household_services_pv: float
    life_care_plan_pv: float
    grand_total: float
