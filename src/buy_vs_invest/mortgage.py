from __future__ import annotations

from dataclasses import dataclass
from typing import Iterator, Tuple


@dataclass(frozen=True)
class AmortizationRow:
    month: int
    payment: float
    interest: float
    principal: float
    balance: float


def compute_monthly_payment(
    principal: float, annual_rate_pct: float, term_years: int
) -> float:
    if principal <= 0:
        return 0.0
    term_months = max(1, int(term_years) * 12)
    monthly_rate = annual_to_monthly_rate(annual_rate_pct)
    if monthly_rate == 0:
        return principal / term_months
    discount = (1 + monthly_rate) ** (-term_months)
    return principal * monthly_rate / (1 - discount)


def annual_to_monthly_rate(annual_rate_pct: float) -> float:
    if annual_rate_pct <= 0:
        return 0.0
    return annual_rate_pct / 100.0 / 12.0


def advance_loan(
    balance: float,
    monthly_rate: float,
    payment: float,
    month_index: int,
    term_months: int,
) -> Tuple[float, float]:
    """
    Apply one scheduled payment and return ``(new_balance, interest)``.

    Once the balance is gone or the term has elapsed the loan stays at zero
    and accrues nothing. The last scheduled payment clears whatever
    rounding residue the annuity formula leaves behind.
    """
    if balance <= 0 or month_index >= term_months:
        return 0.0, 0.0
    interest = balance * monthly_rate
    principal_paid = max(payment - interest, 0.0)
    new_balance = max(balance - principal_paid, 0.0)
    if month_index + 1 >= term_months:
        new_balance = 0.0
    return new_balance, interest


def amortization_schedule(
    principal: float, annual_rate_pct: float, term_years: int
) -> Iterator[AmortizationRow]:
    term_months = max(1, int(term_years) * 12)
    payment = compute_monthly_payment(principal, annual_rate_pct, term_years)
    monthly_rate = annual_to_monthly_rate(annual_rate_pct)

    balance = max(principal, 0.0)
    for month_index in range(term_months):
        if balance <= 0:
            break
        new_balance, interest = advance_loan(
            balance, monthly_rate, payment, month_index, term_months
        )
        yield AmortizationRow(
            month=month_index + 1,
            payment=interest + (balance - new_balance),
            interest=interest,
            principal=balance - new_balance,
            balance=new_balance,
        )
        balance = new_balance
