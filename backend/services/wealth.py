"""Compound-growth projection for the wealth simulator."""
from services.reflection import WealthSummary


def project_wealth(initial_amount: float, monthly_contribution: float, annual_return: float, years: int):
    """Monthly compounding with end-of-month contributions.

    Returns (data_points, summary) where data_points holds one
    ``{"year", "value"}`` entry per year from 0 to ``years``.
    """
    monthly_rate = annual_return / 100 / 12
    value = initial_amount
    data_points = [{"year": 0, "value": round(value, 2)}]

    for year in range(1, years + 1):
        for _ in range(12):
            value = value * (1 + monthly_rate) + monthly_contribution
        data_points.append({"year": year, "value": round(value, 2)})

    final_value = round(value, 2)
    total_contributions = round(initial_amount + monthly_contribution * 12 * years, 2)
    summary = WealthSummary(
        initial_amount=initial_amount,
        monthly_contribution=monthly_contribution,
        annual_return=annual_return,
        years=years,
        final_value=final_value,
        total_contributions=total_contributions,
        gains=round(final_value - total_contributions, 2),
    )
    return data_points, summary
