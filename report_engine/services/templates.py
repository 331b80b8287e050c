from __future__ import annotations

import logging
from collections.abc import Callable, Iterable, Mapping, Sequence
from types import MappingProxyType
from typing import Any

from ..excel.cells import parse_date, to_float
from ..models.template import ChartSpec, KpiFormula, KpiSpec, Template

"""Industry template registry.

Templates are static, read-only data shared by every invocation. Custom KPI
formulas are referenced by name and resolved through CUSTOM_CALCULATIONS.
"""

__all__ = [
    "CUSTOM_CALCULATIONS",
    "REPORT_TEMPLATES",
    "UnknownTemplateError",
    "get_template",
    "list_templates",
    "detect_template",
]

logger = logging.getLogger(__name__)

Rows = Sequence[Mapping[str, Any]]


class UnknownTemplateError(Exception):
    """Raised when a template id is not in the registry."""


def _num(row: Mapping[str, Any], column: str) -> float:
    value = to_float(row.get(column))
    return value if value is not None else 0.0


def _total(rows: Rows, column: str) -> float:
    return sum(_num(r, column) for r in rows)


def _ratio(numerator: float, denominator: float, scale: float = 1.0) -> float:
    return numerator / denominator * scale if denominator > 0 else 0.0


def _category_total(rows: Rows, keyword: str) -> float:
    return sum(_num(r, "amount") for r in rows if keyword in str(r.get("category") or "").lower())


# --- SaaS -------------------------------------------------------------------

def _net_new_mrr(rows: Rows) -> float:
    return _total(rows, "new_mrr") + _total(rows, "expansion_mrr") - _total(rows, "churned_mrr")


def _churn_rate(rows: Rows) -> float:
    start_customers = _num(rows[0], "customers") if rows else 0.0
    return _ratio(_total(rows, "churned_customers"), start_customers, 100)


def _arpu(rows: Rows) -> float:
    if not rows:
        return 0.0
    last = rows[-1]
    customers = _num(last, "customers") or 1.0
    return _num(last, "mrr") / customers


# --- E-commerce -------------------------------------------------------------

def _average_order_value(rows: Rows) -> float:
    return _ratio(_total(rows, "revenue"), _total(rows, "orders"))


def _ecommerce_conversion_rate(rows: Rows) -> float:
    return _ratio(_total(rows, "orders"), _total(rows, "visitors"), 100)


def _gross_margin(rows: Rows) -> float:
    revenue = _total(rows, "revenue")
    return _ratio(revenue - _total(rows, "cogs"), revenue, 100)


def _roas(rows: Rows) -> float:
    return _ratio(_total(rows, "revenue"), _total(rows, "ad_spend"))


# --- Marketing ROI ----------------------------------------------------------

def _roi(rows: Rows) -> float:
    spend = _total(rows, "spend")
    return _ratio(_total(rows, "revenue") - spend, spend, 100)


def _click_through_rate(rows: Rows) -> float:
    return _ratio(_total(rows, "clicks"), _total(rows, "impressions"), 100)


def _cost_per_click(rows: Rows) -> float:
    return _ratio(_total(rows, "spend"), _total(rows, "clicks"))


def _cost_per_acquisition(rows: Rows) -> float:
    return _ratio(_total(rows, "spend"), _total(rows, "conversions"))


# --- Financial statement ----------------------------------------------------

def _financial_total_revenue(rows: Rows) -> float:
    return _category_total(rows, "revenue")


def _financial_total_expenses(rows: Rows) -> float:
    return abs(_category_total(rows, "expense"))


def _net_profit(rows: Rows) -> float:
    return _financial_total_revenue(rows) - _financial_total_expenses(rows)


def _financial_profit_margin(rows: Rows) -> float:
    revenue = _financial_total_revenue(rows)
    return _ratio(revenue - _financial_total_expenses(rows), revenue, 100)


def _budget_variance(rows: Rows) -> float:
    budget = _total(rows, "budget")
    return _ratio(_total(rows, "amount") - budget, budget, 100)


# --- HR ---------------------------------------------------------------------

def _average_headcount(rows: Rows) -> float:
    return _total(rows, "headcount") / len(rows) if rows else 0.0


def _turnover_rate(rows: Rows) -> float:
    return _ratio(_total(rows, "terminations"), _average_headcount(rows), 100)


def _hiring_rate(rows: Rows) -> float:
    return _ratio(_total(rows, "hires"), _average_headcount(rows), 100)


def _cost_per_employee(rows: Rows) -> float:
    return _ratio(_total(rows, "total_compensation"), _total(rows, "headcount"))


# --- Project ----------------------------------------------------------------

def _completion_rate(rows: Rows) -> float:
    completed = sum(1 for r in rows if str(r.get("status") or "").strip().lower() == "completed")
    return _ratio(completed, len(rows), 100)


def _on_time_rate(rows: Rows) -> float:
    completed = [r for r in rows if r.get("completed_date")]
    on_time = 0
    for r in completed:
        done, due = parse_date(r.get("completed_date")), parse_date(r.get("due_date"))
        if done is not None and due is not None and done <= due:
            on_time += 1
    return _ratio(on_time, len(completed), 100)


def _budget_utilization(rows: Rows) -> float:
    return _ratio(_total(rows, "spent"), _total(rows, "budget"), 100)


def _hours_variance(rows: Rows) -> float:
    estimated = _total(rows, "estimated_hours")
    return _ratio(_total(rows, "actual_hours") - estimated, estimated, 100)


CUSTOM_CALCULATIONS: Mapping[str, Callable[[Rows], float]] = MappingProxyType({
    "net_new_mrr": _net_new_mrr,
    "churn_rate": _churn_rate,
    "arpu": _arpu,
    "average_order_value": _average_order_value,
    "ecommerce_conversion_rate": _ecommerce_conversion_rate,
    "gross_margin": _gross_margin,
    "roas": _roas,
    "roi": _roi,
    "click_through_rate": _click_through_rate,
    "cost_per_click": _cost_per_click,
    "cost_per_acquisition": _cost_per_acquisition,
    "financial_total_revenue": _financial_total_revenue,
    "financial_total_expenses": _financial_total_expenses,
    "net_profit": _net_profit,
    "financial_profit_margin": _financial_profit_margin,
    "budget_variance": _budget_variance,
    "turnover_rate": _turnover_rate,
    "hiring_rate": _hiring_rate,
    "cost_per_employee": _cost_per_employee,
    "completion_rate": _completion_rate,
    "on_time_rate": _on_time_rate,
    "budget_utilization": _budget_utilization,
    "hours_variance": _hours_variance,
})


def _sum(id: str, name: str, column: str, unit: str = "") -> KpiSpec:
    return KpiSpec(id=id, name=name, formula=KpiFormula.SUM, column=column, unit=unit)


def _custom(id: str, name: str, calc: str, unit: str = "") -> KpiSpec:
    return KpiSpec(id=id, name=name, formula=KpiFormula.CUSTOM, calc=calc, unit=unit)


_TEMPLATES: tuple[Template, ...] = (
    Template(
        id="saas",
        name="SaaS Metrics",
        description="Monthly Recurring Revenue, Churn, LTV, CAC analysis",
        required_columns=("date", "mrr"),
        optional_columns=(
            "new_mrr", "churned_mrr", "expansion_mrr", "customers",
            "new_customers", "churned_customers", "cac", "arpu",
        ),
        kpis=(
            _sum("total_mrr", "Total MRR", "mrr", "$"),
            KpiSpec(id="mrr_growth", name="MRR Growth Rate", formula=KpiFormula.GROWTH_RATE, column="mrr", unit="%"),
            _custom("net_mrr", "Net New MRR", "net_new_mrr", "$"),
            _custom("churn_rate", "Churn Rate", "churn_rate", "%"),
            _custom("arpu", "Average Revenue Per User", "arpu", "$"),
        ),
        chart_specs=(
            ChartSpec(type="line", title="MRR Trend", x_column="date", y_columns=("mrr",)),
            ChartSpec(type="bar", title="New vs Churned MRR", x_column="date", y_columns=("new_mrr", "churned_mrr")),
        ),
        ai_context=(
            "SaaS business metrics focusing on recurring revenue health, "
            "customer retention, and growth efficiency."
        ),
    ),
    Template(
        id="ecommerce",
        name="E-commerce Analytics",
        description="Sales, conversion rates, AOV, customer acquisition",
        required_columns=("date", "revenue"),
        optional_columns=(
            "orders", "visitors", "customers", "cart_abandonment", "refunds",
            "cogs", "ad_spend", "new_customers", "returning_customers",
        ),
        kpis=(
            _sum("total_revenue", "Total Revenue", "revenue", "$"),
            _sum("total_orders", "Total Orders", "orders"),
            _custom("aov", "Average Order Value", "average_order_value", "$"),
            _custom("conversion_rate", "Conversion Rate", "ecommerce_conversion_rate", "%"),
            _custom("gross_margin", "Gross Margin", "gross_margin", "%"),
            _custom("roas", "Return on Ad Spend", "roas", "x"),
        ),
        chart_specs=(
            ChartSpec(type="line", title="Revenue Trend", x_column="date", y_columns=("revenue",)),
            ChartSpec(type="bar", title="Orders & Visitors", x_column="date", y_columns=("orders", "visitors")),
            ChartSpec(
                type="line", title="Conversion Rate Over Time", x_column="date",
                y_columns=("conversion_rate",), calculated=True,
            ),
        ),
        ai_context=(
            "E-commerce performance metrics focusing on revenue growth, customer "
            "acquisition cost efficiency, and conversion optimization."
        ),
    ),
    Template(
        id="marketing_roi",
        name="Marketing ROI",
        description="Campaign performance, attribution, channel effectiveness",
        required_columns=("campaign", "spend"),
        optional_columns=(
            "impressions", "clicks", "conversions", "revenue", "leads",
            "channel", "start_date", "end_date",
        ),
        kpis=(
            _sum("total_spend", "Total Ad Spend", "spend", "$"),
            _sum("total_revenue", "Revenue Generated", "revenue", "$"),
            _custom("roi", "Return on Investment", "roi", "%"),
            _custom("ctr", "Click-Through Rate", "click_through_rate", "%"),
            _custom("cpc", "Cost Per Click", "cost_per_click", "$"),
            _custom("cpa", "Cost Per Acquisition", "cost_per_acquisition", "$"),
        ),
        chart_specs=(
            ChartSpec(type="bar", title="Spend by Campaign", x_column="campaign", y_columns=("spend",)),
            ChartSpec(type="bar", title="ROI by Campaign", x_column="campaign", y_columns=("roi",), calculated=True),
            ChartSpec(type="pie", title="Spend Distribution by Channel", group_by="channel", value_column="spend"),
        ),
        ai_context=(
            "Marketing campaign performance analysis focusing on ROI optimization, "
            "channel attribution, and budget allocation recommendations."
        ),
    ),
    Template(
        id="financial",
        name="Financial Statement",
        description="Profit & Loss, expenses, margins analysis",
        required_columns=("category", "amount"),
        optional_columns=("date", "subcategory", "department", "description", "budget", "previous_period"),
        kpis=(
            _custom("total_revenue", "Total Revenue", "financial_total_revenue", "$"),
            _custom("total_expenses", "Total Expenses", "financial_total_expenses", "$"),
            _custom("net_profit", "Net Profit", "net_profit", "$"),
            _custom("profit_margin", "Profit Margin", "financial_profit_margin", "%"),
            _custom("budget_variance", "Budget Variance", "budget_variance", "%"),
        ),
        chart_specs=(
            ChartSpec(type="bar", title="Revenue vs Expenses"),
            ChartSpec(type="pie", title="Expense Breakdown", group_by="subcategory", value_column="amount"),
            ChartSpec(type="bar", title="Budget vs Actual", y_columns=("budget", "amount")),
        ),
        ai_context=(
            "Financial statement analysis focusing on profitability, expense "
            "management, and budget adherence."
        ),
    ),
    Template(
        id="hr_analytics",
        name="HR Analytics",
        description="Headcount, turnover, hiring, compensation",
        required_columns=("department", "headcount"),
        optional_columns=(
            "date", "hires", "terminations", "open_positions", "avg_salary",
            "total_compensation", "tenure_months", "performance_score",
        ),
        kpis=(
            _sum("total_headcount", "Total Headcount", "headcount"),
            _custom("turnover_rate", "Turnover Rate", "turnover_rate", "%"),
            _custom("hiring_rate", "Hiring Rate", "hiring_rate", "%"),
            KpiSpec(
                id="avg_tenure", name="Average Tenure", formula=KpiFormula.AVERAGE,
                column="tenure_months", unit="months",
            ),
            _custom("cost_per_employee", "Cost Per Employee", "cost_per_employee", "$"),
        ),
        chart_specs=(
            ChartSpec(type="bar", title="Headcount by Department", x_column="department", y_columns=("headcount",)),
            ChartSpec(type="line", title="Headcount Trend", x_column="date", y_columns=("headcount",)),
            ChartSpec(type="bar", title="Hires vs Terminations", x_column="date", y_columns=("hires", "terminations")),
        ),
        ai_context=(
            "HR analytics focusing on workforce planning, retention strategies, "
            "and compensation optimization."
        ),
    ),
    Template(
        id="project",
        name="Project Analytics",
        description="Timeline, budget, resources, milestones",
        required_columns=("task", "status"),
        optional_columns=(
            "project", "assignee", "start_date", "due_date", "completed_date",
            "estimated_hours", "actual_hours", "budget", "spent", "priority",
        ),
        kpis=(
            _custom("completion_rate", "Completion Rate", "completion_rate", "%"),
            _custom("on_time_rate", "On-Time Delivery", "on_time_rate", "%"),
            _custom("budget_utilization", "Budget Utilization", "budget_utilization", "%"),
            _custom("hours_variance", "Hours Variance", "hours_variance", "%"),
        ),
        chart_specs=(
            ChartSpec(type="pie", title="Tasks by Status", group_by="status"),
            ChartSpec(type="bar", title="Tasks by Assignee", x_column="assignee"),
            ChartSpec(type="bar", title="Budget vs Spent by Project", x_column="project", y_columns=("budget", "spent")),
        ),
        ai_context=(
            "Project management analytics focusing on delivery performance, "
            "resource utilization, and risk identification."
        ),
    ),
)

REPORT_TEMPLATES: Mapping[str, Template] = MappingProxyType({t.id: t for t in _TEMPLATES})


def get_template(template_id: str) -> Template:
    try:
        return REPORT_TEMPLATES[template_id]
    except KeyError:
        raise UnknownTemplateError(
            f"unknown template '{template_id}' (available: {', '.join(REPORT_TEMPLATES)})"
        ) from None


def list_templates() -> list[dict[str, Any]]:
    return [t.summary() for t in REPORT_TEMPLATES.values()]


def _matches(column: str, candidates: Sequence[str]) -> bool:
    return any(c in column or column in c for c in candidates)


def detect_template(columns: Iterable[str]) -> str | None:
    """Best matching template id for the given columns, or None.

    A template qualifies only if every required column matches some input
    column (substring match in either direction). Score = 2 per required
    column + 1 per matched optional column; ties keep registry order.
    """
    normalized = [str(c).lower() for c in columns]
    best_id: str | None = None
    best_score = 0
    for template_id, template in REPORT_TEMPLATES.items():
        if not all(_matches(req, normalized) for req in template.required_columns):
            continue
        score = 2 * len(template.required_columns)
        score += sum(1 for opt in template.optional_columns if _matches(opt, normalized))
        if score > best_score:
            best_id, best_score = template_id, score
    if best_id is not None:
        logger.debug(f"template detected: {best_id} (score={best_score})")
    return best_id
