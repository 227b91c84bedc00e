"""
Markdown cost breakdown report generator.
"""
from datetime import datetime, timezone
from decimal import Decimal
from typing import List, Optional

from jinja2 import Environment

from plancost import __version__
from plancost.models.resource import CostComponent, Resource


def format_quantity(val: Optional[Decimal]) -> str:
    if val is None:
        return "-"
    # Drop trailing zeros but never switch to exponent notation
    return format(val.normalize(), "f")


def _monthly(c: CostComponent, hours_per_month: int) -> str:
    return format_quantity(c.monthly(hours_per_month))


_TEMPLATE = """\
# Cost Breakdown

**Generated:** {{ generated }}
**Source:** {{ source }}
**Tool:** plancost v{{ version }}

---

## Resources

| # | Resource | Type | Cost components |
|---|----------|------|-----------------|
{% for r in resources %}| {{ loop.index }} | `{{ r.name }}` | `{{ r.resource_type }}` | {{ r.all_cost_components() | length }} |
{% endfor %}
{% for r in resources %}
### `{{ r.name }}`

| Component | Monthly quantity | Unit |
|-----------|------------------|------|
{% for c in r.all_cost_components() %}| {{ c.name }} | {{ monthly(c, hours_per_month) }} | {{ c.unit }} |
{% endfor %}
{% endfor %}
{% if not resources %}
No supported resources were found in the plan.
{% endif %}
"""


def build_report(resources: List[Resource], source_path: str, hours_per_month: int = 730) -> str:
    env = Environment(autoescape=False)
    template = env.from_string(_TEMPLATE)

    return template.render(
        generated=datetime.now(timezone.utc).strftime("%Y-%m-%d %H:%M UTC"),
        source=source_path,
        version=__version__,
        resources=resources,
        monthly=_monthly,
        hours_per_month=hours_per_month,
    )
