"""
JSON cost breakdown report generator.
"""
import json
from datetime import datetime, timezone
from typing import List

from plancost import __version__
from plancost.models.resource import Resource


def _summary(resources: List[Resource]) -> dict:
    components = [c for r in resources for c in r.all_cost_components()]
    return {
        "resource_count": len(resources),
        "cost_component_count": len(components),
        "unknown_quantity_count": sum(1 for c in components if c.monthly() is None),
    }


def build_report(resources: List[Resource], source_path: str) -> str:
    report = {
        "meta": {
            "generated": datetime.now(timezone.utc).strftime("%Y-%m-%dT%H:%M:%SZ"),
            "source": source_path,
            "tool": "plancost",
            "version": __version__,
        },
        "summary": _summary(resources),
        "resources": [r.to_dict() for r in resources],
    }
    return json.dumps(report, indent=2)
