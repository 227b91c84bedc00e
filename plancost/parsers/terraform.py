"""
Terraform plan JSON parser.

Turns the output of ``terraform show -json <planfile>`` into ResourceData
records with resolved cross-resource references, splits off the usage
carriers, and hands every remaining resource to the resource registry.
"""
import json
from typing import Any, Dict, Iterable, List, Optional, Tuple

from plancost.config import Config
from plancost.models.resource import Resource, ResourceData
from plancost.parsers.address import module_prefix, repetition_index
from plancost.parsers.expressions import configuration_for_address, extract_references
from plancost.resources.registry import ResourceRegistry, default_registry

_COUNT_INDEX = "count.index"


class PlanParseError(ValueError):
    """Raised when a document does not have the shape of a terraform plan."""


def parse_aws_region(provider_config: Dict[str, Any], fallback: str) -> str:
    """Region from the aws provider block, if it is a constant."""
    aws = (provider_config or {}).get("aws") or {}
    region = ((aws.get("expressions") or {}).get("region") or {}).get("constant_value")
    return region or fallback


def _region_from_arn(values: Dict[str, Any]) -> Optional[str]:
    arn = values.get("arn")
    if not isinstance(arn, str):
        return None
    parts = arn.split(":")
    if len(parts) < 4:
        return None
    return parts[3]


def parse_resource_data(module: Dict[str, Any], default_region: str) -> Dict[str, ResourceData]:
    """
    Flatten a planned_values module and all of its child modules into
    one address -> ResourceData mapping.
    """
    resources: Dict[str, ResourceData] = {}

    for r in module.get("resources") or []:
        values = r.get("values") or {}
        # An ARN in the planned values pins the resource to that region
        region = _region_from_arn(values)
        if region is None:
            region = default_region

        addr = r["address"]
        resources[addr] = ResourceData(
            address=addr,
            resource_type=r.get("type", ""),
            provider_name=r.get("provider_name", ""),
            region=region,
            values=values,
        )

    for child in module.get("child_modules") or []:
        resources.update(parse_resource_data(child, default_region))

    return resources


def _candidate_address(consumer: str, ref: str, counted: bool) -> str:
    addr = module_prefix(consumer) + ref
    if counted:
        index = repetition_index(consumer)
        if index is not None:
            addr = f"{addr}[{index}]"
    return addr


def resolve_references(
    data: ResourceData,
    raw_refs: Dict[str, List[str]],
    resources: Dict[str, ResourceData],
) -> None:
    """
    Replace the reference edges of one resource with those resolved from
    its raw references.

    References that do not name a planned resource (variables, locals,
    provider attributes, data sources that were not captured) are dropped.
    """
    data.references = {}
    for attr, refs in raw_refs.items():
        counted = _COUNT_INDEX in refs
        for ref in refs:
            if ref == _COUNT_INDEX:
                continue
            target = resources.get(_candidate_address(data.address, ref, counted))
            if target is not None:
                data.add_reference(attr, target)


def parse_references(resources: Dict[str, ResourceData], conf: Dict[str, Any]) -> None:
    """
    Attach reference edges to every resource in ``resources``.

    ``resources`` must be complete before this runs. Each resource's edge set
    is replaced, not extended, so calling this twice gives the same result.
    """
    for addr, data in resources.items():
        expressions = configuration_for_address(conf, addr).get("expressions") or {}
        resolve_references(data, extract_references(expressions), resources)


def is_usage_carrier(data: ResourceData, provider_names: Iterable[str]) -> bool:
    return data.provider_name in provider_names


def build_usage_map(
    resources: Dict[str, ResourceData], provider_names: Iterable[str]
) -> Dict[str, ResourceData]:
    """Map the address of every annotated resource to its usage carrier."""
    provider_names = set(provider_names)
    usage: Dict[str, ResourceData] = {}
    for data in resources.values():
        if is_usage_carrier(data, provider_names):
            for target in data.get_references("resources"):
                usage[target.address] = data
    return usage


def strip_usage_carriers(
    resources: Dict[str, ResourceData], provider_names: Iterable[str]
) -> Dict[str, ResourceData]:
    provider_names = set(provider_names)
    return {
        addr: data
        for addr, data in resources.items()
        if not is_usage_carrier(data, provider_names)
    }


def _root_module(plan: Any) -> Dict[str, Any]:
    if not isinstance(plan, dict):
        raise PlanParseError("plan document must be a JSON object")
    root = (plan.get("planned_values") or {}).get("root_module")
    if not isinstance(root, dict):
        raise PlanParseError("plan document has no planned_values.root_module")
    if "resources" not in root and "child_modules" not in root:
        raise PlanParseError("planned_values.root_module lists no resources or child modules")
    return root


def load_resource_data(
    plan: Dict[str, Any], config: Optional[Config] = None
) -> Tuple[Dict[str, ResourceData], Dict[str, ResourceData]]:
    """
    Ingest and resolve a plan.

    Returns ``(resources, usage)``: the real resources keyed by address, and
    the usage carriers keyed by the address of the resource they annotate.
    """
    config = config or Config()
    root = _root_module(plan)
    configuration = plan.get("configuration") or {}

    region = parse_aws_region(configuration.get("provider_config") or {}, config.default_region)
    resources = parse_resource_data(root, region)
    parse_references(resources, configuration.get("root_module") or {})

    usage = build_usage_map(resources, config.usage_provider_names)
    return strip_usage_carriers(resources, config.usage_provider_names), usage


def build_resources(
    resources: Dict[str, ResourceData],
    usage: Dict[str, ResourceData],
    registry: ResourceRegistry,
) -> Tuple[List[Resource], List[str]]:
    """
    Dispatch every resource to its builder, in address order.

    Returns the built resources and the addresses that were skipped because
    their type is unsupported or the builder declined them.
    """
    built: List[Resource] = []
    skipped: List[str] = []
    for addr in sorted(resources):
        res = registry.create(resources[addr], usage.get(addr))
        if res is None:
            skipped.append(addr)
        else:
            built.append(res)
    return built, skipped


def parse_plan_json(
    plan: Dict[str, Any],
    registry: Optional[ResourceRegistry] = None,
    config: Optional[Config] = None,
) -> List[Resource]:
    """Build a Resource for every supported resource in a plan."""
    if registry is None:
        registry = default_registry()
    resources, usage = load_resource_data(plan, config)
    built, _ = build_resources(resources, usage, registry)
    return built


def parse_file(filepath: str) -> Dict[str, Any]:
    """Read a plan JSON file. Raises PlanParseError if it cannot be decoded."""
    try:
        with open(filepath, encoding="utf-8") as fh:
            return json.load(fh)
    except (OSError, ValueError) as exc:
        raise PlanParseError(f"failed to read {filepath}: {exc}") from exc
