"""
Walks the ``configuration`` half of a terraform plan JSON document.

Every attribute expression in the configuration tree is either a mapping, a
list or a scalar. Leaf expressions that depend on other objects carry a
``references`` list, e.g.::

    "volume_id": {"references": ["aws_ebs_volume.data.id", "aws_ebs_volume.data"]}
"""
from typing import Any, Dict, List

from plancost.parsers.address import module_path, resource_part, strip_repetition_index


def _join(parent: str, key: Any) -> str:
    return f"{parent}.{key}" if parent else str(key)


def _collect(path: str, node: Any, refs: Dict[str, List[str]]) -> None:
    if isinstance(node, dict) and "references" in node:
        for ref in node["references"] or []:
            refs.setdefault(path, []).append(str(ref))
    elif isinstance(node, list):
        for i, item in enumerate(node):
            _collect(_join(path, i), item, refs)
    elif isinstance(node, dict):
        for key, child in node.items():
            _collect(_join(path, key), child, refs)


def extract_references(expressions: Dict[str, Any]) -> Dict[str, List[str]]:
    """
    Map each attribute path of a resource's expressions to the raw reference
    strings found there.

    List items are addressed by position (``ebs_block_device.0.snapshot_id``).
    Duplicates and ordering are kept as they appear in the plan.
    """
    refs: Dict[str, List[str]] = {}
    for attr, node in (expressions or {}).items():
        _collect(attr, node, refs)
    return refs


def configuration_for_module(conf: Dict[str, Any], names: List[str]) -> Dict[str, Any]:
    """Descend into ``module_calls.<name>.module`` for each module name."""
    cur = conf or {}
    for name in names:
        call = (cur.get("module_calls") or {}).get(name)
        if not isinstance(call, dict):
            return {}
        cur = call.get("module") or {}
    return cur


def configuration_for_address(conf: Dict[str, Any], address: str) -> Dict[str, Any]:
    """
    Return the configuration block of the resource at ``address``.

    Count and for_each instances share one configuration block, so the
    repetition index is ignored. Returns {} when nothing matches.
    """
    module_conf = configuration_for_module(conf, module_path(address))
    base = strip_repetition_index(resource_part(address))
    for entry in module_conf.get("resources") or []:
        if entry.get("address") == base:
            return entry
    return {}
