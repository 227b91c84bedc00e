"""
Helpers for taking terraform resource addresses apart and putting them back
together.

An address looks like ``module.a.module.b[1].aws_instance.web[2]``: an optional
module prefix, a ``type.name`` resource part (``data.type.name`` for data
sources) and an optional repetition index.
"""
import re
from typing import List, Optional

_MODULE_NAME_RE = re.compile(r"module\.([^.\[]+)")
_TRAILING_INDEX_RE = re.compile(r"\[([^\[\]]*)\]$")


def _split_point(parts: List[str]) -> int:
    if len(parts) >= 3 and parts[-3] == "data":
        return len(parts) - 3
    return len(parts) - 2


def resource_part(address: str) -> str:
    """
    Return the resource suffix of an address.

    ``module.name1.module.name2.aws_instance.x`` -> ``aws_instance.x``
    """
    parts = address.split(".")
    return ".".join(parts[_split_point(parts):])


def module_prefix(address: str) -> str:
    """
    Return the module prefix of an address, including the trailing dot.

    ``module.name1.module.name2.aws_instance.x`` -> ``module.name1.module.name2.``
    """
    parts = address.split(".")
    prefix = parts[:_split_point(parts)]
    if not prefix:
        return ""
    return ".".join(prefix) + "."


def module_path(address: str) -> List[str]:
    """Names of the modules an address is nested in, outermost first."""
    return _MODULE_NAME_RE.findall(module_prefix(address))


def repetition_index(address: str) -> Optional[int]:
    """The trailing count index of an address, or None."""
    m = _TRAILING_INDEX_RE.search(address)
    if not m:
        return None
    try:
        return int(m.group(1))
    except ValueError:
        return None


def strip_repetition_index(part: str) -> str:
    return _TRAILING_INDEX_RE.sub("", part)
