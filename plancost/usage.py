"""
Tiered usage bucketing.

Vendors price many services in steps: the first 50 TB at one rate, the next
450 TB at another, everything above at a third. ``calculate_tier_buckets``
splits a usage amount along those steps.
"""
from decimal import Decimal
from typing import List, Optional, Sequence, Union

from plancost.models.resource import ResourceData

Number = Union[int, float, str, Decimal]


def to_decimal(val: Number) -> Decimal:
    if isinstance(val, Decimal):
        return val
    if isinstance(val, float):
        return Decimal(str(val))
    return Decimal(val)


def calculate_tier_buckets(total: Number, tiers: Sequence[Number]) -> List[Decimal]:
    """
    Split ``total`` into ``len(tiers) + 1`` buckets.

    ``tiers`` holds the ascending lower bounds of every tier after the first,
    so ``[51200, 512000]`` describes ``[0, 51200)``, ``[51200, 512000)`` and
    ``[512000, inf)``. An amount exactly on a boundary stays in the lower
    tier. The buckets always add up to ``total``.

    >>> calculate_tier_buckets(600000, [51200, 512000])
    [Decimal('51200'), Decimal('460800'), Decimal('88000')]
    """
    total = to_decimal(total)
    zero = Decimal(0)
    buckets: List[Decimal] = []
    lower = zero
    for bound in tiers:
        upper = to_decimal(bound)
        buckets.append(max(zero, min(total, upper) - lower))
        lower = upper
    buckets.append(max(zero, total - lower))
    return buckets


def usage_quantity(usage: Optional[ResourceData], key: str) -> Optional[Decimal]:
    """
    Read a numeric usage estimate from a usage carrier.

    Returns None when there is no carrier, the key is absent or the value is
    not a number, which the reporters show as unknown usage.
    """
    if usage is None:
        return None
    val = usage.get(key)
    if val is None or isinstance(val, bool):
        return None
    try:
        quantity = to_decimal(val)
    except (ArithmeticError, ValueError, TypeError):
        return None
    # NaN and Infinity parse but cannot be bucketed or priced
    return quantity if quantity.is_finite() else None


def sub_usage(usage: Optional[ResourceData], key: str) -> Optional[ResourceData]:
    """
    The nested usage section ``key`` of a carrier, wrapped as its own carrier
    so it can be passed to the builder of a sub-resource.
    """
    if usage is None:
        return None
    section = usage.get(key)
    if not isinstance(section, dict):
        return None
    return ResourceData(
        address=f"{usage.address}.{key}",
        resource_type=usage.resource_type,
        provider_name=usage.provider_name,
        region=usage.region,
        values=section,
    )
