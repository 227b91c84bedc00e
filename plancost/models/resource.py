from dataclasses import dataclass, field
from decimal import Decimal
from typing import Any, Dict, List, Optional


@dataclass(eq=False)
class ResourceData:
    """One planned resource instance, as read from the plan."""

    address: str           # e.g. "module.app.aws_instance.web[0]"
    resource_type: str     # e.g. "aws_instance"
    provider_name: str     # e.g. "registry.terraform.io/hashicorp/aws"
    region: str = ""
    values: Dict[str, Any] = field(default_factory=dict)
    references: Dict[str, List["ResourceData"]] = field(default_factory=dict, repr=False)

    def get(self, path: str, default: Any = None) -> Any:
        """Drill into values with a dotted path; list items by position."""
        cur: Any = self.values
        for key in path.split("."):
            if isinstance(cur, dict):
                cur = cur.get(key)
            elif isinstance(cur, list) and key.isdigit() and int(key) < len(cur):
                cur = cur[int(key)]
            else:
                return default
            if cur is None:
                return default
        return cur

    def exists(self, path: str) -> bool:
        return self.get(path) is not None

    def get_references(self, attr: str) -> List["ResourceData"]:
        return self.references.get(attr, [])

    def add_reference(self, attr: str, data: "ResourceData") -> None:
        self.references.setdefault(attr, []).append(data)

    def reference_addresses(self) -> Dict[str, List[str]]:
        return {attr: [r.address for r in refs] for attr, refs in self.references.items()}


@dataclass
class AttributeFilter:
    key: str
    value: Optional[str] = None
    value_regex: Optional[str] = None

    def to_dict(self) -> dict:
        d = {"key": self.key}
        if self.value is not None:
            d["value"] = self.value
        if self.value_regex is not None:
            d["value_regex"] = self.value_regex
        return d


@dataclass
class ProductFilter:
    vendor_name: str
    region: Optional[str] = None
    service: Optional[str] = None
    product_family: Optional[str] = None
    attribute_filters: List[AttributeFilter] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "vendor_name": self.vendor_name,
            "region": self.region,
            "service": self.service,
            "product_family": self.product_family,
            "attribute_filters": [a.to_dict() for a in self.attribute_filters],
        }


@dataclass
class PriceFilter:
    purchase_option: Optional[str] = None
    unit: Optional[str] = None
    start_usage_amount: Optional[str] = None
    description_regex: Optional[str] = None

    def to_dict(self) -> dict:
        return {k: v for k, v in self.__dict__.items() if v is not None}


@dataclass
class CostComponent:
    name: str
    unit: str
    hourly_quantity: Optional[Decimal] = None
    monthly_quantity: Optional[Decimal] = None
    product_filter: Optional[ProductFilter] = None
    price_filter: Optional[PriceFilter] = None
    ignore_if_missing_price: bool = False
    price: Optional[Decimal] = None    # set by the pricing service

    def monthly(self, hours_per_month: int = 730) -> Optional[Decimal]:
        """Monthly quantity, converting hourly quantities; None if unknown."""
        if self.monthly_quantity is not None:
            return self.monthly_quantity
        if self.hourly_quantity is not None:
            return self.hourly_quantity * hours_per_month
        return None

    def to_dict(self) -> dict:
        return {
            "name": self.name,
            "unit": self.unit,
            "hourly_quantity": _dec_str(self.hourly_quantity),
            "monthly_quantity": _dec_str(self.monthly_quantity),
            "product_filter": self.product_filter.to_dict() if self.product_filter else None,
            "price_filter": self.price_filter.to_dict() if self.price_filter else None,
            "ignore_if_missing_price": self.ignore_if_missing_price,
            "price": _dec_str(self.price),
        }


@dataclass
class Resource:
    name: str
    resource_type: str = ""
    cost_components: List[CostComponent] = field(default_factory=list)
    sub_resources: List["Resource"] = field(default_factory=list)

    def all_cost_components(self) -> List[CostComponent]:
        comps = list(self.cost_components)
        for sub in self.sub_resources:
            comps.extend(sub.all_cost_components())
        return comps

    def to_dict(self) -> dict:
        return {
            "name": self.name,
            "resource_type": self.resource_type,
            "cost_components": [c.to_dict() for c in self.cost_components],
            "sub_resources": [s.to_dict() for s in self.sub_resources],
        }


def _dec_str(val: Optional[Decimal]) -> Optional[str]:
    return None if val is None else str(val)
