"""
Azure resource builders.
"""
from decimal import Decimal
from typing import List, Optional

from rich.console import Console

from plancost.models.resource import (
    AttributeFilter,
    CostComponent,
    PriceFilter,
    ProductFilter,
    Resource,
    ResourceData,
)
from plancost.resources.registry import RegistryItem
from plancost.usage import calculate_tier_buckets, usage_quantity

console = Console(stderr=True)

_PRODUCT_NAMES = {
    "Standard": "Blob Storage",
    "Premium":  "Premium Block Blob",
}

_PREMIUM_REPLICATION_TYPES = {"LRS", "ZRS"}

# Hot capacity tiers in GB: first 50 TB, next 450 TB, over 500 TB
_HOT_CAPACITY_TIERS = [51200, 512000]
_HOT_CAPACITY_NAMES = ["Capacity (first 50TB)", "Capacity (next 450TB)", "Capacity (over 500TB)"]


def _storage_product_filter(location: str, product_name: str, sku_name: str, meter_regex: str) -> ProductFilter:
    return ProductFilter(
        vendor_name="azure",
        region=location,
        service="Storage",
        product_family="Storage",
        attribute_filters=[
            AttributeFilter(key="productName", value=product_name),
            AttributeFilter(key="skuName", value=sku_name),
            AttributeFilter(key="meterName", value_regex=meter_regex),
        ],
    )


def _capacity_component(
    location: str, name: str, sku_name: str, start_usage: str, product_name: str,
    quantity: Optional[Decimal],
) -> CostComponent:
    return CostComponent(
        name=name,
        unit="GB",
        monthly_quantity=quantity,
        product_filter=_storage_product_filter(location, product_name, sku_name, "/Data Stored$/"),
        price_filter=PriceFilter(purchase_option="Consumption", start_usage_amount=start_usage),
        ignore_if_missing_price=True,
    )


def _operations_component(
    location: str, name: str, unit: str, sku_name: str, meter_regex: str,
    product_name: str, quantity: Optional[Decimal], multiplier: int,
) -> CostComponent:
    if quantity is not None:
        quantity = quantity / multiplier
    return CostComponent(
        name=name,
        unit=unit,
        monthly_quantity=quantity,
        product_filter=_storage_product_filter(location, product_name, sku_name, meter_regex),
        price_filter=PriceFilter(purchase_option="Consumption"),
        ignore_if_missing_price=True,
    )


def _capacity_components(
    location: str, sku_name: str, product_name: str, access_tier: str, capacity: Optional[Decimal],
) -> List[CostComponent]:
    if capacity is None:
        return [_capacity_component(location, "Capacity", sku_name, "0", product_name, None)]
    if access_tier != "Hot":
        return [_capacity_component(location, "Capacity", sku_name, "0", product_name, capacity)]

    quantities = calculate_tier_buckets(capacity, _HOT_CAPACITY_TIERS)
    starts = ["0"] + [str(t) for t in _HOT_CAPACITY_TIERS]
    components = []
    for i, quantity in enumerate(quantities):
        # The first tier is always listed so the price lookup has an anchor
        if i > 0 and quantity == 0:
            continue
        components.append(_capacity_component(
            location, _HOT_CAPACITY_NAMES[i], sku_name, starts[i], product_name, quantity
        ))
    return components


def new_storage_account(d: ResourceData, u: Optional[ResourceData]) -> Optional[Resource]:
    location = d.get("location", "")
    account_kind = d.get("account_kind") or "StorageV2"
    if account_kind != "BlockBlobStorage":
        console.print(
            f"[yellow]Warning:[/yellow] skipping {d.address}: "
            f"only BlockBlobStorage accounts are supported, got {account_kind}"
        )
        return None

    replication = d.get("account_replication_type", "")
    account_tier = d.get("account_tier", "")
    access_tier = d.get("access_tier") or "Hot"

    product_name = _PRODUCT_NAMES.get(account_tier)
    if product_name is None:
        console.print(
            f"[yellow]Warning:[/yellow] skipping {d.address}: unrecognized account tier {account_tier!r}"
        )
        return None

    if account_tier == "Premium" and replication not in _PREMIUM_REPLICATION_TYPES:
        console.print(
            f"[yellow]Warning:[/yellow] {d.address}: {replication} redundancy is not "
            f"available for the {account_tier} performance tier"
        )

    if replication == "RAGRS":
        replication = "RA-GRS"

    if account_tier == "Premium":
        sku_name = f"{account_tier} {replication}"
    else:
        sku_name = f"{access_tier} {replication}"

    components = _capacity_components(
        location, sku_name, product_name, access_tier, usage_quantity(u, "storage_gb")
    )

    components.append(_operations_component(
        location, "Write operations", "10K operations", sku_name, "/Write Operations$/",
        product_name, usage_quantity(u, "monthly_write_operations"), 10000,
    ))

    list_operations = usage_quantity(u, "monthly_list_and_create_container_operations")
    list_sku_name = "Hot GRS" if list_operations is not None and sku_name == "Hot RA-GRS" else sku_name
    components.append(_operations_component(
        location, "List and create container operations", "10K operations", list_sku_name,
        "/List and Create Container Operations$/", product_name, list_operations, 10000,
    ))

    components.append(_operations_component(
        location, "Read operations", "10K operations", sku_name, "/Read Operations$/",
        product_name, usage_quantity(u, "monthly_read_operations"), 10000,
    ))
    components.append(_operations_component(
        location, "All other operations", "10K operations", sku_name, "/All Other Operations$/",
        product_name, usage_quantity(u, "monthly_other_operations"), 10000,
    ))

    if account_tier != "Premium":
        components.append(_operations_component(
            location, "Data retrieval", "GB", sku_name, "/Data Retrieval$/",
            product_name, usage_quantity(u, "monthly_data_retrieval_gb"), 1,
        ))
        components.append(_operations_component(
            location, "Data write", "GB", sku_name, "/Data Write$/",
            product_name, usage_quantity(u, "monthly_data_write_gb"), 1,
        ))
        components.append(_operations_component(
            location, "Blob index", "10K tags", sku_name, "/Index Tags$/",
            product_name, usage_quantity(u, "blob_index_tags"), 10000,
        ))

    return Resource(name=d.address, resource_type=d.resource_type, cost_components=components)


REGISTRY_ITEMS = [
    RegistryItem(
        "azurerm_storage_account",
        new_storage_account,
        notes=["Only BlockBlobStorage accounts are supported."],
    ),
]
