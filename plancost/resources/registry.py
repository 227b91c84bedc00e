"""
Resource type -> builder lookup.

A builder takes the resolved ResourceData of one resource plus the usage
carrier attached to it (or None) and returns a Resource with its cost
components, or None to skip the resource.
"""
from typing import Callable, Dict, Iterable, List, Optional

from plancost.models.resource import Resource, ResourceData

BuilderFunc = Callable[[ResourceData, Optional[ResourceData]], Optional[Resource]]


class RegistryItem:
    """
    Registry entry for a terraform resource type.

    Attributes:
        name: resource type, e.g. "aws_db_instance".
        rfunc: builder for the type.
        notes: free-form remarks about coverage, shown by ``plancost resources``.
    """

    def __init__(self, name: str, rfunc: BuilderFunc, notes: Optional[List[str]] = None) -> None:
        self.name = name
        self.rfunc = rfunc
        self.notes = notes or []

    def __repr__(self) -> str:
        return f"RegistryItem(name={self.name!r}, notes={self.notes})"


class ResourceRegistry:
    """Builders keyed by resource type. One instance per run."""

    def __init__(self, items: Iterable[RegistryItem] = ()) -> None:
        self._items: Dict[str, RegistryItem] = {}
        for item in items:
            self.register(item)

    def register(self, item: RegistryItem) -> None:
        self._items[item.name] = item

    def get(self, resource_type: str) -> Optional[RegistryItem]:
        return self._items.get(resource_type)

    def __contains__(self, resource_type: str) -> bool:
        return resource_type in self._items

    def __len__(self) -> int:
        return len(self._items)

    def items(self) -> List[RegistryItem]:
        return [self._items[k] for k in sorted(self._items)]

    def create(self, data: ResourceData, usage: Optional[ResourceData] = None) -> Optional[Resource]:
        """Run the builder for ``data.resource_type``; None if there is none."""
        item = self._items.get(data.resource_type)
        if item is None:
            return None
        return item.rfunc(data, usage)


def default_registry() -> ResourceRegistry:
    """A fresh registry holding every built-in builder."""
    from plancost.resources import aws, azure

    return ResourceRegistry(aws.REGISTRY_ITEMS + azure.REGISTRY_ITEMS)
