"""Catalog lookups consumed at order placement.

The order store only ever asks the catalog for name and unit price, once,
when an order is created.
"""

from dataclasses import dataclass

from .models import Product


@dataclass(frozen=True)
class ProductSnapshot:
    id: int
    name: str
    price_cents: int


def lookup_products(product_ids) -> dict[int, ProductSnapshot]:
    """Return snapshots for the published products among ``product_ids``.

    Missing or unpublished ids are simply absent from the result.
    """
    ids = {int(pid) for pid in product_ids}
    if not ids:
        return {}
    rows = Product.objects.filter(id__in=ids, is_published=True).values_list('id', 'name', 'price_cents')
    return {pid: ProductSnapshot(id=pid, name=name, price_cents=int(price)) for pid, name, price in rows}
