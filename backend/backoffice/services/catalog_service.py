# Overview: Catalog lookups used to classify and validate line items.

from __future__ import annotations

from dataclasses import dataclass

from ..extensions import db
from ..models import Product, Service

PRODUCT = "product"
SERVICE = "service"


@dataclass(frozen=True)
class CatalogItem:
    id: int
    name: str
    kind: str
    cost_cents: int

    @property
    def is_service(self) -> bool:
        return self.kind == SERVICE


def resolve_catalog_items(ids) -> dict[int, CatalogItem]:
    """
    Batch-resolve catalog ids. Products win over services sharing an id.

    Ids that match neither table are absent from the result; callers treat
    that as a validation failure.
    """
    wanted = {int(i) for i in ids}
    if not wanted:
        return {}

    found: dict[int, CatalogItem] = {}
    for p in db.session.query(Product).filter(Product.id.in_(wanted)).all():
        found[p.id] = CatalogItem(p.id, p.name, PRODUCT, p.cost_cents or 0)

    missing = wanted - set(found)
    if missing:
        for s in db.session.query(Service).filter(Service.id.in_(missing)).all():
            found[s.id] = CatalogItem(s.id, s.name, SERVICE, s.cost_cents or 0)

    return found


def get_product(product_id: int) -> Product | None:
    return db.session.get(Product, product_id)
