from __future__ import annotations

from dataclasses import dataclass, field
from typing import List, Mapping, Optional, Sequence, Tuple

from technifold.domain.models import CartLine, ProductFact, ProductType

# (position in cart, line, product)
ClassifiedLine = Tuple[int, CartLine, ProductFact]


@dataclass
class ClassifiedCart:
    tools: List[ClassifiedLine] = field(default_factory=list)
    consumables: List[ClassifiedLine] = field(default_factory=list)
    others: List[ClassifiedLine] = field(default_factory=list)
    unknown: List[str] = field(default_factory=list)

    @property
    def known_count(self) -> int:
        return len(self.tools) + len(self.consumables) + len(self.others)


def classify(product_code: str, catalog: Mapping[str, ProductFact]) -> Optional[ProductType]:
    """None = niet in de catalogus; de regel valt buiten de prijsberekening."""
    product = catalog.get(product_code)
    if product is None:
        return None
    return product.product_type


def partition_cart(
    cart: Sequence[CartLine], catalog: Mapping[str, ProductFact]
) -> ClassifiedCart:
    out = ClassifiedCart()
    for idx, line in enumerate(cart):
        product = catalog.get(line.product_code)
        if product is None:
            out.unknown.append(line.product_code)
            continue

        entry = (idx, line, product)
        if product.product_type == ProductType.TOOL:
            out.tools.append(entry)
        elif product.product_type == ProductType.CONSUMABLE:
            out.consumables.append(entry)
        else:
            out.others.append(entry)
    return out
