from __future__ import annotations

from typing import List, Sequence, Tuple

from technifold.domain.models import PricedLine

from .classifier import ClassifiedLine


def price_flat_lines(lines: Sequence[ClassifiedLine]) -> List[Tuple[int, PricedLine]]:
    # Catalogusprijs, geen staffel
    return [
        (idx, PricedLine.build(product, line.quantity, product.base_price))
        for idx, line, product in lines
    ]
