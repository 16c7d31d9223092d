from concurrent.futures import ThreadPoolExecutor

from technifold.domain.models import CartLine, TaxContext

CART = [
    CartLine("T-100", 2),
    CartLine("C-STD-1", 5),
    CartLine("C-PRM-1", 3),
    CartLine("NOPE", 1),
    CartLine("O-MANUAL", 1),
]


def test_determinism_same_input_same_output(engine):
    out1 = engine.price_cart(CART, TaxContext("GB"))
    out2 = engine.price_cart(CART, TaxContext("GB"))

    assert out1 == out2


def test_engine_does_not_mutate_snapshot(engine, snapshot):
    catalog_before = dict(snapshot.catalog)
    ladder_before = snapshot.tool_ladder.rows
    rates_before = snapshot.shipping.rates

    engine.price_cart(CART, TaxContext("DE", has_valid_vat_number=True))

    assert dict(snapshot.catalog) == catalog_before
    assert snapshot.tool_ladder.rows == ladder_before
    assert snapshot.shipping.rates == rates_before


def test_concurrent_requests_share_nothing(engine):
    contexts = [TaxContext("GB"), TaxContext("DE", True), TaxContext("US")] * 10
    expected = {c: engine.price_cart(CART, c) for c in contexts}

    with ThreadPoolExecutor(max_workers=8) as pool:
        results = list(pool.map(lambda c: (c, engine.price_cart(CART, c)), contexts))

    for ctx, result in results:
        assert result == expected[ctx]
