from __future__ import annotations

import json

import pytest
from pydantic import ValidationError

from technifold.domain.models import CartLine, PricingResult, TaxContext
from technifold.pricing.schemas.pricing_input_v1 import PricingRequestV1
from technifold.pricing.schemas.pricing_output_v1 import PricingResultV1


def test_request_to_domain():
    req = PricingRequestV1.model_validate(
        {
            "items": [{"product_code": " T-100 ", "quantity": 2}],
            "destination_country": "gb",
            "has_valid_vat_number": False,
        }
    )

    cart, tax = req.to_domain()

    assert cart == [CartLine("T-100", 2)]
    assert tax == TaxContext("GB", False)


def test_request_allows_empty_items():
    req = PricingRequestV1.model_validate({"destination_country": "US"})
    assert req.to_domain()[0] == []


@pytest.mark.parametrize(
    "payload",
    [
        {"items": [{"product_code": "T-100", "quantity": 0}], "destination_country": "GB"},
        {"items": [{"product_code": "T-100", "quantity": "2"}], "destination_country": "GB"},
        {"items": [{"product_code": "T-100", "quantity": 1.5}], "destination_country": "GB"},
        {"items": [{"product_code": "", "quantity": 1}], "destination_country": "GB"},
        {"items": [], "destination_country": "GBR"},
        {"items": [], "destination_country": "G1"},
        {"items": [], "destination_country": "GB", "coupon": "FREE"},
        {"items": [{"product_code": "T-100", "quantity": 1, "price": "1.00"}], "destination_country": "GB"},
    ],
)
def test_request_rejects(payload):
    with pytest.raises(ValidationError):
        PricingRequestV1.model_validate(payload)


def test_result_money_is_fixed_point_strings(engine):
    result = engine.price_cart(
        [CartLine("T-100", 2), CartLine("O-MANUAL", 1)], TaxContext("GB")
    )

    out = PricingResultV1.from_result(result)
    data = json.loads(out.model_dump_json())

    assert data["version"] == "v1"
    assert data["currency"] == "GBP"
    assert data["subtotal"] == "185.00"
    assert data["shipping"] == "15.00"
    assert data["vat_rate"] == "0.20"
    assert data["vat_amount"] == "40.00"
    assert data["total"] == "240.00"
    assert data["total_savings"] == "20.00"
    assert data["vat_exempt_reason"] is None
    line = data["line_items"][0]
    assert line == {
        "product_code": "T-100",
        "description": "T-100 description",
        "quantity": 2,
        "base_price": "100.00",
        "unit_price": "90.00",
        "line_total": "180.00",
        "discount_applied": "2 tools - 10% off",
        "currency": "GBP",
    }


def test_zero_result_serializes_without_exponent():
    data = PricingResultV1.from_result(PricingResult.zero("GBP")).model_dump()
    assert data["total"] == "0.00"
    assert data["vat_rate"] == "0.00"
    assert data["line_items"] == []
    assert data["validation_errors"] == []
