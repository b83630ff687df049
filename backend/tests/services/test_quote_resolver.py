from datetime import datetime, timedelta, timezone
from decimal import Decimal
from types import SimpleNamespace
import logging

import pytest

from storefront.services.shipping.quote_resolver import (
    QuoteItem, QuoteRequest, ShippingMode, compute_amount, is_eligible, resolve, select_rule, to_decimal,
)


NOW = datetime(2026, 3, 1, 12, 0, tzinfo=timezone.utc)


def rule(**fields):
    base = {
        "id": None,
        "enabled": True,
        "priority": 0,
        "mode": "flat",
        "province_code": None,
        "city_id": None,
        "flat_amount": 0,
        "per_item_amount": None,
        "base_amount": None,
        "per_kg_amount": None,
        "min_subtotal": None,
        "coupon_code": None,
        "eta_days": None,
        "active_from": None,
        "active_to": None,
    }
    base.update(fields)
    return base


def req(**fields):
    fields.setdefault("product_id", "tracker-1")
    for key in ("subtotal", "total_weight_kg"):
        if key in fields:
            fields[key] = Decimal(str(fields[key]))
    return QuoteRequest(**fields)


def items(*qtys):
    return tuple(QuoteItem(variant_id=f"v{i}", qty=Decimal(str(q))) for i, q in enumerate(qtys))


# ===== 没有规则也没有设置 =====
def test_no_rules_no_settings_is_zero():
    quote = resolve(req(province_code="PB", subtotal=500), [], None, now=NOW)
    assert quote.amount == Decimal("0")
    assert quote.eta_days is None
    assert quote.source == "none"


def test_non_matching_rules_without_settings_is_zero():
    rules = [rule(id=1, province_code="SD", flat_amount=300, eta_days=2)]
    quote = resolve(req(province_code="PB"), rules, None, now=NOW)
    assert quote.amount == 0
    assert quote.eta_days is None


# ===== 作用域与优先级 =====
def test_city_rule_beats_province_and_global():
    rules = [
        rule(id=1, flat_amount=100, priority=50),
        rule(id=2, province_code="PB", flat_amount=200, priority=50),
        rule(id=3, province_code="PB", city_id=7, flat_amount=300, priority=0, eta_days=1),
    ]
    quote = resolve(req(province_code="PB", city_id=7), rules, now=NOW)
    assert quote.amount == Decimal("300.00")
    assert quote.eta_days == 1
    assert quote.rule_id == 3


def test_province_rule_used_when_city_unmatched():
    rules = [
        rule(id=1, province_code="PB", city_id=7, flat_amount=300),
        rule(id=2, province_code="PB", flat_amount=200, eta_days=3),
    ]
    quote = resolve(req(province_code="PB", city_id=8), rules, now=NOW)
    assert quote.amount == Decimal("200")
    assert quote.eta_days == 3


def test_global_rule_only_without_province_and_city():
    rules = [rule(id=1, flat_amount=150, eta_days=5)]
    assert resolve(req(), rules, now=NOW).amount == Decimal("150")
    # 有省份时全局规则不参与
    assert resolve(req(province_code="PB"), rules, now=NOW).amount == 0


def test_priority_within_same_tier_and_swap_changes_choice():
    a = rule(id=1, province_code="PB", flat_amount=100, priority=10)
    b = rule(id=2, province_code="PB", flat_amount=200, priority=20)
    assert select_rule(req(province_code="PB"), [a, b], now=NOW)["id"] == 2

    a["priority"], b["priority"] = 20, 10
    assert select_rule(req(province_code="PB"), [a, b], now=NOW)["id"] == 1


def test_tie_break_by_rule_id_regardless_of_input_order():
    a = rule(id=5, province_code="PB", flat_amount=100, priority=10)
    b = rule(id=3, province_code="PB", flat_amount=200, priority=10)
    assert select_rule(req(province_code="PB"), [a, b], now=NOW)["id"] == 3
    assert select_rule(req(province_code="PB"), [b, a], now=NOW)["id"] == 3


def test_tie_break_without_ids_keeps_input_order():
    a = rule(province_code="PB", flat_amount=100)
    b = rule(province_code="PB", flat_amount=200)
    assert select_rule(req(province_code="PB"), [a, b], now=NOW) is a


def test_disabled_rule_is_skipped():
    rules = [
        rule(id=1, province_code="PB", flat_amount=100, enabled=False, priority=99),
        rule(id=2, province_code="PB", flat_amount=200),
    ]
    assert resolve(req(province_code="PB"), rules, now=NOW).amount == Decimal("200")


# ===== 资格条件 =====
def test_coupon_free_needs_matching_coupon():
    rules = [
        rule(id=1, province_code="PB", city_id=7, mode="coupon_free", coupon_code="FREESHIP", priority=100),
        rule(id=2, province_code="PB", flat_amount=250),
    ]
    assert resolve(req(province_code="PB", city_id=7), rules, now=NOW).amount == Decimal("250")
    assert resolve(req(province_code="PB", city_id=7, coupon="nope"), rules, now=NOW).amount == Decimal("250")
    # 优惠码大小写不敏感
    quote = resolve(req(province_code="PB", city_id=7, coupon="freeship"), rules, now=NOW)
    assert quote.amount == 0
    assert quote.rule_id == 1


def test_min_subtotal_gate():
    rules = [
        rule(id=1, province_code="PB", mode="free", min_subtotal=2000, priority=10),
        rule(id=2, province_code="PB", flat_amount=200),
    ]
    assert resolve(req(province_code="PB", subtotal=1999), rules, now=NOW).amount == Decimal("200")
    assert resolve(req(province_code="PB", subtotal=2000), rules, now=NOW).amount == 0


def test_time_window_is_inclusive():
    r = rule(id=1, province_code="PB", flat_amount=100, active_from=NOW, active_to=NOW)
    assert is_eligible(r, req(province_code="PB"), NOW)
    assert not is_eligible(r, req(province_code="PB"), NOW + timedelta(seconds=1))
    assert not is_eligible(r, req(province_code="PB"), NOW - timedelta(seconds=1))


def test_time_window_accepts_iso_strings_and_naive_datetimes():
    r = rule(id=1, province_code="PB", active_from="2026-02-01T00:00:00Z", active_to=datetime(2026, 3, 1, 12, 0))
    assert is_eligible(r, req(province_code="PB"), NOW)


def test_malformed_window_bound_is_ignored(caplog):
    r = rule(id=1, province_code="PB", active_from="not-a-date")
    with caplog.at_level(logging.WARNING):
        assert is_eligible(r, req(province_code="PB"), NOW)
    assert "active_from" in caplog.text


# ===== 金额 =====
def test_per_item_amount():
    rules = [rule(id=1, province_code="PB", mode="per_item", per_item_amount=100)]
    quote = resolve(req(province_code="PB", items=items(2, 3)), rules, now=NOW)
    assert quote.amount == Decimal("500")


def test_per_kg_amount():
    rules = [rule(id=1, province_code="PB", mode="per_kg", base_amount=150, per_kg_amount=40)]
    quote = resolve(req(province_code="PB", total_weight_kg="2.5"), rules, now=NOW)
    assert quote.amount == Decimal("250")


def test_amount_is_rounded_half_up_to_cents():
    rules = [rule(id=1, mode="per_kg", base_amount=0, per_kg_amount="0.333")]
    quote = resolve(req(total_weight_kg="1.5"), rules, now=NOW)
    assert quote.amount == Decimal("0.50")


def test_unknown_mode_is_zero(caplog):
    with caplog.at_level(logging.WARNING):
        amount = compute_amount({"mode": "teleport", "flat_amount": 10}, req())
    assert amount == 0
    assert "teleport" in caplog.text


def test_mode_parse():
    assert ShippingMode.parse(" Per_Kg ") is ShippingMode.PER_KG
    assert ShippingMode.parse(ShippingMode.FREE) is ShippingMode.FREE
    assert ShippingMode.parse("bogus") is None
    assert ShippingMode.parse(None) is None


def test_negative_amount_clamped_to_zero():
    rules = [rule(id=1, flat_amount=-50)]
    assert resolve(req(), rules, now=NOW).amount == 0


# ===== 兜底 / 满额包邮 / 货到付款 =====
def test_free_over_subtotal_then_cod():
    settings = {"free_over_subtotal": 1000, "cod_fee": 50, "fallback_mode": "flat", "fallback_flat_amount": 200}
    quote = resolve(req(province_code="PB", subtotal=1200), [], settings, now=NOW)
    assert quote.amount == Decimal("50")
    assert quote.source == "free_over_subtotal"


def test_below_free_over_subtotal_uses_fallback():
    settings = {"free_over_subtotal": 1000, "cod_fee": 0, "fallback_mode": "flat", "fallback_flat_amount": 200}
    quote = resolve(req(province_code="PB", subtotal=999), [], settings, now=NOW)
    assert quote.amount == Decimal("200")
    assert quote.source == "fallback"
    assert quote.eta_days is None


@pytest.mark.parametrize(
    "settings, expected",
    [
        ({"fallback_mode": "per_item", "fallback_per_item_amount": 40}, Decimal("120")),
        ({"fallback_mode": "per_kg", "fallback_base_amount": 100, "fallback_per_kg_amount": 20}, Decimal("140")),
        ({"fallback_mode": "free", "fallback_flat_amount": 999}, Decimal("0")),
        ({"fallback_mode": "mystery", "fallback_flat_amount": 999}, Decimal("0")),
    ],
)
def test_fallback_modes(settings, expected):
    quote = resolve(req(items=items(1, 2), total_weight_kg=2), [], settings, now=NOW)
    assert quote.amount == expected


def test_cod_fee_added_on_free_rule():
    rules = [rule(id=1, province_code="PB", mode="free", eta_days=2)]
    quote = resolve(req(province_code="PB"), rules, {"cod_fee": "75"}, now=NOW)
    assert quote.amount == Decimal("75")
    assert quote.eta_days == 2


def test_rule_takes_precedence_over_free_over_subtotal():
    rules = [rule(id=1, province_code="PB", flat_amount=300)]
    settings = {"free_over_subtotal": 100, "cod_fee": 0}
    assert resolve(req(province_code="PB", subtotal=5000), rules, settings, now=NOW).amount == Decimal("300")


# ===== 宽松数字 =====
def test_to_decimal_coercion(caplog):
    assert to_decimal(None) == 0
    assert to_decimal("") == 0
    assert to_decimal(" 12.5 ") == Decimal("12.5")
    with caplog.at_level(logging.WARNING):
        assert to_decimal("abc", "subtotal") == 0
        assert to_decimal("NaN", "cod_fee") == 0
        assert to_decimal(float("inf"), "flat_amount") == 0
    assert "subtotal" in caplog.text
    assert "cod_fee" in caplog.text


def test_malformed_rule_amount_treated_as_zero():
    rules = [rule(id=1, flat_amount="abc", eta_days="x")]
    quote = resolve(req(), rules, {"cod_fee": 10}, now=NOW)
    assert quote.amount == Decimal("10")
    assert quote.eta_days is None


# ===== 其他 =====
def test_accepts_attribute_objects():
    rules = [SimpleNamespace(**rule(id=9, province_code="SD", flat_amount=Decimal("180.50"), eta_days=4))]
    settings = SimpleNamespace(free_over_subtotal=None, cod_fee=Decimal("0"))
    quote = resolve(req(province_code="SD"), rules, settings, now=NOW)
    assert quote.amount == Decimal("180.50")
    assert quote.rule_id == 9


def test_resolve_is_idempotent():
    rules = [
        rule(id=1, province_code="PB", mode="per_item", per_item_amount=35, priority=3),
        rule(id=2, province_code="PB", flat_amount=99, priority=3),
    ]
    settings = {"cod_fee": 20}
    request = req(province_code="PB", items=items(4))
    first = resolve(request, rules, settings, now=NOW)
    second = resolve(request, rules, settings, now=NOW)
    assert first == second
    assert first.amount == Decimal("160")


# ===== 极大数值 =====
def test_huge_weight_is_quoted_exactly():
    rules = [rule(id=1, mode="per_kg", base_amount=150, per_kg_amount=40)]
    quote = resolve(req(total_weight_kg="1e30"), rules, now=NOW)
    assert quote.amount == Decimal("40000000000000000000000000000150")
    assert quote.amount.as_tuple().exponent == -2


def test_amount_out_of_range_is_zero(caplog):
    rules = [rule(id=1, mode="per_kg", base_amount=0, per_kg_amount=40)]
    with caplog.at_level(logging.WARNING):
        quote = resolve(req(total_weight_kg="1e400"), rules, {"cod_fee": 30}, now=NOW)
    assert quote.amount == Decimal("30")
    assert "out of range" in caplog.text


def test_exponent_overflow_is_zero(caplog):
    rules = [rule(id=1, mode="per_item", per_item_amount="9e999999")]
    with caplog.at_level(logging.WARNING):
        quote = resolve(req(items=items("9e999999")), rules, now=NOW)
    assert quote.amount == 0
    assert "overflowed" in caplog.text


def test_huge_cod_fee_is_ignored():
    quote = resolve(req(), [], {"fallback_mode": "flat", "fallback_flat_amount": 20, "cod_fee": "1e500"}, now=NOW)
    assert quote.amount == Decimal("20")


def test_infinite_priority_and_eta_are_ignored(caplog):
    rules = [
        rule(id=1, flat_amount=100, priority="inf", eta_days="-Infinity"),
        rule(id=2, flat_amount=200, priority=5),
    ]
    with caplog.at_level(logging.WARNING):
        quote = resolve(req(), rules, now=NOW)
    assert quote.amount == Decimal("200")
    assert "priority" in caplog.text

    quote = resolve(req(), [rule(id=1, flat_amount=100, eta_days="inf")], now=NOW)
    assert quote.eta_days is None
