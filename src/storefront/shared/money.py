"""Monetary helpers. Amounts are floats kept at cent precision."""

DEFAULT_CURRENCY = "USD"


def to_cents(amount) -> float:
    return round(float(amount or 0.0), 2)


def clamp_non_negative(amount) -> float:
    return max(0.0, to_cents(amount))
