from decimal import Decimal, ROUND_HALF_UP


def round_half_up(value) -> int:
    """Round to the nearest integer with .5 going up (2.5 -> 3, unlike ``round``)."""

    return int(Decimal(str(value)).quantize(Decimal('1'), rounding=ROUND_HALF_UP))


def percent(part, whole) -> int:
    """Whole-number percentage; 0 when ``whole`` is 0."""

    if not whole:
        return 0
    return round_half_up(Decimal(part) * 100 / Decimal(whole))
