from django import template

from blood.constants import REQUEST_STATUS_BADGES, REQUEST_STATUS_LABELS
from blood.services.stock import stock_level as _stock_level
from blood.utils import formatters
from blood.utils.numbers import percent
from fulfillment.services.ranking import TIER_LABELS, score_tier as _score_tier

register = template.Library()


@register.filter
def percentage(value, total):
    """Whole-number share of ``total``; 0 for an empty or non-numeric total."""
    try:
        return percent(value or 0, total or 0)
    except (ArithmeticError, ValueError, TypeError):
        return 0


@register.filter
def status_label(value):
    return REQUEST_STATUS_LABELS.get(value, str(value or '').replace('_', ' ').capitalize())


@register.filter
def status_badge(value):
    return REQUEST_STATUS_BADGES.get(value, 'secondary')


@register.filter
def score_tier(value):
    return _score_tier(value)


@register.filter
def score_label(value):
    return TIER_LABELS[_score_tier(value)]


@register.filter
def stock_level(value):
    try:
        return _stock_level(int(value))
    except (TypeError, ValueError):
        return 'empty'


@register.filter
def pad_id(value, width=5):
    return formatters.pad_id(value, int(width))


@register.filter
def api_date(value):
    return formatters.format_date(value)


@register.filter
def api_datetime(value):
    return formatters.format_datetime(value)


@register.filter
def time_ago(value):
    return formatters.relative_time(value)


@register.filter
def get_item(mapping, key):
    try:
        return mapping.get(key)
    except AttributeError:
        return None
