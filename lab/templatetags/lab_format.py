from django import template

register = template.Library()


@register.filter
def rupees(value):
    """Format an amount as ``Rs. 1,234`` (decimals only when present)."""
    try:
        amount = float(value or 0)
    except (TypeError, ValueError):
        amount = 0.0
    if amount.is_integer():
        return f"Rs. {int(amount):,}"
    return f"Rs. {amount:,.2f}"
