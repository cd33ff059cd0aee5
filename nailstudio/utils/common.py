from decimal import Decimal


def format_time(value):
    """Render a time of day as 12-hour clock text, e.g. 9:30 AM"""
    if value is None:
        return ''
    hour12 = value.hour % 12 or 12
    am_pm = 'PM' if value.hour >= 12 else 'AM'
    return f"{hour12}:{value.minute:02d} {am_pm}"


def format_price(value):
    if value is None:
        return ''
    amount = Decimal(value)
    if amount == amount.to_integral_value():
        return f"{int(amount)} mkd"
    return f"{amount:.2f} mkd"
