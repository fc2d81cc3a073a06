def format_currency(amount: float, symbol: str = "NT$") -> str:
    """Format a number as currency string, e.g. 'NT$ 1,234'."""
    if float(amount).is_integer():
        return f"{symbol} {amount:,.0f}"
    return f"{symbol} {amount:,.2f}"


def format_percent(value: float) -> str:
    """Format a 0-100 percentage with one decimal, e.g. '42.5%'."""
    return f"{value:.1f}%"
