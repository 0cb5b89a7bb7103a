"""CHF price display. Prices are stored as integer Rappen (cents)."""


def format_price(
    cents: int,
    free_label: str = "Gratis",
    show_free_label: bool = True,
    include_prefix: bool = True,
) -> str:
    """1299 -> 'CHF 12.99'; 0 -> 'Gratis' unless show_free_label is False."""
    if cents == 0 and show_free_label:
        return free_label
    amount = f"{cents / 100:.2f}"
    return f"CHF {amount}" if include_prefix else amount