"""Defaulting policy for optional numeric fields of imported records."""

DEFAULT_SCORE = "0.0"
DEFAULT_PRICE = "0.00"


def default_score(raw: str | None) -> str:
    """Empty or blank score becomes ``"0.0"``; anything else is kept as is."""
    if raw is None or not raw.strip():
        return DEFAULT_SCORE
    return raw


def default_price(raw: str | None) -> str:
    """Empty or blank price becomes ``"0.00"``; anything else is kept as is."""
    if raw is None or not raw.strip():
        return DEFAULT_PRICE
    return raw
