"""Self-match detection for the order book path."""


def is_self_trade(incoming_user_id: str, resting_user_id: str) -> bool:
    """True when both sides belong to the same user; UUID comparison is case-insensitive."""
    return str(incoming_user_id).lower() == str(resting_user_id).lower()
