"""Unified error codes and custom exceptions.

Error code ranges:
  1xxx: Auth/User
  2xxx: Account / Ledger
  3xxx: Market
  4xxx: Order / Trade validation
  5xxx: Position
  9xxx: System

HTTP status classes: 400 bad request (input), 401/403 auth, 404 missing,
409 state conflict (caller must re-fetch), 500 internal.
"""


class AppError(Exception):
    """Base application error."""

    def __init__(
        self,
        code: int,
        message: str,
        http_status: int = 500,
    ) -> None:
        self.code = code
        self.message = message
        self.http_status = http_status
        super().__init__(message)


# --- 1xxx: Auth/User ---

class UsernameExistsError(AppError):
    def __init__(self) -> None:
        super().__init__(1001, "Username already exists", 409)


class EmailExistsError(AppError):
    def __init__(self) -> None:
        super().__init__(1002, "Email already exists", 409)


class InvalidCredentialsError(AppError):
    def __init__(self) -> None:
        super().__init__(1003, "Invalid username or password", 401)


class AccountDisabledError(AppError):
    def __init__(self) -> None:
        super().__init__(1004, "Account is disabled", 403)


class InvalidRefreshTokenError(AppError):
    def __init__(self) -> None:
        super().__init__(1005, "Refresh token is invalid or expired", 401)


class ForbiddenError(AppError):
    def __init__(self, detail: str = "Operation not permitted") -> None:
        super().__init__(1006, detail, 403)


# --- 2xxx: Account / Ledger ---

class InsufficientBalanceError(AppError):
    def __init__(self, required: int, available: int) -> None:
        super().__init__(
            2001,
            f"Insufficient balance: required {required} cents, available {available} cents",
            409,
        )


class AccountNotFoundError(AppError):
    def __init__(self, user_id: str) -> None:
        super().__init__(2002, f"Account not found for user {user_id}", 404)


# --- 3xxx: Market ---

class MarketNotFoundError(AppError):
    def __init__(self, market_id: str) -> None:
        super().__init__(3001, f"Market not found: {market_id}", 404)


class MarketClosedError(AppError):
    def __init__(self, market_id: str, reason: str = "market is closed") -> None:
        super().__init__(3002, f"Market {market_id} is not open: {reason}", 409)


class MarketAlreadyResolvedError(AppError):
    def __init__(self, market_id: str) -> None:
        super().__init__(3003, f"Market already resolved: {market_id}", 409)


class InvalidMarketScheduleError(AppError):
    def __init__(self, detail: str) -> None:
        super().__init__(3004, f"Invalid market schedule: {detail}", 400)


class TradingModeMismatchError(AppError):
    def __init__(self, market_id: str, mode: str) -> None:
        super().__init__(
            3005, f"Market {market_id} trades in {mode} mode only", 409
        )


class ConcurrentMarketUpdateError(AppError):
    def __init__(self, market_id: str) -> None:
        super().__init__(
            3006, f"Market {market_id} changed concurrently, retry the trade", 409
        )


class InsufficientLiquidityError(AppError):
    def __init__(self, market_id: str, payout: int, collateral: int) -> None:
        super().__init__(
            3007,
            f"Market {market_id} holds {collateral} cents, cannot pay out {payout}",
            409,
        )


# --- 4xxx: Order / Trade validation ---

class BelowMinimumStakeError(AppError):
    def __init__(self, amount: int, minimum: int) -> None:
        super().__init__(
            4001, f"Amount {amount} cents is below the minimum of {minimum} cents", 400
        )


class InvalidAmountError(AppError):
    def __init__(self, detail: str) -> None:
        super().__init__(4002, f"Invalid amount: {detail}", 400)


class SelfTradeError(AppError):
    def __init__(self) -> None:
        super().__init__(4003, "Self-trade prevented", 409)


class OrderNotFoundError(AppError):
    def __init__(self, order_id: str) -> None:
        super().__init__(4004, f"Order not found: {order_id}", 404)


class OrderNotCancellableError(AppError):
    def __init__(self, order_id: str, status: str) -> None:
        super().__init__(4006, f"Order {order_id} in status {status} cannot be cancelled", 409)


# --- 5xxx: Position ---

class InsufficientPositionError(AppError):
    def __init__(self, detail: str) -> None:
        super().__init__(5001, f"Insufficient position: {detail}", 409)


class PositionNotFoundError(AppError):
    def __init__(self, market_id: str) -> None:
        super().__init__(5002, f"No position in market {market_id}", 404)


# --- 9xxx: System ---

class InternalError(AppError):
    def __init__(self, detail: str = "Internal server error") -> None:
        super().__init__(9002, detail, 500)


class TradeFailedError(AppError):
    def __init__(self) -> None:
        super().__init__(9003, "Trade failed, no changes were applied", 500)


class ReconciliationRequiredError(AppError):
    def __init__(self, reference_id: str) -> None:
        super().__init__(
            9004,
            f"Trade {reference_id} could not be rolled back cleanly, "
            "manual reconciliation required",
            500,
        )
