from fastapi import HTTPException, status


class MarketplaceError(HTTPException):
    """Base for ledger/registry failures. ``code`` tells callers which rule was violated."""

    code = "error"

    def __init__(self, status_code: int, detail: str):
        super().__init__(status_code=status_code, detail=detail)


class UnauthorizedCallerError(MarketplaceError):
    code = "unauthorized"

    def __init__(self, detail: str = "Caller is not authorized for this operation"):
        super().__init__(status.HTTP_403_FORBIDDEN, detail)


class InvalidAmountError(MarketplaceError):
    code = "invalid_amount"

    def __init__(self, amount, reason: str = "Amount must be a positive integer"):
        super().__init__(status.HTTP_400_BAD_REQUEST, f"{reason}, got {amount}")


class InvalidPriceError(MarketplaceError):
    code = "invalid_price"

    def __init__(self, price):
        super().__init__(status.HTTP_400_BAD_REQUEST, f"Price must be positive, got {price}")


class InvalidTokenIdError(MarketplaceError):
    code = "invalid_token_id"

    def __init__(self, token_id, reason: str = "Token id must be a non-negative integer"):
        super().__init__(status.HTTP_400_BAD_REQUEST, f"{reason}, got {token_id}")


class InvalidAddressError(MarketplaceError):
    code = "invalid_address"

    def __init__(self, address: str | None, reason: str = "invalid address"):
        super().__init__(status.HTTP_400_BAD_REQUEST, f"{reason}: {address!r}")


class InsufficientBalanceError(MarketplaceError):
    code = "insufficient_balance"

    def __init__(self, holder: str, available, required):
        super().__init__(
            status.HTTP_409_CONFLICT,
            f"Insufficient balance: {holder} has {available}, needs {required}",
        )


class InsufficientPaymentError(MarketplaceError):
    code = "insufficient_payment"

    def __init__(self, price, payment):
        super().__init__(
            status.HTTP_402_PAYMENT_REQUIRED,
            f"Payment {payment} is below the listing price {price}",
        )


class ContractPausedError(MarketplaceError):
    code = "paused"

    def __init__(self, address: str):
        super().__init__(status.HTTP_409_CONFLICT, f"Contract {address} is paused")


class ContractNotPausedError(MarketplaceError):
    code = "not_paused"

    def __init__(self, address: str):
        super().__init__(status.HTTP_409_CONFLICT, f"Contract {address} is not paused")


class ContractNotFoundError(MarketplaceError):
    code = "not_found"

    def __init__(self, address: str):
        super().__init__(status.HTTP_404_NOT_FOUND, f"Token contract {address} not found")


class ListingNotFoundError(MarketplaceError):
    code = "not_found"

    def __init__(self, token_contract: str, token_id: int):
        super().__init__(
            status.HTTP_404_NOT_FOUND,
            f"No listing for token {token_id} on contract {token_contract}",
        )


class ListingAlreadyExistsError(MarketplaceError):
    code = "listing_exists"

    def __init__(self, token_contract: str, token_id: int):
        super().__init__(
            status.HTTP_409_CONFLICT,
            f"Token {token_id} on contract {token_contract} is already listed",
        )


class LengthMismatchError(MarketplaceError):
    code = "length_mismatch"

    def __init__(self, left: int, right: int):
        super().__init__(
            status.HTTP_400_BAD_REQUEST,
            f"Batch arrays must have equal length ({left} != {right})",
        )


class IPFSError(MarketplaceError):
    code = "ipfs_error"

    def __init__(self, detail: str):
        super().__init__(status.HTTP_502_BAD_GATEWAY, detail)


class UnauthorizedError(HTTPException):
    def __init__(self, detail: str = "Invalid or missing authentication"):
        super().__init__(status_code=status.HTTP_401_UNAUTHORIZED, detail=detail)
