from rwa_marketplace.models.token_contract import TokenContract
from rwa_marketplace.models.token_ledger import OperatorApproval, TokenBalance, TokenClass
from rwa_marketplace.models.listing import Listing
from rwa_marketplace.models.payment_account import PaymentAccount
from rwa_marketplace.models.ledger_event import LedgerEvent

__all__ = [
    "TokenContract",
    "TokenClass",
    "TokenBalance",
    "OperatorApproval",
    "Listing",
    "PaymentAccount",
    "LedgerEvent",
]
