from .inventory import Phone
from .sales import Sale, Return
from .credits import Credit, CreditPayment

__all__ = [
    'Phone',
    'Sale', 'Return',
    'Credit', 'CreditPayment',
]
