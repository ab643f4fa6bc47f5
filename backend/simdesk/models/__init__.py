from .auth import User, SessionToken
from .catalog import SimTypeRow, SimPackageRow
from .customers import CustomerRow
from .sales import SaleOrderRow, DueDateLogRow
from .cash import TransactionRow

__all__ = [
    'User', 'SessionToken',
    'SimTypeRow', 'SimPackageRow',
    'CustomerRow',
    'SaleOrderRow', 'DueDateLogRow',
    'TransactionRow',
]
