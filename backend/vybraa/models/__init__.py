from .user import User, CelebrityProfile  # noqa: F401
from .request import Request, RequestStatus  # noqa: F401
from .transaction import Transaction, TransactionStatus, TransactionType, EscrowStatus, EscrowType  # noqa: F401
from .wallet import Wallet, WalletEarningsHistory  # noqa: F401
from .settings import FeeConfig, ExchangeRate, CalculationType  # noqa: F401

from .activity_log import ActivityLog  # noqa: F401

from .notification_queue import NotificationQueue  # noqa: F401
