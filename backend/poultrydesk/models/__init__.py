from .auth import User, SessionToken
from .flocks import Flock
from .sales import Sale
from .expenses import Expense
from .production import EggProduction
from .inventory import InventoryItem
from .finances import FlockFinancialData
from .reports import Report
from .budgets import Budget
from .vaccinations import Vaccination
from .notifications import Notification

__all__ = [
    'User', 'SessionToken',
    'Flock',
    'Sale', 'Expense', 'EggProduction', 'InventoryItem', 'Vaccination',
    'Budget',
    'FlockFinancialData',
    'Report',
    'Notification',
]
