from core.accounts.service import AccountNotFoundError, AccountService
from core.accounts.templates import ACCOUNT_TEMPLATES, AccountTemplate

__all__ = ["ACCOUNT_TEMPLATES", "AccountNotFoundError", "AccountService", "AccountTemplate"]
