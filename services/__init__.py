"""Services package initialization"""
from .alerts import AdminAlertHandler
from .api import RentXClient
from .errors import RentXError
from .session import Session, SessionRegistry

__all__ = ["AdminAlertHandler", "RentXClient", "RentXError", "Session", "SessionRegistry"]
