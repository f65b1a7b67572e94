"""Business logic services."""

from chat_ledger.services.catalog_service import CatalogService
from chat_ledger.services.connection_service import ConnectionService
from chat_ledger.services.dispatcher import EventDispatcher
from chat_ledger.services.identity_service import IdentityService
from chat_ledger.services.interpreter import MessageInterpreter
from chat_ledger.services.ledger_service import LedgerService
from chat_ledger.services.resolver import KeywordResolver

__all__ = [
    "CatalogService",
    "ConnectionService",
    "EventDispatcher",
    "IdentityService",
    "MessageInterpreter",
    "LedgerService",
    "KeywordResolver",
]
