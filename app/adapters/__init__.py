"""Platform adapters for the ticketing and chat integrations."""

from app.adapters.base import BaseChatAdapter
from app.adapters.intercom import IntercomAdapter
from app.adapters.lark import LarkAdapter

__all__ = ["BaseChatAdapter", "IntercomAdapter", "LarkAdapter"]
