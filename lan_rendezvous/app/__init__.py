"""
Application layer for LAN rendezvous chat.

This package provides the connection state machine, the notifier interface
and chat message formatting.
"""

from .state_machine import ConnectionStateMachine, Phase
from .notifier import SessionNotifier
from .messaging import format_chat_message

__all__ = ['ConnectionStateMachine', 'Phase', 'SessionNotifier', 'format_chat_message']
