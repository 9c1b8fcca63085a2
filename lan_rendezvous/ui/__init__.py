"""
User interface for the LAN rendezvous chat.
"""

from .main_window import MainWindow, QtSessionNotifier

__all__ = ['MainWindow', 'QtSessionNotifier']
