"""
Main window for the LAN rendezvous chat.
"""

import asyncio
import logging
from typing import Optional

from PyQt5.QtWidgets import (
    QMainWindow, QWidget, QVBoxLayout, QHBoxLayout, QLabel, QTextEdit,
    QLineEdit, QPushButton, QMessageBox
)
from PyQt5.QtCore import QObject, QTimer, pyqtSignal, pyqtSlot

from ..app import ConnectionStateMachine, SessionNotifier
from ..config import RendezvousConfig

logger = logging.getLogger(__name__)


class QtSessionNotifier(QObject, SessionNotifier):
    """Forwards core notifications to the GUI thread as Qt signals."""

    status_changed = pyqtSignal(str)
    peer_connected = pyqtSignal(str)
    message_received = pyqtSignal(str)

    def __init__(self, search_timeout: float, parent=None):
        super().__init__(parent)
        self.search_timeout = search_timeout

    def on_status_update(self, text: str) -> None:
        self.status_changed.emit(text)

    def on_peer_connected(self, address: str) -> None:
        self.peer_connected.emit(address)

    def on_message(self, text: str) -> None:
        self.message_received.emit(text)

    async def ask_retry(self) -> bool:
        """Show a non-modal Retry/Cancel box and wait for the answer."""
        future = asyncio.get_running_loop().create_future()

        box = QMessageBox(
            QMessageBox.Question,
            "No peer found",
            f"No peers found within {self.search_timeout:g}s. Retry?",
            QMessageBox.Retry | QMessageBox.Cancel,
            self.parent()
        )
        box.setDefaultButton(QMessageBox.Retry)

        def on_finished(result):
            if not future.done():
                future.set_result(result == QMessageBox.Retry)

        box.finished.connect(on_finished)
        box.open()
        try:
            return await future
        finally:
            box.deleteLater()


class MainWindow(QMainWindow):
    """Main window for the application."""

    def __init__(self, config: Optional[RendezvousConfig] = None):
        """Initialize the main window.

        Args:
            config: Rendezvous settings, defaults to the protocol constants
        """
        super().__init__()

        self.config = config or RendezvousConfig()
        self.notifier = QtSessionNotifier(self.config.search_timeout, self)
        self.machine = ConnectionStateMachine(self.notifier, self.config)

        self.setWindowTitle("LAN Rendezvous Chat")
        self.setMinimumSize(600, 500)
        self._init_ui()

        self.notifier.status_changed.connect(self._on_status_changed)
        self.notifier.peer_connected.connect(self._on_peer_connected)
        self.notifier.message_received.connect(self._on_message_received)

        QTimer.singleShot(0, self._start_network)

    def _init_ui(self):
        """Initialize the user interface."""
        central_widget = QWidget()
        layout = QVBoxLayout(central_widget)

        self.status_label = QLabel("Idle")
        self.status_label.setStyleSheet("font-weight: bold;")
        layout.addWidget(self.status_label)

        self.peer_label = QLabel(f"You are {self.machine.identity.address}")
        layout.addWidget(self.peer_label)

        self.chat_view = QTextEdit()
        self.chat_view.setReadOnly(True)
        layout.addWidget(self.chat_view, 1)

        input_layout = QHBoxLayout()
        self.message_input = QLineEdit()
        self.message_input.returnPressed.connect(self._send_message)
        input_layout.addWidget(self.message_input, 1)

        self.send_button = QPushButton("Send")
        self.send_button.clicked.connect(self._send_message)
        input_layout.addWidget(self.send_button)
        layout.addLayout(input_layout)

        self.setCentralWidget(central_widget)

    def _start_network(self):
        asyncio.create_task(self.machine.start())

    def _send_message(self):
        text = self.message_input.text().strip()
        if not text:
            return
        self.machine.send_message(text)
        self.message_input.clear()

    @pyqtSlot(str)
    def _on_status_changed(self, text: str):
        self.status_label.setText(text)

    @pyqtSlot(str)
    def _on_peer_connected(self, address: str):
        self.peer_label.setText(f"Chatting with {address}")

    @pyqtSlot(str)
    def _on_message_received(self, text: str):
        self.chat_view.append(text)

    def closeEvent(self, event):
        """Stop the network components when the window closes."""
        asyncio.create_task(self.machine.stop())
        event.accept()
