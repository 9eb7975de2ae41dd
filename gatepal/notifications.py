"""
gatepal/notifications.py

Notification sink used by the society editor: success / error messages are
shown to the user as flashed messages on the next rendered page.
"""

from __future__ import annotations

from flask import flash


class FlashNotifier:
    """Maps editor notifications onto Flask flash categories."""

    def success(self, message: str) -> None:
        flash(message, "success")

    def error(self, message: str) -> None:
        flash(message, "danger")
