# flycargo/core/notifications/__init__.py
"""
Доставка кодов подтверждения.
"""

from flycargo.core.notifications.senders import CodeSender, DispatchResult, EmailSender, SmsSender

__all__ = ["CodeSender", "DispatchResult", "EmailSender", "SmsSender"]
