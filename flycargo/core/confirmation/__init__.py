# flycargo/core/confirmation/__init__.py
"""
Коды подтверждения.
"""

from flycargo.core.confirmation.store import (
    ConfirmationCodeStore,
    delivery_stage_key,
    email_verification_key,
    generate_code,
    phone_verification_key,
)

__all__ = [
    "ConfirmationCodeStore",
    "delivery_stage_key",
    "email_verification_key",
    "generate_code",
    "phone_verification_key",
]
