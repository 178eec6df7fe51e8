"""
Utility modules for Safario

- notifications: SMS (Twilio) and email delivery
- storage: local object storage buckets for uploaded images
"""

from .notifications import (
    SMSService,
    EmailService,
    mask_phone
)

from .storage import (
    ObjectStorage,
    object_storage
)

__all__ = [
    "SMSService",
    "EmailService",
    "mask_phone",
    "ObjectStorage",
    "object_storage"
]
