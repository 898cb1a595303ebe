"""Messaging patterns built on the transport ports."""

from __future__ import annotations

from .fire_and_forget import FireAndForgetPattern
from .request_reply import PendingRequest, PendingRequestTable, RequestReplyPattern

__all__ = [
    "FireAndForgetPattern",
    "PendingRequest",
    "PendingRequestTable",
    "RequestReplyPattern",
]
