"""Collaborators outside the tool session."""

from .claims import FALLBACK_CLAIM, ClaimGenerator, LlmClaimClient
from .receivers import ReceiverProvider, random_address

__all__ = ["FALLBACK_CLAIM", "ClaimGenerator", "LlmClaimClient", "ReceiverProvider", "random_address"]
