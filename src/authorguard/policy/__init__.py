"""
Policy module for authorguard.

This module implements the ownership model: a non-privileged actor may
only see and change documents they authored.

Key concepts:
    - OwnershipPolicy: the four decision operations plus the subscription variant
    - Decision: ALLOW (possibly with a rewritten request or filtered result) or DENY
    - DenialFactory: builds Forbidden / Unauthenticated errors for denials
"""

from authorguard.policy.decision import Decision
from authorguard.policy.denial import DenialFactory
from authorguard.policy.engine import OwnershipPolicy
from authorguard.policy.query import (
    ownership_equals,
    ownership_query,
    ownership_term,
    restrict_search_body,
    restrict_subscription_filter,
)

__all__ = [
    "Decision",
    "DenialFactory",
    "OwnershipPolicy",
    "ownership_equals",
    "ownership_query",
    "ownership_term",
    "restrict_search_body",
    "restrict_subscription_filter",
]
