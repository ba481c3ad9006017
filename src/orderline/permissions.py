"""
Capability checks for terminal users.

A user's role is consumed as an opaque set of capabilities; every status
change on an item, from any terminal, is authorised by `can_transition`.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field

from orderline.constants import ITEM_TRANSITIONS, ROLE_CAPABILITIES, Capability, ItemStatus, Roles

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Actor:
    """The user acting on a terminal."""

    name: str | None
    email: str | None
    capabilities: frozenset[Capability] = field(default_factory=frozenset)

    @classmethod
    def from_role(cls, role: str, name: str | None = None, email: str | None = None) -> Actor:
        try:
            capabilities = ROLE_CAPABILITIES[Roles(role)]
        except ValueError:
            logger.warning(f"Unknown role '{role}', granting no capabilities")
            capabilities = frozenset()
        return cls(name=name, email=email, capabilities=capabilities)

    @property
    def is_order_taker(self) -> bool:
        return Capability.ORDER_TAKER in self.capabilities


def transition_policy(from_status: ItemStatus, to_status: ItemStatus) -> dict | None:
    return ITEM_TRANSITIONS.get((ItemStatus(from_status), ItemStatus(to_status)))


def has_role_for(actor: Actor, from_status: ItemStatus, to_status: ItemStatus) -> bool:
    policy = transition_policy(from_status, to_status)
    if not policy:
        return False
    return bool(actor.capabilities & policy["allowed_capabilities"])


def owns_item(actor: Actor, item) -> bool:
    """
    Whether `actor` may keep moving an item someone already started.

    Once an item carries a `prepared_by_email`, only that crew member or an
    order-taker may change it further.
    """
    if not item.prepared_by_email or actor.is_order_taker:
        return True
    return item.prepared_by_email == actor.email


def can_transition(actor: Actor, item, from_status: ItemStatus, to_status: ItemStatus) -> bool:
    """Single capability check shared by the state machine and the UI layer."""
    return has_role_for(actor, from_status, to_status) and owns_item(actor, item)
