"""
Identity transitions for column updates.

Identity is sticky: leaving ``is_identity`` out of a patch never adds or
drops it. Only an explicit ``False`` drops, and an explicit ``True`` on a
column that is already identity only changes the generation mode when one
is given.

    old \\ new | absent              | True                | False
    ----------+---------------------+---------------------+----------------
    True      | set gen (if given)  | set gen (if given)  | drop if exists
    False     | -                   | add identity        | drop if exists
"""

from dataclasses import dataclass
from enum import Enum
from typing import Optional


DEFAULT_IDENTITY_GENERATION = "BY DEFAULT"


class IdentityAction(str, Enum):
    """What the update script does to a column's identity."""

    NONE = "none"
    ADD = "add"
    SET_GENERATION = "set_generation"
    DROP = "drop"


@dataclass(frozen=True)
class IdentityTransition:
    action: IdentityAction
    generation: Optional[str] = None

    @property
    def is_noop(self) -> bool:
        return self.action == IdentityAction.NONE


def resolve_identity_transition(
    old_is_identity: bool,
    new_is_identity: Optional[bool],
    new_generation: Optional[str],
) -> IdentityTransition:
    """Map old identity state and the requested change to one action."""
    if new_is_identity is False:
        return IdentityTransition(IdentityAction.DROP)

    if old_is_identity:
        if new_generation is None:
            return IdentityTransition(IdentityAction.NONE)
        return IdentityTransition(IdentityAction.SET_GENERATION, new_generation)

    if new_is_identity is None:
        return IdentityTransition(IdentityAction.NONE)

    return IdentityTransition(
        IdentityAction.ADD, new_generation or DEFAULT_IDENTITY_GENERATION
    )
