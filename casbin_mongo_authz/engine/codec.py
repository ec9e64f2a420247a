"""
Rule codec between Casbin policy rules and stored MongoDB documents.

A Casbin rule is a policy type (``p``, ``g``, ``g2``...) followed by a variable
number of positional values. The storage schema is fixed-width instead: every
document carries the ``ptype`` key plus six value slots ``v0`` to ``v5``, which
keeps the unique compound index and exact-match queries simple.

This module is the only place that knows about that width. Everything else in
the engine goes through ``encode`` and ``decode``.
"""

import logging
from enum import Enum

import attr

logger = logging.getLogger(__name__)

MAX_POLICY_FIELDS = 6


class PolicyAttribute(Enum):
    """
    Enumeration of the keys of a stored Casbin rule document.

    The meaning of the value keys depends on the policy type (ptype). Check the
    ``casbin_mongo_authz.engine.filter.Filter`` class for more details.
    """

    PTYPE = "ptype"
    """ptype (str): Type of policy"""

    V0 = "v0"
    """v0 (str): First policy value."""

    V1 = "v1"
    """v1 (str): Second policy value."""

    V2 = "v2"
    """v2 (str): Third policy value."""

    V3 = "v3"
    """v3 (str): Fourth policy value."""

    V4 = "v4"
    """v4 (str): Fifth policy value."""

    V5 = "v5"
    """v5 (str): Sixth policy value."""

    @classmethod
    def value_fields(cls) -> list["PolicyAttribute"]:
        """Return the value attributes (``v0`` to ``v5``) in positional order."""
        return [member for member in cls if member is not cls.PTYPE]


@attr.define(frozen=True)
class CasbinRule:
    """
    A Casbin rule in its stored, fixed-width shape.

    Unused value slots hold the empty string. Instances are built with
    ``encode`` or ``from_document`` and are never persisted by reference.
    """

    ptype: str
    v0: str = ""
    v1: str = ""
    v2: str = ""
    v3: str = ""
    v4: str = ""
    v5: str = ""

    @classmethod
    def from_document(cls, document: dict) -> "CasbinRule":
        """Build a rule from a MongoDB document.

        Missing or null keys are read as empty strings, so documents written by
        other tools with a shorter shape are still accepted.

        Args:
            document (dict): The raw document returned by the collection.

        Returns:
            CasbinRule: The rule stored in the document.
        """
        values = {attribute.value: document.get(attribute.value) or "" for attribute in PolicyAttribute}
        return cls(**values)

    def to_document(self) -> dict:
        """Return the document shape of this rule, with every key present."""
        return {attribute.value: getattr(self, attribute.value) for attribute in PolicyAttribute}

    def values(self) -> list[str]:
        """Return the six value slots in positional order."""
        return [getattr(self, attribute.value) for attribute in PolicyAttribute.value_fields()]

    def __str__(self) -> str:
        ptype, fields = decode(self)
        return ", ".join([ptype, *fields])


def encode(ptype: str, rule: list[str]) -> CasbinRule:
    """Convert a Casbin rule into its stored shape.

    Args:
        ptype (str): The policy type of the rule (e.g., ``p``, ``g2``).
        rule (list[str]): The rule values in positional order.

    Returns:
        CasbinRule: The fixed-width rule. Values past ``MAX_POLICY_FIELDS`` are
            dropped with a warning.
    """
    if len(rule) > MAX_POLICY_FIELDS:
        logger.warning(
            f"Rule {ptype}, {rule} has {len(rule)} values; only the first {MAX_POLICY_FIELDS} will be stored."
        )
    slots = PolicyAttribute.value_fields()
    values = {slot.value: value for slot, value in zip(slots, rule)}
    return CasbinRule(ptype=ptype, **values)


def decode(casbin_rule: CasbinRule) -> tuple[str, list[str]]:
    """Convert a stored rule back into a policy type and its values.

    The arity of the rule is the position of the last non-empty slot. Values are
    expected to be contiguous from ``v0``: a rule with an empty ``v0`` decodes to
    a rule without values, even when later slots are set. Empty slots between
    ``v0`` and the last non-empty slot are kept as empty strings.

    Args:
        casbin_rule (CasbinRule): The stored rule.

    Returns:
        tuple[str, list[str]]: The policy type and the rule values.
    """
    values = casbin_rule.values()
    if not values[0]:
        return casbin_rule.ptype, []

    arity = len(values)
    while not values[arity - 1]:
        arity -= 1
    return casbin_rule.ptype, values[:arity]
