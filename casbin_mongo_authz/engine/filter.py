"""
Filter Implementation for Casbin Policy Selection.

This module provides a Filter class used to specify criteria for selective
loading of Casbin policy rules. The Filter class allows for efficient policy
management by enabling the loading of only relevant policy rules based on
policy type and attribute values.

The Filter class is designed to work with the MongoAdapter, which translates it
into a MongoDB query, so callers never write store-specific query syntax.
"""

from typing import Optional

import attr


@attr.define
class Filter:
    """
    Filter class for selective Casbin policy loading.

    This class defines filtering criteria used to load only specific policy rules
    from the collection instead of loading all policies. Each attribute corresponds
    to a key of the stored rule documents and accepts a list of values to filter by.

    Note:
        - Empty lists (or None) for any attribute means no filtering on that attribute
        - Non-empty lists create an ``$in`` condition for that attribute
        - All non-empty conditions are combined with AND logic
        - Passing any Filter to a load marks the adapter as filtered, even an empty one
    """

    ptype: Optional[list[str]] = attr.field(factory=list)
    """ptype (Optional[list[str]]): Policy type filter.

    - ``p``  → Policy rule (permissions).
    - ``g``  → Grouping rule (user ↔ role).
    - ``g2`` → Resource grouping (resource ↔ resource group).
    """

    v0: Optional[list[str]] = attr.field(factory=list)
    """v0 (Optional[list[str]]): First policy value filter.

    - For ``p`` → Subject (e.g., ``alice``, ``data2_admin``).
    - For ``g`` → Member (e.g., ``alice``).
    - For ``g2`` → Resource (e.g., ``data1``).
    """

    v1: Optional[list[str]] = attr.field(factory=list)
    """v1 (Optional[list[str]]): Second policy value filter.

    - For ``p`` → Object (e.g., ``data1``).
    - For ``g`` → Role (e.g., ``data2_admin``).
    - For ``g2`` → Resource group (e.g., ``data_group``).
    """

    v2: Optional[list[str]] = attr.field(factory=list)
    """v2 (Optional[list[str]]): Third policy value filter.

    - For ``p`` → Action (e.g., ``read``, ``write``).
    - For ``g`` → Domain, when the model uses domains.
    """

    v3: Optional[list[str]] = attr.field(factory=list)
    """v3 (Optional[list[str]]): Fourth policy value filter (e.g., effect: allow or deny).
    """

    v4: Optional[list[str]] = attr.field(factory=list)
    """v4 (Optional[list[str]]): Fifth policy value filter (optional additional context).
    """

    v5: Optional[list[str]] = attr.field(factory=list)
    """v5 (Optional[list[str]]): Sixth policy value filter (optional additional context).
    """
