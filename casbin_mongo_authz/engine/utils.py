"""Policy loader module.

This module provides functionality to copy policy definitions between Casbin
enforcers, typically from a file-based enforcer into the MongoDB-backed one.
"""

import logging

from casbin import Enforcer

logger = logging.getLogger(__name__)


def migrate_policy_between_enforcers(
    source_enforcer: Enforcer,
    target_enforcer: Enforcer,
) -> int:
    """Copy the policy rules of one enforcer into another.

    Rules already present in the target are skipped, so running the migration
    twice does not store anything new. Rules of the target that are not in the
    source are kept.

    Args:
        source_enforcer (Enforcer): The Casbin enforcer instance to migrate policies from (e.g., file-based).
        target_enforcer (Enforcer): The Casbin enforcer instance to migrate policies to (e.g., MongoDB).

    Returns:
        int: The number of rules added to the target.
    """
    try:
        source_enforcer.load_policy()
        target_enforcer.load_policy()
        logger.info(
            f"Loaded {len(source_enforcer.get_policy())} policies from source enforcer; target has "
            f"{len(target_enforcer.get_policy())} existing policies before migration."
        )

        source_model = source_enforcer.get_model().model
        migrated = 0

        for ptype, assertion in source_model.get("p", {}).items():
            missing = [rule for rule in assertion.policy if not target_enforcer.has_named_policy(ptype, *rule)]
            skipped = len(assertion.policy) - len(missing)
            if skipped:
                logger.info(f"{skipped} {ptype} policies already exist in target, skipping.")
            if missing:
                target_enforcer.add_named_policies(ptype, missing)
                migrated += len(missing)

        for ptype, assertion in source_model.get("g", {}).items():
            missing = [
                rule for rule in assertion.policy if not target_enforcer.has_named_grouping_policy(ptype, *rule)
            ]
            skipped = len(assertion.policy) - len(missing)
            if skipped:
                logger.info(f"{skipped} {ptype} grouping policies already exist in target, skipping.")
            if missing:
                target_enforcer.add_named_grouping_policies(ptype, missing)
                migrated += len(missing)

        logger.info(f"Successfully migrated {migrated} policies into the target enforcer.")
        return migrated
    except Exception as e:
        logger.error(f"Error migrating policies between enforcers: {e}")
        raise
