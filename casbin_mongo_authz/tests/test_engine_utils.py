"""
Test suite for engine/utils.py policy migration functionality.

This module tests the migration of policies from file-based storage (authz.policy)
to the MongoDB-backed enforcer, which is the real-world scenario for the
load_policies management command.
"""

import os
import unittest

import casbin

from casbin_mongo_authz import ROOT_DIRECTORY
from casbin_mongo_authz.engine.codec import CasbinRule
from casbin_mongo_authz.engine.enforcer import AuthzEnforcer
from casbin_mongo_authz.engine.utils import migrate_policy_between_enforcers


class TestMigratePolicyBetweenEnforcers(unittest.TestCase):
    """
    Test case for migrate_policy_between_enforcers function.

    Tests the migration of policies from the authz.policy file to MongoDB:
    - Loading all policies from file to the collection
    - Idempotent migration (running twice doesn't duplicate)
    - Preserving existing stored policies not in file
    """

    @classmethod
    def setUpClass(cls):
        """Set up the Casbin model and policy file paths."""
        super().setUpClass()
        engine_config_dir = os.path.join(ROOT_DIRECTORY, "engine", "config")
        cls.model_file = os.path.join(engine_config_dir, "model.conf")
        cls.policy_file = os.path.join(engine_config_dir, "authz.policy")

    def setUp(self):
        """Set up a file-based source enforcer and an empty MongoDB-backed target."""
        AuthzEnforcer.reset()
        self.source_enforcer = casbin.Enforcer(self.model_file, self.policy_file)
        self.target_enforcer = AuthzEnforcer.get_enforcer()
        self.collection = AuthzEnforcer.get_adapter().collection
        self.collection.delete_many({})
        self.target_enforcer.load_policy()

    def tearDown(self):
        AuthzEnforcer.reset()

    def test_migrate_all_file_policies(self):
        """Test that every rule of the file ends up in the collection."""
        migrated = migrate_policy_between_enforcers(self.source_enforcer, self.target_enforcer)

        self.assertEqual(migrated, 6)
        self.assertEqual(self.collection.count_documents({"ptype": "p"}), 3)
        self.assertEqual(self.collection.count_documents({"ptype": "g"}), 1)
        self.assertEqual(self.collection.count_documents({"ptype": "g2"}), 2)

    def test_migrated_policies_are_enforced(self):
        """Test that a fresh load of the migrated rules gives the same decisions as the file."""
        migrate_policy_between_enforcers(self.source_enforcer, self.target_enforcer)
        self.target_enforcer.load_policy()

        for request in [("alice", "data1", "read"), ("alice", "data2", "write"), ("bob", "data1", "write")]:
            self.assertEqual(
                self.target_enforcer.enforce(*request),
                self.source_enforcer.enforce(*request),
                request,
            )

    def test_migration_is_idempotent(self):
        """Test that migrating twice does not store anything new."""
        migrate_policy_between_enforcers(self.source_enforcer, self.target_enforcer)

        migrated = migrate_policy_between_enforcers(self.source_enforcer, self.target_enforcer)

        self.assertEqual(migrated, 0)
        self.assertEqual(self.collection.count_documents({}), 6)

    def test_existing_policies_are_preserved(self):
        """Test that stored rules missing from the file are kept."""
        self.collection.insert_one(CasbinRule("p", "carol", "data3", "read").to_document())
        self.collection.insert_one(CasbinRule("p", "alice", "data1", "read").to_document())

        migrated = migrate_policy_between_enforcers(self.source_enforcer, self.target_enforcer)

        self.assertEqual(migrated, 5)
        self.assertEqual(self.collection.count_documents({"v0": "carol"}), 1)
        self.assertEqual(self.collection.count_documents({}), 7)
