"""
Tests for the `load_policies` and `enforcement` Django management commands.
"""

import io
import os
from tempfile import NamedTemporaryFile
from unittest import TestCase
from unittest.mock import Mock, patch

from ddt import data, ddt
from django.core.management import call_command
from django.core.management.base import CommandError

from casbin_mongo_authz import ROOT_DIRECTORY
from casbin_mongo_authz.engine.codec import CasbinRule
from casbin_mongo_authz.engine.enforcer import AuthzEnforcer

MODEL_FILE = os.path.join(ROOT_DIRECTORY, "engine", "config", "model.conf")
POLICY_FILE = os.path.join(ROOT_DIRECTORY, "engine", "config", "authz.policy")


class LoadPoliciesCommandTests(TestCase):
    """Tests for the `load_policies` Django management command."""

    def setUp(self):
        super().setUp()
        self.buffer = io.StringIO()
        AuthzEnforcer.reset()
        self.collection = AuthzEnforcer.get_adapter().collection
        self.collection.delete_many({})
        AuthzEnforcer.get_enforcer().load_policy()

    def tearDown(self):
        AuthzEnforcer.reset()
        super().tearDown()

    def test_load_default_policy_file(self):
        """Test that the bundled policy file is loaded into the collection."""
        call_command("load_policies", stdout=self.buffer)

        self.assertEqual(self.collection.count_documents({}), 6)
        self.assertIn("Loaded 6 new policies", self.buffer.getvalue())

    def test_load_custom_policy_file(self):
        """Test that a given policy file is loaded instead of the bundled one."""
        with NamedTemporaryFile("w", suffix=".policy", delete=False) as policy_file:
            policy_file.write("p, carol, data3, read\ng, dave, carol\n")
        self.addCleanup(os.remove, policy_file.name)

        call_command(
            "load_policies",
            policy_file_path=policy_file.name,
            model_file_path=MODEL_FILE,
            stdout=self.buffer,
        )

        self.assertEqual(self.collection.count_documents({}), 2)
        self.assertTrue(AuthzEnforcer.get_enforcer().enforce("dave", "data3", "read"))

    def test_policy_file_not_found_raises(self):
        """Test that the command errors when the policy file does not exist."""
        with self.assertRaises(CommandError) as ctx:
            call_command("load_policies", policy_file_path="invalid/path/authz.policy")

        self.assertEqual("Policy file not found: invalid/path/authz.policy", str(ctx.exception))

    @patch("casbin_mongo_authz.management.commands.load_policies.click.confirm", return_value=True)
    def test_clear_existing_confirmed(self, mock_confirm: Mock):
        """Test that confirmed clearing removes stored rules not in the file."""
        self.collection.insert_one(CasbinRule("p", "mallory", "data9", "write").to_document())

        call_command("load_policies", clear_existing=True, stdout=self.buffer)

        mock_confirm.assert_called_once()
        self.assertEqual(self.collection.count_documents({"v0": "mallory"}), 0)
        self.assertEqual(self.collection.count_documents({}), 6)

    @patch("casbin_mongo_authz.management.commands.load_policies.click.confirm", return_value=False)
    def test_clear_existing_declined(self, mock_confirm: Mock):
        """Test that declining the confirmation keeps the stored rules."""
        self.collection.insert_one(CasbinRule("p", "mallory", "data9", "write").to_document())

        call_command("load_policies", clear_existing=True, stdout=self.buffer)

        mock_confirm.assert_called_once()
        self.assertEqual(self.collection.count_documents({}), 7)


@ddt
class EnforcementCommandTests(TestCase):
    """
    Tests for the `enforcement` Django management command.

    This test class verifies the behavior of the enforcement command, including:
    - File existence checks for policy and model files
    - Database and file modes
    - Interactive mode output
    """

    def setUp(self):
        super().setUp()
        self.buffer = io.StringIO()
        self.command_name = "enforcement"

        self.policies = [["alice", "data1", "read"], ["bob", "data2", "write"]]
        self.roles = [["alice", "data_group_admin"]]

        self.enforcer = Mock()
        self.enforcer.get_policy.return_value = self.policies
        self.enforcer.get_grouping_policy.return_value = self.roles

    @patch.object(AuthzEnforcer, "get_enforcer")
    @patch("casbin_mongo_authz.management.commands.enforcement.disabled_logging")
    def test_handle_database_mode_default(self, mock_logging: Mock, mock_get_enforcer: Mock):
        """Test database mode is used when no file paths are provided."""
        mock_get_enforcer.return_value = self.enforcer

        with patch("builtins.input", side_effect=["quit"]):
            call_command(self.command_name, stdout=self.buffer)

        output = self.buffer.getvalue()
        self.assertIn("Database Mode", output)
        self.assertIn("MongoDB", output)
        self.enforcer.load_policy.assert_called_once()
        mock_logging.assert_called_once()

    def test_handle_file_mode(self):
        """Test file mode enforces against the given files."""
        with patch("builtins.input", side_effect=["alice data2 write", "bob data1 write", "q"]):
            call_command(
                self.command_name,
                policy_file_path=POLICY_FILE,
                model_file_path=MODEL_FILE,
                stdout=self.buffer,
            )

        output = self.buffer.getvalue()
        self.assertIn("File Mode", output)
        self.assertIn("✓ Loaded 3 policies", output)
        self.assertIn("✓ ALLOWED: alice data2 write", output)
        self.assertIn("✗ DENIED: bob data1 write", output)

    def test_policy_file_not_found_raises(self):
        """Test that command errors when the provided policy file does not exist."""
        with self.assertRaises(CommandError) as ctx:
            call_command(
                self.command_name,
                policy_file_path="invalid/path/authz.policy",
                model_file_path=MODEL_FILE,
            )

        self.assertEqual("Policy file not found: invalid/path/authz.policy", str(ctx.exception))

    def test_model_file_not_found_raises(self):
        """Test that command errors when the provided model file does not exist."""
        with self.assertRaises(CommandError) as ctx:
            call_command(
                self.command_name,
                policy_file_path=POLICY_FILE,
                model_file_path="invalid/path/model.conf",
            )

        self.assertEqual("Model file not found: invalid/path/model.conf", str(ctx.exception))

    @patch.object(AuthzEnforcer, "get_enforcer")
    def test_display_loaded_policies(self, mock_get_enforcer: Mock):
        """Test that policy statistics are displayed correctly."""
        mock_get_enforcer.return_value = self.enforcer

        with patch("builtins.input", side_effect=["quit"]):
            call_command(self.command_name, stdout=self.buffer)

        output = self.buffer.getvalue()
        self.assertIn(f"✓ Loaded {len(self.policies)} policies", output)
        self.assertIn(f"✓ Loaded {len(self.roles)} role assignments", output)

    @data("alice data1", "alice data1 read extra")
    @patch.object(AuthzEnforcer, "get_enforcer")
    def test_interactive_mode_invalid_format(self, user_input: str, mock_get_enforcer: Mock):
        """Test that requests without exactly three parts are rejected."""
        mock_get_enforcer.return_value = self.enforcer

        with patch("builtins.input", side_effect=[user_input, "quit"]):
            call_command(self.command_name, stdout=self.buffer)

        self.assertIn("✗ Invalid format. Expected 3 parts", self.buffer.getvalue())
        self.enforcer.enforce.assert_not_called()

    @data(ValueError("bad matcher"), IndexError("list index out of range"), TypeError("unsupported operand"))
    @patch.object(AuthzEnforcer, "get_enforcer")
    def test_interactive_mode_reports_request_errors(self, error: Exception, mock_get_enforcer: Mock):
        """Test that a failing request is reported and the session continues."""
        mock_get_enforcer.return_value = self.enforcer
        self.enforcer.enforce.side_effect = [error, True]

        with patch("builtins.input", side_effect=["alice data1 read", "alice data1 read", "quit"]):
            call_command(self.command_name, stdout=self.buffer)

        output = self.buffer.getvalue()
        self.assertIn(f"✗ Error processing request: {error}", output)
        self.assertIn("✓ ALLOWED: alice data1 read", output)
        self.assertEqual(self.enforcer.enforce.call_count, 2)

    @patch.object(AuthzEnforcer, "get_enforcer")
    def test_interactive_mode_exits_on_eof(self, mock_get_enforcer: Mock):
        """Test that Ctrl+D leaves the interactive mode."""
        mock_get_enforcer.return_value = self.enforcer

        with patch("builtins.input", side_effect=EOFError):
            call_command(self.command_name, stdout=self.buffer)

        self.assertIn("Exiting interactive mode...", self.buffer.getvalue())

    @patch.object(AuthzEnforcer, "get_enforcer")
    def test_database_mode_errors_become_command_errors(self, mock_get_enforcer: Mock):
        """Test that enforcer failures are reported as CommandError."""
        mock_get_enforcer.side_effect = RuntimeError("boom")

        with self.assertRaises(CommandError) as ctx:
            call_command(self.command_name)

        self.assertEqual("Error creating Casbin enforcer: boom", str(ctx.exception))
