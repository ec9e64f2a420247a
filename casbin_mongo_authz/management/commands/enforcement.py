"""
Django management command for interactive Casbin enforcement testing.

This command provides an interactive mode for testing authorization enforcement
requests with two operational modes:

1. **Database mode (default)**: Uses AuthzEnforcer with policies from MongoDB

2. **File mode**: Uses a custom Casbin enforcer with policies from files
   - Activated when --policy-file-path and --model-file-path are provided
   - Reads policies directly from the specified CSV file

The command supports:
- Interactive testing with format: subject object action
- Real-time enforcement results with visual feedback (✓ ALLOWED / ✗ DENIED)
- Display of loaded policies and grouping rules

Example usage:
    # Use policies from MongoDB with the configured model
    python manage.py enforcement

    # Use custom model and policy files
    python manage.py enforcement -m /path/to/model.conf -p /path/to/policies.csv

Example test input:
    >>> alice data1 read
    ✓ ALLOWED: alice data1 read
    >>> bob data1 write
    ✗ DENIED: bob data1 write
"""

import argparse
import os

from casbin import Enforcer
from casbin.util.log import disabled_logging
from django.core.management.base import BaseCommand, CommandError

from casbin_mongo_authz.engine.enforcer import AuthzEnforcer


class Command(BaseCommand):
    """
    Django management command for interactive Casbin enforcement testing.

    This command provides two operational modes for testing authorization:

    1. Database mode (default): Uses AuthzEnforcer with policies from MongoDB.
       This is the default behavior when no arguments are provided.

    2. File mode: Uses a custom Casbin enforcer with policies from files.
       Activated when both --policy-file-path and --model-file-path are provided.
    """

    help = (
        "Interactive mode for testing Casbin enforcement policies. By default, uses "
        "AuthzEnforcer with policies from MongoDB. Use --policy-file-path and "
        "--model-file-path to test with custom files instead. "
        "Format: subject object action."
    )

    def __init__(self, *args, **kwargs):
        """Initialize the command with required attributes."""
        super().__init__(*args, **kwargs)
        self._enforcer = None

    def add_arguments(self, parser: argparse.ArgumentParser) -> None:
        """Add command-line arguments to the argument parser.

        Args:
            parser (argparse.ArgumentParser): The Django argument parser instance to configure.
        """
        parser.add_argument(
            "-p",
            "--policy-file-path",
            type=str,
            default=None,
            help=(
                "Path to the Casbin policy CSV file. When provided together with the model file, "
                "switches to file mode using a custom enforcer instead of MongoDB."
            ),
        )
        parser.add_argument(
            "-m",
            "--model-file-path",
            type=str,
            default=None,
            help=(
                "Path to the Casbin model configuration file. When provided together with the "
                "policy file, switches to file mode using a custom enforcer instead of MongoDB."
            ),
        )

    def handle(self, *args, **options):
        """Execute the enforcement testing command.

        Args:
            *args: Positional command arguments (unused).
            **options: Command options including ``--policy-file-path`` and ``--model-file-path``.
        """
        policy_file_path = options["policy_file_path"]
        model_file_path = options["model_file_path"]

        if policy_file_path is not None and model_file_path is not None:
            self._handle_file_mode(policy_file_path, model_file_path)
        else:
            self._handle_database_mode()

    def _handle_database_mode(self) -> None:
        """Handle enforcement testing using AuthzEnforcer with MongoDB policies.

        Raises:
            CommandError: If enforcer creation or policy loading fails.
        """
        try:
            enforcer = AuthzEnforcer.get_enforcer()
            enforcer.load_policy()
            disabled_logging()

            self.stdout.write(self.style.SUCCESS("Casbin Interactive Enforcement (Database Mode)"))
            self.stdout.write("Using AuthzEnforcer with policies from MongoDB")
            self.stdout.write("")

            self._enforcer = enforcer
            self._display_loaded_policies(enforcer)
            self._run_interactive_mode()
        except Exception as e:
            raise CommandError(f"Error creating Casbin enforcer: {str(e)}") from e

    def _handle_file_mode(self, policy_file_path: str, model_file_path: str) -> None:
        """Handle enforcement testing using custom Enforcer with file-based policies.

        Args:
            policy_file_path (str): Path to the policy CSV file.
            model_file_path (str): Path to the model configuration file.

        Raises:
            CommandError: If required files are not found or enforcer creation fails.
        """
        if not os.path.isfile(model_file_path):
            raise CommandError(f"Model file not found: {model_file_path}")
        if not os.path.isfile(policy_file_path):
            raise CommandError(f"Policy file not found: {policy_file_path}")

        try:
            enforcer = Enforcer(model_file_path, policy_file_path)

            self.stdout.write(self.style.SUCCESS("Casbin Interactive Enforcement (File Mode)"))
            self.stdout.write(f"Model file: {model_file_path}")
            self.stdout.write(f"Policy file: {policy_file_path}")
            self.stdout.write("")

            self._enforcer = enforcer
            self._display_loaded_policies(enforcer)
            self._run_interactive_mode()
        except Exception as e:
            raise CommandError(f"Error creating Casbin enforcer: {str(e)}") from e

    def _display_loaded_policies(self, enforcer: Enforcer) -> None:
        """Display statistics about loaded policies and grouping rules.

        Args:
            enforcer (Enforcer): The Casbin enforcer instance with loaded policies.
        """
        policies = enforcer.get_policy()
        roles = enforcer.get_grouping_policy()

        self.stdout.write(f"✓ Loaded {len(policies)} policies")
        self.stdout.write(f"✓ Loaded {len(roles)} role assignments")
        self.stdout.write("")

    def _run_interactive_mode(self) -> None:
        """Start the interactive enforcement testing shell.

        Note:
            Exit the interactive mode with 'quit', Ctrl+C or Ctrl+D.
        """
        self.stdout.write(self.style.SUCCESS("Interactive Mode"))
        self.stdout.write("Enter 'quit', 'exit', or 'q' to exit the interactive mode.")
        self.stdout.write("")
        self.stdout.write("Format: subject object action")
        self.stdout.write("Example: alice data1 read")
        self.stdout.write("")

        while True:
            try:
                user_input = input("Enter enforcement test: ").strip()

                if not user_input:
                    continue

                if user_input.lower() in ["quit", "exit", "q"]:
                    break

                self._test_interactive_request(user_input)
            except (KeyboardInterrupt, EOFError):
                self.stdout.write(self.style.ERROR("Exiting interactive mode..."))
                break

    def _test_interactive_request(self, user_input: str) -> None:
        """Process and test a single enforcement request from user input.

        Args:
            user_input (str): The user's input string in format 'subject object action'.
        """
        try:
            parts = user_input.split()
            if len(parts) != 3:
                self.stdout.write(self.style.ERROR(f"✗ Invalid format. Expected 3 parts, got {len(parts)}"))
                self.stdout.write("Format: subject object action")
                return

            subject, obj, action = parts
            if self._enforcer.enforce(subject, obj, action):
                self.stdout.write(self.style.SUCCESS(f"✓ ALLOWED: {subject} {obj} {action}"))
            else:
                self.stdout.write(self.style.ERROR(f"✗ DENIED: {subject} {obj} {action}"))
        except (ValueError, IndexError, TypeError) as e:
            self.stdout.write(self.style.ERROR(f"✗ Error processing request: {str(e)}"))
