"""Django management command to load policies into the MongoDB policy collection.

The command supports:
- Specifying the path to the Casbin policy file. Default is 'casbin_mongo_authz/engine/config/authz.policy'.
- Specifying the Casbin model configuration file. Default is 'casbin_mongo_authz/engine/config/model.conf'.
- Optionally clearing existing policies in the collection before loading new ones.
"""

import os

import casbin
import click
from django.core.management.base import BaseCommand, CommandError

from casbin_mongo_authz import ROOT_DIRECTORY
from casbin_mongo_authz.engine.enforcer import AuthzEnforcer
from casbin_mongo_authz.engine.utils import migrate_policy_between_enforcers


class Command(BaseCommand):
    """Django management command to load policies into the MongoDB policy collection.

    This command reads policies from a specified Casbin policy file and stores them
    through the MongoDB-backed enforcer. Policies already stored are left untouched.

    Example Usage:
        python manage.py load_policies --policy-file-path /path/to/authz.policy
        python manage.py load_policies --policy-file-path /path/to/authz.policy --model-file-path /path/to/model.conf
        python manage.py load_policies --clear-existing
    """

    help = "Load policies from a Casbin policy file into the MongoDB policy collection."

    def add_arguments(self, parser) -> None:
        """Add command-line arguments to the argument parser.

        Args:
            parser: The Django argument parser instance to configure.
        """
        parser.add_argument(
            "--policy-file-path",
            type=str,
            default=None,
            help="Path to the Casbin policy file (CSV format with policies and grouping rules)",
        )
        parser.add_argument(
            "--model-file-path",
            type=str,
            default=None,
            help="Path to the Casbin model configuration file",
        )
        parser.add_argument(
            "--clear-existing",
            action="store_true",
            help="Flag to clear existing policies before loading new ones",
        )

    def handle(self, *args, **options):
        """Execute the policy loading command.

        Args:
            *args: Positional command arguments (unused).
            **options: Command options including 'policy_file_path', 'model_file_path', and 'clear_existing'.

        Raises:
            CommandError: If the policy or model file is not found or loading fails.
        """
        policy_file_path, model_file_path = (
            options["policy_file_path"],
            options["model_file_path"],
        )
        if policy_file_path is None:
            policy_file_path = os.path.join(ROOT_DIRECTORY, "engine", "config", "authz.policy")
        if model_file_path is None:
            model_file_path = os.path.join(ROOT_DIRECTORY, "engine", "config", "model.conf")

        if not os.path.isfile(policy_file_path):
            raise CommandError(f"Policy file not found: {policy_file_path}")
        if not os.path.isfile(model_file_path):
            raise CommandError(f"Model file not found: {model_file_path}")

        try:
            target_enforcer = AuthzEnforcer.get_enforcer()

            if options.get("clear_existing"):
                target_enforcer.load_policy()
                if click.confirm(
                    click.style(
                        "Do you want to delete every stored policy and grouping rule?",
                        fg="yellow",
                        bold=True,
                    ),
                    default=False,
                ):
                    self._delete_existing_policies(target_enforcer)

            source_enforcer = casbin.Enforcer(model_file_path, policy_file_path)
            migrated = migrate_policy_between_enforcers(source_enforcer, target_enforcer)
        except Exception as e:
            raise CommandError(f"Error loading policies: {str(e)}") from e

        self.stdout.write(self.style.SUCCESS(f"Loaded {migrated} new policies from {policy_file_path}"))

    def _delete_existing_policies(self, target_enforcer):
        """Delete every stored rule through the target enforcer.

        Args:
            target_enforcer: The Casbin enforcer instance to delete policies from.
        """
        count = len(target_enforcer.get_policy()) + len(target_enforcer.get_grouping_policy())
        target_enforcer.clear_policy()
        target_enforcer.save_policy()
        click.echo(f"Deleted existing policies ({count} p and g rules)")
