"""
casbin_mongo_authz Django application initialization.
"""

from django.apps import AppConfig


class CasbinMongoAuthzConfig(AppConfig):
    """
    Configuration for the casbin_mongo_authz Django application.

    The enforcer is not created here: connecting to MongoDB is deferred until the
    enforcer is first used (see casbin_mongo_authz/engine/enforcer.py).
    """

    name = "casbin_mongo_authz"
    verbose_name = "Casbin MongoDB AuthZ"

    def ready(self):
        """Fill in the default Casbin and MongoDB settings the project left unset."""
        from django.conf import settings  # pylint: disable=import-outside-toplevel

        from casbin_mongo_authz.settings.common import plugin_settings  # pylint: disable=import-outside-toplevel

        plugin_settings(settings)
