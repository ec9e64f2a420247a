"""
Core authorization enforcer backed by MongoDB.

Provides a Casbin SyncedEnforcer instance with the MongoAdapter for policy
storage, configured from Django settings.

Components:
    - Enforcer: Main SyncedEnforcer instance for policy evaluation
    - Adapter: MongoAdapter for full and filtered policy loading

Usage:
    from casbin_mongo_authz.engine.enforcer import AuthzEnforcer
    allowed = AuthzEnforcer.get_enforcer().enforce(subject, obj, action)

Requires `CASBIN_MODEL` setting. See casbin_mongo_authz/settings/common.py for
the MongoDB settings and their defaults.
"""

import logging

from casbin import SyncedEnforcer
from django.conf import settings
from django.core.exceptions import ImproperlyConfigured
from django.utils.module_loading import import_string
from pymongo.collection import Collection

from casbin_mongo_authz.engine.adapter import MongoAdapter

logger = logging.getLogger(__name__)


class AuthzEnforcer:
    """Singleton class to manage the Casbin SyncedEnforcer instance.

    Ensures a single enforcer instance is created and configured with the
    MongoAdapter for policy management.

    There are two main use cases for this class:

    1. Directly get the enforcer instance and initialize it if needed::

        from casbin_mongo_authz.engine.enforcer import AuthzEnforcer
        enforcer = AuthzEnforcer.get_enforcer()
        allowed = enforcer.enforce(subject, obj, action)

    2. Instantiate the class to get the singleton enforcer instance::

        from casbin_mongo_authz.engine.enforcer import AuthzEnforcer
        enforcer = AuthzEnforcer()
        allowed = enforcer.enforce(subject, obj, action)

    Any of the two approaches will yield the same singleton enforcer instance.

    Attributes:
        _enforcer (SyncedEnforcer): The singleton enforcer instance.
        _adapter (MongoAdapter): The singleton adapter instance.
        _client: The MongoDB client the adapter collection belongs to.
    """

    _enforcer = None
    _adapter = None
    _client = None

    def __new__(cls):
        """Singleton pattern to ensure a single enforcer instance."""
        return cls.get_enforcer()

    @classmethod
    def configure_enforcer_auto_loading(cls, auto_load_policy_interval: int):
        """Start the auto-load policy thread if it is not running yet.

        Args:
            auto_load_policy_interval: Seconds between two policy loads.
        """
        if not cls._enforcer.is_auto_loading_running():
            cls._enforcer.start_auto_load_policy(auto_load_policy_interval)

    @classmethod
    def is_auto_save_enabled(cls) -> bool:
        """Check if auto-save is currently enabled on the enforcer.

        Returns:
            bool: True if auto-save is enabled, False otherwise
        """
        if cls._enforcer is None:
            return False
        return cls._enforcer._e.auto_save  # pylint: disable=protected-access

    @classmethod
    def configure_enforcer_auto_save(cls, auto_save_policy: bool):
        """Configure auto-save on the enforcer.

        With auto-save enabled, every policy change made through the enforcer is
        written to MongoDB right away through the adapter.

        Args:
            auto_save_policy: True to enable auto-save, False to disable
        """
        if cls.is_auto_save_enabled() != auto_save_policy:
            cls._enforcer.enable_auto_save(auto_save_policy)

    @classmethod
    def configure_enforcer_auto_save_and_load(cls):
        """Configure auto-load policy and auto-save on the enforcer based on settings."""
        auto_load_policy_interval = getattr(settings, "CASBIN_AUTO_LOAD_POLICY_INTERVAL", 0)
        auto_save_policy = getattr(settings, "CASBIN_AUTO_SAVE_POLICY", True)

        if auto_load_policy_interval > 0:
            cls.configure_enforcer_auto_loading(auto_load_policy_interval)
        else:
            logger.debug("CASBIN_AUTO_LOAD_POLICY_INTERVAL is not set or zero; auto-load is disabled.")

        cls.configure_enforcer_auto_save(auto_save_policy)

    @classmethod
    def deactivate_enforcer(cls):
        """Deactivate the current enforcer instance, if any.

        This method stops the auto-load policy thread and disables auto-save. IT DOES
        NOT clear the singleton instance; use ``reset`` for that.
        """
        if cls._enforcer is not None:
            try:
                cls._enforcer.stop_auto_load_policy()
                cls._enforcer.enable_auto_save(False)
            except Exception as e:  # pylint: disable=broad-exception-caught
                logger.error(f"Error stopping auto-load policy thread: {e}")

    @classmethod
    def reset(cls):
        """Deactivate and forget the singleton, so the next use builds a new one.

        The MongoDB client is closed. Used by tests and after changing the MongoDB
        settings at runtime.
        """
        cls.deactivate_enforcer()
        cls._close_client()
        cls._enforcer = None
        cls._adapter = None

    @classmethod
    def _close_client(cls):
        """Close the MongoDB client, if any, and forget it."""
        if cls._client is not None:
            try:
                cls._client.close()
            finally:
                cls._client = None

    @classmethod
    def get_enforcer(cls) -> SyncedEnforcer:
        """Get the enforcer instance, creating it if needed.

        Returns:
            SyncedEnforcer: The singleton enforcer instance.
        """
        if cls._enforcer is None:
            cls._enforcer = cls._initialize_enforcer()
            cls.configure_enforcer_auto_save_and_load()
        return cls._enforcer

    @classmethod
    def get_adapter(cls) -> MongoAdapter:
        """Get the adapter instance, creating the enforcer if needed.

        Returns:
            MongoAdapter: The singleton adapter instance.
        """
        if cls._adapter is None:
            cls.get_enforcer()
        return cls._adapter

    @classmethod
    def _get_collection(cls) -> Collection:
        """Connect to MongoDB and return the policy collection named in settings.

        Returns:
            Collection: The collection holding the policy rules.
        """
        client_class = import_string(getattr(settings, "CASBIN_MONGO_CLIENT_CLASS", "pymongo.MongoClient"))
        client = cls._client = client_class(
            getattr(settings, "CASBIN_MONGO_URI", "mongodb://localhost:27017"),
            **getattr(settings, "CASBIN_MONGO_CLIENT_OPTIONS", {}),
        )
        database = getattr(settings, "CASBIN_MONGO_DATABASE", "casbin")
        collection = getattr(settings, "CASBIN_MONGO_COLLECTION", "casbin_rule")
        return client[database][collection]

    @classmethod
    def _initialize_enforcer(cls) -> SyncedEnforcer:
        """
        Create and configure the Casbin SyncedEnforcer instance.

        Connecting is deferred until the enforcer is first used to avoid talking to
        MongoDB while the Django app is still loading. If anything fails after the
        client was created, the client is closed before the error is raised.

        Returns:
            SyncedEnforcer: Configured Casbin enforcer with the MongoDB adapter

        Raises:
            ImproperlyConfigured: If a filtered adapter is combined with auto-load.
        """
        filtered = getattr(settings, "CASBIN_MONGO_FILTERED_ADAPTER", False)
        if filtered and getattr(settings, "CASBIN_AUTO_LOAD_POLICY_INTERVAL", 0) > 0:
            raise ImproperlyConfigured(
                "CASBIN_MONGO_FILTERED_ADAPTER cannot be combined with CASBIN_AUTO_LOAD_POLICY_INTERVAL > 0: "
                "auto-load reloads the whole policy and clears the filtered state."
            )

        try:
            adapter = MongoAdapter(
                cls._get_collection(),
                filtered=filtered,
                transactional=getattr(settings, "CASBIN_MONGO_TRANSACTIONAL_SAVE", False),
            )
            enforcer = SyncedEnforcer(settings.CASBIN_MODEL, adapter)
        except Exception as e:
            logger.error(f"Failed to initialize the MongoDB policy adapter: {e}")
            cls._close_client()
            raise

        cls._adapter = adapter
        return enforcer
