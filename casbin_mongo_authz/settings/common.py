"""
Common settings for casbin_mongo_authz.
"""

import os

from casbin_mongo_authz import ROOT_DIRECTORY


def plugin_settings(settings):
    """
    Configure default settings for casbin_mongo_authz.
    This function is called when the Django app is ready and only sets the
    settings the project did not define.

    Args:
        settings: The Django settings object
    """
    # Set default CASBIN_MODEL if not already set, this points to the model.conf file
    # which defines the access control model for Casbin.
    if not hasattr(settings, "CASBIN_MODEL"):
        settings.CASBIN_MODEL = os.path.join(ROOT_DIRECTORY, "engine", "config", "model.conf")

    # MongoDB connection and location of the policy collection.
    if not hasattr(settings, "CASBIN_MONGO_URI"):
        settings.CASBIN_MONGO_URI = "mongodb://localhost:27017"
    if not hasattr(settings, "CASBIN_MONGO_DATABASE"):
        settings.CASBIN_MONGO_DATABASE = "casbin"
    if not hasattr(settings, "CASBIN_MONGO_COLLECTION"):
        settings.CASBIN_MONGO_COLLECTION = "casbin_rule"

    # Dotted path to the client class and the keyword arguments given to it.
    # Timeouts (e.g. serverSelectionTimeoutMS) belong in the client options.
    if not hasattr(settings, "CASBIN_MONGO_CLIENT_CLASS"):
        settings.CASBIN_MONGO_CLIENT_CLASS = "pymongo.MongoClient"
    if not hasattr(settings, "CASBIN_MONGO_CLIENT_OPTIONS"):
        settings.CASBIN_MONGO_CLIENT_OPTIONS = {}

    # When True, the enforcer does not load the whole policy on creation and
    # saving the whole policy is refused until an unfiltered load happens.
    # It cannot be combined with CASBIN_AUTO_LOAD_POLICY_INTERVAL > 0, since each
    # auto-load reloads the whole policy; the enforcer refuses to start with both.
    if not hasattr(settings, "CASBIN_MONGO_FILTERED_ADAPTER"):
        settings.CASBIN_MONGO_FILTERED_ADAPTER = False

    # Run the delete and insert of a whole-policy save in one transaction.
    # Requires a replica set or a sharded cluster.
    if not hasattr(settings, "CASBIN_MONGO_TRANSACTIONAL_SAVE"):
        settings.CASBIN_MONGO_TRANSACTIONAL_SAVE = False

    # Set default CASBIN_AUTO_LOAD_POLICY_INTERVAL if not already set.
    # This setting defines how often (in seconds) the Casbin enforcer should
    # automatically reload policies from the database.
    if not hasattr(settings, "CASBIN_AUTO_LOAD_POLICY_INTERVAL"):
        settings.CASBIN_AUTO_LOAD_POLICY_INTERVAL = 0

    # Set default CASBIN_AUTO_SAVE_POLICY if not already set.
    # This setting defines whether the Casbin enforcer should automatically
    # save policy changes back to the database.
    if not hasattr(settings, "CASBIN_AUTO_SAVE_POLICY"):
        settings.CASBIN_AUTO_SAVE_POLICY = True
