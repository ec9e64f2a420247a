"""
Test settings for casbin_mongo_authz.
"""

import os

from casbin_mongo_authz import ROOT_DIRECTORY

DATABASES = {
    "default": {
        "ENGINE": "django.db.backends.sqlite3",
        "NAME": ":memory:",
    }
}

INSTALLED_APPS = (
    "casbin_mongo_authz.apps.CasbinMongoAuthzConfig",
)

SECRET_KEY = "test-secret-key"

USE_TZ = True

# Casbin configuration
CASBIN_MODEL = os.path.join(ROOT_DIRECTORY, "engine", "config", "model.conf")
CASBIN_AUTO_LOAD_POLICY_INTERVAL = 0
CASBIN_AUTO_SAVE_POLICY = True

# In-process MongoDB for tests
CASBIN_MONGO_CLIENT_CLASS = "mongomock.MongoClient"
CASBIN_MONGO_URI = "mongodb://localhost:27017"
CASBIN_MONGO_DATABASE = "casbin_test"
CASBIN_MONGO_COLLECTION = "casbin_rule"
