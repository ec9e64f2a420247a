"""
Casbin Adapter for MongoDB with Filtering Support.

This module provides an adapter implementation for Casbin that stores policy
rules in a single MongoDB collection, one document per rule. The MongoAdapter
supports full and filtered policy loading, whole-policy saves, single rule and
batch updates, and filtered removal of rules.

Every translation between Casbin rules and stored documents goes through the
rule codec in ``casbin_mongo_authz.engine.codec``.
"""

import logging
from enum import Enum
from typing import Optional

from casbin import persist
from casbin.model import Model
from casbin.persist import BatchAdapter, FilteredAdapter
from pymongo import ASCENDING
from pymongo.collection import Collection
from pymongo.errors import BulkWriteError, DuplicateKeyError

from casbin_mongo_authz.engine.codec import MAX_POLICY_FIELDS, CasbinRule, PolicyAttribute, encode
from casbin_mongo_authz.engine.exceptions import DuplicatePolicyError, FilteredPolicySaveError
from casbin_mongo_authz.engine.filter import Filter

logger = logging.getLogger(__name__)

UNIQUE_INDEX_NAME = "casbin_rule_unique"

DUPLICATE_KEY_ERROR_CODE = 11000

POLICY_SECTIONS = ("p", "g")


class AdapterState(Enum):
    """Whether the policy last loaded through the adapter was complete."""

    UNFILTERED = "unfiltered"
    FILTERED = "filtered"


class MongoAdapter(BatchAdapter, FilteredAdapter):
    """
    Casbin adapter that persists policy rules in a MongoDB collection.

    A unique compound index over ``ptype`` and ``v0`` to ``v5`` is created on
    construction, so the same rule can only be stored once.

    The adapter remembers whether the last load was filtered. Saving the whole
    policy after a filtered load is refused, since it would delete every rule
    left out by the filter.

    Inherits from:
        BatchAdapter: Interface for adding and removing several rules at once.
        FilteredAdapter: Interface for filtered policy loading.

    Attributes:
        collection (Collection): The collection holding the rules.
        state (AdapterState): Whether the last load was filtered.
        transactional (bool): Whether ``save_policy`` runs inside a transaction.
    """

    def __init__(self, collection: Collection, filtered: bool = False, transactional: bool = False):
        """
        Initialize the adapter and ensure the unique index exists.

        Args:
            collection (Collection): The collection holding the rules.
            filtered (bool): Start in filtered state. Casbin will not load the whole
                policy automatically when the enforcer is created with a filtered adapter.
            transactional (bool): Run the delete and insert of ``save_policy`` inside a
                single transaction. Requires a replica set or sharded cluster.
        """
        self.collection = collection
        self.state = AdapterState.FILTERED if filtered else AdapterState.UNFILTERED
        self.transactional = transactional
        self.collection.create_index(
            [(attribute.value, ASCENDING) for attribute in PolicyAttribute],
            unique=True,
            name=UNIQUE_INDEX_NAME,
        )

    def is_filtered(self) -> bool:
        """
        Check if the loaded policy has been filtered.

        Returns:
            bool: True if the last load applied a filter, False otherwise.
        """
        return self.state is AdapterState.FILTERED

    def load_policy(self, model: Model) -> None:
        """
        Load every policy rule from the collection into the model.

        Args:
            model (Model): The Casbin model to load policy rules into.
        """
        self.load_filtered_policy(model, None)

    def load_filtered_policy(self, model: Model, filter: Optional[Filter]) -> None:  # pylint: disable=redefined-builtin
        """
        Load policy rules from the collection with filtering applied.

        IMPORTANT: This method is used internally by the ``enforcer.load_filtered_policy()``
            method. Do not call this method directly. If you need to load policy rules, use
            the ``enforcer.load_filtered_policy()`` method.

        Args:
            model (Model): The Casbin model to load policy rules into.
            filter (Optional[Filter]): Filter object containing criteria for policy selection.
                None loads every rule and leaves the adapter unfiltered.
        """
        if filter is None:
            self.state = AdapterState.UNFILTERED
            query = {}
        else:
            self.state = AdapterState.FILTERED
            query = self.filter_query(filter)

        count = 0
        for document in self.collection.find(query):
            persist.load_policy_line(str(CasbinRule.from_document(document)), model)
            count += 1
        logger.debug(f"Loaded {count} policy rules with query {query}")

    def filter_query(self, filter: Filter) -> dict:  # pylint: disable=redefined-builtin
        """
        Translate filter criteria into a MongoDB query.

        Args:
            filter (Filter): Filter object with attributes (ptype, v0, v1, v2, v3, v4, v5)
                   containing lists of values to filter by. Empty lists are ignored.

        Returns:
            dict: The query matching the rules selected by the filter.
        """
        query = {}
        for attribute in PolicyAttribute:
            filter_values = getattr(filter, attribute.value)
            if filter_values:
                query[attribute.value] = {"$in": list(filter_values)}
        return query

    def save_policy(self, model: Model) -> bool:
        """
        Replace every stored rule with the rules of the model.

        The collection is emptied and then refilled with a single bulk insert. Unless
        the adapter is transactional, a failure of the insert leaves the collection
        empty; the model itself is untouched and the save can be retried.

        Args:
            model (Model): The Casbin model holding the rules to store.

        Returns:
            bool: True once the rules are stored.

        Raises:
            FilteredPolicySaveError: If the last load was filtered.
        """
        if self.is_filtered():
            raise FilteredPolicySaveError()

        documents = []
        for sec in POLICY_SECTIONS:
            for ptype, assertion in model.model.get(sec, {}).items():
                for rule in assertion.policy:
                    documents.append(encode(ptype, rule).to_document())

        if self.transactional:
            with self.collection.database.client.start_session() as session:
                session.with_transaction(lambda s: self._replace_all(documents, session=s))
        else:
            self._replace_all(documents)
        logger.debug(f"Saved {len(documents)} policy rules")
        return True

    def _replace_all(self, documents: list[dict], session=None) -> None:
        """Delete every stored rule and insert the given documents."""
        self.collection.delete_many({}, session=session)
        if documents:
            self._insert_many(documents, session=session)

    def add_policy(self, sec: str, ptype: str, rule: list[str]) -> bool:  # pylint: disable=unused-argument
        """
        Store a single policy rule.

        Args:
            sec (str): The policy section (``p`` or ``g``).
            ptype (str): The policy type.
            rule (list[str]): The rule values.

        Returns:
            bool: True once the rule is stored.

        Raises:
            DuplicatePolicyError: If the rule is already stored.
        """
        casbin_rule = encode(ptype, rule)
        try:
            self.collection.insert_one(casbin_rule.to_document())
        except DuplicateKeyError as e:
            raise DuplicatePolicyError(f"Policy rule already exists: {casbin_rule}") from e
        return True

    def add_policies(self, sec: str, ptype: str, rules: list[list[str]]) -> bool:  # pylint: disable=unused-argument
        """
        Store several policy rules of the same type with a single insert.

        The batch is all or nothing with respect to rules already stored: they are
        looked up first, and if any is found nothing is inserted. A rule stored by
        another writer between the lookup and the insert still raises, but the insert
        is unordered, so the other new rules of the batch are stored.

        Args:
            sec (str): The policy section (``p`` or ``g``).
            ptype (str): The policy type.
            rules (list[list[str]]): The rules to store.

        Returns:
            bool: True once the rules are stored.

        Raises:
            DuplicatePolicyError: If any of the rules is already stored.
        """
        documents = [encode(ptype, rule).to_document() for rule in rules]
        if not documents:
            return True

        existing = [
            str(CasbinRule.from_document(document))
            for document in self.collection.find({"$or": documents}, {"_id": 0})
        ]
        if existing:
            raise DuplicatePolicyError(f"Policy rules already exist: {existing}")

        self._insert_many(documents)
        return True

    def _insert_many(self, documents: list[dict], session=None) -> None:
        """Insert documents in one unordered batch, reporting duplicates as DuplicatePolicyError."""
        try:
            self.collection.insert_many(documents, ordered=False, session=session)
        except BulkWriteError as e:
            write_errors = e.details.get("writeErrors", [])
            if write_errors and all(error.get("code") == DUPLICATE_KEY_ERROR_CODE for error in write_errors):
                duplicates = [str(CasbinRule.from_document(error["op"])) for error in write_errors if "op" in error]
                raise DuplicatePolicyError(f"Policy rules already exist: {duplicates}") from e
            raise

    def remove_policy(self, sec: str, ptype: str, rule: list[str]) -> bool:  # pylint: disable=unused-argument
        """
        Remove a single policy rule.

        Removing a rule that is not stored is not an error.

        Args:
            sec (str): The policy section (``p`` or ``g``).
            ptype (str): The policy type.
            rule (list[str]): The rule values.

        Returns:
            bool: True, whether or not the rule was stored.
        """
        casbin_rule = encode(ptype, rule)
        result = self.collection.delete_one(casbin_rule.to_document())
        if result.deleted_count == 0:
            logger.debug(f"Policy rule not found, nothing to remove: {casbin_rule}")
        return True

    def remove_policies(self, sec: str, ptype: str, rules: list[list[str]]) -> bool:  # pylint: disable=unused-argument
        """
        Remove several policy rules of the same type with a single delete.

        Args:
            sec (str): The policy section (``p`` or ``g``).
            ptype (str): The policy type.
            rules (list[list[str]]): The rules to remove. Rules not stored are ignored.

        Returns:
            bool: True once the rules are removed.
        """
        if not rules:
            return True
        query = {"$or": [encode(ptype, rule).to_document() for rule in rules]}
        result = self.collection.delete_many(query)
        logger.debug(f"Removed {result.deleted_count} of {len(rules)} policy rules of type {ptype}")
        return True

    def remove_filtered_policy(self, sec: str, ptype: str, field_index: int, *field_values: str) -> bool:  # pylint: disable=unused-argument
        """
        Remove every policy rule matching the given values.

        Args:
            sec (str): The policy section (``p`` or ``g``).
            ptype (str): The policy type, always matched exactly.
            field_index (int): Position of the first value in ``field_values``.
            *field_values (str): Values to match from ``field_index`` onwards. Empty
                values match anything.

        Returns:
            bool: True once the matching rules are removed.
        """
        query = self.remove_filter_query(ptype, field_index, *field_values)
        result = self.collection.delete_many(query)
        logger.debug(f"Removed {result.deleted_count} policy rules with query {query}")
        return True

    def remove_filter_query(self, ptype: str, field_index: int, *field_values: str) -> dict:
        """
        Build the query used by ``remove_filtered_policy``.

        Positions outside of ``v0`` to ``v5`` are ignored, as are empty values.

        Returns:
            dict: The query matching the rules to remove.
        """
        query = {PolicyAttribute.PTYPE.value: ptype}
        slots = PolicyAttribute.value_fields()
        for offset, value in enumerate(field_values):
            position = field_index + offset
            if 0 <= position < MAX_POLICY_FIELDS and value:
                query[slots[position].value] = value
        return query
