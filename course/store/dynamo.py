"""DynamoDB-backed document store (single table, one item per document)."""

from __future__ import annotations

import datetime
import logging
from decimal import Decimal
from typing import Any, Callable, Mapping, Optional

import boto3
from boto3.dynamodb.conditions import Key
from botocore.exceptions import BotoCoreError, ClientError

from .base import (
    ArrayAppend,
    DocumentNotFoundError,
    DocumentStore,
    Increment,
    StoreConfigurationError,
    StoreError,
    apply_changes,
    deserialize_value,
    resolve_value,
    serialize_value,
    split_document_path,
)

logger = logging.getLogger(__name__)

PARTITION_KEY = "collection_path"
SORT_KEY = "doc_id"


def _to_dynamo(value: Any) -> Any:
    if isinstance(value, bool) or value is None:
        return value
    if isinstance(value, float):
        return Decimal(str(value))
    if isinstance(value, dict):
        return {key: _to_dynamo(item) for key, item in value.items()}
    if isinstance(value, list):
        return [_to_dynamo(item) for item in value]
    return value


def _from_dynamo(value: Any) -> Any:
    if isinstance(value, Decimal):
        return int(value) if value == value.to_integral_value() else float(value)
    if isinstance(value, dict):
        return {key: _from_dynamo(item) for key, item in value.items()}
    if isinstance(value, list):
        return [_from_dynamo(item) for item in value]
    return value


def _encode(value: Any) -> Any:
    return _to_dynamo(serialize_value(value))


def _item_to_document(item: Mapping[str, Any]) -> dict[str, Any]:
    body = {key: value for key, value in item.items() if key not in {PARTITION_KEY, SORT_KEY}}
    return deserialize_value(_from_dynamo(body))


class DynamoDocumentStore(DocumentStore):
    """Maps ``collection/doc`` paths onto (partition, sort) keys of one table.

    Merge writes containing :class:`Increment` or :class:`ArrayAppend` are
    sent as a single ``update_item`` so counters are added server-side.
    """

    def __init__(self, table, clock: Optional[Callable[[], datetime.datetime]] = None) -> None:
        super().__init__(clock)
        self._table = table

    @classmethod
    def from_settings(cls, settings, clock=None) -> "DynamoDocumentStore":
        if not settings.DYNAMODB_TABLE_NAME:
            raise StoreConfigurationError("DYNAMODB_TABLE_NAME must be set for the dynamodb store.")
        kwargs: dict[str, str] = {"region_name": settings.AWS_REGION}
        if settings.DYNAMODB_ENDPOINT:
            kwargs["endpoint_url"] = settings.DYNAMODB_ENDPOINT
        if settings.AWS_ACCESS_KEY_ID and settings.AWS_SECRET_ACCESS_KEY:
            kwargs["aws_access_key_id"] = settings.AWS_ACCESS_KEY_ID
            kwargs["aws_secret_access_key"] = settings.AWS_SECRET_ACCESS_KEY
        resource = boto3.resource("dynamodb", **kwargs)
        logger.info(
            "Using DynamoDB document store (table: %s, region: %s)",
            settings.DYNAMODB_TABLE_NAME,
            settings.AWS_REGION,
        )
        return cls(resource.Table(settings.DYNAMODB_TABLE_NAME), clock)

    @staticmethod
    def _key(path: str) -> dict[str, str]:
        collection, doc_id = split_document_path(path)
        return {PARTITION_KEY: collection, SORT_KEY: doc_id}

    def get(self, path: str) -> Optional[dict[str, Any]]:
        try:
            response = self._table.get_item(Key=self._key(path))
        except (ClientError, BotoCoreError) as exc:
            raise StoreError(f"Failed to read {path}") from exc
        item = response.get("Item")
        if item is None:
            return None
        return _item_to_document(item)

    def _put(self, path: str, document: Mapping[str, Any]) -> None:
        item = {key: _encode(value) for key, value in document.items()}
        item.update(self._key(path))
        try:
            self._table.put_item(Item=item)
        except (ClientError, BotoCoreError) as exc:
            raise StoreError(f"Failed to write {path}") from exc

    def _update_expression(self, data: Mapping[str, Any], now: datetime.datetime) -> dict[str, Any]:
        set_clauses: list[str] = []
        add_clauses: list[str] = []
        names: dict[str, str] = {}
        values: dict[str, Any] = {}
        for index, (field, value) in enumerate(data.items()):
            name_ref = f"#f{index}"
            value_ref = f":v{index}"
            names[name_ref] = field
            if isinstance(value, Increment):
                add_clauses.append(f"{name_ref} {value_ref}")
                values[value_ref] = _encode(value.amount)
            elif isinstance(value, ArrayAppend):
                empty_ref = f":e{index}"
                set_clauses.append(
                    f"{name_ref} = list_append(if_not_exists({name_ref}, {empty_ref}), {value_ref})"
                )
                values[value_ref] = _encode(resolve_value(None, list(value.elements), now))
                values[empty_ref] = []
            else:
                set_clauses.append(f"{name_ref} = {value_ref}")
                values[value_ref] = _encode(resolve_value(None, value, now))

        expression_parts = []
        if set_clauses:
            expression_parts.append("SET " + ", ".join(set_clauses))
        if add_clauses:
            expression_parts.append("ADD " + ", ".join(add_clauses))
        params: dict[str, Any] = {
            "UpdateExpression": " ".join(expression_parts),
            "ExpressionAttributeNames": names,
        }
        if values:
            params["ExpressionAttributeValues"] = values
        return params

    def set(self, path: str, data: Mapping[str, Any], *, merge: bool = False) -> None:
        if not merge:
            self._put(path, apply_changes(None, data, self.now(), merge=False))
            return
        if not data:
            return
        try:
            self._table.update_item(Key=self._key(path), **self._update_expression(data, self.now()))
        except (ClientError, BotoCoreError) as exc:
            raise StoreError(f"Failed to merge into {path}") from exc

    def update(self, path: str, data: Mapping[str, Any]) -> None:
        if not data:
            return
        params = self._update_expression(data, self.now())
        params["ConditionExpression"] = f"attribute_exists({PARTITION_KEY})"
        try:
            self._table.update_item(Key=self._key(path), **params)
        except ClientError as exc:
            if exc.response.get("Error", {}).get("Code") == "ConditionalCheckFailedException":
                raise DocumentNotFoundError(f"No document at {path}") from exc
            raise StoreError(f"Failed to update {path}") from exc
        except BotoCoreError as exc:
            raise StoreError(f"Failed to update {path}") from exc

    def delete(self, path: str) -> None:
        try:
            self._table.delete_item(Key=self._key(path))
        except (ClientError, BotoCoreError) as exc:
            raise StoreError(f"Failed to delete {path}") from exc

    def list_documents(self, collection: str) -> list[tuple[str, dict[str, Any]]]:
        documents: list[tuple[str, dict[str, Any]]] = []
        query_kwargs: dict[str, Any] = {"KeyConditionExpression": Key(PARTITION_KEY).eq(collection)}
        try:
            while True:
                response = self._table.query(**query_kwargs)
                for item in response.get("Items", []):
                    documents.append((str(item[SORT_KEY]), _item_to_document(item)))
                last_key = response.get("LastEvaluatedKey")
                if not last_key:
                    break
                query_kwargs["ExclusiveStartKey"] = last_key
        except (ClientError, BotoCoreError) as exc:
            raise StoreError(f"Failed to list {collection}") from exc
        return documents

    def set_many(self, collection: str, documents: Mapping[str, Mapping[str, Any]]) -> None:
        now = self.now()
        try:
            with self._table.batch_writer() as batch:
                for doc_id, data in documents.items():
                    document = apply_changes(None, data, now, merge=False)
                    item = {key: _encode(value) for key, value in document.items()}
                    item[PARTITION_KEY] = collection
                    item[SORT_KEY] = doc_id
                    batch.put_item(Item=item)
        except (ClientError, BotoCoreError) as exc:
            raise StoreError(f"Failed to batch write {collection}") from exc
