from decimal import Decimal

import pytest
from botocore.exceptions import ClientError

from config.settings import get_settings
from course.store import SERVER_TIMESTAMP, ArrayAppend, DocumentNotFoundError, Increment, StoreError
from course.store.dynamo import DynamoDocumentStore


class _FakeBatchWriter:
    def __init__(self, table: "_FakeTable") -> None:
        self.table = table

    def __enter__(self) -> "_FakeBatchWriter":
        return self

    def __exit__(self, *exc_info) -> None:
        self.table.batches += 1

    def put_item(self, Item) -> None:
        self.table.put_item(Item=Item)


class _FakeTable:
    def __init__(self) -> None:
        self.items: dict[tuple[str, str], dict] = {}
        self.update_calls: list[dict] = []
        self.batches = 0
        self.fail_with: ClientError | None = None

    @staticmethod
    def _key(key: dict) -> tuple[str, str]:
        return key["collection_path"], key["doc_id"]

    def get_item(self, Key):
        if self.fail_with:
            raise self.fail_with
        item = self.items.get(self._key(Key))
        return {"Item": dict(item)} if item else {}

    def put_item(self, Item) -> None:
        self.items[self._key(Item)] = dict(Item)

    def delete_item(self, Key) -> None:
        self.items.pop(self._key(Key), None)

    def update_item(self, Key, **params) -> None:
        if "ConditionExpression" in params and self._key(Key) not in self.items:
            raise ClientError(
                {"Error": {"Code": "ConditionalCheckFailedException", "Message": "missing"}},
                "UpdateItem",
            )
        self.update_calls.append({"Key": Key, **params})

    def query(self, KeyConditionExpression, ExclusiveStartKey=None):
        _, collection = KeyConditionExpression.get_expression()["values"]
        matching = sorted(
            (item for (coll, _), item in self.items.items() if coll == collection),
            key=lambda item: item["doc_id"],
        )
        start = 0
        if ExclusiveStartKey:
            start = [item["doc_id"] for item in matching].index(ExclusiveStartKey["doc_id"]) + 1
        page = matching[start : start + 1]
        response = {"Items": page}
        if start + 1 < len(matching):
            response["LastEvaluatedKey"] = {"collection_path": collection, "doc_id": page[0]["doc_id"]}
        return response

    def batch_writer(self) -> _FakeBatchWriter:
        return _FakeBatchWriter(self)


@pytest.fixture()
def fake_table() -> _FakeTable:
    return _FakeTable()


@pytest.fixture()
def dynamo_store(fake_table, clock) -> DynamoDocumentStore:
    return DynamoDocumentStore(fake_table, clock=clock)


def test_from_settings_uses_boto3_resource(monkeypatch, fake_table):
    captured = {}

    class _FakeResource:
        def Table(self, name):
            captured["table"] = name
            return fake_table

    def fake_resource(service_name: str, **kwargs):
        captured["service"] = service_name
        captured["kwargs"] = kwargs
        return _FakeResource()

    monkeypatch.setattr("boto3.resource", fake_resource)
    monkeypatch.setenv("DYNAMODB_TABLE_NAME", "course-test")
    monkeypatch.setenv("DYNAMODB_ENDPOINT", "http://localhost:8000")
    monkeypatch.setenv("AWS_REGION", "eu-west-1")

    store = DynamoDocumentStore.from_settings(get_settings())

    assert isinstance(store, DynamoDocumentStore)
    assert captured["service"] == "dynamodb"
    assert captured["table"] == "course-test"
    assert captured["kwargs"]["region_name"] == "eu-west-1"
    assert captured["kwargs"]["endpoint_url"] == "http://localhost:8000"


def test_set_and_get_convert_numbers_and_timestamps(dynamo_store, fake_table, clock):
    path = "users/u1/lessonProgress/lesson-01"
    dynamo_store.set(path, {"score": 95, "timeSpent": 12.5, "lastAccessed": SERVER_TIMESTAMP})

    stored = fake_table.items[("users/u1/lessonProgress", "lesson-01")]
    assert stored["timeSpent"] == Decimal("12.5")
    assert dynamo_store.get(path) == {"score": 95, "timeSpent": 12.5, "lastAccessed": clock.current}


def test_merge_with_transforms_becomes_single_update(dynamo_store, fake_table):
    dynamo_store.set(
        "users/u1/exerciseResults/e1",
        {
            "score": 88,
            "attempts": Increment(1),
            "attemptHistory": ArrayAppend({"score": 88}),
        },
        merge=True,
    )

    call = fake_table.update_calls[0]
    assert call["Key"] == {"collection_path": "users/u1/exerciseResults", "doc_id": "e1"}
    assert call["UpdateExpression"] == (
        "SET #f0 = :v0, #f2 = list_append(if_not_exists(#f2, :e2), :v2) ADD #f1 :v1"
    )
    assert call["ExpressionAttributeNames"] == {"#f0": "score", "#f1": "attempts", "#f2": "attemptHistory"}
    assert call["ExpressionAttributeValues"][":v1"] == 1
    assert call["ExpressionAttributeValues"][":v2"] == [{"score": 88}]


def test_update_of_missing_document_raises(dynamo_store):
    with pytest.raises(DocumentNotFoundError):
        dynamo_store.update("users/u1/dictionary/слово", {"mastered": True})


def test_list_documents_follows_pagination(dynamo_store):
    dynamo_store.set_many("users/u1/dictionary", {"а": {"word": "а"}, "б": {"word": "б"}, "в": {"word": "в"}})

    documents = dynamo_store.list_documents("users/u1/dictionary")

    assert [doc_id for doc_id, _ in documents] == ["а", "б", "в"]
    assert documents[0][1] == {"word": "а"}


def test_set_many_uses_one_batch(dynamo_store, fake_table):
    dynamo_store.set_many("users/u1/skills", {"a": {"level": 0}, "b": {"level": 0}})

    assert fake_table.batches == 1
    assert len(fake_table.items) == 2


def test_client_errors_are_wrapped(dynamo_store, fake_table):
    fake_table.fail_with = ClientError({"Error": {"Code": "ProvisionedThroughputExceededException"}}, "GetItem")

    with pytest.raises(StoreError):
        dynamo_store.get("users/u1/stats/overall")
