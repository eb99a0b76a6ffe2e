"""Tests for attribute casting, mutators, dates, JSON attributes and dirty tracking."""

import json
from datetime import datetime

import pytest

from activerow.core.attributes import MISSING, AttributeStore
from activerow.core.collection import Collection
from activerow.exceptions import AttributeNotFoundError, JsonEncodingError
from tests.entities import Banner, Message, User

CASTS = {
    "count": "int",
    "ratio": "float",
    "label": "string",
    "flag": "bool",
    "options": "object",
    "tags": "array",
    "day": "date",
    "moment": "datetime",
    "short": "datetime:%d/%m/%Y",
    "epoch": "timestamp",
    "odd": "mystery",
}


@pytest.fixture
def store():
    store = AttributeStore(None, casts=CASTS, date_columns=["published"])
    store.set_raw_attributes(
        {
            "count": "42",
            "ratio": "0.5",
            "label": 7,
            "flag": "0",
            "options": '{"a": 1}',
            "tags": '["x", "y"]',
            "day": "2011-01-01 10:11:12",
            "moment": "2011-01-01 10:11:12",
            "short": "2011-01-01 10:11:12",
            "epoch": "1970-01-02 00:00:00",
            "odd": "as-is",
            "published": "2012-05-06 07:08:09",
            "plain": "text",
        },
        sync=True,
    )
    return store


def test_cast_values(store):
    assert store.get_attribute_value("count") == 42
    assert store.get_attribute_value("ratio") == 0.5
    assert store.get_attribute_value("label") == "7"
    assert store.get_attribute_value("flag") is False
    assert store.get_attribute_value("options") == {"a": 1}
    assert store.get_attribute_value("tags") == ["x", "y"]
    assert store.get_attribute_value("day") == datetime(2011, 1, 1)
    assert store.get_attribute_value("moment") == datetime(2011, 1, 1, 10, 11, 12)
    assert store.get_attribute_value("short") == datetime(2011, 1, 1, 10, 11, 12)
    assert store.get_attribute_value("epoch") == 86400
    assert store.get_attribute_value("odd") == "as-is"


def test_cast_edge_values():
    store = AttributeStore(None, casts={"n": "integer", "b": "boolean", "empty": "bool"})
    store.set_raw_attributes({"n": "4.7", "b": "1", "empty": ""})

    assert store.get_attribute_value("n") == 4
    assert store.get_attribute_value("b") is True
    assert store.get_attribute_value("empty") is False


def test_null_values_are_not_cast():
    store = AttributeStore(None, casts={"n": "int"})
    store.set_raw_attributes({"n": None})

    assert store.get_attribute_value("n") is None


def test_date_columns_without_cast(store):
    assert store.get_attribute_value("published") == datetime(2012, 5, 6, 7, 8, 9)
    assert store.get_attribute_value("plain") == "text"


def test_get_attributes_formats_values(store):
    attributes = store.get_attributes()

    assert attributes["count"] == 42
    assert attributes["day"] == "2011-01-01 00:00:00"
    assert attributes["moment"] == "2011-01-01 10:11:12"
    assert attributes["short"] == "01/01/2011"
    assert attributes["published"] == "2012-05-06 07:08:09"
    assert attributes["plain"] == "text"


def test_get_attribute_raw_missing(store):
    assert store.get_attribute_raw("nope") is MISSING
    assert store.get_attribute_raw("nope", None) is None
    assert not MISSING


def test_set_attribute_formats_dates():
    store = AttributeStore(None, date_columns=["published"], date_format="%Y-%m-%d %H:%M:%S")

    store.set_attribute("published", datetime(2020, 3, 4, 5, 6, 7))

    assert store.raw["published"] == "2020-03-04 05:06:07"


def test_set_attribute_encodes_json():
    store = AttributeStore(None, casts={"params": "array"})

    store.set_attribute("params", {"test": "val"})
    assert json.loads(store.raw["params"]) == {"test": "val"}

    store.set_attribute("params", None)
    assert store.raw["params"] is None


def test_set_attribute_encodes_json_strings(db):
    """A plain string assigned to a JSON cast is encoded like any other value."""
    user = User(db, {"username": "plain", "email": "plain@example.com", "params": "hello"})

    assert user.get_attribute_raw("params") == '"hello"'
    assert user.params == "hello"

    assert user.save()
    stored = User(db).find(user.id)
    assert stored.params == "hello"
    assert json.loads(stored.to_json())["params"] == "hello"


def test_set_attribute_json_path():
    store = AttributeStore(None, casts={"info": "json"})
    store.set_attribute("info", {"name": "Oslo"})

    store.set_attribute("info->address->city", "Oslo")

    assert store.get_attribute_value("info") == {"name": "Oslo", "address": {"city": "Oslo"}}


def test_set_attribute_json_encoding_error():
    store = AttributeStore(None, casts={"params": "array"})

    with pytest.raises(JsonEncodingError) as exc_info:
        store.set_attribute("params", {"bad": object()})

    assert exc_info.value.attribute == "params"
    assert "params" in str(exc_info.value)


def test_dirty_tracking(store):
    assert store.get_dirty() == {}
    assert not store.is_dirty()

    store.set_attribute("plain", "changed")
    store.set_attribute("added", 1)

    assert store.get_dirty() == {"plain": "changed", "added": 1}
    assert store.is_dirty("plain")
    assert not store.is_dirty("count")

    store.sync_original()
    assert store.get_dirty() == {}


def test_dirty_tracking_uses_loose_equality(store):
    store.set_attribute("count", 42)
    assert not store.is_dirty("count")

    store.set_attribute("count", "43")
    assert store.is_dirty("count")

    store.sync_original_attribute("count")
    assert not store.is_dirty("count")


def test_has_cast(store):
    assert store.has_cast("count")
    assert store.has_cast("short", ["custom_datetime"])
    assert not store.has_cast("count", ["bool"])
    assert not store.has_cast("plain")


def test_entity_get_attribute(db):
    user = User(db).find(42)

    assert user.get_attribute("id") == 42
    assert user.get_attribute("new_account") is True
    assert user.get_attribute("register_date") == datetime(2010, 2, 13, 0, 34, 42)
    assert user.get_attribute("params") == {"test": "Object"}

    messages = user.get_attribute("sent_messages")
    assert isinstance(messages, Collection)
    assert messages.first().message_id == 1


def test_entity_get_attribute_value(db):
    user = User(db).find(42)

    assert user.get_attribute_value("id") == 42
    assert user.get_attribute_value("new_account") is True
    assert user.get_attribute_value("params") == {"test": "Object"}


def test_entity_mutator_depends_on_other_attributes(db):
    assert User(db).find(42).new_account is True
    assert User(db).find(43).new_account is False


def test_unknown_attribute_raises(db):
    user = User(db).find(42)

    with pytest.raises(AttributeNotFoundError):
        user.get_attribute("not_existent")

    with pytest.raises(AttributeNotFoundError):
        user.not_existent


def test_relation_is_not_an_attribute_value(db):
    user = User(db).find(42)

    with pytest.raises(AttributeNotFoundError):
        user.get_attribute_value("sent_messages")


def test_unloaded_relation_reads_as_none(db):
    user = User(db).find(42)

    assert user.get_attribute("profile") is None
    assert user.profile is None


def test_declared_attribute_without_value_reads_as_none(db):
    user = User(db).find(42, ["id"])

    assert user.register_date is None
    assert Message(db).message_id is None


def test_entity_set_attribute(db):
    user = User(db).find(42)

    user.set_attribute("username", "test")
    user.set_attribute("reset", 1)
    user.set_attribute("register_date", datetime(2010, 2, 13, 0, 34, 43))
    user.set_attribute("params", {"test": "test"})

    raw = user.get_attributes_raw()
    assert raw["username"] == "test"
    assert raw["reset_count"] == 1
    assert raw["last_reset_time"] == "2000-01-01 00:00:01"
    assert "reset" not in raw
    assert raw["register_date"] == "2010-02-13 00:34:43"
    assert json.loads(raw["params"]) == {"test": "test"}

    with pytest.raises(AttributeNotFoundError):
        user.set_attribute("not_existent", "value")


def test_entity_set_json_path(db):
    user = User(db).find(42)

    user["params->settings->theme"] = "dark"

    assert user.params == {"test": "Object", "settings": {"theme": "dark"}}
    assert user.is_dirty("params")


def test_entity_json_attribute_two_step(db):
    user = User(db).find(42)

    params = user.get_json_attribute("params")
    params["lang"] = "nb"
    user.params = params

    assert user.save()
    assert User(db).find(42).params == {"test": "Object", "lang": "nb"}


def test_new_entity_accepts_any_attribute(db):
    user = User(db)
    user.nickname = "neo"

    assert user.nickname == "neo"


def test_declared_columns_are_enforced(db):
    class Note(Message):
        table = "messages"
        columns = ["message_id", "subject", "message"]

    note = Note(db)
    note.subject = "hi"

    with pytest.raises(AttributeNotFoundError):
        note.colour = "red"


def test_item_access(db):
    user = User(db).find(42)
    user["username"] = "root"

    assert user["username"] == "root"
    assert "username" in user
    assert "sent_messages" in user
    assert "nope" not in user


def test_timestamp_columns_are_dates(db):
    banner = Banner(db).find(4)

    assert banner.created == datetime(2011, 1, 1, 0, 0, 1)
    assert banner.get_dates().count("created") == 1
