"""Tests for Collection and loose key comparison."""

import pytest

from activerow import Collection
from activerow.core.collection import loose_key, loosely_equal
from tests.entities import Message, User


@pytest.fixture
def users(db):
    prototype = User(db)
    return Collection(
        [
            prototype.new_from_row({"id": 43, "name": "Jane Doe"}),
            prototype.new_from_row({"id": 42, "name": "Super User"}),
            prototype.new_from_row({"id": 44, "name": "Max Miller"}),
        ]
    )


def test_sequence_protocol(users):
    assert len(users) == 3
    assert [u.id for u in users] == [43, 42, 44]
    assert users[1].id == 42

    first = users[0]
    assert first in users

    del users[0]
    assert len(users) == 2
    assert first not in users

    users[0] = first
    assert users.all()[0] is first


def test_first(users):
    assert users.first().id == 43
    assert Collection().first() is False


def test_add_allows_duplicates(users):
    users.add(users[0])

    assert len(users) == 4
    assert users[0] is users[3]


def test_find(users, db):
    assert users.find(42).name == "Super User"
    assert users.find("44").name == "Max Miller"
    assert users.find(User(db).new_from_row({"id": 43})).name == "Jane Doe"
    assert users.find(1) is False


def test_get_dictionary_and_keys(users):
    dictionary = users.get_dictionary()

    assert sorted(dictionary) == [42, 43, 44]
    assert dictionary[42].name == "Super User"
    assert users.keys() == [43, 42, 44]


def test_each_stops_on_false(users):
    seen = []

    def visit(user):
        seen.append(user.id)
        if user.id == 42:
            return False

    assert users.each(visit) is users
    assert seen == [43, 42]


def test_map_and_filter(users):
    assert users.map(lambda u: u.id).all() == [43, 42, 44]
    assert users.filter(lambda u: u.id > 42).keys() == [43, 44]
    assert Collection([0, 1, None, 2]).filter().all() == [1, 2]


def test_sort(users):
    assert users.sort(key=lambda u: u.id).keys() == [42, 43, 44]
    assert users.sort(key=lambda u: u.id, reverse=True).keys() == [44, 43, 42]
    assert users.keys() == [43, 42, 44]


def test_sort_by_ordering(users):
    assert users.sort_by_ordering("name").keys() == [43, 44, 42]
    assert users.sort_by_ordering("id DESC").keys() == [44, 43, 42]


def test_sort_by_ordering_through_relations(db, users):
    by_id = users.get_dictionary()
    prototype = Message(db)
    messages = Collection()
    for message_id, user_id in ((1, 42), (2, 43), (3, 42), (4, 44)):
        message = prototype.new_from_row({"message_id": message_id, "user_id_from": user_id})
        message.set_relation("sender", by_id[user_id])
        messages.add(message)

    ordered = messages.sort_by_ordering("sender.name DESC, message_id DESC")

    assert ordered.keys() == [3, 1, 4, 2]


def test_sort_by_ordering_puts_none_first(db):
    prototype = Message(db)
    messages = Collection(
        [
            prototype.new_from_row({"message_id": 1, "subject": "b"}),
            prototype.new_from_row({"message_id": 2, "subject": None}),
            prototype.new_from_row({"message_id": 3, "subject": "a"}),
        ]
    )

    assert messages.sort_by_ordering("subject").keys() == [2, 3, 1]


def test_to_array(users):
    assert users.to_array()[0] == {"id": 43, "name": "Jane Doe"}
    assert Collection([1, "x"]).to_array() == [1, "x"]


def test_repr():
    assert repr(Collection([1])) == "Collection([1])"


@pytest.mark.parametrize(
    "value,expected",
    [
        (42, 42),
        (42.0, 42),
        ("42", 42),
        (" -7 ", -7),
        (True, 1),
        ("abc", "abc"),
        (4.5, 4.5),
        (None, None),
    ],
)
def test_loose_key(value, expected):
    assert loose_key(value) == expected


def test_loosely_equal():
    assert loosely_equal(1, "1")
    assert loosely_equal("2011", 2011)
    assert loosely_equal(None, None)
    assert not loosely_equal(None, 0)
    assert not loosely_equal("", None)
    assert not loosely_equal("a", "b")
