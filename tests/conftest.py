"""Pytest configuration and fixtures."""

import pytest

from activerow.db.duckdb import DuckDBAdapter
from activerow.db.sqlite import SQLiteAdapter

DUCKDB_SCHEMA = """
CREATE SEQUENCE users_id_seq START 101;
CREATE SEQUENCE messages_id_seq START 100;
CREATE SEQUENCE banners_id_seq START 10;

CREATE TABLE users (
    id INTEGER PRIMARY KEY DEFAULT nextval('users_id_seq'),
    name VARCHAR,
    username VARCHAR,
    email VARCHAR,
    password VARCHAR,
    block INTEGER DEFAULT 0,
    register_date VARCHAR,
    lastvisit_date VARCHAR,
    params VARCHAR,
    last_reset_time VARCHAR,
    reset_count INTEGER DEFAULT 0
);

CREATE TABLE user_profiles (
    user_id INTEGER,
    profile_key VARCHAR,
    profile_value VARCHAR
);

CREATE TABLE messages (
    message_id INTEGER PRIMARY KEY DEFAULT nextval('messages_id_seq'),
    user_id_from INTEGER,
    user_id_to INTEGER,
    date_time VARCHAR,
    subject VARCHAR,
    message VARCHAR
);

CREATE TABLE sections (
    id INTEGER PRIMARY KEY,
    title VARCHAR,
    created_at VARCHAR,
    updated_at VARCHAR
);

CREATE TABLE categories (
    id INTEGER PRIMARY KEY,
    title VARCHAR,
    created_at VARCHAR,
    updated_at VARCHAR,
    section_id INTEGER
);

CREATE TABLE banners (
    id INTEGER PRIMARY KEY DEFAULT nextval('banners_id_seq'),
    category_id INTEGER,
    name VARCHAR,
    hits INTEGER DEFAULT 0,
    params VARCHAR,
    publish_up VARCHAR,
    created VARCHAR,
    modified VARCHAR
);
"""

DUCKDB_DATA = """
INSERT INTO users (id, name, username, email, password, register_date, lastvisit_date, params, reset_count) VALUES
    (42, 'Super User', 'admin', 'admin@example.com', 'secret-hash', '2010-02-13 00:34:42', '2010-02-13 00:34:42', '{"test": "Object"}', 0),
    (43, 'Jane Doe', 'jdoe', 'jdoe@example.com', 'hash-43', '2011-03-01 10:00:00', '2012-04-05 08:30:00', '{}', 0),
    (44, 'Max Miller', 'mmiller', 'mmiller@example.com', 'hash-44', '2011-05-01 09:00:00', '2011-06-01 09:00:00', '{}', 2),
    (99, 'Guest', 'guest', 'guest@example.com', 'hash-99', '2012-01-01 00:00:00', '2012-01-01 00:00:00', NULL, 0),
    (100, 'Tester', 'tester', 'tester@example.com', 'hash-100', '2013-01-01 00:00:00', '2013-02-01 00:00:00', NULL, 0);

INSERT INTO user_profiles VALUES
    (42, 'profile.city', 'Oslo'),
    (43, 'profile.city', 'Lima');

INSERT INTO messages (message_id, user_id_from, user_id_to, date_time, subject, message) VALUES
    (1, 42, 43, '2015-01-01 10:00:00', 'message1', 'Hello Jane'),
    (2, 43, 42, '2015-01-02 10:00:00', 'message2', 'Hello admin'),
    (3, 44, 42, '2015-01-03 10:00:00', 'message3', 'Question'),
    (4, 99, 42, '2015-01-04 10:00:00', 'message4', 'Guest note'),
    (5, 100, 42, '2015-01-05 10:00:00', 'message5', 'Test note');

INSERT INTO sections VALUES
    (1, 'Marketing', '2009-01-01 00:00:00', '2009-01-01 00:00:00');

INSERT INTO categories VALUES
    (1, 'Sponsors', '2010-01-01 00:00:00', '2010-01-01 00:00:00', 1);

INSERT INTO banners (id, category_id, name, hits, params, created, modified) VALUES
    (4, 1, 'Banner 4', 0, '{"width": 200}', '2011-01-01 00:00:01', '2011-01-01 00:00:01'),
    (5, 1, 'Banner 5', 10, NULL, '2011-02-01 00:00:00', '2011-02-01 00:00:00');
"""

SQLITE_SCHEMA = """
CREATE TABLE users (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    name TEXT,
    username TEXT,
    email TEXT,
    password TEXT,
    register_date TEXT,
    lastvisit_date TEXT,
    params TEXT,
    last_reset_time TEXT,
    reset_count INTEGER DEFAULT 0
);

CREATE TABLE messages (
    message_id INTEGER PRIMARY KEY AUTOINCREMENT,
    user_id_from INTEGER,
    user_id_to INTEGER,
    date_time TEXT,
    subject TEXT,
    message TEXT
);

INSERT INTO users (id, name, username, email, password, register_date, lastvisit_date, params) VALUES
    (42, 'Super User', 'admin', 'admin@example.com', 'secret-hash', '2010-02-13 00:34:42', '2010-02-13 00:34:42', '{"test": "Object"}'),
    (43, 'Jane Doe', 'jdoe', 'jdoe@example.com', 'hash-43', '2011-03-01 10:00:00', '2012-04-05 08:30:00', '{}');

INSERT INTO messages (message_id, user_id_from, user_id_to, subject) VALUES
    (1, 42, 43, 'message1'),
    (2, 43, 42, 'message2');
"""


def run_script(adapter, script: str) -> None:
    for statement in script.split(";"):
        if statement.strip():
            adapter.execute(statement)


@pytest.fixture
def db():
    """In-memory DuckDB seeded with users, profiles, messages, sections, categories and banners."""
    adapter = DuckDBAdapter(":memory:")
    run_script(adapter, DUCKDB_SCHEMA)
    run_script(adapter, DUCKDB_DATA)
    yield adapter
    adapter.close()


@pytest.fixture
def sqlite_db():
    """In-memory SQLite seeded with users and messages."""
    adapter = SQLiteAdapter(":memory:")
    adapter.raw_connection.executescript(SQLITE_SCHEMA)
    yield adapter
    adapter.close()
