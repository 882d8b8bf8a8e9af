import pytest

from watchlist_core.storage.errors import ErrorKind, QueryFailed
from watchlist_core.storage.raw_sql import RawSqlExecutor, bind_positional

pytestmark = pytest.mark.anyio


def test_bind_positional_rewrites_placeholders():
    sql, params = bind_positional(
        "SELECT * FROM watchlist_entries WHERE user_id = $1 AND movie_id = $2 OR user_id = $1",
        [7, 550],
    )
    assert sql == "SELECT * FROM watchlist_entries WHERE user_id = :p1 AND movie_id = :p2 OR user_id = :p1"
    assert params == {"p1": 7, "p2": 550}


def test_bind_positional_rejects_missing_parameter():
    with pytest.raises(ValueError):
        bind_positional("SELECT * FROM users WHERE id = $2", [1])


async def test_execute_returns_rows_as_dicts(engine):
    executor = RawSqlExecutor(engine)
    await executor.execute(
        "INSERT INTO users (username, password) VALUES ($1, $2)", ["alice", "hash"]
    )

    rows = await executor.execute("SELECT id, username FROM users WHERE username = $1", ["alice"])

    assert rows == [{"id": 1, "username": "alice"}]


async def test_execute_without_result_rows_returns_empty_list(engine):
    executor = RawSqlExecutor(engine)
    rows = await executor.execute("DELETE FROM users WHERE id = $1", [42])
    assert rows == []


async def test_each_statement_commits_on_its_own(engine):
    executor = RawSqlExecutor(engine)
    await executor.execute("INSERT INTO users (username, password) VALUES ($1, $2)", ["bob", "x"])

    # A failing statement afterwards must not undo the earlier insert
    with pytest.raises(QueryFailed):
        await executor.execute("INSERT INTO users (username, password) VALUES ($1, $2)", ["bob", "y"])

    rows = await executor.execute("SELECT COUNT(*) AS count FROM users")
    assert rows[0]["count"] == 1


async def test_duplicate_key_is_wrapped_as_conflict(engine):
    executor = RawSqlExecutor(engine)
    await executor.execute("INSERT INTO movies (tmdb_id, title, media_type) VALUES ($1, $2, $3)", [550, "Fight Club", "movie"])

    with pytest.raises(QueryFailed) as exc_info:
        await executor.execute(
            "INSERT INTO movies (tmdb_id, title, media_type) VALUES ($1, $2, $3)",
            [550, "Fight Club", "movie"],
            operation="insert movie",
        )

    assert exc_info.value.kind is ErrorKind.CONFLICT
    assert exc_info.value.operation == "insert movie"
    assert exc_info.value.cause is not None


async def test_bad_sql_is_wrapped_as_other(engine):
    executor = RawSqlExecutor(engine)
    with pytest.raises(QueryFailed) as exc_info:
        await executor.execute("SELECT * FROM no_such_table")
    assert exc_info.value.kind is ErrorKind.OTHER
