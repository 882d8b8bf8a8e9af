"""
Raw SQL tier.

Runs hand-written parameterized SQL straight on the engine, bypassing the ORM
mapping layer. Statements use PostgreSQL-style positional placeholders
(`$1`, `$2`, ...) which are rewritten into bound parameters, so the same text
runs against PostgreSQL and SQLite.
"""
from typing import Any, Dict, List, Sequence
import logging
import re

from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncEngine

from watchlist_core.storage.errors import QueryFailed

logger = logging.getLogger(__name__)

_PLACEHOLDER = re.compile(r"\$(\d+)")


def bind_positional(sql: str, params: Sequence[Any]):
    """
    Rewrite `$n` placeholders to `:pn` and build the matching bind dict.

    Raises ValueError when the statement references a parameter that was not
    supplied.
    """
    bound: Dict[str, Any] = {}

    def replace(match):
        index = int(match.group(1))
        if index < 1 or index > len(params):
            raise ValueError(f"Placeholder ${index} has no matching parameter")
        name = f"p{index}"
        bound[name] = params[index - 1]
        return f":{name}"

    return _PLACEHOLDER.sub(replace, sql), bound


class RawSqlExecutor:
    """
    Executes one statement per call, in its own autocommit transaction.
    No retries: callers decide what a failure means.
    """

    def __init__(self, engine: AsyncEngine):
        self._engine = engine

    async def execute(
        self,
        sql: str,
        params: Sequence[Any] = (),
        operation: str = "raw query",
    ) -> List[Dict[str, Any]]:
        """
        Run `sql` with positional `params`.

        Returns:
            Result rows as plain dicts (empty for statements without RETURNING)

        Raises:
            QueryFailed: wrapping the driver error, classified by kind
        """
        statement, bound = bind_positional(sql, params)
        try:
            async with self._engine.begin() as conn:
                result = await conn.execute(text(statement), bound)
                if not result.returns_rows:
                    return []
                return [dict(row) for row in result.mappings().all()]
        except Exception as e:
            error = QueryFailed(operation, e)
            logger.error(f"[RAW SQL] {operation} failed ({error.kind.value}): {str(e)}")
            raise error from e
