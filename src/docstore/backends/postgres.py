"""
PostgreSQL backend.

All collections share one `documents` table (see migrations/) and each
document lives in a JSONB `data` column. Selectors are compiled to SQL
over `data #> path` so dotted paths work the same as in memory.
"""

import decimal
import logging
from typing import Any, Optional

from psycopg.types.json import Jsonb

from docstore import db
from docstore.backends.base import AGGREGATES, Backend, find_near, is_operator_mapping
from docstore.errors import InvalidOptions

logger = logging.getLogger(__name__)


class PostgresBackend(Backend):
    """
    Backend storing documents as JSONB rows.
    Encapsulates all SQL for the documents table.
    """

    def insert(self, collection: str, document: dict) -> None:
        db.execute(
            "INSERT INTO documents (collection, id, data) VALUES (%s, %s, %s)",
            (collection, str(document["_id"]), Jsonb(document)),
        )

    def replace(self, collection: str, document_id: Any, document: dict) -> int:
        return db.execute(
            """
            UPDATE documents SET data = %s, updated_at = now()
            WHERE collection = %s AND id = %s
            """,
            (Jsonb(document), collection, str(document_id)),
        )

    def select(
        self,
        collection: str,
        selector: dict,
        sort: list = (),
        limit: Optional[int] = None,
        skip: int = 0,
        reverse: bool = False,
    ) -> list[dict]:
        where, params = compile_selector(selector)
        order, order_params = compile_order(selector, sort, reverse)

        query = f"SELECT data FROM documents WHERE collection = %s AND ({where}) ORDER BY {order}"
        params = [collection, *params, *order_params]

        if limit is not None:
            query += " LIMIT %s"
            params.append(limit)
        if skip:
            query += " OFFSET %s"
            params.append(skip)

        return [row["data"] for row in db.fetch_all(query, tuple(params))]

    def count(self, collection: str, selector: dict) -> int:
        where, params = compile_selector(selector)
        result = db.fetch_one(
            f"SELECT COUNT(*) AS count FROM documents WHERE collection = %s AND ({where})",
            (collection, *params),
        )
        return result["count"] if result else 0

    def exists(self, collection: str, selector: dict) -> bool:
        where, params = compile_selector(selector)
        result = db.fetch_one(
            f"""
            SELECT EXISTS (
                SELECT 1 FROM documents WHERE collection = %s AND ({where})
            ) AS present
            """,
            (collection, *params),
        )
        return bool(result and result["present"])

    def update(self, collection: str, selector: dict, changes: dict) -> int:
        where, params = compile_selector(selector)
        return db.execute(
            f"""
            UPDATE documents SET data = data || %s, updated_at = now()
            WHERE collection = %s AND ({where})
            """,
            (Jsonb(changes), collection, *params),
        )

    def aggregate(self, collection: str, selector: dict, func: str, field: str):
        if func not in AGGREGATES:
            raise InvalidOptions(f"Unknown aggregate: {func}")
        where, params = compile_selector(selector)
        path = _path(field)
        expression = f"{func.upper()}((data #>> %s)::numeric)"
        if func == "sum":
            expression = f"COALESCE({expression}, 0)"

        result = db.fetch_one(
            f"""
            SELECT {expression} AS value FROM documents
            WHERE collection = %s AND ({where})
              AND jsonb_typeof(data #> %s) = 'number'
            """,
            (path, collection, *params, path),
        )
        value = result["value"] if result else None
        if isinstance(value, decimal.Decimal):
            if func != "avg" and value == value.to_integral_value():
                return int(value)
            return float(value)
        return value

    def clear(self, collection: Optional[str] = None) -> None:
        if collection is None:
            db.execute("DELETE FROM documents")
        else:
            db.execute("DELETE FROM documents WHERE collection = %s", (collection,))


# =============================================================================
# SQL compilation
# =============================================================================


def _path(field: str) -> list[str]:
    return field.split(".")


def _equals(path: list[str], value: Any) -> tuple[str, list]:
    if value is None:
        return "(data #> %s IS NULL OR data #> %s = 'null'::jsonb)", [path, path]
    if isinstance(value, (list, dict)):
        return "COALESCE(data #> %s = %s, false)", [path, Jsonb(value)]
    # Scalar containment also matches array fields holding the value
    return "COALESCE(data #> %s @> %s, false)", [path, Jsonb(value)]


def _any_of(path: list[str], values: list) -> tuple[str, list]:
    if not values:
        return "FALSE", []
    clauses, params = [], []
    for value in values:
        sql, p = _equals(path, value)
        clauses.append(sql)
        params.extend(p)
    return "(" + " OR ".join(clauses) + ")", params


COMPARISONS = {"$gt": ">", "$gte": ">=", "$lt": "<", "$lte": "<="}


def _operator(path: list[str], op: str, arg: Any) -> tuple[str, list]:
    if op == "$eq":
        return _equals(path, arg)
    if op == "$ne":
        sql, params = _equals(path, arg)
        return f"NOT {sql}", params
    if op == "$in":
        return _any_of(path, list(arg))
    if op == "$nin":
        sql, params = _any_of(path, list(arg))
        return f"NOT {sql}", params
    if op == "$all":
        return "COALESCE(data #> %s @> %s, false)", [path, Jsonb(list(arg))]
    if op in COMPARISONS:
        # jsonb orders across types; only compare values of the same JSON type
        return (
            f"COALESCE(jsonb_typeof(data #> %s) = jsonb_typeof(%s) AND data #> %s {COMPARISONS[op]} %s, false)",
            [path, Jsonb(arg), path, Jsonb(arg)],
        )
    if op == "$exists":
        return ("data #> %s IS NOT NULL" if arg else "data #> %s IS NULL"), [path]
    if op == "$near":
        return "jsonb_typeof(data #> %s) = 'array'", [path]
    raise InvalidOptions(f"Unsupported operator: {op}")


def compile_selector(selector: dict) -> tuple[str, list]:
    """
    Compile a Mongo-style selector into a SQL boolean expression.

    Returns:
        (sql, params) with %s placeholders, "TRUE" for an empty selector
    """
    clauses: list[str] = []
    params: list = []

    for key, condition in selector.items():
        if key in ("$and", "$or"):
            parts = [compile_selector(sub) for sub in condition]
            if not parts:
                clauses.append("TRUE" if key == "$and" else "FALSE")
                continue
            joiner = " AND " if key == "$and" else " OR "
            clauses.append("(" + joiner.join(f"({sql})" for sql, _ in parts) + ")")
            for _, p in parts:
                params.extend(p)
        elif is_operator_mapping(condition):
            for op, arg in condition.items():
                sql, p = _operator(_path(key), op, arg)
                clauses.append(sql)
                params.extend(p)
        else:
            sql, p = _equals(_path(key), condition)
            clauses.append(sql)
            params.extend(p)

    if not clauses:
        return "TRUE", []
    return " AND ".join(clauses), params


def compile_order(selector: dict, sort: list, reverse: bool = False) -> tuple[str, list]:
    """Compile explicit sort keys, falling back to distance then insertion order."""
    terms: list[str] = []
    params: list = []

    for field, direction in sort:
        if direction < 0:
            terms.append("data #> %s DESC NULLS LAST")
        else:
            terms.append("data #> %s ASC NULLS FIRST")
        params.append(_path(field))

    natural = "DESC" if reverse else "ASC"
    near = find_near(selector)
    if near:
        field, point = near
        terms.append(
            "power((data #>> %s)::float8 - %s, 2) + "
            f"power((data #>> %s)::float8 - %s, 2) {natural}"
        )
        params.extend([_path(field) + ["0"], point[0], _path(field) + ["1"], point[1]])

    terms.append(f"seq {natural}")
    return ", ".join(terms), params
