"""PostgreSQL-backed grievance store."""

from __future__ import annotations

from enum import Enum
from typing import Any, Optional

from psycopg.types.json import Jsonb
from pydantic import BaseModel

from gte.config import Settings
from gte.db.client import db_cursor
from gte.models import ActionEntry, Grievance
from gte.store.base import P, GrievanceFilter, check_set_fields, id_filter
from gte.utils.logging import get_logger


logger = get_logger(__name__)

TABLE = "public.grievances"

COLUMNS: tuple[str, ...] = (
    "id",
    "submitter_id",
    "submitter_name",
    "category",
    "title",
    "description",
    "lat",
    "lon",
    "address",
    "zone",
    "attachments",
    "image_url",
    "image_hashes",
    "capture_times",
    "group_id",
    "supporter_count",
    "supporters",
    "upvotes",
    "credibility_score",
    "credibility_signals",
    "priority_score",
    "ai_classification",
    "geo_valid",
    "duplicate_flag",
    "flags",
    "status",
    "assigned_to",
    "action_history",
    "created_at",
    "submitted_ip",
    "submitted_device",
)

JSON_COLUMNS = {"attachments", "credibility_signals", "action_history"}


def _columns_for(projection: type[BaseModel]) -> list[str]:
    columns: list[str] = []
    for name in projection.model_fields:
        if name == "location":
            columns.extend(["lat", "lon"])
        elif name in COLUMNS:
            columns.append(name)
        else:
            raise ValueError(f"Projection field {name!r} has no column")
    return columns


def _adapt(column: str, value: Any) -> Any:
    if isinstance(value, Enum):
        return value.value
    if column in JSON_COLUMNS:
        if isinstance(value, BaseModel):
            return Jsonb(value.model_dump(mode="json"))
        if isinstance(value, list):
            return Jsonb(
                [v.model_dump(mode="json") if isinstance(v, BaseModel) else v for v in value]
            )
        return Jsonb(value)
    return value


def _flatten(values: dict[str, Any]) -> dict[str, Any]:
    """Turn model-shaped fields into column values."""
    flat: dict[str, Any] = {}
    for key, value in values.items():
        if key == "location":
            location = value if isinstance(value, dict) else value.model_dump()
            flat["lat"] = location["lat"]
            flat["lon"] = location["lon"]
        elif key in COLUMNS:
            flat[key] = _adapt(key, value)
        else:
            raise ValueError(f"Unknown grievance field: {key!r}")
    return flat


def _from_row(row: dict[str, Any], projection: type[P]) -> P:
    data = dict(row)
    if "lat" in data and "lon" in data:
        data["location"] = {"lat": data.pop("lat"), "lon": data.pop("lon")}
    return projection.model_validate(data)


def _where(flt: GrievanceFilter) -> tuple[str, list[object]]:
    conditions: list[str] = []
    params: list[object] = []

    if flt.ids is not None:
        conditions.append("id = any(%s)")
        params.append(list(flt.ids))
    if flt.zone is not None:
        conditions.append("zone = %s")
        params.append(flt.zone)
    if flt.statuses is not None:
        conditions.append("status = any(%s)")
        params.append([status.value for status in flt.statuses])
    if flt.submitter_id is not None:
        conditions.append("submitter_id = %s")
        params.append(flt.submitter_id)
    if flt.group_id is not None:
        conditions.append("group_id = %s")
        params.append(flt.group_id)
    if flt.created_since is not None:
        conditions.append("created_at >= %s")
        params.append(flt.created_since)
    if flt.any_image_hash is not None:
        conditions.append("image_hashes && %s::text[]")
        params.append(list(flt.any_image_hash))
    if flt.exclude_id is not None:
        conditions.append("id <> %s")
        params.append(flt.exclude_id)

    if not conditions:
        return "true", params
    return " and ".join(conditions), params


class PostgresGrievanceStore:
    """Store using one short transaction per operation."""

    def __init__(self, settings: Optional[Settings] = None) -> None:
        self.settings = settings or Settings()

    def create(self, doc: Grievance) -> Grievance:
        data = doc.model_dump()
        json_data = doc.model_dump(mode="json")
        for column in JSON_COLUMNS:
            data[column] = json_data[column]
        values = _flatten(data)
        columns = [column for column in COLUMNS if column in values]
        placeholders = ",".join(["%s"] * len(columns))
        query = f"insert into {TABLE} ({', '.join(columns)}) values ({placeholders})"
        with db_cursor(self.settings) as cursor:
            cursor.execute(query, [values[column] for column in columns])
        logger.debug("store.create id=%s group_id=%s", doc.id, doc.group_id)
        return doc

    def get(self, grievance_id: str) -> Optional[Grievance]:
        found = self.find_many(id_filter([grievance_id]), Grievance)
        return found[0] if found else None

    def find_many(
        self,
        flt: GrievanceFilter,
        projection: type[P],
        order_by_created: bool = True,
    ) -> list[P]:
        where, params = _where(flt)
        query = f"select {', '.join(_columns_for(projection))} from {TABLE} where {where}"
        if order_by_created:
            query += " order by created_at asc"
        with db_cursor(self.settings, as_dict=True) as cursor:
            cursor.execute(query, params)
            rows = list(cursor.fetchall())
        return [_from_row(row, projection) for row in rows]

    def count(self, flt: GrievanceFilter) -> int:
        where, params = _where(flt)
        with db_cursor(self.settings) as cursor:
            cursor.execute(f"select count(*) from {TABLE} where {where}", params)
            row = cursor.fetchone()
        return int(row[0]) if row else 0

    def add_to_set_and_increment(
        self,
        grievance_id: str,
        set_field: str,
        value: str,
        counter_field: str,
    ) -> bool:
        check_set_fields(set_field, counter_field)
        # Single-statement update: the row lock makes the membership test and
        # both writes one atomic step.
        query = (
            f"update {TABLE} set {set_field} = array_append({set_field}, %s), "
            f"{counter_field} = {counter_field} + 1 "
            f"where id = %s and not (%s = any({set_field})) returning id"
        )
        with db_cursor(self.settings) as cursor:
            cursor.execute(query, (value, grievance_id, value))
            row = cursor.fetchone()
        return row is not None

    def sync_supporter_count(self, grievance_id: str) -> Optional[int]:
        query = (
            f"update {TABLE} set "
            "supporter_count = 1 + cardinality(array(select distinct unnest(supporters))), "
            "upvotes = 1 + cardinality(array(select distinct unnest(supporters))) "
            "where id = %s returning supporter_count"
        )
        with db_cursor(self.settings) as cursor:
            cursor.execute(query, (grievance_id,))
            row = cursor.fetchone()
        return int(row[0]) if row else None

    def append_action(self, grievance_id: str, entry: ActionEntry) -> None:
        query = (
            f"update {TABLE} set action_history = action_history || %s::jsonb "
            "where id = %s"
        )
        with db_cursor(self.settings) as cursor:
            cursor.execute(query, (Jsonb([entry.model_dump(mode="json")]), grievance_id))

    def update_many(self, flt: GrievanceFilter, patch: dict[str, Any]) -> int:
        if not patch:
            return 0
        values = _flatten(patch)
        assignments = ", ".join(f"{column} = %s" for column in values)
        where, params = _where(flt)
        with db_cursor(self.settings) as cursor:
            cursor.execute(
                f"update {TABLE} set {assignments} where {where}",
                [*values.values(), *params],
            )
            return cursor.rowcount or 0

    def update_one(self, grievance_id: str, patch: dict[str, Any]) -> int:
        return self.update_many(id_filter([grievance_id]), patch)
