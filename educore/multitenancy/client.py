"""
Tenant-scoped data client over an SQLAlchemy ``AsyncSession``.

Route handlers do their data access through a :class:`TenantScopedClient`
instead of building statements by hand. Each call is described as a
:class:`QueryCall`, rewritten by the :class:`QueryInterceptor` for the
current tenant and then executed, so handlers never pass ``school_id`` to
scope their queries.

Example:
    client = TenantScopedClient(session)

    learners = await client.learner.find_many(where={"grade": "GRADE_4"},
                                              order_by="last_name", take=20)
    await client.attendance.create_many([
        {"learner_id": lid, "attendance_date": today, "status": "PRESENT"}
        for lid in present_ids
    ])
"""

from __future__ import annotations

from typing import Any, Sequence
import logging

from sqlalchemy import delete, func, inspect as sa_inspect, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from educore.config.settings import settings
from educore.models import MODEL_REGISTRY
from educore.multitenancy.errors import RecordNotFoundError
from educore.multitenancy.interceptor import QueryAction, QueryCall, QueryInterceptor

logger = logging.getLogger(__name__)

# Execution option telling the ORM hook a statement was already scoped.
SCOPE_APPLIED_OPTION = "tenant_scope_applied"

_AGGREGATES = {
    "sum": func.sum,
    "avg": func.avg,
    "min": func.min,
    "max": func.max,
}


def _camel(name: str) -> str:
    return "".join(part.capitalize() for part in name.split("_") if part)


class ModelDelegate:
    """Data-access methods for one model, all routed through the interceptor."""

    def __init__(self, client: "TenantScopedClient", name: str, model: type):
        self._client = client
        self.name = name
        self.model = model
        self._columns = set(sa_inspect(model).columns.keys())

    def __repr__(self) -> str:
        return f"<ModelDelegate {self.name}>"

    # -- reads ---------------------------------------------------------------

    async def find_many(
        self,
        where: dict[str, Any] | None = None,
        *,
        order_by: str | Sequence[str] | None = None,
        skip: int | None = None,
        take: int | None = None,
    ) -> list[Any]:
        call = self._prepare(QueryAction.FIND_MANY, where=where,
                             order_by=order_by, skip=skip, take=take)
        stmt = self._select(call)
        result = await self._execute(stmt)
        return list(result.scalars().all())

    async def find_first(
        self,
        where: dict[str, Any] | None = None,
        *,
        order_by: str | Sequence[str] | None = None,
    ) -> Any | None:
        call = self._prepare(QueryAction.FIND_FIRST, where=where, order_by=order_by, take=1)
        result = await self._execute(self._select(call))
        return result.scalars().first()

    async def find_unique(self, where: dict[str, Any]) -> Any | None:
        call = self._prepare(QueryAction.FIND_UNIQUE, where=where)
        result = await self._execute(self._select(call))
        return result.scalars().one_or_none()

    async def count(self, where: dict[str, Any] | None = None) -> int:
        call = self._prepare(QueryAction.COUNT, where=where)
        stmt = select(func.count()).select_from(self.model).where(*self._conditions(call.where))
        result = await self._execute(stmt)
        return int(result.scalar_one())

    async def aggregate(
        self,
        where: dict[str, Any] | None = None,
        *,
        sum: Sequence[str] = (),
        avg: Sequence[str] = (),
        min: Sequence[str] = (),
        max: Sequence[str] = (),
    ) -> dict[str, Any]:
        """Aggregate columns over the (scoped) filter.

        Returns:
            ``{"count": n, "sum": {col: value}, "avg": {...}, ...}`` with
            only the requested aggregate groups present.
        """
        requested = {"sum": sum, "avg": avg, "min": min, "max": max}
        call = self._prepare(QueryAction.AGGREGATE, where=where,
                             **{k: list(v) for k, v in requested.items() if v})

        columns = [func.count().label("count")]
        for kind, fields in requested.items():
            for field_name in fields:
                column = self._column(field_name)
                columns.append(_AGGREGATES[kind](column).label(f"{kind}__{field_name}"))

        stmt = select(*columns).select_from(self.model).where(*self._conditions(call.where))
        row = (await self._execute(stmt)).one()._mapping

        out: dict[str, Any] = {"count": int(row["count"])}
        for kind, fields in requested.items():
            if fields:
                out[kind] = {name: row[f"{kind}__{name}"] for name in fields}
        return out

    # -- writes --------------------------------------------------------------

    async def create(self, data: dict[str, Any]) -> Any:
        call = self._prepare(QueryAction.CREATE, data=data)
        instance = self.model(**call.data)
        self._client.session.add(instance)
        await self._client.session.flush()
        return instance

    async def create_many(self, data: Sequence[dict[str, Any]]) -> int:
        call = self._prepare(QueryAction.CREATE_MANY, data=list(data))
        instances = [self.model(**item) for item in call.data]
        self._client.session.add_all(instances)
        await self._client.session.flush()
        return len(instances)

    async def update(self, where: dict[str, Any], data: dict[str, Any]) -> Any:
        """Update the single record matching ``where``.

        Raises:
            RecordNotFoundError: If nothing matches the scoped filter,
                including records that belong to another tenant.
        """
        call = self._prepare(QueryAction.UPDATE, where=where, data=data)
        instance = await self._get_one(call)
        for key, value in call.data.items():
            self._column(key)
            setattr(instance, key, value)
        await self._client.session.flush()
        return instance

    async def update_many(self, where: dict[str, Any] | None, data: dict[str, Any]) -> int:
        call = self._prepare(QueryAction.UPDATE_MANY, where=where, data=data)
        for key in call.data:
            self._column(key)
        stmt = (
            update(self.model)
            .where(*self._conditions(call.where))
            .values(**call.data)
            .execution_options(synchronize_session="evaluate")
        )
        result = await self._execute(stmt)
        return result.rowcount

    async def delete(self, where: dict[str, Any]) -> Any:
        """Delete the single record matching ``where`` and return it.

        Raises:
            RecordNotFoundError: If nothing matches the scoped filter.
        """
        call = self._prepare(QueryAction.DELETE, where=where)
        instance = await self._get_one(call)
        await self._client.session.delete(instance)
        await self._client.session.flush()
        return instance

    async def delete_many(self, where: dict[str, Any] | None = None) -> int:
        call = self._prepare(QueryAction.DELETE_MANY, where=where)
        stmt = (
            delete(self.model)
            .where(*self._conditions(call.where))
            .execution_options(synchronize_session="evaluate")
        )
        result = await self._execute(stmt)
        return result.rowcount

    # -- helpers -------------------------------------------------------------

    def _prepare(
        self,
        action: QueryAction,
        *,
        where: dict[str, Any] | None = None,
        data: Any = None,
        **options: Any,
    ) -> QueryCall:
        call = QueryCall(
            entity=self.name,
            action=action,
            where=where,
            data=data,
            options={k: v for k, v in options.items() if v is not None},
        )
        return self._client.interceptor.apply(call)

    async def _get_one(self, call: QueryCall) -> Any:
        stmt = select(self.model).where(*self._conditions(call.where)).limit(1)
        instance = (await self._execute(stmt)).scalars().first()
        if instance is None:
            raise RecordNotFoundError(self.name, call.where)
        return instance

    async def _execute(self, stmt: Any) -> Any:
        stmt = stmt.execution_options(**{SCOPE_APPLIED_OPTION: True})
        return await self._client.session.execute(stmt)

    def _select(self, call: QueryCall) -> Any:
        stmt = select(self.model).where(*self._conditions(call.where))
        order_by = call.options.get("order_by")
        if order_by:
            if isinstance(order_by, str):
                order_by = [order_by]
            for field_name in order_by:
                if field_name.startswith("-"):
                    stmt = stmt.order_by(self._column(field_name[1:]).desc())
                else:
                    stmt = stmt.order_by(self._column(field_name).asc())
        if call.options.get("skip"):
            stmt = stmt.offset(call.options["skip"])
        if call.options.get("take"):
            stmt = stmt.limit(call.options["take"])
        return stmt

    def _column(self, name: str) -> Any:
        if name not in self._columns:
            raise ValueError(f"Unknown field {name!r} for {self.name}")
        return getattr(self.model, name)

    def _conditions(self, where: dict[str, Any] | None) -> list[Any]:
        """Translate a ``where`` mapping into SQL expressions.

        Values may be plain (equality), ``None`` (IS NULL), or a dict with
        any of ``in``, ``not``, ``gt``, ``gte``, ``lt``, ``lte``.
        """
        conditions = []
        for key, value in (where or {}).items():
            column = self._column(key)
            if value is None:
                conditions.append(column.is_(None))
            elif isinstance(value, dict):
                for op, operand in value.items():
                    if op == "in":
                        conditions.append(column.in_(list(operand)))
                    elif op == "not":
                        conditions.append(column.is_not(None) if operand is None else column != operand)
                    elif op == "gt":
                        conditions.append(column > operand)
                    elif op == "gte":
                        conditions.append(column >= operand)
                    elif op == "lt":
                        conditions.append(column < operand)
                    elif op == "lte":
                        conditions.append(column <= operand)
                    else:
                        raise ValueError(f"Unsupported filter operator {op!r} on {key}")
            else:
                conditions.append(column == value)
        return conditions


class TenantScopedClient:
    """Entry point for tenant-scoped data access.

    Attributes:
        session: The SQLAlchemy session statements run on.
        interceptor: The interceptor applied to every call.

    Delegates are available by model name (``client.model("FeeInvoice")``)
    or as snake_case attributes (``client.fee_invoice``).
    """

    def __init__(
        self,
        session: AsyncSession,
        interceptor: QueryInterceptor | None = None,
        registry: dict[str, type] | None = None,
    ):
        self.session = session
        self.interceptor = interceptor or QueryInterceptor.from_settings(settings)
        self._registry = registry if registry is not None else MODEL_REGISTRY
        self._delegates: dict[str, ModelDelegate] = {}

    def model(self, name: str) -> ModelDelegate:
        delegate = self._delegates.get(name)
        if delegate is None:
            model = self._registry.get(name)
            if model is None:
                raise KeyError(f"Unknown model {name!r}")
            delegate = ModelDelegate(self, name, model)
            self._delegates[name] = delegate
        return delegate

    def __getattr__(self, name: str) -> ModelDelegate:
        if name.startswith("_"):
            raise AttributeError(name)
        try:
            return self.model(_camel(name))
        except KeyError:
            raise AttributeError(f"{type(self).__name__} has no model {name!r}") from None
