"""
Automatic tenant filtering for data-access calls.

Every data-access call against a tenant-scoped model is described by a
:class:`QueryCall` and passed through :meth:`QueryInterceptor.apply` before
it reaches storage. Under a scoped :class:`TenantContext` the interceptor
injects ``school_id`` into the call's filter or payload:

- Reads (find_many, find_first, find_unique, count, aggregate): into ``where``
- create: into ``data``
- create_many: into every element of ``data`` that lacks it
- update, update_many, delete, delete_many: into ``where``

A ``school_id`` the caller already supplied is never overridden, and the
rewrite is idempotent. Super-admin contexts, calls made outside any context
and models not on the allow-list pass through unchanged.

The interceptor is defense-in-depth. The request guards in
:mod:`educore.api.dependencies` are the enforcement boundary; a route that
skips them and runs without a context gets unscoped queries unless the
interceptor runs with ``strict=True``.

Example:
    interceptor = QueryInterceptor()
    call = QueryCall("Learner", QueryAction.FIND_MANY, where={})

    with TenantScope(TenantContext(school_id="S1")):
        interceptor.apply(call).where  # {"school_id": "S1"}
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Any, Iterable
import logging

from educore.multitenancy.context import TenantContext, get_current
from educore.multitenancy.errors import CrossTenantAccessError, TenantContextMissingError

logger = logging.getLogger(__name__)

TENANT_KEY = "school_id"

# Models that require automatic tenant filtering
TENANT_SCOPED_MODELS: frozenset[str] = frozenset({
    "Learner",
    "User",
    "Class",
    "ClassEnrollment",
    "Attendance",
    "FormativeAssessment",
    "SummativeTest",
    "SummativeResult",
    "FeeInvoice",
    "FeeStructure",
    "FeePayment",
    "CoreCompetency",
    "ValuesAssessment",
    "CoCurricularActivity",
    "TermlyReportComment",
    "Branch",
    "StreamConfig",
    "TermConfig",
    "AggregationConfig",
    "GradingSystem",
    "AdmissionSequence",
})


class QueryAction(str, Enum):
    """Kinds of data-access call the interceptor understands."""

    FIND_MANY = "find_many"
    FIND_FIRST = "find_first"
    FIND_UNIQUE = "find_unique"
    COUNT = "count"
    AGGREGATE = "aggregate"
    CREATE = "create"
    CREATE_MANY = "create_many"
    UPDATE = "update"
    UPDATE_MANY = "update_many"
    DELETE = "delete"
    DELETE_MANY = "delete_many"

    @property
    def is_read(self) -> bool:
        return self in _READ_ACTIONS

    @property
    def is_mutation(self) -> bool:
        return self in _FILTERED_MUTATIONS


_READ_ACTIONS = frozenset({
    QueryAction.FIND_MANY,
    QueryAction.FIND_FIRST,
    QueryAction.FIND_UNIQUE,
    QueryAction.COUNT,
    QueryAction.AGGREGATE,
})

_FILTERED_MUTATIONS = frozenset({
    QueryAction.UPDATE,
    QueryAction.UPDATE_MANY,
    QueryAction.DELETE,
    QueryAction.DELETE_MANY,
})


@dataclass
class QueryCall:
    """Descriptor of one data-access call.

    Attributes:
        entity: Model name, e.g. ``"Learner"``.
        action: The kind of call.
        where: Column filter (reads, updates, deletes).
        data: Payload; a dict for create/update, a list of dicts for
            create_many.
        options: Execution options passed through untouched (ordering,
            pagination, aggregate fields).
    """

    entity: str
    action: QueryAction
    where: dict[str, Any] | None = None
    data: dict[str, Any] | list[dict[str, Any]] | None = None
    options: dict[str, Any] = field(default_factory=dict)

    def __post_init__(self) -> None:
        self.action = QueryAction(self.action)

    def to_dict(self) -> dict[str, Any]:
        return {
            "entity": self.entity,
            "action": self.action.value,
            "where": self.where,
            "data": self.data,
            "options": self.options,
        }


class QueryInterceptor:
    """Rewrites :class:`QueryCall` objects to enforce tenant isolation.

    Attributes:
        scoped_models: Model names subject to tenant filtering.
        tenant_key: Column holding the tenant identifier.
        strict: Raise :class:`TenantContextMissingError` for a scoped model
            queried with no context at all (super-admin still bypasses).
        reject_mismatch: Raise :class:`CrossTenantAccessError` when a
            scoped call names a different ``school_id`` than the context.
    """

    def __init__(
        self,
        scoped_models: Iterable[str] = TENANT_SCOPED_MODELS,
        tenant_key: str = TENANT_KEY,
        strict: bool = False,
        reject_mismatch: bool = False,
    ):
        self.scoped_models = frozenset(scoped_models)
        self.tenant_key = tenant_key
        self.strict = strict
        self.reject_mismatch = reject_mismatch

    @classmethod
    def from_settings(cls, settings: Any) -> "QueryInterceptor":
        return cls(
            strict=settings.TENANT_STRICT_MODE,
            reject_mismatch=settings.TENANT_REJECT_MISMATCH,
        )

    def is_scoped_model(self, entity: str | None) -> bool:
        return bool(entity) and entity in self.scoped_models

    def should_scope(self, call: QueryCall, context: TenantContext | None) -> bool:
        """Whether ``call`` gets a tenant filter under ``context``.

        Raises:
            TenantContextMissingError: In strict mode, for a scoped model
                with no context.
        """
        if not self.is_scoped_model(call.entity):
            return False
        if context is None:
            if self.strict:
                raise TenantContextMissingError(call.entity)
            logger.debug("No tenant context for %s.%s; passing through",
                         call.entity, call.action.value)
            return False
        return context.is_scoped

    def apply(self, call: QueryCall, context: TenantContext | None = None) -> QueryCall:
        """Return ``call`` rewritten for the active tenant.

        The caller's ``where``/``data`` containers are copied, never
        mutated. When no rewrite applies the original call is returned.

        Args:
            call: The call to rewrite.
            context: Tenant context; defaults to the current one.

        Returns:
            The (possibly) rewritten call.
        """
        if context is None:
            context = get_current()
        if not self.should_scope(call, context):
            return call

        school_id = context.school_id
        action = call.action

        if action.is_read or action.is_mutation:
            where = self._scope_mapping(call.entity, call.where, school_id)
            return replace(call, where=where)

        if action is QueryAction.CREATE:
            data = self._scope_mapping(call.entity, call.data, school_id)
            return replace(call, data=data)

        if action is QueryAction.CREATE_MANY:
            if isinstance(call.data, list):
                data = [self._scope_mapping(call.entity, item, school_id)
                        for item in call.data]
                return replace(call, data=data)
            return call

        return call

    def tenant_filter(self, entity: str, context: TenantContext | None = None) -> dict[str, Any]:
        """The filter the interceptor would add for ``entity``, or ``{}``."""
        call = self.apply(QueryCall(entity, QueryAction.FIND_MANY, where={}), context)
        return dict(call.where or {})

    def _scope_mapping(
        self,
        entity: str,
        mapping: dict[str, Any] | None,
        school_id: str,
    ) -> dict[str, Any]:
        scoped = dict(mapping or {})
        existing = scoped.get(self.tenant_key)
        if not existing:
            scoped[self.tenant_key] = school_id
            logger.debug("Injected %s=%s into %s", self.tenant_key, school_id, entity)
        elif self.reject_mismatch and existing != school_id:
            raise CrossTenantAccessError(entity, existing, school_id)
        return scoped
