"""ORM session hooks that scope plain SQLAlchemy session use.

Code that bypasses :class:`~educore.multitenancy.client.TenantScopedClient`
and runs ``session.execute(select(Learner))`` directly is still filtered:
``do_orm_execute`` adds ``with_loader_criteria`` for every tenant-scoped
mapped model, and ``before_flush`` stamps ``school_id`` onto new scoped
objects that lack one. Both hooks follow the interceptor's trigger rule
(allow-listed model, scoped context, not super-admin).
"""

from __future__ import annotations

from typing import Any
import logging

from sqlalchemy import event, inspect as sa_inspect
from sqlalchemy.orm import ORMExecuteState, Session, with_loader_criteria

from educore.multitenancy.client import SCOPE_APPLIED_OPTION
from educore.multitenancy.context import get_current
from educore.multitenancy.errors import TenantContextMissingError
from educore.multitenancy.interceptor import QueryInterceptor

logger = logging.getLogger(__name__)

# Hook target id -> (interceptor, scoped models) read by the listeners.
_bindings: dict[int, tuple[QueryInterceptor, list[type]]] = {}


def _scoped_models(interceptor: QueryInterceptor, registry: dict[str, type]) -> list[type]:
    return [model for name, model in registry.items() if interceptor.is_scoped_model(name)]


def install_tenant_hooks(
    target: Any,
    interceptor: QueryInterceptor,
    registry: dict[str, type],
) -> None:
    """Register tenant scoping listeners on a session class or sessionmaker.

    Installing again on the same target rebinds the listeners to the new
    interceptor and registry rather than adding a second set.

    Args:
        target: ``Session`` subclass, ``sessionmaker`` or ``Session``
            instance (for an ``AsyncSession`` pass its ``sync_session_class``).
        interceptor: Supplies the allow-list, tenant key and strict mode.
        registry: Model name to mapped class.
    """
    key = id(target)
    models = _scoped_models(interceptor, registry)
    rebind = key in _bindings
    _bindings[key] = (interceptor, models)
    if rebind:
        logger.info("Tenant scoping hooks rebound: %d protected models, strict=%s",
                    len(models), interceptor.strict)
        return

    @event.listens_for(target, "do_orm_execute")
    def _add_tenant_criteria(execute_state: ORMExecuteState) -> None:
        if (
            not execute_state.is_select
            or execute_state.is_column_load
            or execute_state.is_relationship_load
            or execute_state.execution_options.get(SCOPE_APPLIED_OPTION, False)
        ):
            return

        interceptor, models = _bindings[key]
        context = get_current()
        if context is None:
            if interceptor.strict:
                entities = {
                    sa_inspect(desc["entity"]).mapper.class_.__name__
                    for desc in getattr(execute_state.statement, "column_descriptions", ())
                    if desc.get("entity") is not None
                }
                scoped = sorted(e for e in entities if interceptor.is_scoped_model(e))
                if scoped:
                    raise TenantContextMissingError(scoped[0])
            return
        if not context.is_scoped:
            return

        school_id = context.school_id
        for model in models:
            execute_state.statement = execute_state.statement.options(
                with_loader_criteria(
                    model,
                    getattr(model, interceptor.tenant_key) == school_id,
                    include_aliases=True,
                )
            )

    @event.listens_for(target, "before_flush")
    def _stamp_new_objects(session: Session, flush_context: Any, instances: Any) -> None:
        context = get_current()
        if context is None or not context.is_scoped:
            return
        interceptor, _ = _bindings[key]
        tenant_key = interceptor.tenant_key
        for obj in session.new:
            if interceptor.is_scoped_model(type(obj).__name__) and not getattr(obj, tenant_key, None):
                setattr(obj, tenant_key, context.school_id)

    logger.info("Tenant scoping hooks enabled: %d protected models", len(models))
