"""Tests for educore.multitenancy.interceptor - query call rewriting."""

from __future__ import annotations

import copy

import pytest

from educore.multitenancy import (
    TENANT_SCOPED_MODELS,
    CrossTenantAccessError,
    QueryAction,
    QueryCall,
    QueryInterceptor,
    TenantContext,
    TenantContextMissingError,
    TenantScope,
)

CTX_A = TenantContext(school_id="school-A", user_id="user-1")
SUPER = TenantContext(school_id="school-A", is_super_admin=True, user_id="root")
SUPER_NO_SCHOOL = TenantContext(is_super_admin=True, user_id="root")


@pytest.fixture
def interceptor() -> QueryInterceptor:
    return QueryInterceptor()


# ===========================================================================
# QueryAction / QueryCall
# ===========================================================================

class TestQueryAction:
    def test_values_are_snake_case(self):
        assert QueryAction.FIND_MANY == "find_many"
        assert QueryAction.CREATE_MANY == "create_many"
        assert QueryAction.DELETE_MANY == "delete_many"

    def test_reads(self):
        reads = {a for a in QueryAction if a.is_read}
        assert reads == {
            QueryAction.FIND_MANY,
            QueryAction.FIND_FIRST,
            QueryAction.FIND_UNIQUE,
            QueryAction.COUNT,
            QueryAction.AGGREGATE,
        }

    def test_mutations(self):
        mutations = {a for a in QueryAction if a.is_mutation}
        assert mutations == {
            QueryAction.UPDATE,
            QueryAction.UPDATE_MANY,
            QueryAction.DELETE,
            QueryAction.DELETE_MANY,
        }
        assert not QueryAction.CREATE.is_mutation


class TestQueryCall:
    def test_action_coerced_from_string(self):
        call = QueryCall("Learner", "find_many")
        assert call.action is QueryAction.FIND_MANY

    def test_unknown_action_rejected(self):
        with pytest.raises(ValueError):
            QueryCall("Learner", "upsert")

    def test_to_dict(self):
        call = QueryCall("Learner", QueryAction.COUNT, where={"grade": "4"})
        assert call.to_dict() == {
            "entity": "Learner",
            "action": "count",
            "where": {"grade": "4"},
            "data": None,
            "options": {},
        }


# ===========================================================================
# Allow-list
# ===========================================================================

class TestScopedModels:
    def test_allow_list_contents(self):
        assert len(TENANT_SCOPED_MODELS) == 21
        for name in ("Learner", "Attendance", "FeeInvoice", "Branch", "User",
                     "CoreCompetency", "TermConfig", "AdmissionSequence"):
            assert name in TENANT_SCOPED_MODELS

    def test_school_is_not_scoped(self, interceptor):
        assert not interceptor.is_scoped_model("School")

    def test_none_entity_is_not_scoped(self, interceptor):
        assert not interceptor.is_scoped_model(None)
        assert not interceptor.is_scoped_model("")


# ===========================================================================
# Reads
# ===========================================================================

class TestReadRewriting:
    @pytest.mark.parametrize("action", [
        "find_many", "find_first", "find_unique", "count", "aggregate",
    ])
    def test_read_gets_school_filter(self, interceptor, action):
        call = QueryCall("Learner", action, where={"grade": "GRADE_4"})
        out = interceptor.apply(call, CTX_A)
        assert out.where == {"grade": "GRADE_4", "school_id": "school-A"}

    def test_missing_where_becomes_filter(self, interceptor):
        out = interceptor.apply(QueryCall("Attendance", "find_many"), CTX_A)
        assert out.where == {"school_id": "school-A"}

    def test_options_pass_through(self, interceptor):
        call = QueryCall("Learner", "find_many", where={}, options={"take": 10})
        out = interceptor.apply(call, CTX_A)
        assert out.options == {"take": 10}

    def test_uses_current_context_by_default(self, interceptor):
        with TenantScope(CTX_A):
            out = interceptor.apply(QueryCall("Learner", "count"))
        assert out.where == {"school_id": "school-A"}


# ===========================================================================
# Writes
# ===========================================================================

class TestWriteRewriting:
    def test_create_stamps_data(self, interceptor):
        call = QueryCall("Learner", "create", data={"first_name": "Achieng"})
        out = interceptor.apply(call, CTX_A)
        assert out.data == {"first_name": "Achieng", "school_id": "school-A"}
        assert out.where is None

    def test_create_many_stamps_every_item(self, interceptor):
        call = QueryCall("Attendance", "create_many",
                         data=[{"learner_id": "l1"}, {"learner_id": "l2"}])
        out = interceptor.apply(call, CTX_A)
        assert out.data == [
            {"learner_id": "l1", "school_id": "school-A"},
            {"learner_id": "l2", "school_id": "school-A"},
        ]

    def test_create_many_with_non_list_data_unchanged(self, interceptor):
        call = QueryCall("Attendance", "create_many", data={"learner_id": "l1"})
        assert interceptor.apply(call, CTX_A) is call

    @pytest.mark.parametrize("action", ["update", "update_many", "delete", "delete_many"])
    def test_mutations_filter_where_only(self, interceptor, action):
        call = QueryCall("FeeInvoice", action, where={"id": "inv-1"}, data={"status": "PAID"})
        out = interceptor.apply(call, CTX_A)
        assert out.where == {"id": "inv-1", "school_id": "school-A"}
        assert out.data == {"status": "PAID"}

    def test_create_falsy_school_id_overwritten(self, interceptor):
        call = QueryCall("Learner", "create", data={"school_id": "", "first_name": "X"})
        out = interceptor.apply(call, CTX_A)
        assert out.data["school_id"] == "school-A"


# ===========================================================================
# Pass-through
# ===========================================================================

class TestPassThrough:
    def test_unscoped_model_unchanged(self, interceptor):
        call = QueryCall("School", "find_many", where={"active": True})
        assert interceptor.apply(call, CTX_A) is call

    def test_super_admin_bypasses(self, interceptor):
        call = QueryCall("Learner", "find_many", where={"grade": "GRADE_4"})
        out = interceptor.apply(call, SUPER)
        assert out is call
        assert out.where == {"grade": "GRADE_4"}

    def test_super_admin_create_not_stamped(self, interceptor):
        call = QueryCall("Learner", "create", data={"first_name": "X"})
        assert interceptor.apply(call, SUPER_NO_SCHOOL).data == {"first_name": "X"}

    def test_no_context_passes_through(self, interceptor):
        call = QueryCall("Learner", "find_many", where={})
        assert interceptor.apply(call) is call

    def test_context_without_school_passes_through(self, interceptor):
        call = QueryCall("Learner", "find_many", where={})
        assert interceptor.apply(call, TenantContext(user_id="u")) is call


# ===========================================================================
# Invariants
# ===========================================================================

class TestInvariants:
    def test_idempotent(self, interceptor):
        call = QueryCall("Learner", "find_many", where={"grade": "GRADE_4"})
        once = interceptor.apply(call, CTX_A)
        twice = interceptor.apply(once, CTX_A)
        assert twice.where == once.where

    def test_does_not_mutate_caller_containers(self, interceptor):
        where = {"grade": "GRADE_4"}
        items = [{"learner_id": "l1"}]
        interceptor.apply(QueryCall("Learner", "find_many", where=where), CTX_A)
        interceptor.apply(QueryCall("Attendance", "create_many", data=items), CTX_A)
        assert where == {"grade": "GRADE_4"}
        assert items == [{"learner_id": "l1"}]

    def test_explicit_school_id_preserved_by_default(self, interceptor):
        call = QueryCall("Learner", "find_many", where={"school_id": "school-B"})
        out = interceptor.apply(call, CTX_A)
        assert out.where == {"school_id": "school-B"}

    def test_original_call_untouched(self, interceptor):
        call = QueryCall("Learner", "find_many", where={"grade": "GRADE_4"})
        snapshot = copy.deepcopy(call.to_dict())
        interceptor.apply(call, CTX_A)
        assert call.to_dict() == snapshot

    def test_tenant_filter(self, interceptor):
        assert interceptor.tenant_filter("Learner", CTX_A) == {"school_id": "school-A"}
        assert interceptor.tenant_filter("School", CTX_A) == {}
        assert interceptor.tenant_filter("Learner", SUPER) == {}


# ===========================================================================
# Strict and mismatch modes
# ===========================================================================

class TestStrictModes:
    def test_strict_raises_without_context(self):
        strict = QueryInterceptor(strict=True)
        with pytest.raises(TenantContextMissingError, match="Learner"):
            strict.apply(QueryCall("Learner", "find_many"))

    def test_strict_allows_unscoped_model(self):
        strict = QueryInterceptor(strict=True)
        call = QueryCall("School", "find_many")
        assert strict.apply(call) is call

    def test_strict_still_lets_super_admin_through(self):
        strict = QueryInterceptor(strict=True)
        call = QueryCall("Learner", "find_many")
        assert strict.apply(call, SUPER_NO_SCHOOL) is call

    def test_reject_mismatch(self):
        guarded = QueryInterceptor(reject_mismatch=True)
        call = QueryCall("Learner", "find_many", where={"school_id": "school-B"})
        with pytest.raises(CrossTenantAccessError) as exc_info:
            guarded.apply(call, CTX_A)
        assert exc_info.value.requested == "school-B"
        assert exc_info.value.active == "school-A"

    def test_reject_mismatch_accepts_matching_school(self):
        guarded = QueryInterceptor(reject_mismatch=True)
        call = QueryCall("Learner", "create", data={"school_id": "school-A"})
        assert guarded.apply(call, CTX_A).data == {"school_id": "school-A"}

    def test_from_settings(self):
        from educore.config.settings import Settings

        built = QueryInterceptor.from_settings(
            Settings(TENANT_STRICT_MODE=True, TENANT_REJECT_MISMATCH=True)
        )
        assert built.strict is True
        assert built.reject_mismatch is True
        assert built.tenant_key == "school_id"
