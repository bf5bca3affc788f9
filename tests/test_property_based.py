"""Property-based tests using hypothesis."""

from hypothesis import given
from hypothesis import strategies as st

from entrasync.entra.client import chunked
from entrasync.entra.reconcile import diff, plan_additive, plan_full_reconcile

object_id = st.text(alphabet="0123456789abcdef", min_size=1, max_size=8)
id_sets = st.frozensets(object_id, max_size=40)


class TestDiffProperties:
    """Property-based tests for membership diffs."""

    @given(desired=id_sets, current=id_sets)
    def test_diff_is_set_difference(self, desired, current):
        plan = diff(desired, current)

        assert plan.to_add == desired - current
        assert plan.to_remove == current - desired

    @given(desired=id_sets, current=id_sets)
    def test_applying_plan_yields_desired(self, desired, current):
        plan = plan_full_reconcile(desired, current)

        assert (current | plan.to_add) - plan.to_remove == desired

    @given(desired=id_sets, current=id_sets)
    def test_plan_invariants(self, desired, current):
        plan = plan_full_reconcile(desired, current)

        assert not (plan.to_add & current)
        assert plan.to_remove <= current
        assert not (plan.to_add & plan.to_remove)

    @given(desired=id_sets, current=id_sets)
    def test_rerun_is_idempotent(self, desired, current):
        plan = plan_full_reconcile(desired, current)
        after = (current | plan.to_add) - plan.to_remove

        assert plan_full_reconcile(desired, after).is_empty

    @given(desired=id_sets, current=id_sets)
    def test_additive_never_removes(self, desired, current):
        plan = plan_additive(desired, current)

        assert plan.to_remove == frozenset()
        assert desired <= current | plan.to_add


class TestChunkedProperties:
    """Property-based tests for batch splitting."""

    @given(ids=st.lists(object_id, max_size=100), size=st.integers(min_value=1, max_value=25))
    def test_batches_preserve_order_and_size(self, ids, size):
        batches = list(chunked(ids, size))

        assert [i for batch in batches for i in batch] == ids
        assert all(1 <= len(batch) <= size for batch in batches)
