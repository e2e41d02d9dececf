import pytest

from services.errors import (
    CircularReferenceError,
    HasChildrenError,
    InUseError,
    StructuralCorruptionError,
)
from services.integrity import check_delete, check_reparent, walk_ancestors


def lookup(parents):
    """Parent lookup over a dict that records every id it was asked about."""
    calls = []

    def parent_of(category_id):
        calls.append(category_id)
        return parents[category_id]

    parent_of.calls = calls
    return parent_of


# 1 -> 2 -> 3 (chain), 4 standalone root
CHAIN = {1: None, 2: 1, 3: 2, 4: None}


class TestCheckReparent:
    """Tests for the reparent decision."""

    def test_move_to_root_always_accepted(self):
        """Test that a None parent is accepted without any reads."""
        parent_of = lookup(CHAIN)

        check_reparent(3, None, parent_of, len(CHAIN))

        assert parent_of.calls == []

    def test_self_parent_rejected(self):
        """Test that a category cannot be its own parent."""
        parent_of = lookup(CHAIN)

        with pytest.raises(CircularReferenceError) as exc_info:
            check_reparent(2, 2, parent_of, len(CHAIN))

        assert exc_info.value.category_id == 2
        assert parent_of.calls == []

    def test_direct_child_as_parent_rejected(self):
        """Test moving a node under its own child."""
        with pytest.raises(CircularReferenceError):
            check_reparent(1, 2, lookup(CHAIN), len(CHAIN))

    def test_indirect_descendant_as_parent_rejected(self):
        """Test moving a node under a grandchild."""
        with pytest.raises(CircularReferenceError):
            check_reparent(1, 3, lookup(CHAIN), len(CHAIN))

    def test_unrelated_parent_accepted(self):
        """Test moving a subtree under another root."""
        check_reparent(2, 4, lookup(CHAIN), len(CHAIN))

    def test_ancestor_as_parent_accepted(self):
        """Test moving a node up to its grandparent."""
        check_reparent(3, 1, lookup(CHAIN), len(CHAIN))

    def test_walk_reads_only_the_ancestor_chain(self):
        """Test that only the proposed parent's ancestors are looked up."""
        parent_of = lookup(CHAIN)

        check_reparent(4, 3, parent_of, len(CHAIN))

        assert parent_of.calls == [3, 2, 1]

    def test_existing_cycle_is_corruption(self):
        """Test that a stored cycle above the proposed parent is fatal, not a loop."""
        parents = {1: 2, 2: 1, 3: None}

        with pytest.raises(StructuralCorruptionError):
            check_reparent(3, 1, lookup(parents), len(parents))

    def test_self_loop_in_store_is_corruption(self):
        """Test a stored category whose parent is itself."""
        parents = {1: 1, 2: None}

        with pytest.raises(StructuralCorruptionError) as exc_info:
            check_reparent(2, 1, lookup(parents), len(parents))

        assert exc_info.value.category_id == 1

    def test_walk_longer_than_node_count_is_corruption(self):
        """Test that the walk is bounded by the number of categories."""
        with pytest.raises(StructuralCorruptionError):
            check_reparent(4, 3, lookup(CHAIN), 2)

    def test_dangling_parent_is_corruption(self):
        """Test an ancestor pointing at a category that does not exist."""
        parents = {1: 99, 2: None}

        with pytest.raises(StructuralCorruptionError):
            check_reparent(2, 1, lookup(parents), len(parents))

    def test_cycle_containing_moving_node_reports_circular(self):
        """Test that reaching the moving node wins over detecting the revisit."""
        parents = {1: 2, 2: 1}

        with pytest.raises(CircularReferenceError):
            check_reparent(1, 2, lookup(parents), len(parents))


class TestCheckDelete:
    """Tests for the delete decision."""

    def test_leaf_without_references_accepted(self):
        check_delete(1, child_count=0, reference_count=0)

    def test_children_rejected(self):
        with pytest.raises(HasChildrenError) as exc_info:
            check_delete(1, child_count=2, reference_count=0)

        assert exc_info.value.kind == "has_children"

    def test_references_rejected(self):
        with pytest.raises(InUseError) as exc_info:
            check_delete(1, child_count=0, reference_count=3)

        assert exc_info.value.kind == "in_use"

    def test_children_checked_before_references(self):
        """Test that a node with both children and references reports children."""
        with pytest.raises(HasChildrenError):
            check_delete(1, child_count=1, reference_count=1)


class TestWalkAncestors:
    """Tests for the full ancestor walk."""

    def test_returns_chain_to_root(self):
        assert walk_ancestors(3, lookup(CHAIN), len(CHAIN)) == [3, 2, 1]

    def test_root_returns_itself(self):
        assert walk_ancestors(4, lookup(CHAIN), len(CHAIN)) == [4]

    def test_cycle_raises(self):
        parents = {1: 2, 2: 3, 3: 1}

        with pytest.raises(StructuralCorruptionError):
            walk_ancestors(1, lookup(parents), len(parents))
