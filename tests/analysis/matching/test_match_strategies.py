"""Tests for the matching phases after pruning."""

import pytest

from entity_matcher.analysis.declaration_tree import DeclarationNode, NodeVariant
from entity_matcher.analysis.entity import (
    Declaration,
    EntityDescriptor,
    EntityKind,
    Location,
    Parameter,
)
from entity_matcher.analysis.matching.match_strategies import (
    assign,
    filter_unchanged,
    fine_match,
    match_by_dice,
    match_by_name,
    match_by_signature,
    match_file_by_dice,
    match_pools_by_dice,
)
from entity_matcher.analysis.matching.match_types import EntityPair, MatchPair


def node(kind, name, container="com.example.Foo", text=None, line=0, variant=None, **declaration):
    descriptor = EntityDescriptor(
        kind,
        name,
        container,
        tuple(p.type for p in declaration.get("parameters", ())),
        Location("src/Foo.java", line, line),
    )
    if variant is None:
        leaf_kinds = (EntityKind.FIELD, EntityKind.METHOD)
        variant = NodeVariant.LEAF if kind in leaf_kinds else NodeVariant.INTERNAL
    return DeclarationNode(
        descriptor, Declaration(text=text or name, **declaration), variant, "src/Foo.java"
    )


def root(*children):
    parent = DeclarationNode(None, Declaration(text=""), NodeVariant.ROOT, "src/Foo.java")
    for child in children:
        parent.add_child(child)
    parent.renumber()
    return parent


def body_method(name, body, container="com.example.Foo", line=0):
    return node(
        EntityKind.METHOD,
        name,
        container,
        text=f"int {name}(int x) {body}",
        line=line,
        body=body,
        type_text="int",
        parameters=(Parameter("int"),),
    )


class TestAssign:
    """Test greedy one-to-one assignment."""

    def test_highest_score_first(self):
        """Test that the best pair claims both nodes."""
        a, b = node(EntityKind.FIELD, "a", line=1), node(EntityKind.FIELD, "b", line=2)
        x, y = node(EntityKind.FIELD, "x", line=1), node(EntityKind.FIELD, "y", line=2)

        selected = assign(
            [EntityPair(a, x, 0.6), EntityPair(a, y, 0.9), EntityPair(b, y, 0.8), EntityPair(b, x, 0.7)]
        )

        assert [(p.before, p.after) for p in selected] == [(a, y), (b, x)]

    def test_ties_broken_by_position(self):
        """Test equal scores are resolved by source position."""
        a, b = node(EntityKind.FIELD, "a", line=1), node(EntityKind.FIELD, "b", line=2)
        x = node(EntityKind.FIELD, "x", line=1)

        selected = assign([EntityPair(b, x, 0.7), EntityPair(a, x, 0.7)])

        assert [(p.before, p.after) for p in selected] == [(a, x)]

    def test_empty(self):
        """Test no proposals select nothing."""
        assert assign([]) == []


class TestMatchBySignature:
    """Test exact signature matching in modified files."""

    def test_same_field_type(self):
        """Test a field with unchanged type is matched."""
        count_1 = node(EntityKind.FIELD, "count", text="int count = 1;", type_text="int")
        count_2 = node(EntityKind.FIELD, "count", text="int count = 2;", type_text="int")
        match_pair = MatchPair()

        assert match_by_signature(match_pair, root(count_1), root(count_2)) == 1
        assert match_pair.matched_entities == [(count_1, count_2)]
        assert count_1.matched and count_2.matched

    def test_changed_field_type(self):
        """Test a field whose type changed is left for Dice matching."""
        count_1 = node(EntityKind.FIELD, "count", type_text="int")
        count_2 = node(EntityKind.FIELD, "count", type_text="long")

        assert match_by_signature(MatchPair(), root(count_1), root(count_2)) == 0

    def test_changed_return_type(self):
        """Test a method with a new return type is not matched exactly."""
        run_1 = node(EntityKind.METHOD, "run", type_text="int")
        run_2 = node(EntityKind.METHOD, "run", type_text="void")

        assert match_by_signature(MatchPair(), root(run_1), root(run_2)) == 0

    def test_changed_type_parameters(self):
        """Test a method with new type parameters is not matched exactly."""
        run_1 = node(EntityKind.METHOD, "run", type_parameters=("T",))
        run_2 = node(EntityKind.METHOD, "run", type_parameters=("T", "U"))

        assert match_by_signature(MatchPair(), root(run_1), root(run_2)) == 0

    def test_constructor(self):
        """Test constructors without return type are matched."""
        ctor_1 = node(EntityKind.METHOD, "Foo", text="Foo() { a(); }")
        ctor_2 = node(EntityKind.METHOD, "Foo", text="Foo() { b(); }")

        assert match_by_signature(MatchPair(), root(ctor_1), root(ctor_2)) == 1

    def test_containers_match_on_descriptor(self):
        """Test types are matched on descriptor equality alone."""
        foo_1 = node(EntityKind.TYPE, "Foo", "com.example", text="class Foo")
        foo_2 = node(EntityKind.TYPE, "Foo", "com.example", text="final class Foo")

        assert match_by_signature(MatchPair(), root(foo_1), root(foo_2)) == 1

    def test_resolved_nodes_skipped(self):
        """Test nodes already paired by pruning are not matched again."""
        count_1 = node(EntityKind.FIELD, "count", type_text="int")
        count_2 = node(EntityKind.FIELD, "count", type_text="int")
        match_pair = MatchPair()
        match_pair.add_unchanged_entity(count_1, count_2)

        assert match_by_signature(match_pair, root(count_1), root(count_2)) == 0


class TestDiceMatching:
    """Test Dice matching per file and across pools."""

    def test_file_candidates_and_leftovers(self):
        """Test similar leaves become candidates and the rest deleted or added."""
        foo = body_method("foo", "{ return x + 1; }", line=1)
        bar = body_method("bar", "{ return x + 1; }", line=1)
        count = node(EntityKind.FIELD, "count", text="private int count;", line=2)
        total = node(EntityKind.FIELD, "total", text="private int total;", line=2)
        match_pair = MatchPair()

        candidates = match_file_by_dice(match_pair, root(foo, count), root(bar, total))

        assert candidates == 1
        assert match_pair.candidate_entities == [(foo, bar)]
        assert match_pair.deleted_entities == [count]
        assert match_pair.added_entities == [total]

    def test_pool_matching_moves_entities(self):
        """Test an entity moved between files is found in the pools."""
        moved_1 = body_method("parse", "{ return x * 2; }")
        moved_2 = body_method("parse", "{ return x * 2; }", container="com.example.Bar")
        match_pair = MatchPair()
        match_pair.add_deleted_entities([moved_1])
        match_pair.add_added_entities([moved_2])

        assert match_pools_by_dice(match_pair) == 1
        assert match_pair.candidate_entities == [(moved_1, moved_2)]
        assert match_pair.deleted_entities == []
        assert match_pair.added_entities == []

    def test_kinds_never_mix(self):
        """Test a field is never proposed for a method."""
        count = node(EntityKind.FIELD, "run", text="int run;")
        run = node(EntityKind.METHOD, "run", text="int run;")
        match_pair = MatchPair()

        assert match_file_by_dice(match_pair, root(count), root(run)) == 0


class TestFineMatch:
    """Test the fine-matching fixpoint."""

    def test_stable_candidates_promoted(self):
        """Test candidates are promoted once the assignment is stable."""
        foo = body_method("foo", "{ return x + 1; }")
        bar = body_method("bar", "{ return x + 1; }")
        match_pair = MatchPair()
        match_pair.add_candidate_entity(foo, bar)

        iterations = fine_match(match_pair)

        assert iterations == 1
        assert match_pair.matched_entities == [(foo, bar)]
        assert match_pair.candidate_entities == []

    def test_better_pair_replaces_candidate(self):
        """Test a deleted entity can take over a weaker candidate's partner."""
        weak = body_method("weak", "{ return x + 1; }", line=1)
        strong = body_method("strong", "{ return y - 2; }", line=2)
        target = body_method("target", "{ return y - 2; }", line=1)
        match_pair = MatchPair()
        match_pair.add_candidate_entity(weak, target)
        match_pair.add_deleted_entities([strong])

        iterations = fine_match(match_pair)

        assert iterations == 2
        assert match_pair.matched_entities == [(strong, target)]
        assert match_pair.deleted_entities == [weak]

    def test_iteration_cap(self):
        """Test the loop stops at the cap and still promotes."""
        weak = body_method("weak", "{ return x + 1; }", line=1)
        strong = body_method("strong", "{ return y - 2; }", line=2)
        target = body_method("target", "{ return y - 2; }", line=1)
        match_pair = MatchPair()
        match_pair.add_candidate_entity(weak, target)
        match_pair.add_deleted_entities([strong])

        assert fine_match(match_pair, max_iterations=1) == 1
        assert match_pair.matched_entities == [(strong, target)]

    def test_nothing_to_do(self):
        """Test an empty state converges immediately."""
        assert fine_match(MatchPair()) == 1


class TestHeuristicMatching:
    """Test name and Dice fallbacks."""

    def test_match_by_name(self):
        """Test same-entity pairs left in the pools are matched."""
        count_1 = node(EntityKind.FIELD, "count", type_text="int", text="int count;")
        count_2 = node(EntityKind.FIELD, "count", type_text="long", text="long count = 0L;")
        match_pair = MatchPair()
        match_pair.add_deleted_entities([count_1])
        match_pair.add_added_entities([count_2])

        assert match_by_name(match_pair) == 1
        assert match_pair.matched_entities == [(count_1, count_2)]
        assert match_pair.deleted_entities == []
        assert match_pair.added_entities == []

    def test_enum_unit_match(self):
        """Test same-named enums in different packages match through their members."""
        enum_1 = node(EntityKind.ENUM, "Color", "com.old")
        enum_2 = node(EntityKind.ENUM, "Color", "com.new")
        red_1 = node(EntityKind.ENUM_CONSTANT, "RED", "com.old.Color", variant=NodeVariant.LEAF)
        red_2 = node(EntityKind.ENUM_CONSTANT, "RED", "com.new.Color", variant=NodeVariant.LEAF)
        value_1 = node(EntityKind.METHOD, "value", "com.old.Color")
        value_2 = node(EntityKind.METHOD, "value", "com.new.Color")
        for parent, children in ((enum_1, [red_1, value_1]), (enum_2, [red_2, value_2])):
            for child in children:
                parent.add_child(child)
        match_pair = MatchPair()
        match_pair.add_matched_entity(red_1, red_2)
        match_pair.add_matched_entity(value_1, value_2)
        match_pair.add_deleted_entities([enum_1])
        match_pair.add_added_entities([enum_2])

        assert match_by_name(match_pair) == 1
        assert (enum_1, enum_2) in match_pair.matched_entities

    def test_enum_with_unresolved_member_not_matched(self):
        """Test an enum whose members are not all resolved stays unmatched."""
        enum_1 = node(EntityKind.ENUM, "Color", "com.old")
        enum_2 = node(EntityKind.ENUM, "Color", "com.new")
        enum_1.add_child(node(EntityKind.METHOD, "value", "com.old.Color"))
        enum_2.add_child(node(EntityKind.METHOD, "value", "com.new.Color"))
        match_pair = MatchPair()
        match_pair.add_deleted_entities([enum_1])
        match_pair.add_added_entities([enum_2])

        assert match_by_name(match_pair) == 0

    def test_match_by_dice_requires_high_score(self):
        """Test only pairs above the heuristic threshold are matched."""
        foo = body_method("foo", "{ return x + 1; }")
        bar = body_method("bar", "{ return x + 1; }")
        count = node(EntityKind.FIELD, "count", text="private int count;")
        total = node(EntityKind.FIELD, "total", text="private int total;")
        match_pair = MatchPair()
        match_pair.add_deleted_entities([foo, count])
        match_pair.add_added_entities([bar, total])

        assert match_by_dice(match_pair) == 1
        assert match_pair.matched_entities == [(foo, bar)]
        assert match_pair.deleted_entities == [count]

    def test_marker_types_matched(self):
        """Test trivial public top-level types in one package are matched."""
        tag_1 = node(
            EntityKind.TYPE, "Tag", "com.example", text="public class Tag {}", modifiers=("public",)
        )
        mark_2 = node(
            EntityKind.TYPE, "Mark", "com.example", text="public class Mark {}", modifiers=("public",)
        )
        roots = [root(tag_1), root(mark_2)]
        assert [r.children for r in roots] == [[tag_1], [mark_2]]
        match_pair = MatchPair()
        match_pair.add_deleted_entities([tag_1])
        match_pair.add_added_entities([mark_2])

        assert match_by_dice(match_pair) == 1
        assert match_pair.matched_entities == [(tag_1, mark_2)]

    @pytest.mark.parametrize("modifiers", [(), ("public",)])
    def test_marker_types_need_same_namespace(self, modifiers):
        """Test marker types in different packages are not matched."""
        tag_1 = node(EntityKind.TYPE, "Tag", "com.a", text="class Tag {}", modifiers=modifiers)
        mark_2 = node(EntityKind.TYPE, "Mark", "com.b", text="class Mark {}", modifiers=modifiers)
        roots = [root(tag_1), root(mark_2)]
        assert [r.children for r in roots] == [[tag_1], [mark_2]]
        match_pair = MatchPair()
        match_pair.add_deleted_entities([tag_1])
        match_pair.add_added_entities([mark_2])

        assert match_by_dice(match_pair) == 0


class TestFilterUnchanged:
    """Test the final filtering of matched pairs."""

    def test_identical_text_and_namespace(self):
        """Test identical matched pairs become unchanged."""
        count_1 = node(EntityKind.FIELD, "count", text="int count;")
        count_2 = node(EntityKind.FIELD, "count", text="int count;")
        match_pair = MatchPair()
        match_pair.add_matched_entity(count_1, count_2)

        assert filter_unchanged(match_pair) == 1
        assert match_pair.unchanged_entities == [(count_1, count_2)]
        assert match_pair.matched_entities == []

    def test_moved_entity_stays_matched(self):
        """Test an identical entity in another namespace stays matched."""
        run_1 = node(EntityKind.METHOD, "run", "com.example.Old", text="void run() {}")
        run_2 = node(EntityKind.METHOD, "run", "com.example.New", text="void run() {}")
        match_pair = MatchPair()
        match_pair.add_matched_entity(run_1, run_2)

        assert filter_unchanged(match_pair) == 0
        assert match_pair.matched_entities == [(run_1, run_2)]
