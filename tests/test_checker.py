"""Tests for NominalConnectionChecker driven through the in-memory workspace."""

import itertools

import pytest

from nominalcheck import (
    ArityError,
    ConnectionCheckError,
    GenericBindingError,
    NominalConnectionChecker,
    NotInitializedError,
    TypeSyntaxError,
    UndefinedTypeError,
    Workspace,
)

_ids = itertools.count()


def new_id(role: str = "block") -> str:
    return f"{role}{next(_ids)}"


def outer(workspace, check: str):
    """An input on a block with no output: the top of a chain."""
    return workspace.new_block(new_id("outer"), inputs={"input1": check}).inputs[
        "input1"
    ]


def inner(workspace, check: str):
    """The output of a block with no inputs: the bottom of a chain."""
    return workspace.new_block(new_id("inner"), output=check).output


def main(workspace, check: str, *inputs: str):
    """A block with an output and one input per extra check (default: same)."""
    names = inputs or (check,)
    return workspace.new_block(
        new_id("main"),
        output=check,
        inputs={f"in{i}": c for i, c in enumerate(names, start=1)},
    )


class TestTwoBlocks:
    """A parent slot and a child slot with nothing else attached."""

    @pytest.fixture(params=["value", "statement"])
    def pair(self, request, workspace):
        def make(parent_check: str, child_check: str):
            if request.param == "value":
                return outer(workspace, parent_check), inner(workspace, child_check)
            parent = workspace.new_block(new_id(), next=parent_check).next
            child = workspace.new_block(new_id(), previous=child_check).previous
            return parent, child

        return make

    @pytest.mark.parametrize(
        ("parent", "child"),
        [
            ("dog", "dog"),
            ("mammal", "dog"),
            ("animal", "dog"),
            ("flyinganimal", "bat"),
            ("mammal", "bat"),
            ("getterlist(animal)", "getterlist(dog)"),
            ("getterlist(animal)", "list(dog)"),
            ("adderlist(dog)", "adderlist(animal)"),
            ("adderlist(dog)", "list(animal)"),
            ("dict(dog, cat)", "dict(dog, cat)"),
            ("t", "dog"),
            ("dog", "t"),
            ("list(t)", "list(dog)"),
            ("list(dog)", "list(t)"),
        ],
    )
    def test_compatible(self, pair, parent: str, child: str) -> None:
        parent_slot, child_slot = pair(parent, child)
        assert parent_slot.connect(child_slot)
        assert parent_slot.peer is child_slot

    @pytest.mark.parametrize(
        ("parent", "child"),
        [
            ("dog", "mammal"),
            ("dog", "cat"),
            ("animal", "random"),
            ("getterlist(dog)", "getterlist(animal)"),
            ("adderlist(animal)", "adderlist(dog)"),
            ("list(animal)", "list(dog)"),
            ("list(dog)", "getterlist(dog)"),
            ("dict(dog, cat)", "dict(cat, dog)"),
        ],
    )
    def test_incompatible(self, pair, parent: str, child: str) -> None:
        parent_slot, child_slot = pair(parent, child)
        assert not parent_slot.connect(child_slot)
        assert parent_slot.peer is None
        assert child_slot.peer is None

    def test_order_does_not_matter(self, checker, pair) -> None:
        parent_slot, child_slot = pair("mammal", "dog")
        assert checker.check(parent_slot, child_slot)
        assert checker.check(child_slot, parent_slot)

    def test_idempotent(self, checker, pair) -> None:
        parent_slot, child_slot = pair("getterlist(dog)", "list(cat)")
        first = checker.check(parent_slot, child_slot)
        assert checker.check(parent_slot, child_slot) == first

    def test_covariant_list_scenario(self, pair) -> None:
        """A list of mammals may not stand in for a list of dogs."""
        parent_slot, child_slot = pair("getterlist(dog)", "getterlist(mammal)")
        assert not parent_slot.connect(child_slot)
        parent_slot, child_slot = pair("getterlist(mammal)", "getterlist(dog)")
        assert parent_slot.connect(child_slot)


class TestLookAhead:
    """Connecting below a generic block must keep the chain above well typed."""

    def test_blocked_by_outer(self, workspace) -> None:
        outer_in = outer(workspace, "dog")
        block = main(workspace, "t")
        assert outer_in.connect(block.output)
        assert not block.inputs["in1"].connect(inner(workspace, "cat"))

    def test_allowed_by_outer(self, workspace) -> None:
        outer_in = outer(workspace, "mammal")
        block = main(workspace, "t")
        assert outer_in.connect(block.output)
        assert block.inputs["in1"].connect(inner(workspace, "dog"))

    def test_outer_connected_last(self, workspace) -> None:
        block = main(workspace, "t")
        assert block.inputs["in1"].connect(inner(workspace, "cat"))
        assert not outer(workspace, "dog").connect(block.output)
        assert outer(workspace, "mammal").connect(block.output)

    def test_deep_chain(self, workspace) -> None:
        outer_in = outer(workspace, "dog")
        top = main(workspace, "t")
        middle = main(workspace, "t")
        assert outer_in.connect(top.output)
        assert top.inputs["in1"].connect(middle.output)
        assert not middle.inputs["in1"].connect(inner(workspace, "cat"))
        assert middle.inputs["in1"].connect(inner(workspace, "dog"))

    def test_parameterised_chain(self, workspace) -> None:
        outer_in = outer(workspace, "getterlist(mammal)")
        block = main(workspace, "getterlist(t)", "t")
        assert outer_in.connect(block.output)
        assert block.inputs["in1"].connect(inner(workspace, "dog"))
        other = main(workspace, "getterlist(t)", "t")
        assert outer(workspace, "getterlist(mammal)").connect(other.output)
        assert not other.inputs["in1"].connect(inner(workspace, "reptile"))

    def test_unbound_inner_generic(self, workspace) -> None:
        outer_in = outer(workspace, "dog")
        block = main(workspace, "t")
        assert outer_in.connect(block.output)
        assert block.inputs["in1"].connect(inner(workspace, "t"))

    def test_inputs_must_unify_when_output_exists(self, workspace) -> None:
        block = main(workspace, "t", "t", "t")
        assert block.inputs["in1"].connect(inner(workspace, "dog"))
        assert not block.inputs["in2"].connect(inner(workspace, "random"))
        assert block.inputs["in2"].connect(inner(workspace, "cat"))

    def test_inputs_unchecked_without_output(self, workspace) -> None:
        block = workspace.new_block("sink", inputs={"in1": "t", "in2": "t"})
        assert block.inputs["in1"].connect(inner(workspace, "dog"))
        assert block.inputs["in2"].connect(inner(workspace, "random"))


class TestExplicitTypes:
    """Tests for get_explicit_types and get_explicit_types_of_connection."""

    def test_unbound(self, checker, workspace) -> None:
        block = main(workspace, "t")
        assert checker.get_explicit_types(block, "t") == []

    def test_unified_inputs(self, checker, workspace) -> None:
        block = workspace.new_block("n", inputs={"in1": "t", "in2": "t"})
        block.inputs["in1"].connect(inner(workspace, "dog"))
        block.inputs["in2"].connect(inner(workspace, "cat"))
        assert checker.get_explicit_types(block, "t") == ["mammal"]
        assert checker.get_explicit_types(block, "T") == ["mammal"]

    def test_inputs_that_cannot_unify(self, checker, workspace) -> None:
        block = workspace.new_block("n", inputs={"in1": "t", "in2": "t"})
        block.inputs["in1"].connect(inner(workspace, "dog"))
        block.inputs["in2"].connect(inner(workspace, "random"))
        assert checker.get_explicit_types(block, "t") == []

    def test_outer_and_inner(self, checker, workspace) -> None:
        block = main(workspace, "t")
        outer(workspace, "mammal").connect(block.output)
        block.inputs["in1"].connect(inner(workspace, "dog"))
        assert checker.get_explicit_types(block, "t") == ["mammal"]

    def test_flows_down_from_outer(self, checker, workspace) -> None:
        block = main(workspace, "t")
        leaf = inner(workspace, "t")
        outer(workspace, "dog").connect(block.output)
        block.inputs["in1"].connect(leaf)
        assert checker.get_explicit_types(leaf.node, "t") == ["dog"]

    def test_flows_across_siblings(self, checker, workspace) -> None:
        block = main(workspace, "t", "t", "t", "t")
        leaf = inner(workspace, "t")
        block.inputs["in1"].connect(inner(workspace, "dog"))
        block.inputs["in2"].connect(inner(workspace, "cat"))
        block.inputs["in3"].connect(leaf)
        assert checker.get_explicit_types(leaf.node, "t") == ["mammal"]

    def test_matched_in_parent(self, checker, workspace) -> None:
        """list(t) plugged into getterlist(dog) binds t to dog."""
        leaf = inner(workspace, "list(t)")
        outer(workspace, "getterlist(dog)").connect(leaf)
        assert checker.get_explicit_types(leaf.node, "t") == ["dog"]

    def test_matched_in_invariant_parent(self, checker, workspace) -> None:
        leaf = inner(workspace, "list(t)")
        assert outer(workspace, "list(dog)").connect(leaf)
        assert checker.get_explicit_types(leaf.node, "t") == ["dog"]

    def test_matched_in_child(self, checker, workspace) -> None:
        block = workspace.new_block(
            "n", output="dict(a, b)", inputs={"in1": "getterlist(a)"}
        )
        assert block.inputs["in1"].connect(inner(workspace, "list(dog)"))
        assert checker.get_explicit_types(block, "a") == ["dog"]
        assert checker.get_explicit_types(block, "b") == []

    def test_of_connection_partially_bound(self, checker, workspace) -> None:
        block = workspace.new_block(
            "n", output="dict(a, b)", inputs={"in1": "getterlist(a)"}
        )
        block.inputs["in1"].connect(inner(workspace, "list(dog)"))
        assert checker.get_explicit_types_of_connection(block.output) == [
            "dict(dog, *)",
        ]

    def test_of_connection_explicit(self, checker, workspace) -> None:
        slot = inner(workspace, "Dict[Dog, Cat]")
        assert checker.get_explicit_types_of_connection(slot) == ["dict(dog, cat)"]

    def test_of_connection_unbound(self, checker, workspace) -> None:
        slot = inner(workspace, "list(t)")
        assert checker.get_explicit_types_of_connection(slot) == ["list(*)"]


class TestBindings:
    """Tests for external bindings."""

    def test_bound_type_is_explicit(self, checker, workspace) -> None:
        block = main(workspace, "t")
        checker.bind_type(block, "T", "Dog")
        assert checker.get_explicit_types(block, "t") == ["dog"]

    def test_binding_shadows_connections(self, checker, workspace) -> None:
        block = workspace.new_block("n", inputs={"in1": "t"})
        block.inputs["in1"].connect(inner(workspace, "cat"))
        checker.bind_type(block, "t", "mammal")
        assert checker.get_explicit_types(block, "t") == ["mammal"]

    def test_bound_parent_rejects(self, checker, workspace) -> None:
        block = workspace.new_block("n", inputs={"in1": "t"})
        checker.bind_type(block, "t", "random")
        assert not block.inputs["in1"].connect(inner(workspace, "dog"))

    def test_bound_nested_parent(self, checker, workspace) -> None:
        block = workspace.new_block("n", inputs={"in1": "getterlist(t)"})
        checker.bind_type(block, "t", "mammal")
        assert block.inputs["in1"].connect(inner(workspace, "list(dog)"))
        other = workspace.new_block("m", inputs={"in1": "getterlist(t)"})
        checker.bind_type(other, "t", "mammal")
        assert not other.inputs["in1"].connect(inner(workspace, "list(reptile)"))

    def test_unbind(self, checker, workspace) -> None:
        block = main(workspace, "t")
        checker.bind_type(block, "t", "dog")
        assert checker.unbind_type(block, "T")
        assert not checker.unbind_type(block, "t")
        assert checker.get_explicit_types(block, "t") == []

    def test_unbind_never_bound(self, checker, workspace) -> None:
        assert not checker.unbind_type(main(workspace, "t"), "t")

    def test_rebinding_drops_bad_connections(self, workspace, checker) -> None:
        outer_in = outer(workspace, "mammal")
        block = main(workspace, "t")
        cat_out = inner(workspace, "cat")
        outer_in.connect(block.output)
        block.inputs["in1"].connect(cat_out)

        checker.bind_type(block, "t", "dog")

        assert block.output.peer is outer_in
        assert block.inputs["in1"].peer is None
        assert cat_out.peer is None

    def test_rebinding_keeps_good_connections(self, workspace, checker) -> None:
        outer_in = outer(workspace, "mammal")
        block = main(workspace, "t")
        cat_out = inner(workspace, "cat")
        outer_in.connect(block.output)
        block.inputs["in1"].connect(cat_out)

        checker.bind_type(block, "t", "cat")

        assert block.output.peer is outer_in
        assert block.inputs["in1"].peer is cat_out

    def test_binding_unifies_through_siblings(self, checker, workspace) -> None:
        block = main(workspace, "t", "t", "t", "t")
        leaf = inner(workspace, "t")
        checker.bind_type(block, "t", "mammal")
        assert block.inputs["in1"].connect(inner(workspace, "dog"))
        assert block.inputs["in2"].connect(inner(workspace, "cat"))
        assert block.inputs["in3"].connect(leaf)
        checker.unbind_type(block, "t")
        assert checker.get_explicit_types(leaf.node, "t") == ["mammal"]

    def test_generic_target_rejected(self, checker, workspace) -> None:
        with pytest.raises(GenericBindingError):
            checker.bind_type(main(workspace, "t"), "t", "list(a)")

    def test_generic_name_must_be_single_character(self, checker, workspace) -> None:
        with pytest.raises(GenericBindingError):
            checker.bind_type(main(workspace, "t"), "tt", "dog")

    def test_malformed_target(self, checker, workspace) -> None:
        with pytest.raises(TypeSyntaxError):
            checker.bind_type(main(workspace, "t"), "t", "list(")

    @pytest.mark.parametrize(
        ("target", "cause"),
        [
            ("Number", UndefinedTypeError),
            ("list(number)", UndefinedTypeError),
            ("dict(dog)", ArityError),
        ],
    )
    def test_invalid_target_changes_nothing(
        self, checker, workspace, target: str, cause: type
    ) -> None:
        top = outer(workspace, "animal")
        block = main(workspace, "t")
        dog_out = inner(workspace, "dog")
        block.inputs["in1"].connect(dog_out)
        top.connect(block.output)

        with pytest.raises(cause):
            checker.bind_type(block, "t", target)

        assert block.output.peer is top
        assert block.inputs["in1"].peer is dog_out
        assert not checker.unbind_type(block, "t")
        assert checker.get_explicit_types(block, "t") == ["animal"]

    def test_rebinding_remakes_every_connection(self, checker, workspace) -> None:
        """A connection that fails to remake does not stop the others."""
        block = main(workspace, "t", "t", "t")
        dog_out = inner(workspace, "dog")
        broken_out = inner(workspace, "unicorn")
        block.inputs["in2"].connect(dog_out)
        block.inputs["in1"].peer = broken_out
        broken_out.peer = block.inputs["in1"]

        with pytest.raises(ConnectionCheckError):
            checker.bind_type(block, "t", "dog")

        assert block.inputs["in1"].peer is None
        assert block.inputs["in2"].peer is dog_out

    def test_delete_block_forgets_bindings(self, checker, workspace) -> None:
        block = main(workspace, "t")
        checker.bind_type(block, "t", "dog")
        workspace.delete_block(block)
        assert checker.get_explicit_types(block, "t") == []
        assert not checker.unbind_type(block, "t")


class TestErrors:
    """Faults reach the host wrapped in ConnectionCheckError."""

    @pytest.mark.parametrize(
        ("check", "cause"),
        [
            ("unicorn", UndefinedTypeError),
            ("list(unicorn)", UndefinedTypeError),
            ("list", ArityError),
            ("dict(dog)", ArityError),
            ("list(", TypeSyntaxError),
        ],
    )
    def test_check_wraps(self, workspace, check: str, cause: type) -> None:
        outer_in = outer(workspace, "animal")
        with pytest.raises(ConnectionCheckError) as exc_info:
            outer_in.connect(inner(workspace, check))
        assert isinstance(exc_info.value.wrapped, cause)
        assert isinstance(exc_info.value.__cause__, cause)
        assert "input1" in str(exc_info.value)

    def test_explicit_types_of_connection_wraps(self, checker, workspace) -> None:
        slot = inner(workspace, "list(")
        with pytest.raises(ConnectionCheckError) as exc_info:
            checker.get_explicit_types_of_connection(slot)
        assert isinstance(exc_info.value.wrapped, TypeSyntaxError)

    def test_not_initialized(self) -> None:
        checker = NominalConnectionChecker()
        workspace = Workspace(checker)
        with pytest.raises(NotInitializedError):
            _ = checker.hierarchy
        with pytest.raises(ConnectionCheckError) as exc_info:
            outer(workspace, "dog").connect(inner(workspace, "dog"))
        assert isinstance(exc_info.value.wrapped, NotInitializedError)
        with pytest.raises(ConnectionCheckError):
            checker.get_explicit_types(main(workspace, "t"), "t")

    def test_init_later(self) -> None:
        checker = NominalConnectionChecker()
        workspace = Workspace(checker)
        checker.init({"Animal": {}, "Dog": {"fulfills": ["Animal"]}})
        assert outer(workspace, "animal").connect(inner(workspace, "dog"))

    def test_reload_drops_bindings(self, checker, workspace) -> None:
        block = main(workspace, "t")
        checker.bind_type(block, "t", "dog")
        checker.init({"Animal": {}, "Dog": {"fulfills": ["Animal"]}})
        assert checker.get_explicit_types(block, "t") == []
        assert not checker.unbind_type(block, "t")

    def test_failed_reload_keeps_bindings(self, checker, workspace) -> None:
        block = main(workspace, "t")
        checker.bind_type(block, "t", "dog")
        with pytest.raises(UndefinedTypeError):
            checker.init({"typeA": {"fulfills": ["typeB"]}})
        assert checker.get_explicit_types(block, "t") == ["dog"]

    def test_load_errors_not_wrapped(self) -> None:
        with pytest.raises(UndefinedTypeError):
            NominalConnectionChecker({"typeA": {"fulfills": ["typeB"]}})
