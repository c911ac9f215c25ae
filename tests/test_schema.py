"""Tests for schema aggregation and the lineage walk"""

import pytest

from aggregraph.models import LinkType, NodeType
from aggregraph.services.schema import (
    Resolved,
    Unresolved,
    fuzzy_match,
    normalize_classification,
    resolve_lineage,
    schema_graph,
)

from conftest import assert_links_resolve, assert_neighbors_derived, make_link, make_node


SCHEMA_TABLE = {
    "ROOT": None,
    "ANIMAL": "ROOT",
    "MAMMAL": "ANIMAL",
    "DOG": "MAMMAL",
    "CAT": "MAMMAL",
    "BIRD": "ANIMAL",
    "PLANT": "ROOT",
}


def chain_table(length: int) -> dict[str, str | None]:
    """Helper to build a linear hierarchy L0 -> L1 -> ... -> L{length-1}."""
    table: dict[str, str | None] = {f"L{i}": f"L{i + 1}" for i in range(length - 1)}
    table[f"L{length - 1}"] = None
    return table


@pytest.fixture
def classified_graph():
    """Nodes covering direct, parent, multi-hop, fuzzy and unmapped classifications."""
    nodes = [
        make_node("d1", kind="dog"),
        make_node("b1", kind="Bird "),
        make_node("p1", kind="plant"),
        make_node("u1", kind="xyz"),
        make_node("n1"),
        make_node("f1", kind="doggo"),
    ]
    links = [
        make_link("d1", "p1"),
        make_link("d1", "b1"),
        make_link("p1", "n1"),
        make_link("u1", "p1"),
    ]
    return nodes, links


# =============================================================================
# Lineage walk
# =============================================================================


class TestFuzzyMatch:
    """Test the fuzzy_match function"""

    def test_exact_key_is_kept(self):
        assert fuzzy_match("DOG", SCHEMA_TABLE) == "DOG"

    def test_prefix_substitutes_table_key(self):
        """An unknown key is replaced by a table key sharing its prefix"""
        assert fuzzy_match("DOGGO", SCHEMA_TABLE) == "DOG"

    def test_no_match_returns_key(self):
        assert fuzzy_match("XYZ", SCHEMA_TABLE) == "XYZ"

    def test_first_sorted_key_wins(self):
        """Ties resolve in sorted key order, independent of table order"""
        table = {"CATX": None, "CAT": None}

        assert fuzzy_match("CATS", table) == "CAT"

    def test_spaces_are_stripped_from_table_keys(self):
        table = {"C AT": None}

        assert fuzzy_match("CATS", table) == "C AT"

    def test_empty_table_key_never_matches(self):
        assert fuzzy_match("ANY", {"": None}) == "ANY"


class TestResolveLineage:
    """Test the resolve_lineage function"""

    def test_selected_key_resolves_immediately(self):
        assert resolve_lineage("PLANT", SCHEMA_TABLE, {"PLANT"}) == Resolved("PLANT", 0)

    def test_selected_parent_resolves(self):
        assert resolve_lineage("BIRD", SCHEMA_TABLE, {"ANIMAL"}) == Resolved("ANIMAL", 0)

    def test_walks_up_the_hierarchy(self):
        assert resolve_lineage("DOG", SCHEMA_TABLE, {"ANIMAL"}) == Resolved("ANIMAL", 1)

    def test_fuzzy_key_then_walk(self):
        assert resolve_lineage("DOGGO", SCHEMA_TABLE, {"ANIMAL"}) == Resolved("ANIMAL", 1)

    def test_unknown_key_is_unresolved(self):
        result = resolve_lineage("XYZ", SCHEMA_TABLE, {"ANIMAL"})

        assert isinstance(result, Unresolved)

    def test_resolves_at_the_depth_limit(self):
        """A parent reached on the fifth hop still resolves"""
        result = resolve_lineage("L0", chain_table(10), {"L6"})

        assert result == Resolved("L6", 5)

    def test_gives_up_past_the_depth_limit(self):
        """A label one hop further away is out of budget"""
        result = resolve_lineage("L0", chain_table(10), {"L7"})

        assert isinstance(result, Unresolved)
        assert result.hops <= 5

    def test_cycle_terminates(self):
        """A cyclic table cannot loop forever"""
        result = resolve_lineage("A", {"A": "B", "B": "A"}, {"Z"})

        assert isinstance(result, Unresolved)

    def test_custom_budget(self):
        result = resolve_lineage("L0", chain_table(10), {"L8"}, max_depth=7)

        assert result == Resolved("L8", 7)

    @pytest.mark.parametrize("key", ["", "Q", "DOG", "ROOT", "L3", "ZZZZZZ"])
    def test_always_terminates_with_one_result(self, key):
        table = {**SCHEMA_TABLE, **chain_table(8)}

        result = resolve_lineage(key, table, {"ANIMAL", "L7"})

        assert isinstance(result, (Resolved, Unresolved))
        assert result.hops <= 5


def test_normalize_classification():
    assert normalize_classification("  dog ") == "DOG"


# =============================================================================
# schema_graph
# =============================================================================


class TestSchemaGraph:
    """Test the schema_graph function"""

    def test_empty_graph(self):
        result = schema_graph([], [], ["ANIMAL"], SCHEMA_TABLE, "kind")

        assert result.nodes == []
        assert result.links == []

    def test_nodes_grouped_by_selected_label(self, classified_graph):
        nodes, links = classified_graph

        result = schema_graph(nodes, links, ["ANIMAL", "PLANT"], SCHEMA_TABLE, "kind")

        children = {node.id: node.child_ids for node in result.nodes}
        assert children == {
            "supernodes/ANIMAL": ["d1", "b1", "f1"],
            "supernodes/PLANT": ["p1"],
            "supernodes/Null": ["u1"],
        }

    def test_supernode_shape(self, classified_graph):
        nodes, links = classified_graph

        result = schema_graph(nodes, links, ["PLANT"], SCHEMA_TABLE, "kind")

        plant = result.nodes[0]
        assert plant.type == NodeType.SUPERNODE
        assert plant.get("Label") == "PLANT"
        assert plant.get("_key") == "PLANT"

    def test_every_classified_node_lands_once(self, classified_graph):
        """Each classified node is a child of exactly one supernode"""
        nodes, links = classified_graph

        result = schema_graph(nodes, links, ["MAMMAL", "PLANT"], SCHEMA_TABLE, "kind")

        children = [child for node in result.nodes for child in node.child_ids]
        assert sorted(children) == ["b1", "d1", "f1", "p1", "u1"]

    def test_unclassified_nodes_are_skipped(self, classified_graph):
        """Nodes without a classification value join no supernode"""
        nodes, links = classified_graph

        result = schema_graph(nodes, links, ["ANIMAL", "PLANT"], SCHEMA_TABLE, "kind")

        children = [child for node in result.nodes for child in node.child_ids]
        assert "n1" not in children

    def test_empty_supernodes_are_pruned(self, classified_graph):
        nodes, links = classified_graph

        result = schema_graph(nodes, links, ["ANIMAL", "PLANT", "FUNGUS"], SCHEMA_TABLE, "kind")

        assert "supernodes/FUNGUS" not in result.node_ids()
        assert all(node.child_ids for node in result.nodes)

    def test_catch_all_pruned_when_empty(self):
        nodes = [make_node("d1", kind="dog")]

        result = schema_graph(nodes, [], ["ANIMAL"], SCHEMA_TABLE, "kind")

        assert result.node_ids() == ["supernodes/ANIMAL"]

    def test_selected_catch_all_is_not_duplicated(self):
        nodes = [make_node("u1", kind="xyz")]

        result = schema_graph(nodes, [], ["Null", "ANIMAL"], SCHEMA_TABLE, "kind")

        assert result.node_ids() == ["supernodes/Null"]

    def test_links_between_supernodes_are_kept(self, classified_graph):
        """Only links whose both ends were classified survive"""
        nodes, links = classified_graph

        result = schema_graph(nodes, links, ["ANIMAL", "PLANT"], SCHEMA_TABLE, "kind")

        pairs = [(link.from_id, link.to_id) for link in result.links]
        assert pairs == [
            ("supernodes/ANIMAL", "supernodes/PLANT"),
            ("supernodes/ANIMAL", "supernodes/ANIMAL"),
            ("supernodes/Null", "supernodes/PLANT"),
        ]
        assert all(link.type == LinkType.SUPER_LINK for link in result.links)
        assert_links_resolve(result)

    def test_links_record_original_endpoints(self, classified_graph):
        nodes, links = classified_graph

        result = schema_graph(nodes, links, ["ANIMAL", "PLANT"], SCHEMA_TABLE, "kind")

        first = result.links[0]
        assert first.get("sourceID") == "d1"
        assert first.get("targetID") == "p1"

    def test_neighbors_are_derived(self, classified_graph):
        nodes, links = classified_graph

        result = schema_graph(nodes, links, ["ANIMAL", "PLANT"], SCHEMA_TABLE, "kind")

        assert_neighbors_derived(result)

    def test_inputs_not_mutated(self, classified_graph):
        nodes, links = classified_graph
        before = [link.model_dump(by_alias=True) for link in links]

        schema_graph(nodes, links, ["ANIMAL", "PLANT"], SCHEMA_TABLE, "kind")

        assert [link.model_dump(by_alias=True) for link in links] == before
