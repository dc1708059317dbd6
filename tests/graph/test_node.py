"""Unit tests for Node and Edge data types."""

import gc
from dataclasses import FrozenInstanceError

import pytest

from depgraph.graph.node import DEFAULT_EDGE_WEIGHT, Node


class TestNode:
    """Test Node construction and edge attachment."""

    def test_initialization(self):
        """Test that a node starts with no edges."""
        node = Node("A", "payload")

        assert node.key == "A"
        assert node.data == "payload"
        assert node.edges == []

    def test_add_edge_default_weight(self):
        """Test that node-level edges default to weight 1."""
        a = Node("A", "a")
        b = Node("B", "b")

        edge = b.add_edge(a)

        assert edge.weight == DEFAULT_EDGE_WEIGHT == 1
        assert b.edges == [edge]
        assert a.edges == []

    def test_add_edge_custom_weight(self):
        """Test attaching an edge with an explicit weight."""
        a = Node("A", "a")
        b = Node("B", "b")

        edge = b.add_edge(a, weight=7)

        assert edge.weight == 7

    def test_edges_keep_insertion_order_and_duplicates(self):
        """Test that edges are append-only with no dedup."""
        a = Node("A", "a")
        b = Node("B", "b")
        c = Node("C", "c")

        first = a.add_edge(b)
        second = a.add_edge(c)
        third = a.add_edge(b)

        assert a.edges == [first, second, third]
        assert [edge.target_key for edge in a.edges] == ["B", "C", "B"]

    def test_identity_equality(self):
        """Test that nodes compare by identity, not by content."""
        first = Node("A", "a")
        second = Node("A", "a")

        assert first != second
        assert first == first
        assert len({first, second}) == 2

    def test_arbitrary_payload(self):
        """Test that any payload with a repr can be stored."""
        payload = {"cells": [1, 2, 3]}
        node = Node("A", payload)

        assert node.data is payload
        assert "cells" in repr(node)


class TestEdge:
    """Test weak target resolution."""

    def test_resolve_live_target(self):
        """Test that an edge resolves to its live target."""
        a = Node("A", "a")
        b = Node("B", "b")
        edge = b.add_edge(a)

        assert edge.resolve() is a
        assert not edge.is_dangling

    def test_edge_does_not_keep_target_alive(self):
        """Test that dropping the last strong reference leaves the edge dangling."""
        holder = Node("B", "b")
        target = Node("A", "a")
        edge = holder.add_edge(target)

        del target
        gc.collect()

        assert edge.resolve() is None
        assert edge.is_dangling
        assert edge.target_key == "A"

    def test_edge_is_immutable(self):
        """Test that edges cannot be modified after creation."""
        a = Node("A", "a")
        edge = Node("B", "b").add_edge(a)

        with pytest.raises(FrozenInstanceError):
            edge.weight = 5  # type: ignore[misc]

        assert edge.weight == 1
