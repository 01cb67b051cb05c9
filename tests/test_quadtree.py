"""Tests for the quadtree spatial index."""

import numpy as np
import pytest

from cellpair.quadtree import Quadtree
from cellpair.region import Envelope


def _random_envelopes(n, seed=0, extent=1000.0, max_size=40.0):
    rng = np.random.default_rng(seed)
    mins = rng.uniform(-extent, extent, size=(n, 2))
    sizes = rng.uniform(0.0, max_size, size=(n, 2))
    return [
        Envelope(x, y, x + w, y + h)
        for (x, y), (w, h) in zip(mins, sizes)
    ]


class TestQuadtreeQuery:
    def test_empty_tree_returns_nothing(self):
        tree = Quadtree()
        assert tree.query(Envelope(0, 0, 10, 10)) == []
        assert len(tree) == 0
        assert tree.depth == 0

    def test_single_entry(self):
        tree = Quadtree()
        tree.insert(Envelope(0, 0, 10, 10), "a")
        assert tree.query(Envelope(5, 5, 6, 6)) == ["a"]
        assert tree.query(Envelope(20, 20, 30, 30)) == []

    def test_touching_envelopes_intersect(self):
        tree = Quadtree()
        tree.insert(Envelope(0, 0, 10, 10), 0)
        assert tree.query(Envelope(10, 10, 20, 20)) == [0]

    def test_zero_size_envelopes(self):
        tree = Quadtree()
        tree.insert(Envelope(5, 5, 5, 5), "point")
        tree.insert(Envelope(0, 0, 1, 1), "box")
        assert tree.query(Envelope(4, 4, 6, 6)) == ["point"]

    def test_no_false_negatives_against_brute_force(self):
        """Every intersecting envelope must be returned, at any scale and sign."""
        envelopes = _random_envelopes(2000, seed=1)
        tree = Quadtree()
        for idx, env in enumerate(envelopes):
            tree.insert(env, idx)
        assert len(tree) == len(envelopes)

        queries = _random_envelopes(200, seed=2, max_size=120.0)
        for query in queries:
            expected = {i for i, env in enumerate(envelopes) if env.intersects(query)}
            found = tree.query(query)
            assert expected.issubset(set(found))
            assert len(found) == len(set(found)), "Each item must be returned once"

    def test_root_grows_in_every_direction(self):
        tree = Quadtree()
        boxes = [
            Envelope(0, 0, 1, 1),
            Envelope(-500, -500, -499, -499),
            Envelope(800, -20, 801, -19),
            Envelope(-30, 900, -29, 901),
        ]
        for idx, env in enumerate(boxes):
            tree.insert(env, idx)
        for idx, env in enumerate(boxes):
            assert idx in tree.query(env)

    def test_query_order_is_deterministic(self):
        envelopes = _random_envelopes(300, seed=3)
        trees = []
        for _ in range(2):
            tree = Quadtree()
            for idx, env in enumerate(envelopes):
                tree.insert(env, idx)
            trees.append(tree)

        query = Envelope(-200, -200, 200, 200)
        assert trees[0].query(query) == trees[1].query(query)

    def test_tree_subdivides(self):
        tree = Quadtree()
        for idx, env in enumerate(_random_envelopes(500, seed=4, max_size=5.0)):
            tree.insert(env, idx)
        assert tree.depth > 1

    @pytest.mark.parametrize("max_depth", [0, 1, 3])
    def test_depth_limit_keeps_results(self, max_depth):
        tree = Quadtree(max_depth=max_depth)
        envelopes = _random_envelopes(100, seed=5)
        for idx, env in enumerate(envelopes):
            tree.insert(env, idx)
        query = Envelope(-1000, -1000, 1000, 1000)
        assert sorted(tree.query(query)) == list(range(100))
