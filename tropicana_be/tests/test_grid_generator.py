import random
import secrets
import unittest
from collections import Counter

import pytest

from tropicana_be.models import REELS, ROWS, Symbol
from tropicana_be.utils.grid_generator import GridBuilder, SymbolGenerator, make_rng
from tropicana_be.utils.symbol_table import (
    SCATTER_SYMBOL_ID,
    WILD_SYMBOL_ID,
    SymbolTable,
    default_symbol_table,
    rebalanced_symbol_table,
)
from tropicana_be.tests.fixtures import fixed_rng


class TestSymbolGenerator(unittest.TestCase):

    def setUp(self):
        self.table = default_symbol_table()

    def test_draw_boundaries(self):
        cases = [
            (0.0, 'cocktail'),
            (0.05, 'cocktail'),      # inclusive upper bound
            (0.0500001, 'coconut'),
            (0.13, 'coconut'),
            (0.25, 'pineapple'),
            (0.40, 'hibiscus'),
            (0.58, 'beach'),
            (0.80, 'sunglasses'),
            (0.999999, 'surfer'),
        ]
        for r, expected in cases:
            generator = SymbolGenerator(self.table, fixed_rng(r))
            self.assertEqual(generator.draw().id, expected, f"r={r}")

    def test_every_draw_is_a_table_member(self):
        generator = SymbolGenerator(self.table, random.Random(11))
        for _ in range(1000):
            self.assertIn(generator.draw(), self.table)

    def test_frequencies_converge_to_weights(self):
        generator = SymbolGenerator(self.table, random.Random(2024))
        draws = 100_000
        counts = Counter(generator.draw().id for _ in range(draws))
        for symbol in self.table.standard_symbols:
            self.assertAlmostEqual(counts[symbol.id] / draws, symbol.weight, delta=0.01)

    def test_wild_and_scatter_never_drawn_with_default_table(self):
        generator = SymbolGenerator(self.table, random.Random(99))
        counts = Counter(generator.draw().id for _ in range(50_000))
        self.assertEqual(counts[WILD_SYMBOL_ID], 0)
        self.assertEqual(counts[SCATTER_SYMBOL_ID], 0)

    def test_rebalanced_table_draws_specials(self):
        table = rebalanced_symbol_table()
        self.assertEqual(SymbolGenerator(table, fixed_rng(0.96)).draw().id, WILD_SYMBOL_ID)
        self.assertEqual(SymbolGenerator(table, fixed_rng(0.99)).draw().id, SCATTER_SYMBOL_ID)

        counts = Counter(SymbolGenerator(table, random.Random(5)).draw().id for _ in range(50_000))
        self.assertAlmostEqual(counts[WILD_SYMBOL_ID] / 50_000, 0.03, delta=0.005)
        self.assertAlmostEqual(counts[SCATTER_SYMBOL_ID] / 50_000, 0.02, delta=0.005)

    def test_fallback_when_weights_sum_below_one(self):
        table = SymbolTable([
            Symbol('low', 'Low', 'l', 10, 0.3),
            Symbol('mid', 'Mid', 'm', 20, 0.3),
        ])
        self.assertEqual(SymbolGenerator(table, fixed_rng(0.9)).draw().id, 'mid')


class TestGridBuilder(unittest.TestCase):

    def test_grid_shape_is_reels_by_rows(self):
        builder = GridBuilder(SymbolGenerator(default_symbol_table(), random.Random(1)))
        grid = builder.build()
        self.assertEqual(len(grid), REELS)
        for reel in grid:
            self.assertEqual(len(reel), ROWS)

    def test_one_draw_per_cell(self):
        generator = SymbolGenerator(default_symbol_table(), fixed_rng(0.0))
        GridBuilder(generator).build()
        self.assertEqual(generator.rng.random.call_count, REELS * ROWS)

    def test_invalid_dimensions_rejected(self):
        with self.assertRaises(ValueError):
            GridBuilder(SymbolGenerator(), reels=0)


def test_make_rng_seeded_is_reproducible():
    first = [make_rng(42).random() for _ in range(3)]
    second = [make_rng(42).random() for _ in range(3)]
    assert first == second


def test_make_rng_unseeded_uses_system_random():
    assert isinstance(make_rng(), secrets.SystemRandom)


@pytest.mark.parametrize('seed', [0, 1, 123])
def test_seeded_grids_repeat(seed):
    table = default_symbol_table()
    first = GridBuilder(SymbolGenerator(table, make_rng(seed))).build()
    second = GridBuilder(SymbolGenerator(table, make_rng(seed))).build()
    assert first == second
