import math
import unittest
from datetime import date, timedelta

from fakes import ScriptedRandom
from pricesim.candles.synth import CandleSynthesizer
from pricesim.sim.rng import SystemRandomSource

DAY = date(2024, 3, 5)


class TestCandleSynthesizer(unittest.TestCase):
    def test_zero_shock_no_jump(self):
        # sigma=0.02 (u=.5), mu=0 (u=.5), no jump (u=.99), Z=0 (u=.5, v=.25),
        # high/low wick u=.5, volume u=.5
        rng = ScriptedRandom([0.5, 0.5, 0.99, 0.5, 0.25, 0.5, 0.5, 0.5])
        candle = CandleSynthesizer(rng).synthesize_day(100.0, DAY)

        sigma = 0.02
        expected_close = round(100.0 * math.exp(-0.5 * sigma * sigma), 4)

        self.assertEqual(candle.date, DAY)
        self.assertEqual(candle.open, 100.0)
        self.assertAlmostEqual(candle.close, expected_close, places=4)
        self.assertAlmostEqual(candle.high, round(100.0 * (1 + 0.5 * sigma * 1.5), 4), places=4)
        self.assertAlmostEqual(candle.low, round(expected_close * (1 - 0.5 * sigma * 1.5), 4), places=4)
        self.assertEqual(candle.volume, 200_000)

    def test_jump_gaps_the_open(self):
        # jump test u=.01 < .08, jump u=.75 -> +3%
        rng = ScriptedRandom([0.5, 0.5, 0.01, 0.75, 0.5, 0.25, 0.5, 0.5, 0.0])
        candle = CandleSynthesizer(rng).synthesize_day(100.0, DAY)

        self.assertAlmostEqual(candle.open, 103.0, places=4)
        self.assertEqual(candle.volume, 50_000)

    def test_high_strictly_above_body_with_zero_wick(self):
        rng = ScriptedRandom([0.5, 0.5, 0.99, 0.5, 0.25, 0.0, 0.0, 0.999999])
        candle = CandleSynthesizer(rng).synthesize_day(50.0, DAY)

        self.assertGreater(candle.high, max(candle.open, candle.close))
        self.assertLessEqual(candle.low, min(candle.open, candle.close))
        self.assertLess(candle.volume, 350_000)

    def test_invariants_hold_for_many_days(self):
        synth = CandleSynthesizer(SystemRandomSource(2024), base_vol=0.05, jump_prob=0.3)
        prev = 0.02
        for i in range(2000):
            c = synth.synthesize_day(prev if i % 3 else 250.0, DAY)
            self.assertGreater(c.high, max(c.open, c.close))
            self.assertLessEqual(c.low, min(c.open, c.close))
            self.assertGreaterEqual(c.low, 0.0001)
            self.assertGreaterEqual(c.close, 0.01)
            self.assertGreaterEqual(c.volume, 50_000)
            self.assertLess(c.volume, 350_000)
            prev = c.close

    def test_same_seed_same_candle(self):
        a = CandleSynthesizer(SystemRandomSource(7)).synthesize_day(100.0, DAY)
        b = CandleSynthesizer(SystemRandomSource(7)).synthesize_day(100.0, DAY)
        self.assertEqual(a, b)

    def test_random_walk_chains_closes(self):
        synth = CandleSynthesizer(SystemRandomSource(11), jump_prob=0.0)
        today = date(2024, 6, 1)
        candles = synth.random_walk_candles(100.0, days=5, today=today)

        self.assertEqual([c.date for c in candles], [today - timedelta(days=i) for i in range(5, 0, -1)])
        self.assertEqual(candles[0].open, 100.0)
        for prev, curr in zip(candles, candles[1:]):
            self.assertEqual(curr.open, prev.close)

    def test_random_walk_zero_days(self):
        synth = CandleSynthesizer(SystemRandomSource(1))
        self.assertEqual(synth.random_walk_candles(10.0, days=0), [])
