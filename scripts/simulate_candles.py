from __future__ import annotations

import argparse
from datetime import timedelta

from pricesim.candles.synth import CandleSynthesizer, utc_today
from pricesim.prices.source import seed_price
from pricesim.sim.intraday import IntradaySimulator
from pricesim.sim.rng import SystemRandomSource


def run(symbol: str = "AAPL", days: int = 20, seed: int | None = None, intraday_points: int = 0) -> None:
    """
    Prints a random-walk run of daily candles for `symbol`.

    - The run starts from the symbol's static seed price.
    - Each day opens from the previous close (with an occasional gap).
    - With --intraday N, also prints an N-point session path for the last day.
    """
    rng = SystemRandomSource(seed)
    synth = CandleSynthesizer(rng)

    start = seed_price(symbol)
    candles = synth.random_walk_candles(start, days)

    print(f"Simulating {days} daily candles for {symbol} from {start}...\n")

    for c in candles:
        print(
            f"{c.date.isoformat()}  "
            f"O={c.open:<10} H={c.high:<10} L={c.low:<10} C={c.close:<10} V={c.volume}"
        )

    if intraday_points > 0 and len(candles) >= 2:
        prev, last = candles[-2], candles[-1]
        path = IntradaySimulator(rng).interpolate_session(prev.close, last.close, last.date, intraday_points)
        print(f"\nIntraday path for {last.date.isoformat()} ({prev.close} -> {last.close}):")
        for p in path:
            print(f"  {p.time.strftime('%H:%M')}  {p.price:.4f}")

    print(f"\nDone. Last close: {candles[-1].close if candles else start}")
    print(f"Run covers {utc_today() - timedelta(days=days)} .. {utc_today() - timedelta(days=1)}")


if __name__ == "__main__":
    parser = argparse.ArgumentParser()
    parser.add_argument("--symbol", default="AAPL")
    parser.add_argument("--days", type=int, default=20)
    parser.add_argument("--seed", type=int, default=None)
    parser.add_argument("--intraday", type=int, default=0, help="Intraday points for the last day")
    args = parser.parse_args()
    run(args.symbol.upper(), args.days, args.seed, args.intraday)
