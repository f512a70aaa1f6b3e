#!/usr/bin/env python3
"""
Live Bitfinex stream printer:
  - trades (split into buys and sells)
  - candle batches

Usage examples:
  python scripts/stream_bitfinex.py
  python scripts/stream_bitfinex.py --symbols tBTCUSD,tETHUSD --period 300 --duration 600
"""

import argparse
import asyncio
import sys
from typing import Optional, Sequence

from core.exceptions import FatalLoopError
from core.schemas import Candle, Trade
from exchanges.bitfinex import BitfinexConnector


def print_trade(trade: Trade) -> None:
    print(f"[{trade.pair}] {trade.side.value.upper():4} {trade.amount} @ {trade.price} ({trade.time.isoformat()})")


def print_candles(candles: Sequence[Candle]) -> None:
    if len(candles) > 1:
        print(f"[CANDLES] snapshot of {len(candles)} candles, newest {candles[0].open_time.isoformat()}")
        return
    c = candles[0]
    print(f"[CANDLE] {c.open_time.isoformat()} O={c.open} H={c.high} L={c.low} C={c.close} V={c.volume}")


async def run(symbols: Sequence[str], period: Optional[int], duration: Optional[int]) -> None:
    async with BitfinexConnector() as connector:
        connector.on_buy_trade(print_trade)
        connector.on_sell_trade(print_trade)
        connector.on_candles(print_candles)

        for symbol in symbols:
            await connector.subscribe_trades(symbol)
            if period:
                await connector.subscribe_candles(symbol, period)

        print(f"[Info] Streaming {', '.join(symbols)} (Ctrl+C to stop)")
        try:
            await asyncio.wait_for(connector.ws.wait_closed(), timeout=duration)
        except asyncio.TimeoutError:
            print("[Info] Duration reached; stopping.")
        except FatalLoopError as e:
            print(f"[Error] Stream died: {e}")


def main() -> None:
    parser = argparse.ArgumentParser(description="Print live Bitfinex trades and candles")
    parser.add_argument("--symbols", default="tBTCUSD", help="Comma-separated symbols (default: tBTCUSD)")
    parser.add_argument("--period", type=int, default=60, help="Candle period in seconds (0 = no candles)")
    parser.add_argument("--duration", type=int, default=0, help="Seconds to run (0 = run indefinitely)")
    args = parser.parse_args()

    symbols = [s.strip() for s in args.symbols.split(",") if s.strip()]
    duration = args.duration if args.duration > 0 else None
    asyncio.run(run(symbols, args.period or None, duration))


if __name__ == "__main__":
    try:
        main()
    except KeyboardInterrupt:
        print("\n[Info] Interrupted. Bye.")
        sys.exit(0)
