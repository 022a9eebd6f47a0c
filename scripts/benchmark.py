#!/usr/bin/env python3
"""
ProxyState Performance Benchmarks

Times the hot paths of mutation tracking and renders the results with rich:
façade reads, suppressed (deep-equal) writes, real writes followed by a
flush, and subscribe/dispose cycles.

Usage:
    python scripts/benchmark.py            # Run all benchmarks
    python scripts/benchmark.py --config   # Show current benchmark configuration
    python scripts/benchmark.py --quiet    # Only print the results table

Configuration:
    Adjust the constants at the top of the file to change benchmark parameters.
"""

import argparse
import gc
import sys
import time
from dataclasses import dataclass
from typing import Callable, Dict, List

# Add the project root to the Python path
sys.path.insert(0, ".")

from rich.align import Align
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from proxystate import (
    _reset_dispatcher,
    _reset_registry,
    flush,
    subscribe,
    wrap,
)

# Configuration constants - adjust these to change benchmark behavior
TIME_LIMIT_SECONDS = 0.5  # Stop scaling once a run takes this long
STARTING_N = 100  # Starting number of operations
SCALE_FACTOR = 2.0  # How much to multiply N by each iteration


@dataclass
class BenchmarkResult:
    """Outcome of the largest run that fit in the time limit."""

    name: str
    max_n: int
    operation_time: float

    @property
    def operations_per_second(self) -> float:
        return self.max_n / self.operation_time if self.operation_time > 0 else 0.0

    @property
    def latency_us(self) -> float:
        return (self.operation_time / max(self.max_n, 1)) * 1e6


def _nested_state(depth: int = 3) -> dict:
    node = {"value": 0}
    for level in range(depth):
        node = {"level": level, "child": node, "tags": ["a", "b"]}
    return node


def _bench_reads(n: int) -> None:
    state = wrap(_nested_state())
    for _ in range(n):
        state["child"]["child"]["child"]["value"]


def _bench_suppressed_writes(n: int) -> None:
    state = wrap({"config": {"theme": "dark", "sizes": [1, 2, 3]}})
    subscribe(state, "config", lambda view: None)
    for _ in range(n):
        state["config"] = {"theme": "dark", "sizes": [1, 2, 3]}
    flush()


def _bench_real_writes(n: int) -> None:
    state = wrap({"count": 0})
    subscribe(state, "count", lambda value: None)
    for i in range(1, n + 1):
        state["count"] = i
    flush()


def _bench_subscribe_dispose(n: int) -> None:
    state = wrap({"todos": [{"done": False}]})
    for _ in range(n):
        dispose = subscribe(state["todos"], 0, lambda view: None)
        dispose()


BENCHMARKS: Dict[str, Callable[[int], None]] = {
    "Nested Reads (4 levels)": _bench_reads,
    "Suppressed Writes (deep-equal)": _bench_suppressed_writes,
    "Real Writes + Flush": _bench_real_writes,
    "Subscribe / Dispose": _bench_subscribe_dispose,
}


def _scale(name: str, operation: Callable[[int], None]) -> BenchmarkResult:
    """Grow N until a single run reaches the time limit."""
    n = STARTING_N
    while True:
        _reset_registry()
        _reset_dispatcher()
        gc.collect()

        start = time.perf_counter()
        operation(n)
        elapsed = time.perf_counter() - start

        if elapsed >= TIME_LIMIT_SECONDS:
            return BenchmarkResult(name, n, elapsed)
        n = int(n * SCALE_FACTOR)


class ProxyStateBenchmark:
    """Rich-formatted display for ProxyState benchmarks."""

    def __init__(self, quiet: bool = False):
        self.console = Console()
        self.quiet = quiet
        self.results: List[BenchmarkResult] = []

    def run_benchmarks(self) -> None:
        start_time = time.time()
        if not self.quiet:
            self._display_header()

        for name, operation in BENCHMARKS.items():
            if not self.quiet:
                self.console.print(f"[yellow]Running {name}...[/yellow]")
            result = _scale(name, operation)
            self.results.append(result)
            if not self.quiet:
                self.console.print(
                    f"[green]✓[/green] {name}: {result.operations_per_second:,.0f} ops/sec ({result.max_n} ops)"
                )

        self._display_results(start_time)

    def _display_header(self) -> None:
        header = Panel(
            Align.center("ProxyState Performance Benchmark Suite"),
            title="ProxyState Benchmarks",
            border_style="blue",
        )
        self.console.print(header)
        self.console.print()

    def _display_results(self, start_time: float) -> None:
        table = Table(title="Benchmark Results")
        table.add_column("Benchmark", style="cyan", no_wrap=True)
        table.add_column("Max Workload", style="magenta")
        table.add_column("Throughput", style="green", justify="right")
        table.add_column("Latency", style="yellow", justify="right")

        for result in self.results:
            table.add_row(
                result.name,
                f"{result.max_n:,} ops",
                f"{result.operations_per_second / 1000:.1f}K ops/sec",
                f"{result.latency_us:.2f}μs",
            )

        self.console.print()
        self.console.print(table)
        elapsed = time.time() - start_time
        self.console.print(f"[dim]Benchmark completed in {elapsed:.2f} seconds[/dim]")


def print_config() -> None:
    """Print the current benchmark configuration."""
    print("ProxyState Benchmark Configuration:")
    print(f"  TIME_LIMIT_SECONDS: {TIME_LIMIT_SECONDS}")
    print(f"  STARTING_N: {STARTING_N}")
    print(f"  SCALE_FACTOR: {SCALE_FACTOR}")


def main() -> None:
    """Main entry point for the benchmark script."""
    parser = argparse.ArgumentParser(description="ProxyState Performance Benchmarks")
    parser.add_argument(
        "--config", action="store_true", help="Show current benchmark configuration"
    )
    parser.add_argument(
        "--quiet",
        action="store_true",
        help="Suppress progress output, show only final results",
    )
    args = parser.parse_args()

    if args.config:
        print_config()
        return

    if not args.quiet:
        print_config()
        print()

    ProxyStateBenchmark(quiet=args.quiet).run_benchmarks()


if __name__ == "__main__":
    main()
