#!/usr/bin/env -S uv run
"""
Storage Adapter Benchmark Tool for eventq

Benchmarks DurableQueue push/pop against InMemoryStorage and
LocalFileSystemStorage, and reports how many concurrent pushes were dropped
because the queue lock could not be acquired within its bounded wait.

Usage (from a checkout with `pip install -e .`):
    uv run tools/benchmark_storage.py
    uv run tools/benchmark_storage.py --operations 2000 --concurrency 50
    uv run tools/benchmark_storage.py --lock-timeout-ms 100
    uv run tools/benchmark_storage.py --help
"""
# /// script
# requires-python = ">=3.12"
# dependencies = [
#     "eventq",
#     "typer>=0.9.0",
#     "rich>=13.0",
# ]
# ///

from __future__ import annotations

import asyncio
import statistics
import tempfile
from dataclasses import dataclass, field
from datetime import timedelta
from pathlib import Path
from time import perf_counter

import typer
from rich.console import Console
from rich.table import Table

from eventq import DurableQueue, InMemoryStorage, LocalFileSystemStorage, KeyValueStoragePort

app = typer.Typer(
    help="Benchmark eventq storage adapters",
    add_completion=False,
)
console = Console()


# ---------------------------------------------------------------------------
# Data Classes
# ---------------------------------------------------------------------------


@dataclass
class BenchmarkResult:
    """Results from a single benchmark run."""

    adapter_name: str
    operation: str
    total_time: float
    latencies: list[float] = field(default_factory=list)  # seconds
    dropped: int = 0

    @property
    def ops_per_sec(self) -> float:
        return len(self.latencies) / self.total_time if self.total_time > 0 else 0.0

    def percentile(self, q: float) -> float:
        if not self.latencies:
            return 0.0
        ordered = sorted(self.latencies)
        return ordered[min(int(len(ordered) * q), len(ordered) - 1)]

    @property
    def p50(self) -> float:
        return statistics.median(self.latencies) if self.latencies else 0.0


def _ms(seconds: float) -> str:
    ms = seconds * 1000
    if ms < 1:
        return f"{ms:.3f}ms"
    if ms < 10:
        return f"{ms:.2f}ms"
    return f"{ms:.1f}ms"


# ---------------------------------------------------------------------------
# Core Benchmark Functions
# ---------------------------------------------------------------------------


async def _timed(coro) -> tuple[float, object]:
    start = perf_counter()
    result = await coro
    return perf_counter() - start, result


async def benchmark_sequential_push(
    queue: DurableQueue, n: int, payload: dict, adapter_name: str
) -> BenchmarkResult:
    result = BenchmarkResult(adapter_name, "push (sequential)", 0.0)
    start = perf_counter()
    for _ in range(n):
        latency, item_id = await _timed(queue.push(payload))
        if item_id is None:
            result.dropped += 1
        else:
            result.latencies.append(latency)
    result.total_time = perf_counter() - start
    return result


async def benchmark_concurrent_push(
    queue: DurableQueue, n: int, concurrency: int, payload: dict, adapter_name: str
) -> BenchmarkResult:
    """Push in waves of `concurrency`; lock-timeout drops are counted, not retried."""
    result = BenchmarkResult(adapter_name, f"push (x{concurrency})", 0.0)
    start = perf_counter()
    for i in range(0, n, concurrency):
        wave = min(concurrency, n - i)
        outcomes = await asyncio.gather(*(_timed(queue.push(payload)) for _ in range(wave)))
        for latency, item_id in outcomes:
            if item_id is None:
                result.dropped += 1
            else:
                result.latencies.append(latency)
    result.total_time = perf_counter() - start
    return result


async def benchmark_sequential_pop(
    queue: DurableQueue, adapter_name: str
) -> BenchmarkResult:
    """Pop until the queue reports empty."""
    result = BenchmarkResult(adapter_name, "pop (sequential)", 0.0)
    start = perf_counter()
    while True:
        latency, item = await _timed(queue.pop())
        if item is None:
            break
        result.latencies.append(latency)
    result.total_time = perf_counter() - start
    return result


async def create_storage_adapter(
    adapter_name: str, temp_dir: Path
) -> KeyValueStoragePort:
    if adapter_name == "memory":
        return InMemoryStorage()
    if adapter_name == "filesystem":
        return LocalFileSystemStorage(temp_dir / "store")
    raise typer.BadParameter(f"unknown adapter {adapter_name!r}")


async def run_adapter(
    adapter_name: str,
    operations: int,
    concurrency: int,
    payload_size: int,
    lock_timeout: timedelta,
) -> list[BenchmarkResult]:
    payload = {"op": "benchmark", "data": "x" * payload_size}
    with tempfile.TemporaryDirectory() as tmp:
        storage = await create_storage_adapter(adapter_name, Path(tmp))
        queue = DurableQueue("benchmark", storage, lock_timeout=lock_timeout)
        return [
            await benchmark_sequential_push(queue, operations, payload, adapter_name),
            await benchmark_concurrent_push(
                queue, operations, concurrency, payload, adapter_name
            ),
            await benchmark_sequential_pop(queue, adapter_name),
        ]


def render(results: list[BenchmarkResult]) -> None:
    table = Table(title="eventq storage benchmark")
    for column in ("Adapter", "Operation", "ops/s", "p50", "p95", "p99", "Dropped"):
        table.add_column(column, justify="right" if column not in ("Adapter", "Operation") else "left")
    for r in results:
        table.add_row(
            r.adapter_name,
            r.operation,
            f"{r.ops_per_sec:,.0f}",
            _ms(r.p50),
            _ms(r.percentile(0.95)),
            _ms(r.percentile(0.99)),
            str(r.dropped),
        )
    console.print(table)


@app.command()
def main(
    operations: int = typer.Option(1000, help="Operations per benchmark"),
    concurrency: int = typer.Option(10, help="Concurrent pushes per wave"),
    payload_size: int = typer.Option(1000, help="Payload size in characters"),
    lock_timeout_ms: int = typer.Option(20, help="Queue lock bounded wait"),
    adapter: list[str] = typer.Option(
        ["memory", "filesystem"], help="Adapters to benchmark"
    ),
) -> None:
    """Run the push/pop benchmarks and print a summary table."""
    results: list[BenchmarkResult] = []
    for name in adapter:
        console.print(f"[bold]Benchmarking {name}...[/bold]")
        results.extend(
            asyncio.run(
                run_adapter(
                    name,
                    operations,
                    concurrency,
                    payload_size,
                    timedelta(milliseconds=lock_timeout_ms),
                )
            )
        )
    render(results)


if __name__ == "__main__":
    app()
