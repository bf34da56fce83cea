#!/usr/bin/env python3
"""
Demo: M/M/1 Queue

Checks the kernel against queueing theory:
1. Poisson arrivals (rate lambda) to a single exponential server (rate mu)
2. Run 10,000 customers on a fixed seed
3. Compare the average wait in queue with rho / (mu - lambda)
4. Repeat over several seeds for a confidence interval

A wait-time histogram and the queue-length trace are saved to output/.
"""

import numpy as np
import matplotlib.pyplot as plt
from pathlib import Path

from discretesim.core import Simulation
from discretesim.resources import Resource
from discretesim.experiments import RandomStream, run_replications


def build_and_run(seed, arrival_rate, service_rate, customers):
    sim = Simulation()
    server = Resource(sim, capacity=1, name="server")
    arrivals, services = RandomStream(seed).spawn(2)

    def customer():
        with server.request() as req:
            yield req
            yield sim.timeout(services.exponential(1.0 / service_rate))

    def source():
        for _ in range(customers):
            sim.process(customer())
            yield sim.timeout(arrivals.exponential(1.0 / arrival_rate))

    sim.process(source)
    sim.run()
    return sim


def main():
    print("=" * 60)
    print("  M/M/1 QUEUE VS CLOSED FORM")
    print("=" * 60)

    arrival_rate = 0.7
    service_rate = 1.0
    customers = 10_000
    rho = arrival_rate / service_rate
    expected_wait = rho / (service_rate - arrival_rate)

    print(f"\n1. Setup:")
    print(f"   Arrival rate λ = {arrival_rate}, service rate μ = {service_rate}")
    print(f"   Utilisation ρ = {rho:.2f}")
    print(f"   Customers: {customers}")
    print(f"   Theory: Wq = ρ/(μ-λ) = {expected_wait:.3f}")

    print("\n2. Single run (seed 42)...")
    sim = build_and_run(42, arrival_rate, service_rate, customers)
    stats = sim.statistics
    waits = stats.samples("server.wait_time")
    utilisation = stats.time_weighted_average("server.in_use")
    print(f"   Simulated time: {sim.now:.1f}")
    print(f"   Events processed: {sim.events_processed}")
    print(f"   Mean wait: {waits.mean():.3f} (error {abs(waits.mean() - expected_wait) / expected_wait:.1%})")
    print(f"   95th percentile wait: {waits.percentile(95):.3f}")
    print(f"   Server utilisation: {utilisation:.3f}")

    print("\n3. Replications...")
    result = run_replications(
        lambda seed: build_and_run(seed, arrival_rate, service_rate, customers)
        .statistics.samples("server.wait_time").mean(),
        n=10,
    )
    print(f"   {result}")
    print(f"   Theory inside interval: {result.contains(expected_wait)}")

    print("\n4. Creating visualization...")
    fig, axes = plt.subplots(1, 2, figsize=(14, 5))

    ax = axes[0]
    counts, edges = waits.histogram(bins=50)
    ax.bar(edges[:-1], counts / counts.sum() / np.diff(edges), width=np.diff(edges),
           align="edge", alpha=0.6, label="Simulated")
    # Wq has an atom at 0 (1 - rho) and density rho(mu-lambda)exp(-(mu-lambda)t) beyond it
    t = np.linspace(edges[1], edges[-1], 200)
    ax.plot(t, rho * (service_rate - arrival_rate) * np.exp(-(service_rate - arrival_rate) * t),
            'r-', linewidth=2, label="Theory (t > 0)")
    ax.axvline(x=waits.mean(), color='black', linestyle='--', alpha=0.7, label='Mean')
    ax.set_title("Wait in Queue")
    ax.set_xlabel("Wait")
    ax.set_ylabel("Density")
    ax.legend()

    ax = axes[1]
    series = stats.series("server.queue_length")
    times, values = series.as_arrays()
    ax.step(times, values, where="post", linewidth=0.6)
    ax.set_xlim(0, min(sim.now, 1000))
    ax.set_title("Queue Length (first 1000 time units)")
    ax.set_xlabel("Time")
    ax.set_ylabel("Customers waiting")

    plt.tight_layout()

    output_dir = Path("output/demo_mm1_queue")
    output_dir.mkdir(parents=True, exist_ok=True)
    output_path = output_dir / "mm1_queue.png"
    fig.savefig(output_path, dpi=150, bbox_inches="tight")
    plt.close(fig)
    print(f"   Saved: {output_path}")

    print("\n" + "=" * 60)
    print("  SUMMARY")
    print("=" * 60)
    print(f"  • Simulated mean wait {waits.mean():.3f} vs theory {expected_wait:.3f}")
    print(f"  • Server busy {utilisation:.1%} of the time (theory {rho:.0%})")
    print(f"  • Replication interval: [{result.interval[0]:.3f}, {result.interval[1]:.3f}]")
    print("=" * 60)


if __name__ == "__main__":
    main()
