import json
import sys
import time

from notyetred.application.kernel import IntersectionKernel
from notyetred.kernel.wake_scheduler import earliest_wake

def run_headless_experiment(output_path: str, duration_ms: int = 120_000, start: int = 0):
    """Walks the coalesced state changes of the default intersection and dumps a timeline."""
    kernel = IntersectionKernel()
    kernel.initialize()

    results = []
    timestamp = start

    start_time = time.time()
    while timestamp < start + duration_ms:
        kernel.current_timestamp = timestamp
        snapshot = kernel.snapshot(timestamp)
        results.append(snapshot.model_dump(mode="json"))

        wake = earliest_wake(kernel.participants(), timestamp)
        if wake is None:
            break
        timestamp = wake[0]

    end_time = time.time()
    print(f"Experiment finished in {end_time - start_time:.4f}s ({len(results)} ticks)")

    with open(output_path, 'w') as f:
        json.dump(results, f, indent=2)
    return results

if __name__ == "__main__":
    if len(sys.argv) > 2:
        run_headless_experiment(sys.argv[1], int(sys.argv[2]))
    elif len(sys.argv) > 1:
        run_headless_experiment(sys.argv[1])
    else:
        print("Usage: python -m notyetred.experiments.run_experiment <output> [duration_ms]")
