"""
Performance benchmarks for geoesda.

Times the two O(n^2) phases (KNN construction and the s1 matrix moment)
plus the permutation-driven statistics and the full analysis.
"""

import time
from typing import Dict, List

import numpy as np

from geoesda.analysis.spatial_analysis import analyze
from geoesda.esda import Geary, Moran
from geoesda.neighbors.knn import KNNWeights


def generate_test_data(n_points: int, seed: int = 42):
    """Generate random points and a spatially trending attribute."""
    rng = np.random.default_rng(seed)

    coords = rng.uniform(0, 10, (n_points, 2))
    values = coords[:, 0] + rng.normal(0, 1, n_points)

    return coords, values


def generate_collection(n_points: int, seed: int = 42) -> dict:
    """Generate a feature collection of points with a ``count`` property."""
    coords, values = generate_test_data(n_points, seed)
    features = [
        {
            "type": "Feature",
            "geometry": {"type": "Point", "coordinates": [float(x), float(y)]},
            "properties": {"id": f"{i:06d}", "count": float(v)},
        }
        for i, ((x, y), v) in enumerate(zip(coords, values))
    ]
    return {"type": "FeatureCollection", "features": features}


def benchmark_function(func, args, n_runs: int = 5, warmup: int = 1):
    """Benchmark a function with warmup runs."""
    for _ in range(warmup):
        func(*args)

    times = []
    for _ in range(n_runs):
        start = time.perf_counter()
        func(*args)
        times.append(time.perf_counter() - start)

    return {
        "mean": np.mean(times),
        "std": np.std(times),
        "min": np.min(times),
        "max": np.max(times),
    }


def benchmark_knn(n_points: int, k: int = 8, n_runs: int = 3) -> Dict:
    """Benchmark KNN weights construction."""
    coords, _ = generate_test_data(n_points)
    return benchmark_function(lambda c: KNNWeights(c, k=k), (coords,), n_runs=n_runs)


def benchmark_moments(n_points: int, k: int = 8, n_runs: int = 3) -> Dict:
    """Benchmark s0, s1, s2 on a fresh row-standardized matrix."""
    coords, _ = generate_test_data(n_points)
    w = KNNWeights(coords, k=k)

    def run(w):
        w.transform = "O"
        w.transform = "R"
        return w.s0, w.s1, w.s2

    return benchmark_function(run, (w,), n_runs=n_runs)


def benchmark_statistics(n_points: int, permutations: int = 99, n_runs: int = 3) -> Dict:
    """Benchmark Moran's I and Geary's C with permutations."""
    coords, values = generate_test_data(n_points)
    w = KNNWeights(coords, k=8)

    moran = benchmark_function(
        lambda y: Moran(y, w, permutations=permutations, seed=1234), (values,), n_runs=n_runs
    )
    geary = benchmark_function(
        lambda y: Geary(y, w, permutations=permutations, seed=1234), (values,), n_runs=n_runs
    )
    return {"moran": moran, "geary": geary}


def benchmark_analyze(n_points: int, permutations: int = 99, n_runs: int = 3) -> Dict:
    """Benchmark the full analysis."""
    collection = generate_collection(n_points)
    return benchmark_function(
        lambda fc: analyze(fc, k=8, permutations=permutations), (collection,), n_runs=n_runs
    )


def run_all_benchmarks(
    n_points_list: List[int] = [100, 500, 1000, 2000],
    permutations: int = 99,
    n_runs: int = 3,
) -> Dict:
    """Run all benchmarks with various data sizes."""
    results = {"permutations": permutations, "benchmarks": {}}

    print(f"Permutations: {permutations}")
    print("=" * 60)

    print("\n[1/4] Benchmarking KNN weights...")
    results["benchmarks"]["knn"] = {}
    for n in n_points_list:
        print(f"  n={n}...", end=" ", flush=True)
        result = benchmark_knn(n, n_runs=n_runs)
        results["benchmarks"]["knn"][str(n)] = result
        print(f"{result['mean']*1000:.1f}ms")

    print("\n[2/4] Benchmarking matrix moments...")
    results["benchmarks"]["moments"] = {}
    for n in n_points_list:
        print(f"  n={n}...", end=" ", flush=True)
        result = benchmark_moments(n, n_runs=n_runs)
        results["benchmarks"]["moments"][str(n)] = result
        print(f"{result['mean']*1000:.1f}ms")

    print("\n[3/4] Benchmarking Moran / Geary...")
    results["benchmarks"]["moran"] = {}
    results["benchmarks"]["geary"] = {}
    for n in n_points_list:
        print(f"  n={n}...", end=" ", flush=True)
        result = benchmark_statistics(n, permutations, n_runs=n_runs)
        results["benchmarks"]["moran"][str(n)] = result["moran"]
        results["benchmarks"]["geary"][str(n)] = result["geary"]
        print(f"Moran: {result['moran']['mean']*1000:.1f}ms, Geary: {result['geary']['mean']*1000:.1f}ms")

    # Full pipeline (smaller sizes; four statistics with permutations)
    print("\n[4/4] Benchmarking analyze...")
    results["benchmarks"]["analyze"] = {}
    for n in n_points_list[:3]:
        print(f"  n={n}...", end=" ", flush=True)
        result = benchmark_analyze(n, permutations, n_runs=n_runs)
        results["benchmarks"]["analyze"][str(n)] = result
        print(f"{result['mean']*1000:.1f}ms")

    print("\n" + "=" * 60)
    print("Benchmarks complete!")

    return results


def print_summary(results: Dict):
    """Print a summary table of benchmark results."""
    print("\n" + "=" * 60)
    print("BENCHMARK SUMMARY")
    print("=" * 60)

    for benchmark_name, benchmark_data in results["benchmarks"].items():
        print(f"\n{benchmark_name}:")
        print("-" * 40)
        print(f"{'Size':<15} {'Mean (ms)':<12} {'Min (ms)':<12}")
        print("-" * 40)

        for size, data in benchmark_data.items():
            print(f"{size:<15} {data['mean']*1000:<12.2f} {data['min']*1000:<12.2f}")


if __name__ == "__main__":
    results = run_all_benchmarks(n_points_list=[100, 500, 1000], permutations=99, n_runs=3)
    print_summary(results)
