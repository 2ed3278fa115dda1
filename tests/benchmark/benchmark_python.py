#!/usr/bin/env python3
"""
Python Benchmark - Whole-array fit (45,101 probesets)

Times the vectorized CPU solver, the GPU solver when one is available,
and per-probeset statsmodels OLS on a subset.
"""

import numpy as np
import pandas as pd
import time
from pymlm import summarize, fit_each, dummy_design, compare_summaries
from pymlm._backends import list_available_backends

print()
print("="*80)
print("PYTHON BENCHMARK - Whole-array expression fit")
print("="*80)
print()

# ============================================================================
# DATA
# ============================================================================

rng = np.random.default_rng(42)
stages = ['E10', 'E11', 'E12', 'E13', 'E14', 'E15', 'E16', 'E17', 'P0']
stage = pd.Series(np.repeat(stages, 4), name='stage')
X = dummy_design(stage)
n, m = X.shape[0], 45101
Y = pd.DataFrame(
    rng.normal(8.0, 1.5, size=m) + rng.normal(0, 0.3, size=(n, m)),
    columns=[f'probe_{j}' for j in range(m)],
)

print(f"Arrays:       {n}")
print(f"Coefficients: {X.shape[1]}")
print(f"Probesets:    {m:,}")
print()

# ============================================================================
# CPU BENCHMARK
# ============================================================================

print("="*80)
print("CPU BENCHMARK (vectorized, FP64)")
print("="*80)

# Warm-up
_ = summarize(X, Y.iloc[:, :100], backend='cpu')

start = time.time()
res_cpu = summarize(X, Y, backend='cpu')
cpu_time = time.time() - start
print(f"✓ {m:,} probesets in {cpu_time:.3f} seconds")
print()

# ============================================================================
# PER-PROBESET BENCHMARK
# ============================================================================

print("="*80)
print("PER-PROBESET OLS (statsmodels, 2,000 probesets)")
print("="*80)

subset = Y.iloc[:, :2000]
start = time.time()
res_each = fit_each(X, subset)
each_time = time.time() - start
print(f"✓ 2,000 probesets in {each_time:.3f} seconds")
print(f"  Extrapolated to {m:,}: {each_time * m / 2000:.1f} seconds")
print(f"  Vectorized speedup: {each_time * m / 2000 / cpu_time:.0f}x")

report = compare_summaries(res_each, res_cpu.select(list(subset.columns)))
print(f"  Agreement: {'OK' if report.ok else 'MISMATCH'}")
print()

# ============================================================================
# GPU BENCHMARK
# ============================================================================

if 'pytorch' in list_available_backends():
    print("="*80)
    print("GPU BENCHMARK (PyTorch CUDA, FP32)")
    print("="*80)

    _ = summarize(X, Y.iloc[:, :100], backend='gpu', use_fp64=False)

    start = time.time()
    res_gpu = summarize(X, Y, backend='gpu', use_fp64=False)
    gpu_time = time.time() - start
    print(f"✓ {m:,} probesets in {gpu_time:.3f} seconds")
    print(f"  Speedup over CPU: {cpu_time / gpu_time:.2f}x")

    max_diff = np.max(np.abs(res_cpu.estimates - res_gpu.estimates) / res_cpu.std_errors)
    print(f"  Max coefficient difference: {max_diff:.2e} SEs")
else:
    print("No CUDA GPU available - skipping GPU benchmark")

print()
print("="*80)
print("BENCHMARK COMPLETE")
print("="*80)
