"""Performance benchmarks for idxbench.

Run benchmarks with:
    pytest tests/benchmarks/ --benchmark-only

Save a baseline:
    pytest tests/benchmarks/ --benchmark-save=baseline

Compare against it:
    pytest tests/benchmarks/ --benchmark-compare=baseline
"""
