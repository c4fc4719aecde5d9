"""Core Module

This package contains the core functionality for idxbench: IDX parsing,
dataset preparation, the model adapter contract, scoring, benchmarking
and the run orchestrator.

Submodules:
    - config: TOML configuration management
    - datasets: Dataset container, label encoding and splitting
    - device: Device discovery for the accelerated backend
    - exceptions: Error taxonomy
    - files: Context-managed file access
    - idx: IDX binary format reader and writer
    - logger: Logging configuration
    - ml: Model adapter, scoring and benchmarking
    - pipeline: Run orchestrator

Note: torch is imported lazily by the ml submodules.
Import from specific submodules as needed:
    from idxbench.core.idx import read_idx_images
    from idxbench.core.pipeline import RunOrchestrator
"""
