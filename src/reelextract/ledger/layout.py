# src/reelextract/ledger/layout.py — v1
"""Ledger directory structure.

<ledger_root>/
    <run_id>.json     full run record
    <run_id>.calls.jsonl  analysis calls of the run
    index.json        recent-runs index (most recent first)
    index.lock        cross-process lock for index updates
"""

from __future__ import annotations

from pathlib import Path

INDEX_FILE = "index.json"
INDEX_LOCK_FILE = "index.lock"


def run_path(root: Path, run_id: str) -> Path:
    return root / f"{run_id}.json"


def index_path(root: Path) -> Path:
    return root / INDEX_FILE


def index_lock_path(root: Path) -> Path:
    return root / INDEX_LOCK_FILE


def calls_path(root: Path, run_id: str) -> Path:
    """JSON Lines log of the analysis calls made by one run."""
    return root / f"{run_id}.calls.jsonl"
