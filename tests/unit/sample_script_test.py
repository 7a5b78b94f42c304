"""
Unit tests for the random LFT sampling script.

Tests cover:
1. Printed report (including the size histogram)
2. YAML summary written with --out
"""

import importlib.util
import sys
from pathlib import Path

import pytest

from robust_lft.utils.config import load_yaml

REPO = Path(__file__).resolve().parents[2]
SCRIPT = REPO / "scripts" / "sample_random_lfts.py"
REPO_CONFIG = REPO / "configs" / "random_lft.yaml"


@pytest.fixture
def script():
    spec = importlib.util.spec_from_file_location("sample_random_lfts", SCRIPT)
    module = importlib.util.module_from_spec(spec)
    spec.loader.exec_module(module)
    return module


def _run(script, monkeypatch, *args):
    monkeypatch.setattr(sys, "argv", ["sample_random_lfts.py", "--cfg", str(REPO_CONFIG), *args])
    script.main()


# ============================================================================
# Test Class 1: Report
# ============================================================================

class TestReport:

    def test_report_lists_sizes(self, script, monkeypatch, capsys):
        _run(script, monkeypatch, "--samples", "8", "--seed", "3")
        out = capsys.readouterr().out
        assert "=== 8 random LFTs (seed=3) ===" in out
        assert "--- size (dim_out, dim_in) ---" in out
        assert "--- period ---" in out


# ============================================================================
# Test Class 2: Summary file
# ============================================================================

class TestSummary:

    def test_summary_sizes_count_every_sample(self, script, monkeypatch, tmp_path):
        path = tmp_path / "summary.yaml"
        _run(script, monkeypatch, "--samples", "6", "--seed", "4", "--out", str(path))
        summary = load_yaml(path)
        assert summary["samples"] == 6
        assert sum(summary["sizes"].values()) == 6
        assert sum(summary["num_deltas"].values()) == 6
        assert summary["lmi_failures"] is None
