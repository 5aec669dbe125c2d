"""
Production Kernel

Workflow backbone for corrugated-box manufacturing orders:
- Step sequencing with acceptance gates
- Parallel printing / corrugation entry
- Atomic job completion and archival
- Append-only activity trail
"""

__version__ = "0.1.0"
