# vim: set noexpandtab: -*- indent-tabs-mode: t -*-
"""
Stage 2 package: working-block registry and region reduction.

Pipeline placement:
  stage0 (IR text) → stage1 (phi) → stage2 (reduce) → stage3 (assemble) → codegen

Public API:
  - BlockRegistry / WorkingBlock: arena of blocks with stable handles
  - RegionReducer: primitive-driven collapse
"""

from .registry import BlockRegistry, WorkingBlock
from .reducer import RegionReducer

__all__ = ["BlockRegistry", "WorkingBlock", "RegionReducer"]
