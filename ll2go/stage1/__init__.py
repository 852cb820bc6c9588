# vim: set noexpandtab: -*- indent-tabs-mode: t -*-
"""
Stage 1 package: phi instructions → predecessor-side assignments.

Pipeline placement:
  stage0 (IR text) → stage1 (phi) → stage2 (reduce) → stage3 (assemble) → codegen

Public API:
  - PhiResolver: per-function phi-outgoing buffers
  - resolve_phis: functional wrapper
"""

from .resolve import PhiResolver, resolve_phis

__all__ = ["PhiResolver", "resolve_phis"]
