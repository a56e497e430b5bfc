"""
Tests for Support Tree

This package contains tests for:
- Policies and shared geometry helpers
- Core data structures (points, pending queue, support tree, progress)
- Pipeline operations (detection, sampling, queries, routing, struts, export)
- The end-to-end pipeline and command-line interface
"""
