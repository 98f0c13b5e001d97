"""Test helpers for the rnkit suite.

- packs: pack and capability descriptor builders
- projects: initialized project and modulator builders
- cache_utils: cache reset utilities for test isolation
"""
