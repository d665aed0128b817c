"""
HazeDB Test Suite.

This package contains:
- unit/: Unit tests, one module per component
- integration/: Scenarios through the store and the dispatch() interface
"""
