"""Test package for the Turbotiply drill core.

The core tests drive formula generation, the round state machine, scoring,
challenge ranking and the round clock directly, with seeded random sources
and a fake clock. The smoke tests run the pygame shell headlessly using
SDL's dummy video driver. Run ``pytest`` from the project root.
"""
