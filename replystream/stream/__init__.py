"""Stream parsing and the per-turn driver."""
