"""
water_sort Package
==================

This package contains the core puzzle logic, level generation, scoring, and
evaluation systems for the Water Sort puzzle. It controls:

- Container capacity and the pour primitive
- Level layouts and the seeded shuffle
- Move limits, time limits, and star thresholds
- Win/lose evaluation and undo history

All tunable parameters are in game_config.yaml.
"""
