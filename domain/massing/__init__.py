"""Massing Bounded Context.

Responsible for building massing on a discrete site grid:
- Entities: GridModel
- Value Objects: GridDimensions, ConstraintGrid, ScoringWeights, AnnealingConfig
- Services: score, AnnealingOptimizer, optimize_massing
"""
