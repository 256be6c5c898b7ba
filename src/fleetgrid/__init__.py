"""fleetgrid: paged fleet queries and optimistic-concurrency edits."""

__version__ = "0.1.0"
