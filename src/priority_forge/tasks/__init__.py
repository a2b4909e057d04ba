"""
Task data structures.

Components:
- task_models.py: Task, Priority, Effort, TaskStatus, TaskFactors, HeuristicWeights, RankedItem
"""
