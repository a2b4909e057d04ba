"""
Learning subsystem.

Components:
- learner_models.py: LearnerState, PairwisePreference, ReorderEvent, SelectionEvent, ...
- online_learner.py: pairwise hinge-loss weight updates from reorder feedback
- rebalance.py: observer that records significant rank changes
"""
