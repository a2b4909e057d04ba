"""
Core wiring.

Components:
- ports.py: Protocols the core depends on (heap items, task sources, rebalance sinks)
- state.py: EngineState, the explicitly owned weights + learner state
"""
