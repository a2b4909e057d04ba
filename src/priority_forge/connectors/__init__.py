"""
Connectors that drive the engine.

Components:
- console_connector.py: interactive REPL over the command registry
"""
