"""
Console host.

Components:
- bootstrap.py: composition root (settings -> EngineState -> PriorityEngine), JSON seed loading
- commands.py: slash-command registry (/rank, /drag, /weights, ...)
- main.py: entrypoint (logging, engine, console loop)
"""
