# config.example.py

"""
Documentation-only module (safe to commit).

The real configuration is loaded from environment variables (optionally via a local .env file).
Every variable is optional; an empty environment runs the stock engine.

This file exists to make the repo self-documenting without a local .env.
"""

ENV_VARS = {
    # App / logging
    "PFORGE_APP_NAME": "App display name (default: priority-forge).",
    "PFORGE_LOG_LEVEL": "Console logging level (default: INFO). The log file always gets DEBUG.",
    # Paths (gitignored)
    "PFORGE_DATA_DIR": "Local data directory, holds priority_forge.log (default: .local/priority_forge).",
    "PFORGE_TASKS_FILE": "Optional JSON file of tasks loaded into the console on start.",
    # Initial heuristic weights
    "PFORGE_WEIGHT_BLOCKING": "Weight of the blocking-count factor (default: 10).",
    "PFORGE_WEIGHT_CROSS_PROJECT": "Weight of the cross-project factor (default: 5).",
    "PFORGE_WEIGHT_TIME_SENSITIVE": "Weight of the deadline factor (default: 8).",
    "PFORGE_WEIGHT_EFFORT_VALUE": "Weight of the effort/value factor (default: 3).",
    "PFORGE_WEIGHT_DEPENDENCY": "Weight of the dependency-depth factor (default: 2).",
    # Online learner
    "PFORGE_LEARNER_ENABLED": "Learn weights from manual reorders (true/false, default: true).",
    "PFORGE_LEARNING_RATE": "SGD learning rate (default: 0.01).",
    "PFORGE_MOMENTUM": "Momentum coefficient in [0, 1) (default: 0.9).",
    "PFORGE_MAX_WEIGHT_CHANGE": "Max per-update change of any weight (default: 0.5).",
    "PFORGE_MIN_WEIGHT": "Lower bound for every weight (default: 0.1).",
    "PFORGE_MAX_WEIGHT": "Upper bound for every weight (default: 50).",
    "PFORGE_FEEDBACK_MAX_EVENTS": "Drag-reorder and selection events kept in memory (default: 500).",
    # Rebalance telemetry
    "PFORGE_REBALANCE_THRESHOLD": "Rank shift that counts as significant (default: 2).",
    "PFORGE_REBALANCE_MAX_EVENTS": "Rebalance events kept in memory (default: 500).",
}
