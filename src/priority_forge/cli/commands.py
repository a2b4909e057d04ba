# src/priority_forge/cli/commands.py

from __future__ import annotations

import contextlib
import inspect
import logging
from collections.abc import Callable
from typing import cast

from ..errors import RankingError
from ..ranking.engine import PriorityEngine
from ..tasks.task_models import ScoredTask

CommandEmitter = Callable[[str], None]
CommandHandler2 = Callable[[PriorityEngine, list[str]], str]
CommandHandler3 = Callable[[PriorityEngine, list[str], CommandEmitter | None], str]
CommandHandler = CommandHandler2 | CommandHandler3

logger = logging.getLogger(__name__)

DEFAULT_RANK_LIMIT = 10


class CommandRegistry:
    """Simple slash-command registry used by connectors (/help, /rank, ...)."""

    def __init__(self) -> None:
        self._handlers: dict[str, CommandHandler] = {}
        self._help: dict[str, str] = {}

    def register(
        self,
        name: str,
        handler: CommandHandler,
        help_text: str,
        aliases: list[str] | None = None,
    ) -> None:
        aliases = aliases or []
        key = name.lower()
        self._handlers[key] = handler
        self._help[key] = help_text
        for alias in aliases:
            self._handlers[alias.lower()] = handler

    def handle(
        self,
        engine: PriorityEngine,
        line: str,
        emit: CommandEmitter | None = None,
    ) -> str | None:
        """
        Handle a string like "/command args".
        Returns a reply string or None if not a command.

        Ranking errors (unknown id, rank out of range, bad weight name) are
        turned into a reply; anything else propagates to the connector.
        """
        if not line.startswith("/"):
            return None

        parts = line[1:].split()
        if not parts:
            return "Empty command. Use /help to list available commands."

        name = parts[0].lower()
        args = parts[1:]

        handler = self._handlers.get(name)
        if not handler:
            return f"Unknown command: /{name}. Use /help to list available commands."

        try:
            nparams = len(inspect.signature(handler).parameters)
        except (TypeError, ValueError):
            nparams = 3

        try:
            if nparams >= 3:
                h3 = cast(CommandHandler3, handler)
                return h3(engine, args, emit)
            h2 = cast(CommandHandler2, handler)
            return h2(engine, args)
        except (RankingError, ValueError) as e:
            logger.debug("Command /%s rejected: %s", name, e)
            return f"Error: {e}"

    def build_help(self) -> str:
        lines = ["Available commands:"]
        for name, help_text in self._help.items():
            lines.append(f"  /{name} - {help_text}")
        return "\n".join(lines)


registry = CommandRegistry()


def _fmt_item(rank: int, item: ScoredTask) -> str:
    task = item.task
    title = f" {task.title}" if task.title else ""
    project = f" ({task.project})" if task.project else ""
    return f"{rank}. {item.id} [{task.priority.value}] score={item.score:.2f}{title}{project}"


def _parse_rank(raw: str) -> int:
    """Console ranks are 1-based; the engine is 0-based."""
    try:
        value = int(raw)
    except ValueError:
        raise ValueError(f"Not a rank: {raw!r}") from None
    return value - 1


def cmd_help(engine: PriorityEngine, args: list[str]) -> str:
    return registry.build_help()


def cmd_rank(engine: PriorityEngine, args: list[str]) -> str:
    """
    /rank     -> top 10
    /rank N   -> top N
    /rank all -> everything
    """
    ranked = engine.ranked()
    if not ranked:
        return "Queue is empty."

    limit = DEFAULT_RANK_LIMIT
    if args:
        if args[0].lower() == "all":
            limit = len(ranked)
        else:
            limit = max(1, int(args[0]))

    lines = [f"Ranked queue ({len(ranked)} open):"]
    for i, item in enumerate(ranked[:limit], start=1):
        lines.append("  " + _fmt_item(i, item))
    if limit < len(ranked):
        lines.append(f"  ... {len(ranked) - limit} more")
    return "\n".join(lines)


def cmd_top(engine: PriorityEngine, args: list[str]) -> str:
    item = engine.top()
    if item is None:
        return "Queue is empty."
    return _fmt_item(1, item)


def cmd_pop(engine: PriorityEngine, args: list[str]) -> str:
    item = engine.pop_top()
    if item is None:
        return "Queue is empty."
    return f"Popped {_fmt_item(1, item)}"


def cmd_done(engine: PriorityEngine, args: list[str]) -> str:
    if not args:
        return "Usage: /done <task_id>"
    task = engine.task_completed(args[0])
    return f"Completed {task.id}. {len(engine)} open tasks remain."


def cmd_explain(engine: PriorityEngine, args: list[str]) -> str:
    if not args:
        return "Usage: /explain <task_id>"
    task_id = args[0]
    breakdown = engine.explain(task_id)
    rank = engine.rank_of(task_id)

    lines = [f"{task_id} (rank {rank + 1 if rank is not None else '?'}): score={breakdown.total:.2f}"]
    lines.append(f"  base: {breakdown.base:.0f}")
    for name, value in breakdown.contributions.items():
        lines.append(f"  {name}: {value:+.2f}")
    dominant = breakdown.dominant_factor()
    if dominant:
        lines.append(f"  main driver: {dominant}")
    return "\n".join(lines)


def cmd_drag(engine: PriorityEngine, args: list[str], emit: CommandEmitter | None = None) -> str:
    """/drag <task_id> <from_rank> <to_rank>  (1-based ranks as shown by /rank)."""
    if len(args) != 3:
        return "Usage: /drag <task_id> <from_rank> <to_rank>"

    task_id = args[0]
    from_rank = _parse_rank(args[1])
    to_rank = _parse_rank(args[2])

    result = engine.log_reorder(task_id, from_rank, to_rank)

    if emit and result.pairs_generated:
        with contextlib.suppress(Exception):
            emit(f"[LEARN] {result.pairs_generated} preference pair(s) from this move.")

    if not result.weight_update_applied:
        return f"Recorded {result.event.direction.value} move of {task_id}; weights unchanged."

    weights = ", ".join(f"{k}={v:.3f}" for k, v in result.new_weights.as_dict().items())
    return f"Recorded {result.event.direction.value} move of {task_id}; weights updated: {weights}"


def cmd_select(engine: PriorityEngine, args: list[str]) -> str:
    if not args:
        return "Usage: /select <task_id>"
    event = engine.log_selection(args[0])
    if event.was_top_selected:
        return f"Selected {event.selected_id} (top of the queue)."
    return (
        f"Selected {event.selected_id} at rank {event.selected_rank + 1}, "
        f"skipping {len(event.skipped_ids)} task(s)."
    )


def cmd_weights(engine: PriorityEngine, args: list[str]) -> str:
    """
    /weights              -> show current weights
    /weights <name> <val> -> set one weight
    """
    if args:
        if len(args) != 2:
            return "Usage: /weights <name> <value>"
        engine.set_weights(**{args[0]: float(args[1])})

    lines = ["Heuristic weights:"]
    for name, value in engine.weights.as_dict().items():
        lines.append(f"  {name}: {value:.3f}")
    return "\n".join(lines)


def cmd_learner(engine: PriorityEngine, args: list[str]) -> str:
    """
    /learner               -> show learner status
    /learner on|off        -> enable / disable online learning
    /learner rate <x>      -> set learning rate
    /learner momentum <x>  -> set momentum
    """
    if args:
        sub = args[0].lower()
        if sub in ("on", "1", "true", "yes"):
            engine.update_learner_config(enabled=True)
        elif sub in ("off", "0", "false", "no"):
            engine.update_learner_config(enabled=False)
        elif sub in ("rate", "momentum") and len(args) == 2:
            key = "learning_rate" if sub == "rate" else "momentum"
            engine.update_learner_config(**{key: float(args[1])})
        else:
            return "Usage: /learner on | off | rate <x> | momentum <x>"

    st = engine.learner_state()
    return (
        "Online learner:\n"
        f"  Enabled: {'ON' if st.enabled else 'OFF'}\n"
        f"  Learning rate: {st.learning_rate}\n"
        f"  Momentum: {st.momentum}\n"
        f"  Bounds: [{st.min_weight}, {st.max_weight}], max step {st.max_weight_change}"
    )


def cmd_stats(engine: PriorityEngine, args: list[str]) -> str:
    m = engine.learner_metrics()
    return (
        "Learner stats:\n"
        f"  Reorders: {m.total_updates}\n"
        f"  Preference pairs: {m.total_pairs}\n"
        f"  Predicted correctly: {m.correct_predictions} ({m.accuracy:.2f}%)\n"
        f"  Cumulative loss: {m.cumulative_loss:.2f}\n"
        f"  Open tasks: {len(engine)}"
    )


def cmd_rebalances(engine: PriorityEngine, args: list[str]) -> str:
    limit = int(args[0]) if args else 5
    events = engine.rebalance_events()[-limit:]
    if not events:
        return "No rebalance events recorded."

    lines = [f"Last {len(events)} rebalance event(s):"]
    for ev in events:
        who = f" {ev.trigger_task_id}" if ev.trigger_task_id else ""
        lines.append(
            f"  {ev.timestamp:%Y-%m-%d %H:%M:%S} {ev.trigger.value}{who}: "
            f"{len(ev.significant_changes)} moved, top {', '.join(ev.top_after) or '-'}"
        )
    return "\n".join(lines)


registry.register("help", cmd_help, help_text="Show available commands.", aliases=["h", "?"])
registry.register("rank", cmd_rank, help_text="Show the ranked queue: /rank [N|all].", aliases=["ls"])
registry.register("top", cmd_top, help_text="Show the highest-priority task.")
registry.register("pop", cmd_pop, help_text="Take the highest-priority task out of the queue.")
registry.register("done", cmd_done, help_text="Mark a task complete: /done <id>.")
registry.register("explain", cmd_explain, help_text="Score breakdown: /explain <id>.")
registry.register("drag", cmd_drag, help_text="Log a manual reorder: /drag <id> <from> <to>.")
registry.register("select", cmd_select, help_text="Log that you started a task: /select <id>.")
registry.register("weights", cmd_weights, help_text="Show or set weights: /weights [name value].")
registry.register(
    "learner", cmd_learner, help_text="Online learner: /learner on | off | rate <x> | momentum <x>."
)
registry.register("stats", cmd_stats, help_text="Show online learner metrics.")
registry.register("rebalances", cmd_rebalances, help_text="Recent rebalance events: /rebalances [N].")
