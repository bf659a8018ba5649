"""Pausable step interpreter.

Modules:
- events: Per-instance event bus (paused / resumed)
- gate: Pause/resume lock and durable wait
- interpreter: Block queue state machine
- notifier: Lifecycle notifications (started / paused / resumed / ended)
- adapter: Host engine interface; local: in-process host engine

Subpackages:
- temporal: Temporal workflow, activities, interceptor and worker
"""
