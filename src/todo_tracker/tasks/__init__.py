"""
Task subsystem.

Components:
- task_models.py: data structures (Task, Subtask, Priority, TaskFilters, TaskPage, TaskStats)
- task_aggregate.py: single-task invariants and subtask mutations
- task_store.py: SQLite-backed storage + query/update helpers
- task_service.py: owner-scoped operations (load -> mutate -> persist)
- notification_sweeper.py: polling sweep that emails due-soon reminders once per task
"""
