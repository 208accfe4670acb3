"""
Task subsystem.

Components:
- task_models.py: data structures (TaskDefinition, TaskStatus, LastRunStatus, TaskDescriptor)
- task_store.py: SQLite-backed storage + advisory run locks
- task_registry.py: implementation registry and descriptor discovery
- task_contract.py: what implementations receive and expose
- task_executor.py: one run attempt, outcome recorded on the definition
- task_scheduler.py: polling loop that runs due definitions
- task_api.py: administrative operations used by the console/UI
"""
