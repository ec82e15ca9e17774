from jarvi.environments.google.tasks.client import GoogleTasksClient, TaskItem

__all__ = ["GoogleTasksClient", "TaskItem"]
