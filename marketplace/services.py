from typing import NamedTuple, Optional

from .models import Task

CHAT_ELIGIBLE_STATUSES = frozenset({Task.STATUS_IN_PROGRESS, Task.STATUS_COMPLETED})


class TaskStatus(NamedTuple):
    status: str
    uploaded_by: str
    assigned_to: Optional[str]

    @property
    def allows_chat(self) -> bool:
        return self.status in CHAT_ELIGIBLE_STATUSES


def get_task_status(task_id) -> TaskStatus:
    """
    Look up the current status of a task.

    Raises:
        Task.DoesNotExist: If no task exists with the given id
    """
    if task_id is None:
        raise Task.DoesNotExist("Task reference is empty")

    status, uploaded_by, assigned_to = Task._default_manager.filter(pk=task_id).values_list(
        'status', 'uploaded_by_id', 'assigned_to_id'
    ).get()
    return TaskStatus(status, uploaded_by, assigned_to)
