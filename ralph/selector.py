"""Task selection and completion checks.

Selection order is a stable function of (passes, priority, filters): pending
stories sorted by ascending priority, ties kept in backlog order.
"""

from collections.abc import Collection

from ralph.models import Backlog, Task


def select_next(
    backlog: Backlog,
    skip: Collection[str] = (),
    only: Collection[str] = (),
) -> Task | None:
    """Pick the next story to work on.

    Args:
        backlog: Freshly loaded backlog
        skip: Story ids never to select
        only: If non-empty, the only story ids eligible for selection

    Returns:
        The highest-priority eligible story, or None when nothing is eligible.
        None means the run is complete, not that something went wrong.
    """
    # sorted() is stable, so equal priorities keep their file order
    pending = sorted((t for t in backlog.tasks if not t.passes), key=lambda t: t.priority)

    for task in pending:
        if task.id in skip:
            continue
        if only and task.id not in only:
            continue
        return task

    return None


def is_complete(
    backlog: Backlog,
    skip: Collection[str] = (),
    only: Collection[str] = (),
) -> bool:
    """Check whether the filtered backlog has no remaining work.

    With an ``only`` filter, every listed story that exists in the backlog
    must pass; ids not present in the backlog are ignored. Otherwise the
    count of pending stories, minus pending stories being skipped, must be
    zero.
    """
    if only:
        for task_id in only:
            task = backlog.get(task_id)
            if task is not None and not task.passes:
                return False
        return True

    incomplete = sum(1 for t in backlog.tasks if not t.passes)
    incomplete -= sum(1 for t in backlog.tasks if not t.passes and t.id in skip)
    return incomplete <= 0
