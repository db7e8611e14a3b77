"""
In-app notifications.

The marketplace core dispatches notifications fire-and-forget through
NotificationService.notify_best_effort; delivery failures never affect
order, payment or wallet state.
"""
