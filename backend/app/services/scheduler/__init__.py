"""
Scheduler service and the renewal alert job.
"""
from app.services.scheduler.scheduler_service import (
    get_scheduler,
    start_scheduler,
    stop_scheduler,
    parse_schedule_time,
)
from app.services.scheduler.renewal_alerts import (
    AlertRunResult,
    is_alert_day,
    send_renewal_alerts,
    run_renewal_alerts_job,
    add_alert_job,
    start_alert_job,
)

__all__ = [
    "get_scheduler",
    "start_scheduler",
    "stop_scheduler",
    "parse_schedule_time",
    "AlertRunResult",
    "is_alert_day",
    "send_renewal_alerts",
    "run_renewal_alerts_job",
    "add_alert_job",
    "start_alert_job",
]
