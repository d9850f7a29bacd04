"""Time-driven campaign processing: thresholds, notifications, auto-close, and the tick driver."""

from attestation.scheduling.autoclose import CampaignAutoCloser
from attestation.scheduling.background import start_scheduler, stop_scheduler
from attestation.scheduling.driver import Processor, SchedulerDriver
from attestation.scheduling.processors import (
    EscalationProcessor,
    ReminderProcessor,
    UnregisteredEscalationProcessor,
    UnregisteredReminderProcessor,
)
from attestation.scheduling.threshold import (
    MS_PER_DAY,
    ThresholdCheck,
    elapsed_days,
    evaluate_threshold,
    threshold_crossed,
)

__all__ = [
    "MS_PER_DAY",
    "CampaignAutoCloser",
    "EscalationProcessor",
    "Processor",
    "ReminderProcessor",
    "SchedulerDriver",
    "ThresholdCheck",
    "UnregisteredEscalationProcessor",
    "UnregisteredReminderProcessor",
    "elapsed_days",
    "evaluate_threshold",
    "start_scheduler",
    "stop_scheduler",
    "threshold_crossed",
]
