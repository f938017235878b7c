"""
Deadline controller.

The deadline is derived from the server-side start time and the exam
duration, clipped by the end of the availability window. Client timers are
advisory; every submission is judged against ``compute_deadline``.
"""
import logging
import threading
from datetime import timedelta

from django.utils import timezone

from cores import exceptions
from cores.models import PlatformSetting
from .models import ExamSession

logger = logging.getLogger(__name__)


def compute_deadline(session):
    exam = session.exam
    deadline = session.started_at + timedelta(minutes=exam.duration_minutes)
    if exam.available_until and exam.available_until < deadline:
        deadline = exam.available_until
    return deadline


def is_expired(session, now=None):
    return (now or timezone.now()) > compute_deadline(session)


def timer_state(session, now=None):
    """Remaining time and the countdown colour for the exam client."""
    now = now or timezone.now()
    deadline = compute_deadline(session)
    if session.status != ExamSession.Status.IN_PROGRESS:
        remaining = 0
    else:
        remaining = max(0, int((deadline - now).total_seconds()))

    config = PlatformSetting.load()
    # The window end can cut the allotment short
    total = max(0, (deadline - session.started_at).total_seconds())
    if remaining <= total * config.timer_critical_fraction:
        level = 'critical'
    elif remaining <= total * config.timer_warning_fraction:
        level = 'warning'
    else:
        level = 'normal'
    return {'deadline': deadline, 'time_remaining_seconds': remaining, 'level': level}


def force_submit(session_id, now=None):
    """Submit whatever the session has buffered; a no-op if it is already closed."""
    from .grading import submit

    try:
        result = submit(session_id, final_answers=None, client_auto_submit=True, now=now)
    except exceptions.AlreadySubmitted:
        logger.info("Session %s was submitted before its timer fired", session_id)
        return None
    logger.info(
        "Session %s force-submitted at %s (auto_submitted=%s)",
        session_id, result.session.submitted_at, result.session.auto_submitted,
    )
    return result


def sweep_expired(now=None):
    """Force-submit every in-progress session whose deadline has passed."""
    now = now or timezone.now()
    results = []
    pending = ExamSession.objects.filter(status=ExamSession.Status.IN_PROGRESS).select_related('exam')
    for session in pending.iterator():
        if not is_expired(session, now):
            continue
        result = force_submit(session.pk, now)
        if result is not None:
            results.append(result)
    return results


class CountdownTimer:
    """
    Cancellable countdown bound to one session.

    ``cancel()`` only stops the countdown; the session stays in progress and
    can be resumed. When the countdown runs out ``on_expire(session_id)`` is
    called once.
    """

    def __init__(self, session_id, deadline, on_expire=force_submit, clock=timezone.now):
        self.session_id = session_id
        self.deadline = deadline
        self.on_expire = on_expire
        self._clock = clock
        self._timer = None
        self._lock = threading.Lock()
        self.cancelled = False
        self.fired = False

    @classmethod
    def for_session(cls, session, **kwargs):
        return cls(session.pk, compute_deadline(session), **kwargs)

    def remaining(self):
        return max(0.0, (self.deadline - self._clock()).total_seconds())

    def start(self):
        self._timer = threading.Timer(self.remaining(), self._fire)
        self._timer.daemon = True
        self._timer.start()
        return self

    def _fire(self):
        with self._lock:
            if self.cancelled or self.fired:
                return
            self.fired = True
        self.on_expire(self.session_id)

    def cancel(self):
        with self._lock:
            if self.fired:
                return False
            self.cancelled = True
        if self._timer is not None:
            self._timer.cancel()
        return True

    @property
    def active(self):
        return self._timer is not None and not (self.cancelled or self.fired)
