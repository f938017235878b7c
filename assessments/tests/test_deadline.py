from datetime import timedelta
from io import StringIO
from unittest import mock

from django.core.cache import cache
from django.core.management import call_command
from django.test import TestCase
from django.utils import timezone

from assessments.deadline import (
    CountdownTimer, compute_deadline, force_submit, is_expired, sweep_expired, timer_state,
)
from assessments.grading import submit
from assessments.models import ExamSession
from assessments.sessions import open_or_resume
from .helpers import ExamFixtures, T0


class DeadlineTests(ExamFixtures, TestCase):
    def setUp(self):
        cache.clear()
        self.tenant = self.make_tenant()
        self.candidate = self.make_user(self.tenant)
        self.exam = self.make_exam(self.tenant, duration_minutes=60)
        self.q1 = self.add_question(self.exam, correct_answer="A")
        self.q2 = self.add_question(self.exam, correct_answer="B")
        self.session, _ = open_or_resume(self.exam, self.candidate, now=T0)

    def test_deadline_is_start_plus_duration(self):
        self.assertEqual(compute_deadline(self.session), T0 + timedelta(minutes=60))

    def test_window_end_clips_the_deadline(self):
        self.exam.available_until = T0 + timedelta(minutes=20)
        self.exam.save()
        self.session.refresh_from_db()

        self.assertEqual(compute_deadline(self.session), T0 + timedelta(minutes=20))
        self.assertTrue(is_expired(self.session, T0 + timedelta(minutes=21)))

    def test_window_ending_later_does_not_extend_the_deadline(self):
        self.exam.available_until = T0 + timedelta(hours=5)
        self.exam.save()
        self.session.refresh_from_db()

        self.assertEqual(compute_deadline(self.session), T0 + timedelta(minutes=60))

    def test_is_expired_is_strict(self):
        deadline = compute_deadline(self.session)
        self.assertFalse(is_expired(self.session, deadline))
        self.assertTrue(is_expired(self.session, deadline + timedelta(seconds=1)))

    def test_timer_levels(self):
        state = timer_state(self.session, T0 + timedelta(minutes=10))
        self.assertEqual(state['time_remaining_seconds'], 50 * 60)
        self.assertEqual(state['level'], 'normal')
        self.assertEqual(state['deadline'], T0 + timedelta(minutes=60))

        self.assertEqual(timer_state(self.session, T0 + timedelta(minutes=50))['level'], 'warning')
        self.assertEqual(timer_state(self.session, T0 + timedelta(minutes=55))['level'], 'critical')
        self.assertEqual(timer_state(self.session, T0 + timedelta(minutes=70))['time_remaining_seconds'], 0)

    def test_timer_levels_follow_a_clipped_allotment(self):
        self.exam.available_until = T0 + timedelta(minutes=30)
        self.exam.save()
        self.session.refresh_from_db()

        # Thirty minutes allotted, not sixty
        self.assertEqual(timer_state(self.session, T0 + timedelta(minutes=20))['level'], 'normal')
        self.assertEqual(timer_state(self.session, T0 + timedelta(minutes=25))['level'], 'warning')
        self.assertEqual(timer_state(self.session, T0 + timedelta(minutes=28))['level'], 'critical')

    def test_timer_is_zero_once_submitted(self):
        submit(self.session.pk, {}, now=T0 + timedelta(minutes=5))
        self.session.refresh_from_db()
        self.assertEqual(timer_state(self.session, T0 + timedelta(minutes=6))['time_remaining_seconds'], 0)

    def test_late_manual_submit_is_flagged_automatic(self):
        late = T0 + timedelta(minutes=75)
        result = submit(self.session.pk, {self.q1.pk: "A"}, client_auto_submit=False, now=late)

        self.assertTrue(result.session.auto_submitted)
        self.assertEqual(result.session.submitted_at, late)

    def test_client_timeout_claim_is_not_trusted(self):
        early = T0 + timedelta(minutes=30)
        result = submit(self.session.pk, {self.q1.pk: "A"}, client_auto_submit=True, now=early)

        self.assertFalse(result.session.auto_submitted)
        self.assertEqual(result.session.submitted_at, early)

    def test_forced_submit_when_deadline_passes(self):
        self.session.answer_rows.create(question=self.q1, value="A", revision=1)
        deadline = compute_deadline(self.session)

        results = sweep_expired(deadline + timedelta(seconds=1))

        self.assertEqual(len(results), 1)
        self.session.refresh_from_db()
        self.assertTrue(self.session.auto_submitted)
        self.assertLessEqual(abs((self.session.submitted_at - deadline).total_seconds()), 1)
        self.assertEqual(self.session.score, 5)
        self.assertEqual(self.session.total_points, 10)

    def test_sweep_leaves_running_sessions_alone(self):
        late_starter = self.make_user(self.tenant)
        running, _ = open_or_resume(self.exam, late_starter, now=T0 + timedelta(minutes=30))

        sweep_expired(T0 + timedelta(minutes=61))

        running.refresh_from_db()
        self.assertEqual(running.status, ExamSession.Status.IN_PROGRESS)
        self.session.refresh_from_db()
        self.assertNotEqual(self.session.status, ExamSession.Status.IN_PROGRESS)

    def test_force_submit_on_closed_session_is_a_no_op(self):
        submit(self.session.pk, {}, now=T0 + timedelta(minutes=5))
        self.assertIsNone(force_submit(self.session.pk, T0 + timedelta(minutes=61)))

    def test_management_command_submits_expired_sessions(self):
        self.session.started_at = timezone.now() - timedelta(hours=2)
        self.session.save()
        out = StringIO()

        call_command('autosubmit_expired', stdout=out)

        self.session.refresh_from_db()
        self.assertTrue(self.session.auto_submitted)
        self.assertIn("Auto-submitted 1 expired session(s)", out.getvalue())


class CountdownTimerTests(TestCase):
    def test_cancel_stops_the_countdown_without_submitting(self):
        on_expire = mock.Mock()
        timer = CountdownTimer(7, timezone.now() + timedelta(minutes=5), on_expire=on_expire).start()

        self.assertTrue(timer.active)
        self.assertTrue(timer.cancel())

        self.assertFalse(timer.active)
        self.assertTrue(timer.cancelled)
        on_expire.assert_not_called()

    def test_expired_countdown_fires_once(self):
        on_expire = mock.Mock()
        timer = CountdownTimer(7, timezone.now() - timedelta(seconds=1), on_expire=on_expire).start()
        timer._timer.join(2)

        on_expire.assert_called_once_with(7)
        self.assertTrue(timer.fired)
        self.assertFalse(timer.cancel())
        timer._fire()
        on_expire.assert_called_once_with(7)

    def test_remaining_uses_the_injected_clock(self):
        now = T0
        timer = CountdownTimer(1, T0 + timedelta(seconds=90), on_expire=mock.Mock(), clock=lambda: now)
        self.assertEqual(timer.remaining(), 90.0)
