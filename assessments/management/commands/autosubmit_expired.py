import time

from django.core.management.base import BaseCommand
from django.db import close_old_connections
from django.utils import timezone

from assessments.deadline import CountdownTimer, force_submit, sweep_expired
from assessments.models import ExamSession


class Command(BaseCommand):
    help = 'Force-submits exam sessions whose deadline has passed'

    def add_arguments(self, parser):
        parser.add_argument('--watch', action='store_true', help='Keep running and submit sessions as their timers run out')
        parser.add_argument('--interval', type=int, default=30, help='Seconds between rescans in --watch mode')

    def handle(self, *args, **options):
        results = sweep_expired(timezone.now())
        self.stdout.write(self.style.SUCCESS(f"Auto-submitted {len(results)} expired session(s)"))
        if options['watch']:
            self.watch(options['interval'])

    def watch(self, interval):
        timers = {}
        try:
            while True:
                open_ids = set(
                    ExamSession.objects.filter(status=ExamSession.Status.IN_PROGRESS).values_list('pk', flat=True)
                )
                # Sessions submitted by their owner no longer need a countdown
                for session_id in list(timers):
                    if session_id not in open_ids or not timers[session_id].active:
                        timers.pop(session_id).cancel()

                for session in ExamSession.objects.filter(pk__in=open_ids - set(timers)).select_related('exam'):
                    timers[session.pk] = CountdownTimer.for_session(session, on_expire=self._expire).start()

                time.sleep(interval)
        except KeyboardInterrupt:
            self.stdout.write("Stopping deadline watcher")
        finally:
            for timer in timers.values():
                timer.cancel()

    def _expire(self, session_id):
        close_old_connections()
        try:
            if force_submit(session_id) is not None:
                self.stdout.write(self.style.WARNING(f"Session {session_id} auto-submitted"))
        finally:
            close_old_connections()
